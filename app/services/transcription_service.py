"""
Transcription service (speech-to-text).

This module sends extracted audio to the OpenAI Whisper API and returns the
transcript text. Concurrent uploads are bounded by a semaphore owned by the
service instance, so one process never has more than
MAX_CONCURRENT_TRANSCRIPTIONS requests in flight.
"""

import os
import asyncio
import logging
from typing import Optional

import requests

from app.config import Settings
from app.errors import TranscriptionError
from app.utils.logging_utils import APP_LOGGER_NAME


logger = logging.getLogger(APP_LOGGER_NAME)


def _error_message_from(response: requests.Response) -> str:
    try:
        error_json = response.json()
        return error_json.get('error', {}).get('message', response.text)
    except ValueError:
        return response.text


class WhisperTranscriber:
    """Client for the /audio/transcriptions endpoint."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self._semaphore = asyncio.Semaphore(max(1, settings.max_concurrent_transcriptions))

    @property
    def configured(self) -> bool:
        return bool(self.settings.openai_api_key)

    def _post(self, audio_path: str, language: Optional[str]) -> requests.Response:
        data = {"model": self.settings.transcription_model, "response_format": "json"}
        if language:
            data["language"] = language
        with open(audio_path, 'rb') as f:
            return self.session.post(
                f"{self.settings.openai_base_url.rstrip('/')}/audio/transcriptions",
                headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
                files={"file": (os.path.basename(audio_path), f)},
                data=data,
                timeout=self.settings.transcription_timeout,
            )

    async def transcribe(self, audio_path: str, language: Optional[str] = None) -> str:
        """
        Transcribe an audio file.

        Args:
            audio_path: Path to the audio file (mp3)
            language: Optional ISO language hint

        Returns:
            Transcript text, stripped

        Raises:
            TranscriptionError: Missing key, oversized file, HTTP or API failure
        """
        if not self.configured:
            raise TranscriptionError("Transcription unavailable: OPENAI_API_KEY not configured")
        if not os.path.exists(audio_path):
            raise TranscriptionError(f"Audio file not found: {os.path.basename(audio_path)}")

        size_mb = os.path.getsize(audio_path) / (1024 * 1024)
        if size_mb > self.settings.max_transcription_file_mb:
            raise TranscriptionError(
                f"Audio file is {size_mb:.1f} MB, above the "
                f"{self.settings.max_transcription_file_mb} MB transcription limit"
            )

        async with self._semaphore:
            logger.info(f"Transcribing {os.path.basename(audio_path)} ({size_mb:.1f} MB)")
            try:
                response = await asyncio.to_thread(self._post, audio_path, language)
            except requests.exceptions.Timeout:
                raise TranscriptionError(
                    f"Transcription request timed out after {self.settings.transcription_timeout}s"
                )
            except requests.exceptions.ConnectionError as e:
                raise TranscriptionError(f"Transcription service unreachable: {str(e)}")
            except requests.exceptions.RequestException as e:
                raise TranscriptionError(f"Transcription request failed: {str(e)}")

        if response.status_code != 200:
            raise TranscriptionError(
                f"OpenAI API error (HTTP {response.status_code}): {_error_message_from(response)}"
            )

        try:
            result = response.json()
        except ValueError:
            raise TranscriptionError("Transcription service returned invalid JSON")

        text = (result.get('text') or '').strip()
        if not text:
            raise TranscriptionError("Transcription returned no text; audio may be silent")
        return text
