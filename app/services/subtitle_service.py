"""
Transcript strategy chain.

A text request is served by the first strategy in an ordered list that
produces a transcript:

1. whisper              - download audio, transcribe it
2. manual-subtitles     - uploader-provided subtitle track
3. automatic-subtitles  - platform auto-generated captions

Strategies run strictly in order; once one succeeds the rest are never
invoked. When every strategy fails, NoTranscriptAvailable lists why.
"""

import os
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Sequence, Union

from app.errors import MediaAppError, NoTranscriptAvailable, SubtitlesNotFound, TranscriptionError
from app.models.media import Artifact, ArtifactKind, MediaInfo, TranscriptionMethod, TranscriptionResult
from app.services.transcription_service import WhisperTranscriber
from app.services.ytdlp_service import YtDlpService
from app.utils.subtitle_utils import build_single_cue_vtt, subtitle_to_text


@dataclass(frozen=True)
class TranscriptContext:
    """What a strategy needs to know about the request it serves."""
    source_url: str
    # downloads_dir/<artifact-base-name>, without extension
    base_path: str
    media_info: MediaInfo


def _write_text(path: str, content: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)


def _read_text(path: str) -> str:
    with open(path, 'r', encoding='utf-8-sig', errors='replace') as f:
        return f.read()


class WhisperStrategy:
    name = "whisper"

    def __init__(self, ytdlp: YtDlpService, transcriber: WhisperTranscriber):
        self.ytdlp = ytdlp
        self.transcriber = transcriber

    async def run(self, ctx: TranscriptContext) -> TranscriptionResult:
        # Skip the audio download entirely when no API key is set
        if not self.transcriber.configured:
            raise TranscriptionError("Transcription unavailable: OPENAI_API_KEY not configured")

        audio_path = f"{ctx.base_path}.mp3"
        await self.ytdlp.download_audio(ctx.source_url, audio_path)
        text = await self.transcriber.transcribe(audio_path)

        text_path = f"{ctx.base_path}.txt"
        vtt_path = f"{ctx.base_path}.vtt"
        await asyncio.to_thread(_write_text, text_path, text)
        await asyncio.to_thread(
            _write_text, vtt_path, build_single_cue_vtt(text, ctx.media_info.duration_seconds)
        )

        return TranscriptionResult(
            text=text,
            method=TranscriptionMethod.WHISPER,
            source_artifact=Artifact(ArtifactKind.SUBTITLE, vtt_path, derived_from=ctx.source_url),
            text_artifact=Artifact(ArtifactKind.TEXT, text_path, derived_from=audio_path),
        )


class SubtitleStrategy:
    """Download a subtitle track and flatten it to plain text."""

    def __init__(self, ytdlp: YtDlpService, automatic: bool):
        self.ytdlp = ytdlp
        self.automatic = automatic
        self.name = "automatic-subtitles" if automatic else "manual-subtitles"

    async def run(self, ctx: TranscriptContext) -> TranscriptionResult:
        subtitle_path = await self.ytdlp.download_subtitles(
            ctx.source_url, ctx.base_path, automatic=self.automatic
        )

        content = await asyncio.to_thread(_read_text, subtitle_path)
        text = subtitle_to_text(content)
        if not text:
            raise SubtitlesNotFound(f"{os.path.basename(subtitle_path)} contains no caption text")

        text_path = f"{ctx.base_path}.txt"
        await asyncio.to_thread(_write_text, text_path, text)

        return TranscriptionResult(
            text=text,
            method=TranscriptionMethod.SUBTITLES,
            source_artifact=Artifact(ArtifactKind.SUBTITLE, subtitle_path, derived_from=ctx.source_url),
            text_artifact=Artifact(ArtifactKind.TEXT, text_path, derived_from=subtitle_path),
        )


TranscriptStrategy = Union[WhisperStrategy, SubtitleStrategy]


def default_strategies(ytdlp: YtDlpService, transcriber: WhisperTranscriber) -> List[TranscriptStrategy]:
    return [
        WhisperStrategy(ytdlp, transcriber),
        SubtitleStrategy(ytdlp, automatic=False),
        SubtitleStrategy(ytdlp, automatic=True),
    ]


async def run_transcript_strategies(
    strategies: Sequence[TranscriptStrategy],
    ctx: TranscriptContext,
    logger: Union[logging.Logger, logging.LoggerAdapter],
) -> TranscriptionResult:
    """
    Try each strategy in order and return the first transcript produced.

    Raises:
        NoTranscriptAvailable: If every strategy failed
    """
    failures = []
    for strategy in strategies:
        logger.info(f"Transcript strategy '{strategy.name}' starting")
        try:
            result = await strategy.run(ctx)
        except (MediaAppError, OSError) as e:
            logger.warning(f"Transcript strategy '{strategy.name}' failed: {e}")
            failures.append(f"{strategy.name}: {e}")
            continue

        logger.info(f"Transcript strategy '{strategy.name}' succeeded ({len(result.text)} chars)")
        return result

    reasons = "; ".join(failures) if failures else "no strategies configured"
    raise NoTranscriptAvailable(
        f"Failed to get transcript: transcription failed and no subtitles are available ({reasons})"
    )
