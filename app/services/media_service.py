"""
Media request orchestrator.

Sequences one process-media request through its states:

    Validating -> FetchingInfo -> {DownloadingVideo
                                   | DownloadingAudio -> MaybeIsolating
                                   | TranscribingWithFallback -> ExportingDocument}
               -> MaybePersisting -> Responding

Critical-path steps raise MediaAppError subclasses. Voice isolation,
persistence and delivery are best-effort and only ever run through
run_best_effort(), so their failures end up in the log and, at most, in a
degraded success message.

Also handles trimming (clip) of produced or external media.
"""

import os
import math
import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Union

from app.config import Settings
from app.errors import (
    ClipSourceNotFound,
    InvalidRequest,
    PersistenceError,
    QuotaExceeded,
)
from app.models.media import (
    FREE_TIER,
    Artifact,
    ArtifactKind,
    ClipMediaType,
    MediaInfo,
    MediaRequest,
    MediaType,
    ProcessMediaResult,
    TranscriptionResult,
)
from app.services.delivery_service import DeliveryService
from app.services.document_service import export_subtitles_to_docx
from app.services.ffmpeg_service import FfmpegService
from app.services.subtitle_service import (
    TranscriptContext,
    TranscriptStrategy,
    run_transcript_strategies,
)
from app.services.supabase_service import KnowledgeBaseStore
from app.services.ytdlp_service import YtDlpService
from app.utils.best_effort import run_best_effort
from app.utils.filename_utils import build_artifact_base_name, build_clip_filename, build_temp_filename
from app.utils.logging_utils import APP_LOGGER_NAME
from app.utils.timestamp_utils import parse_timestamp_to_seconds
from app.utils.url_utils import build_file_url, is_http_url, is_local_artifact_url, resolve_downloads_path


VIDEO_SUCCESS_MESSAGE = 'Video downloaded successfully. Click to download.'
AUDIO_SUCCESS_MESSAGE = 'Audio extracted successfully. Click to download.'
AUDIO_ISOLATED_MESSAGE = 'Audio extracted with voice isolation. Click to download.'
AUDIO_DEGRADED_MESSAGE = 'Audio extracted successfully (voice isolation failed). Click to download.'
TEXT_SUCCESS_MESSAGE = 'Audio transcribed successfully. Click to download the document.'
CLIP_SUCCESS_MESSAGE = 'Media clipped successfully'

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def _read_text_or_none(path: str) -> Optional[str]:
    try:
        with open(path, 'r', encoding='utf-8-sig', errors='replace') as f:
            return f.read()
    except OSError:
        return None


def _parse_clip_time(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise InvalidRequest(f"Invalid {field}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        try:
            seconds = parse_timestamp_to_seconds(str(value))
        except ValueError:
            raise InvalidRequest(f"Invalid {field}: {value}")
    # NaN and infinity slip past range comparisons
    if not math.isfinite(seconds):
        raise InvalidRequest(f"Invalid {field}: {value}")
    return seconds


class MediaService:
    """Runs process-media and clip-media requests end to end."""

    def __init__(
        self,
        settings: Settings,
        ytdlp: YtDlpService,
        ffmpeg: FfmpegService,
        store: KnowledgeBaseStore,
        delivery: DeliveryService,
        strategies: Sequence[TranscriptStrategy],
    ):
        self.settings = settings
        self.ytdlp = ytdlp
        self.ffmpeg = ffmpeg
        self.store = store
        self.delivery = delivery
        self.strategies = list(strategies)

    @property
    def downloads_dir(self) -> str:
        return self.settings.downloads_dir

    # ------------------------------------------------------------------
    # Validating
    # ------------------------------------------------------------------

    @staticmethod
    def validate(
        url: Optional[str],
        media_type: Optional[str],
        voice_isolation: Optional[bool] = False,
        requesting_user_id: Optional[str] = None,
    ) -> MediaRequest:
        """
        Build a MediaRequest from raw input.

        Raises:
            InvalidRequest: Missing url/type or unknown type
        """
        url = (url or '').strip()
        media_type = (media_type or '').strip()
        if not url or not media_type:
            raise InvalidRequest("Missing URL or media type")
        try:
            requested_type = MediaType(media_type.lower())
        except ValueError:
            raise InvalidRequest(f"Invalid media type: {media_type}")

        return MediaRequest(
            source_url=url,
            requested_type=requested_type,
            wants_voice_isolation=bool(voice_isolation),
            requesting_user_id=requesting_user_id or None,
        )

    async def lookup_metadata(self, url: Optional[str]) -> MediaInfo:
        """
        Metadata for the preview card shown before processing.

        Raises:
            InvalidRequest: Missing url
            InfoFetchError: If the acquisition adapter fails
        """
        url = (url or '').strip()
        if not url:
            raise InvalidRequest("URL is required")
        return await self.ytdlp.fetch_info(url)

    async def check_quota(self, user_id: Optional[str], logger: Optional[LoggerLike] = None) -> None:
        """
        Enforce the free tier's monthly media item limit.

        Users without a profile count as free. Lookup failures are logged and
        let the request through.

        Raises:
            QuotaExceeded: The user already used this month's allowance
        """
        logger = logger or logging.getLogger(APP_LOGGER_NAME)
        if not user_id or not self.store.configured:
            return

        limit = self.settings.free_tier_monthly_limit
        try:
            profile = await self.store.get_profile(user_id)
            tier = (profile or {}).get("subscription_tier") or FREE_TIER
            if tier != FREE_TIER:
                return
            used = await self.store.count_monthly_media_items(user_id)
        except PersistenceError as e:
            logger.warning(f"Quota check skipped for user {user_id}: {e}")
            return

        if used >= limit:
            raise QuotaExceeded(
                f"Monthly limit of {limit} downloads reached. Upgrade to Pro for unlimited downloads."
            )

    # ------------------------------------------------------------------
    # Process media
    # ------------------------------------------------------------------

    async def process(
        self,
        request: MediaRequest,
        base_url: str,
        logger: Optional[LoggerLike] = None,
    ) -> ProcessMediaResult:
        """
        Run a validated request and describe the produced artifact.

        Args:
            request: Output of validate()
            base_url: Scheme+host that artifact URLs are built on
            logger: Request-scoped logger

        Raises:
            InfoFetchError, DownloadError: Acquisition failures
            NoTranscriptAvailable: Every transcript strategy failed
            DocumentExportError: Subtitle artifact could not be exported
        """
        logger = logger or logging.getLogger(APP_LOGGER_NAME)
        url = request.source_url

        logger.info(f"Fetching info for {url}")
        info = await self.ytdlp.fetch_info(url)
        logger.info(f"Info fetched: '{info.title}' ({info.duration_seconds}s)")

        base_name = build_artifact_base_name(info.title, url)
        base_path = os.path.join(self.downloads_dir, base_name)

        if request.requested_type is MediaType.VIDEO:
            result = await self._process_video(request, info, base_path, logger)
        elif request.requested_type is MediaType.AUDIO:
            result = await self._process_audio(request, info, base_path, logger)
        elif request.requested_type is MediaType.TEXT:
            result = await self._process_text(request, info, base_path, logger)
        else:
            raise AssertionError(f"Unhandled media type: {request.requested_type}")

        result.file_url = build_file_url(base_url, os.path.basename(result.artifact.path))

        if request.requesting_user_id and self.store.configured:
            outcome = await run_best_effort(
                "persistence", lambda: self._persist(request, result), logger
            )
            result.saved_to_knowledge_base = outcome.succeeded
            if outcome.succeeded:
                result.media_item_id, result.transcript_id = outcome.value

        if request.requested_type is MediaType.TEXT and self.delivery.configured:
            await run_best_effort(
                "delivery",
                lambda: self.delivery.deliver(result.artifact.path, {
                    "title": info.title,
                    "duration": info.duration_seconds,
                    "source": url,
                }),
                logger,
            )

        return result

    async def _process_video(self, request: MediaRequest, info: MediaInfo, base_path: str,
                             logger: LoggerLike) -> ProcessMediaResult:
        video_path = f"{base_path}.mp4"
        logger.info(f"Downloading video to {os.path.basename(video_path)}")
        await self.ytdlp.download_video(request.source_url, video_path)
        return ProcessMediaResult(
            message=VIDEO_SUCCESS_MESSAGE,
            artifact=Artifact(ArtifactKind.VIDEO, video_path, derived_from=request.source_url),
            media_info=info,
        )

    async def _process_audio(self, request: MediaRequest, info: MediaInfo, base_path: str,
                             logger: LoggerLike) -> ProcessMediaResult:
        audio_path = f"{base_path}.mp3"
        logger.info(f"Extracting audio to {os.path.basename(audio_path)}")
        await self.ytdlp.download_audio(request.source_url, audio_path)

        message = AUDIO_SUCCESS_MESSAGE
        isolated = None
        if request.wants_voice_isolation:
            outcome = await run_best_effort(
                "voice isolation", lambda: self.ffmpeg.isolate_voice(audio_path), logger
            )
            isolated = outcome.succeeded
            if outcome.succeeded:
                message = AUDIO_ISOLATED_MESSAGE
            else:
                message = AUDIO_DEGRADED_MESSAGE

        return ProcessMediaResult(
            message=message,
            artifact=Artifact(ArtifactKind.AUDIO, audio_path, derived_from=request.source_url),
            media_info=info,
            voice_isolation_applied=isolated,
        )

    async def _process_text(self, request: MediaRequest, info: MediaInfo, base_path: str,
                            logger: LoggerLike) -> ProcessMediaResult:
        ctx = TranscriptContext(source_url=request.source_url, base_path=base_path, media_info=info)
        transcription = await run_transcript_strategies(self.strategies, ctx, logger)

        docx_path = f"{base_path}.docx"
        logger.info(f"Exporting {os.path.basename(transcription.source_artifact.path)} to document")
        await asyncio.to_thread(
            export_subtitles_to_docx, transcription.source_artifact.path, docx_path, info.title
        )

        return ProcessMediaResult(
            message=TEXT_SUCCESS_MESSAGE,
            artifact=Artifact(ArtifactKind.DOCUMENT, docx_path, derived_from=transcription.source_artifact.path),
            media_info=info,
            transcription=transcription,
        )

    async def _persist(self, request: MediaRequest, result: ProcessMediaResult) -> Tuple[str, Optional[str]]:
        """Write the media item (and transcript) rows; returns their ids."""
        info = result.media_info
        media_item = await self.store.save_media_item({
            "user_id": request.requesting_user_id,
            "source_url": request.source_url,
            "media_type": request.requested_type.value,
            "title": info.title,
            "duration": info.duration_seconds,
            "thumbnail_url": info.thumbnail_url,
            "file_url": result.file_url,
            "file_name": os.path.basename(result.artifact.path),
            "voice_isolation": bool(result.voice_isolation_applied),
        })
        media_item_id = media_item.get("id")
        if not media_item_id:
            raise PersistenceError("Saved media item has no id")

        transcript_id = None
        if result.transcription is not None:
            transcript = await self.store.save_transcript(
                self._transcript_record(request, result, media_item_id, result.transcription)
            )
            transcript_id = transcript.get("id")
        return media_item_id, transcript_id

    @staticmethod
    def _transcript_record(request: MediaRequest, result: ProcessMediaResult, media_item_id: str,
                           transcription: TranscriptionResult) -> Dict[str, Any]:
        return {
            "user_id": request.requesting_user_id,
            "media_item_id": media_item_id,
            "title": result.media_info.title,
            "content": transcription.text,
            "vtt_content": _read_text_or_none(transcription.source_artifact.path),
            "docx_file_url": result.file_url,
            "language": None,
            "transcription_method": transcription.method.value,
        }

    # ------------------------------------------------------------------
    # Clip
    # ------------------------------------------------------------------

    @staticmethod
    def validate_clip(media_url: Optional[str], media_type: Optional[str],
                      start_time: Any, end_time: Any) -> Tuple[str, ClipMediaType, float, float]:
        """
        Raises:
            InvalidRequest: Missing fields, unknown type or empty/negative range
        """
        media_url = (media_url or '').strip()
        if not media_url or not media_type or start_time is None or end_time is None:
            raise InvalidRequest("Missing required parameters")
        try:
            clip_type = ClipMediaType(str(media_type).lower())
        except ValueError:
            raise InvalidRequest(f"Invalid media type: {media_type}")

        start = _parse_clip_time(start_time, "start time")
        end = _parse_clip_time(end_time, "end time")
        if start < 0 or end <= start:
            raise InvalidRequest("Invalid time range: end time must be after a non-negative start time")
        return media_url, clip_type, start, end

    async def clip(
        self,
        media_url: Optional[str],
        media_type: Optional[str],
        start_time: Any,
        end_time: Any,
        serving_hosts: Iterable[str] = (),
        logger: Optional[LoggerLike] = None,
    ) -> Artifact:
        """
        Trim [start_time, end_time) out of a produced artifact or external URL.

        Raises:
            InvalidRequest: See validate_clip()
            ClipSourceNotFound: Local reference does not resolve to a file under downloads
            ClipSourceFetchError: External source could not be fetched
            PostProcessingError: ffmpeg failed to cut the clip
        """
        logger = logger or logging.getLogger(APP_LOGGER_NAME)
        media_url, clip_type, start, end = self.validate_clip(media_url, media_type, start_time, end_time)
        ext = clip_type.extension

        temp_path = None
        # Anything that is not an external http(s) URL names a file under downloads
        if is_local_artifact_url(media_url, tuple(serving_hosts)) or not is_http_url(media_url):
            source_path = resolve_downloads_path(self.downloads_dir, media_url)
            if source_path is None or not os.path.isfile(source_path):
                raise ClipSourceNotFound("Source file not found")
        else:
            temp_path = os.path.join(self.downloads_dir, build_temp_filename(ext))
            logger.info(f"Fetching external clip source to {os.path.basename(temp_path)}")
            source_path = await self.ffmpeg.fetch_remote(media_url, temp_path)

        output_path = os.path.join(self.downloads_dir, build_clip_filename(ext))
        logger.info(f"Clipping {start:.3f}s-{end:.3f}s into {os.path.basename(output_path)}")
        try:
            await self.ffmpeg.clip(source_path, output_path, start, end)
        finally:
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)

        return Artifact(ArtifactKind.CLIP, output_path, derived_from=media_url)
