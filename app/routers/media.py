"""
Media router: metadata preview, process-media and clip-media endpoints.
"""

import os
import logging
from typing import Tuple
from urllib.parse import urlparse

from fastapi import APIRouter, Body, Depends, Request

from app.config import Settings
from app.dependencies import get_app_settings, get_logger, get_media_service
from app.errors import MediaAppError, QuotaExceeded, error_response
from app.models import (
    ClipMediaRequest,
    ClipMediaResponse,
    MetadataLookupRequest,
    MetadataLookupResponse,
    ProcessMediaRequest,
    ProcessMediaResponse,
)
from app.services.media_service import CLIP_SUCCESS_MESSAGE, MediaService
from app.utils.url_utils import build_file_url


router = APIRouter(prefix="/api", tags=["Media"])


def public_base_url(request: Request, settings: Settings) -> str:
    """PUBLIC_BASE_URL when set, otherwise scheme+host of the incoming request."""
    if settings.public_base_url:
        return settings.public_base_url.rstrip('/')
    return f"{request.url.scheme}://{request.url.netloc}"


def serving_hosts(request: Request, settings: Settings) -> Tuple[str, ...]:
    hosts = [request.url.netloc, request.headers.get("host", "")]
    if settings.public_base_url:
        hosts.append(urlparse(settings.public_base_url).netloc)
    return tuple(h for h in hosts if h)


@router.post("/video-metadata", response_model=MetadataLookupResponse)
async def video_metadata(
    body: MetadataLookupRequest = Body(...),
    media_service: MediaService = Depends(get_media_service),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """
    Fetch title, duration, thumbnail and channel details for a URL without
    downloading anything.
    """
    try:
        info = await media_service.lookup_metadata(body.url)
    except MediaAppError as e:
        logger.error(f"Metadata lookup failed: {e.message}")
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Unexpected error fetching metadata: {str(e)}")
        return error_response(500, f"Failed to get video info: {str(e)}")

    return info.to_metadata()


@router.post(
    "/process-media",
    response_model=ProcessMediaResponse,
    response_model_exclude_none=True,
)
async def process_media(
    request: Request,
    body: ProcessMediaRequest = Body(...),
    media_service: MediaService = Depends(get_media_service),
    settings: Settings = Depends(get_app_settings),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """
    Download video, extract audio (optionally voice-isolated) or produce a
    transcript document for a URL.

    Every failure is reported as 400 with a message, except the free tier
    monthly limit which is 403.
    """
    try:
        media_request = media_service.validate(
            body.url, body.type, body.voice_isolation, body.requesting_user_id
        )
        logger.info(
            f"Processing {media_request.requested_type.value} request for {media_request.source_url}"
            f"{' (voice isolation)' if media_request.wants_voice_isolation else ''}"
        )
        await media_service.check_quota(media_request.requesting_user_id, logger)
        result = await media_service.process(media_request, public_base_url(request, settings), logger)
    except QuotaExceeded as e:
        logger.warning(f"Quota exceeded: {e.message}")
        return error_response(e.status_code, e.message)
    except MediaAppError as e:
        logger.error(f"Processing failed: {e.message}")
        if e.detail:
            logger.debug(f"Underlying error: {e.detail}")
        return error_response(400, e.message)
    except Exception as e:
        logger.exception(f"Unexpected processing error: {str(e)}")
        return error_response(400, f"Failed to process media: {str(e)}")

    logger.info(f"Request complete: {result.file_url}")
    return {
        "success": True,
        "message": result.message,
        "fileUrl": result.file_url,
        "mediaInfo": result.media_info.projection(),
        "savedToKnowledgeBase": result.saved_to_knowledge_base,
        "mediaItemId": result.media_item_id,
        "transcriptId": result.transcript_id,
    }


@router.post("/clip-media", response_model=ClipMediaResponse)
async def clip_media(
    request: Request,
    body: ClipMediaRequest = Body(...),
    media_service: MediaService = Depends(get_media_service),
    settings: Settings = Depends(get_app_settings),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """Trim a produced artifact (or an external media URL) to [startTime, endTime)."""
    try:
        artifact = await media_service.clip(
            body.media_url,
            body.media_type,
            body.start_time,
            body.end_time,
            serving_hosts=serving_hosts(request, settings),
            logger=logger,
        )
    except MediaAppError as e:
        logger.error(f"Clip failed: {e.message}")
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Unexpected clip error: {str(e)}")
        return error_response(500, f"Failed to clip media: {str(e)}")

    file_name = os.path.basename(artifact.path)
    return {
        "success": True,
        "message": CLIP_SUCCESS_MESSAGE,
        "fileUrl": build_file_url(public_base_url(request, settings), file_name),
    }
