"""
Delivery router: push an existing artifact to the configured webhook
(Google Drive drop point in the web client).
"""

import os
import logging

from fastapi import APIRouter, Body, Depends

from app.config import Settings
from app.dependencies import get_app_settings, get_delivery_service, get_logger
from app.errors import DeliveryError, error_response
from app.models import DeliveryWebhookRequest, DeliveryWebhookResponse
from app.services.delivery_service import DeliveryService
from app.utils.url_utils import resolve_downloads_path


router = APIRouter(prefix="/api", tags=["Delivery"])


@router.post("/webhook/google-drive", response_model=DeliveryWebhookResponse)
async def deliver_file(
    body: DeliveryWebhookRequest = Body(...),
    delivery: DeliveryService = Depends(get_delivery_service),
    settings: Settings = Depends(get_app_settings),
    logger: logging.LoggerAdapter = Depends(get_logger),
):
    """
    Send a file from the downloads directory to the delivery webhook.

    filePath may be a bare file name, "downloads/<file>", "/downloads/<file>"
    or a full artifact URL.
    """
    if not body.file_path:
        return error_response(400, "Missing file path")
    if not delivery.configured:
        return error_response(400, "Google Drive webhook URL not configured")

    full_path = resolve_downloads_path(settings.downloads_dir, body.file_path)
    if full_path is None or not os.path.isfile(full_path):
        return error_response(404, "File not found")

    try:
        result = await delivery.deliver(full_path, body.metadata or {})
    except DeliveryError as e:
        logger.error(f"Delivery of {os.path.basename(full_path)} failed: {e.message}")
        return error_response(500, e.message)

    logger.info(f"Delivered {os.path.basename(full_path)}")
    return {
        "success": True,
        "message": "File sent to Google Drive successfully",
        "result": result,
    }
