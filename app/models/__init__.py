"""
Models package for API request/response validation and request-scoped types.

schemas.py holds the Pydantic models of the HTTP surface; media.py holds the
dataclasses and enums that flow between services during one request.
"""

from .schemas import (
    MetadataLookupRequest,
    MetadataLookupResponse,
    ProcessMediaRequest,
    ProcessMediaResponse,
    MediaInfoProjection,
    ClipMediaRequest,
    ClipMediaResponse,
    DeliveryWebhookRequest,
    DeliveryWebhookResponse,
    ChatRequest,
    ChatResponse,
    CheckoutRequest,
    CheckoutResponse,
)
from .media import (
    MediaType,
    ClipMediaType,
    ArtifactKind,
    TranscriptionMethod,
    MediaRequest,
    MediaInfo,
    Artifact,
    TranscriptionResult,
    ProcessMediaResult,
)

__all__ = [
    "MetadataLookupRequest",
    "MetadataLookupResponse",
    "ProcessMediaRequest",
    "ProcessMediaResponse",
    "MediaInfoProjection",
    "ClipMediaRequest",
    "ClipMediaResponse",
    "DeliveryWebhookRequest",
    "DeliveryWebhookResponse",
    "ChatRequest",
    "ChatResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "MediaType",
    "ClipMediaType",
    "ArtifactKind",
    "TranscriptionMethod",
    "MediaRequest",
    "MediaInfo",
    "Artifact",
    "TranscriptionResult",
    "ProcessMediaResult",
]
