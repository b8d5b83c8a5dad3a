"""
Pydantic models for request/response validation.

This module contains all Pydantic BaseModel schemas used for API request
and response validation. Field names follow the camelCase JSON used by the
web client; Python code uses the snake_case attribute names.

Required fields the orchestrator validates itself (url, type, clip ranges)
are declared Optional here so that a missing value yields the documented
400 response instead of FastAPI's generic 422.
"""

from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import List, Optional, Dict, Any, Union


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MetadataLookupRequest(CamelModel):
    """Request model for metadata lookup."""
    url: Optional[str] = Field(None, description="Video URL to inspect")


class MetadataLookupResponse(CamelModel):
    title: str
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    description: Optional[str] = None
    uploader: Optional[str] = None
    view_count: Optional[int] = Field(None, alias="viewCount")
    upload_date: Optional[str] = Field(None, alias="uploadDate")


class ProcessMediaRequest(CamelModel):
    """Request model for process-media: url, type (video|audio|text), voice isolation, identity."""
    url: Optional[str] = Field(None, description="Source video URL")
    type: Optional[str] = Field(None, description="Requested output: video, audio or text")
    voice_isolation: Optional[bool] = Field(False, alias="voiceIsolation", description="Apply voice isolation (audio only)")
    requesting_user_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("requestingUserId", "userId", "requesting_user_id"),
        description="Supabase user id to save results for"
    )


class MediaInfoProjection(CamelModel):
    title: str
    duration: Optional[float] = None
    thumbnail: Optional[str] = None


class ProcessMediaResponse(CamelModel):
    """Response for process-media; optional fields are omitted when no identity was given."""
    success: bool
    message: str
    file_url: str = Field(..., alias="fileUrl")
    media_info: MediaInfoProjection = Field(..., alias="mediaInfo")
    saved_to_knowledge_base: Optional[bool] = Field(None, alias="savedToKnowledgeBase")
    media_item_id: Optional[str] = Field(None, alias="mediaItemId")
    transcript_id: Optional[str] = Field(None, alias="transcriptId")


class ClipMediaRequest(CamelModel):
    """Request model for clip-media: source URL, media type and [start, end) in seconds."""
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    media_type: Optional[str] = Field(None, alias="mediaType")
    # Seconds, or "HH:MM:SS(.mmm)" strings
    start_time: Optional[Union[float, str]] = Field(None, alias="startTime")
    end_time: Optional[Union[float, str]] = Field(None, alias="endTime")


class ClipMediaResponse(CamelModel):
    success: bool
    message: str
    file_url: str = Field(..., alias="fileUrl")


class DeliveryWebhookRequest(CamelModel):
    """Request model for pushing an existing artifact to the delivery webhook."""
    file_path: Optional[str] = Field(None, alias="filePath")
    metadata: Optional[Dict[str, Any]] = None


class DeliveryWebhookResponse(CamelModel):
    success: bool
    message: str
    result: Any = None


class ChatRequest(CamelModel):
    """Request model for the assistant: conversation, user message and context selections."""
    conversation_id: str = Field(..., alias="conversationId")
    message: Optional[str] = None
    context_media_ids: List[str] = Field(default_factory=list, alias="contextMediaIds")
    context_transcript_ids: List[str] = Field(default_factory=list, alias="contextTranscriptIds")


class ChatResponse(CamelModel):
    success: bool
    message: str
    metadata: Dict[str, Any]


class CheckoutRequest(CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    tier: str = "pro"


class CheckoutResponse(CamelModel):
    success: bool
    url: str
