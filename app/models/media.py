"""
Request-scoped domain types used by the orchestrator and its adapters.

These are transient, in-process values: nothing here is persisted directly.
The Pydantic models in schemas.py describe the HTTP surface; these dataclasses
describe what flows between services during a single request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Subscription tier of users without a paid plan
FREE_TIER = "free"


class MediaType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"


class ClipMediaType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"

    @property
    def extension(self) -> str:
        return "mp4" if self is ClipMediaType.VIDEO else "mp3"


class ArtifactKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    TEXT = "text"
    DOCUMENT = "document"
    CLIP = "clip"


class TranscriptionMethod(str, Enum):
    WHISPER = "whisper"
    SUBTITLES = "subtitles"


@dataclass(frozen=True)
class MediaRequest:
    """A validated process-media request. Only built by MediaService.validate()."""
    source_url: str
    requested_type: MediaType
    wants_voice_isolation: bool = False
    requesting_user_id: Optional[str] = None


@dataclass(frozen=True)
class MediaInfo:
    title: str
    duration_seconds: Optional[float]
    thumbnail_url: Optional[str]
    available_formats: List[Dict[str, Any]] = field(default_factory=list)
    description: Optional[str] = None
    uploader_name: Optional[str] = None
    view_count: Optional[int] = None
    upload_date: Optional[str] = None

    def projection(self) -> Dict[str, Any]:
        """Trimmed view returned with every process-media response."""
        return {
            "title": self.title,
            "duration": self.duration_seconds,
            "thumbnail": self.thumbnail_url,
        }

    def to_metadata(self) -> Dict[str, Any]:
        """Full view returned by the metadata lookup endpoint."""
        return {
            "title": self.title,
            "duration": self.duration_seconds,
            "thumbnail": self.thumbnail_url,
            "description": self.description,
            "uploader": self.uploader_name,
            "viewCount": self.view_count,
            "uploadDate": self.upload_date,
        }


@dataclass(frozen=True)
class Artifact:
    kind: ArtifactKind
    path: str
    derived_from: str


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    method: TranscriptionMethod
    source_artifact: Artifact
    text_artifact: Optional[Artifact] = None


@dataclass
class ProcessMediaResult:
    """Everything the router needs to build the process-media response."""
    message: str
    artifact: Artifact
    media_info: MediaInfo
    file_url: Optional[str] = None
    transcription: Optional[TranscriptionResult] = None
    saved_to_knowledge_base: Optional[bool] = None
    media_item_id: Optional[str] = None
    transcript_id: Optional[str] = None
    voice_isolation_applied: Optional[bool] = None
