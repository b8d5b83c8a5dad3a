"""
Error taxonomy for media processing.

Critical-path failures (info fetch, primary download, transcript exhaustion,
document export, clip source resolution) are raised as MediaAppError
subclasses and surfaced to the caller by the routers. Best-effort failures
(voice isolation, persistence, delivery) are raised by the adapters as well,
but the orchestrator only ever sees them through run_best_effort(), which
logs and folds them into the response message.
"""

from typing import Optional

from fastapi.responses import JSONResponse


class MediaAppError(Exception):
    """Base class for errors that map to a user-visible JSON response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        # Underlying tool/API output, kept for logs only
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class InvalidRequest(MediaAppError):
    status_code = 400


class InfoFetchError(MediaAppError):
    status_code = 500


class DownloadError(MediaAppError):
    status_code = 500


class PostProcessingError(MediaAppError):
    status_code = 500


class TranscriptionError(MediaAppError):
    status_code = 500


class SubtitlesNotFound(MediaAppError):
    status_code = 404


class NoTranscriptAvailable(MediaAppError):
    status_code = 422


class DocumentExportError(MediaAppError):
    status_code = 500


class ClipSourceFetchError(MediaAppError):
    status_code = 500


class ClipSourceNotFound(MediaAppError):
    status_code = 404


class PersistenceError(MediaAppError):
    status_code = 503


class DeliveryError(MediaAppError):
    status_code = 502


class AuthError(MediaAppError):
    status_code = 401


class QuotaExceeded(MediaAppError):
    status_code = 403


class BillingConfigError(MediaAppError):
    status_code = 500


class BillingError(MediaAppError):
    status_code = 400


class ChatProviderError(MediaAppError):
    status_code = 500


def error_response(status_code: int, message: str) -> JSONResponse:
    """JSON error body shared by every route: {success: false, message}."""
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})
