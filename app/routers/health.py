"""
Health router: service status and which integrations are configured.
"""

from fastapi import APIRouter, Request

from app.services.cache_service import get_artifact_stats


router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health")
async def health(request: Request):
    state = request.app.state
    settings = state.settings
    return {
        "status": "ok",
        "integrations": {
            "transcription": bool(settings.openai_api_key),
            "supabase": state.store.configured,
            "delivery": state.delivery_service.configured,
            "stripe": state.billing_service.configured,
        },
        "artifacts": get_artifact_stats(settings.downloads_dir),
        "cleanup": state.cleanup_scheduler.status(),
    }
