"""
Media knowledge API entrypoint.

Builds the FastAPI application: settings, logging, services (stored on
app.state for the dependencies in app/dependencies.py), routers, the static
/downloads mount and the artifact cleanup scheduler.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import Settings, ensure_directories, get_settings
from app.routers import billing_router, chat_router, delivery_router, health_router, media_router
from app.services.billing_service import BillingService
from app.services.chat_service import ChatService
from app.services.cleanup_scheduler import ArtifactCleanupScheduler
from app.services.delivery_service import DeliveryService
from app.services.ffmpeg_service import FfmpegService
from app.services.media_service import MediaService
from app.services.subtitle_service import default_strategies
from app.services.supabase_service import KnowledgeBaseStore
from app.services.transcription_service import WhisperTranscriber
from app.services.ytdlp_service import YtDlpService
from app.utils.logging_utils import setup_logger
from app.utils.url_utils import DOWNLOADS_ROUTE


def build_services(app: FastAPI, settings: Settings) -> None:
    """Construct every service once and attach it to app.state."""
    ytdlp = YtDlpService(settings)
    transcriber = WhisperTranscriber(settings)
    store = KnowledgeBaseStore(settings)
    delivery = DeliveryService(settings)

    app.state.settings = settings
    app.state.store = store
    app.state.delivery_service = delivery
    app.state.media_service = MediaService(
        settings,
        ytdlp=ytdlp,
        ffmpeg=FfmpegService(settings),
        store=store,
        delivery=delivery,
        strategies=default_strategies(ytdlp, transcriber),
    )
    app.state.chat_service = ChatService(settings, store)
    app.state.billing_service = BillingService(settings, store)
    app.state.cleanup_scheduler = ArtifactCleanupScheduler(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop background jobs with the application."""
    logger = setup_logger(app.state.settings.log_level)
    logger.info("Starting application...")
    try:
        app.state.cleanup_scheduler.start()
    except Exception as e:
        logger.warning(f"Failed to start artifact cleanup scheduler: {str(e)}")

    yield

    logger.info("Shutting down application...")
    app.state.cleanup_scheduler.stop()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logger(settings.log_level)
    ensure_directories(settings)

    app = FastAPI(title="Media Knowledge API", lifespan=lifespan)
    build_services(app, settings)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(media_router)
    app.include_router(delivery_router)
    app.include_router(chat_router)
    app.include_router(billing_router)
    app.include_router(health_router)

    app.mount(DOWNLOADS_ROUTE, StaticFiles(directory=settings.downloads_dir), name="downloads")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="::", port=8000)
