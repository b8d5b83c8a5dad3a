"""
Configuration module for the media knowledge API.

This module centralizes all environment variables and runtime configuration
using pydantic-settings for type-safe configuration management. A single
Settings instance is built at startup and handed to every service explicitly.
"""

import os
from functools import lru_cache
from typing import Optional, Dict
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    public_base_url: Optional[str] = Field(
        default=None,
        validation_alias="PUBLIC_BASE_URL",
        description="Scheme+host used for artifact URLs (defaults to the request host)"
    )

    # Directory Configuration
    downloads_dir: str = Field(
        default="./downloads",
        validation_alias="DOWNLOADS_DIR",
        description="Directory where artifacts are written and served from"
    )

    artifact_ttl_hours: int = Field(
        default=0,
        validation_alias="ARTIFACT_TTL_HOURS",
        description="Delete artifacts older than this many hours (0 disables cleanup)"
    )

    cleanup_interval_minutes: int = Field(
        default=30,
        validation_alias="CLEANUP_INTERVAL_MINUTES",
        description="Minutes between artifact cleanup runs"
    )

    # yt-dlp Configuration
    ytdlp_binary: str = Field(
        default="yt-dlp",
        validation_alias="YTDLP_BINARY",
        description="Path or name of the yt-dlp binary"
    )

    ytdlp_cookies_file: Optional[str] = Field(
        default=None,
        validation_alias="YTDLP_COOKIES_FILE",
        description="Path to cookies.txt for authenticated downloads"
    )

    ytdlp_info_timeout: int = Field(
        default=60,
        validation_alias="YTDLP_INFO_TIMEOUT",
        description="Seconds allowed for a metadata lookup"
    )

    ytdlp_download_timeout: int = Field(
        default=1800,
        validation_alias="YTDLP_DOWNLOAD_TIMEOUT",
        description="Seconds allowed for a single yt-dlp download"
    )

    subtitle_langs: str = Field(
        default="en.*,en",
        validation_alias="SUBTITLE_LANGS",
        description="yt-dlp --sub-langs selector for subtitle fallback"
    )

    # FFmpeg Configuration
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_BINARY",
        description="Path or name of the ffmpeg binary"
    )

    ffmpeg_timeout: int = Field(
        default=600,
        validation_alias="FFMPEG_TIMEOUT",
        description="Seconds allowed for a single ffmpeg run"
    )

    # OpenAI Configuration
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
        description="OpenAI API key for transcription and chat"
    )

    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias="OPENAI_BASE_URL",
        description="Base URL of the OpenAI-compatible API"
    )

    transcription_model: str = Field(
        default="whisper-1",
        validation_alias="TRANSCRIPTION_MODEL",
        description="Speech-to-text model name"
    )

    transcription_timeout: int = Field(
        default=300,
        validation_alias="TRANSCRIPTION_TIMEOUT",
        description="Seconds allowed for a transcription request"
    )

    max_transcription_file_mb: int = Field(
        default=25,
        validation_alias="MAX_TRANSCRIPTION_FILE_MB",
        description="Largest audio file accepted by the transcription API"
    )

    # Concurrency Control
    max_concurrent_transcriptions: int = Field(
        default=2,
        validation_alias="MAX_CONCURRENT_TRANSCRIPTIONS",
        description="Maximum concurrent transcription requests"
    )

    chat_model: str = Field(
        default="gpt-4o-mini",
        validation_alias="CHAT_MODEL",
        description="Chat completion model for the assistant"
    )

    chat_timeout: int = Field(
        default=120,
        validation_alias="CHAT_TIMEOUT",
        description="Seconds allowed for a chat completion request"
    )

    chat_history_limit: int = Field(
        default=20,
        validation_alias="CHAT_HISTORY_LIMIT",
        description="Number of previous conversation messages sent as history"
    )

    chat_context_char_limit: int = Field(
        default=12000,
        validation_alias="CHAT_CONTEXT_CHAR_LIMIT",
        description="Maximum transcript characters included as chat context"
    )

    # Supabase Configuration
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_URL",
        description="Supabase project URL"
    )

    supabase_service_key: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_SERVICE_KEY",
        description="Supabase service role key"
    )

    # Delivery webhook (Google Drive drop point in the original deployment)
    delivery_webhook_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DELIVERY_WEBHOOK_URL", "GOOGLE_DRIVE_WEBHOOK_URL"),
        description="Webhook receiving exported documents"
    )

    delivery_timeout: int = Field(
        default=60,
        validation_alias="DELIVERY_TIMEOUT",
        description="Seconds allowed for a delivery webhook call"
    )

    # Stripe Configuration
    stripe_secret_key: Optional[str] = Field(
        default=None,
        validation_alias="STRIPE_SECRET_KEY",
        description="Stripe secret API key"
    )

    stripe_webhook_secret: Optional[str] = Field(
        default=None,
        validation_alias="STRIPE_WEBHOOK_SECRET",
        description="Signing secret for Stripe webhook events"
    )

    stripe_price_pro: Optional[str] = Field(
        default=None,
        validation_alias="STRIPE_PRICE_PRO",
        description="Stripe price ID for the pro subscription tier"
    )

    frontend_url: str = Field(
        default="http://localhost:5173",
        validation_alias="FRONTEND_URL",
        description="Frontend origin used for checkout redirect URLs"
    )

    free_tier_monthly_limit: int = Field(
        default=5,
        validation_alias="FREE_TIER_MONTHLY_LIMIT",
        description="Media requests per calendar month for free-tier users"
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Application log level"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    @field_validator(
        "openai_api_key", "supabase_url", "supabase_service_key",
        "delivery_webhook_url", "stripe_secret_key", "stripe_webhook_secret",
        "stripe_price_pro", "public_base_url", "ytdlp_cookies_file",
        mode="before"
    )
    @classmethod
    def _blank_placeholders(cls, value):
        # Template .env files ship values like "your_openai_api_key_here"
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or (stripped.startswith("your_") and stripped.endswith("_here")):
                return None
            return stripped
        return value

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def stripe_prices(self) -> Dict[str, Optional[str]]:
        """Subscription tiers that can be purchased, mapped to Stripe price IDs."""
        return {"pro": self.stripe_price_pro}


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


def ensure_directories(settings: Settings) -> None:
    """Create the artifact directory if it does not exist yet."""
    os.makedirs(settings.downloads_dir, exist_ok=True)
