"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Settings pointed at a temporary downloads directory
- In-memory fakes for the acquisition, post-processing, transcription,
  persistence and delivery adapters
- A MediaService wired to those fakes
- Test client fixtures for FastAPI
"""

import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.config import Settings
from app.errors import AuthError, PersistenceError, SubtitlesNotFound
from app.models.media import MediaInfo
from app.services.media_service import MediaService
from app.services.subtitle_service import default_strategies


SAMPLE_VTT = """WEBVTT
Kind: captions
Language: en

1
00:00:00.000 --> 00:00:02.500
Hello and <b>welcome</b>

2
00:00:02.500 --> 00:00:05.000
to the show
"""


def _write(path, content):
    mode = 'wb' if isinstance(content, bytes) else 'w'
    with open(path, mode) as f:
        f.write(content)


class FakeYtDlp:
    """Acquisition adapter double; records every call in order."""

    def __init__(self):
        self.info = MediaInfo(
            title="Test Video: Part 1!",
            duration_seconds=125.5,
            thumbnail_url="https://img.example.com/thumb.jpg",
            description="Test video description",
            uploader_name="Test Channel",
            view_count=1000,
            upload_date="2024-01-01",
        )
        self.info_error = None
        self.video_error = None
        self.audio_error = None
        self.manual_subtitles = None
        self.auto_subtitles = None
        self.calls = []

    @property
    def call_names(self):
        return [name for name, _ in self.calls]

    async def fetch_info(self, url):
        self.calls.append(("fetch_info", url))
        if self.info_error:
            raise self.info_error
        return self.info

    async def download_video(self, url, output_path):
        self.calls.append(("download_video", output_path))
        if self.video_error:
            raise self.video_error
        _write(output_path, b"video-bytes")
        return output_path

    async def download_audio(self, url, output_path, audio_format='mp3'):
        self.calls.append(("download_audio", output_path))
        if self.audio_error:
            raise self.audio_error
        _write(output_path, b"audio-bytes")
        return output_path

    async def download_subtitles(self, url, output_base, automatic=False):
        kind = "automatic" if automatic else "manual"
        self.calls.append((f"{kind}_subtitles", output_base))
        content = self.auto_subtitles if automatic else self.manual_subtitles
        if content is None:
            raise SubtitlesNotFound(f"No {kind} subtitles found")
        path = f"{output_base}.en.vtt"
        _write(path, content)
        return path


class FakeFfmpeg:
    def __init__(self):
        self.isolate_error = None
        self.clip_error = None
        self.fetch_error = None
        self.calls = []
        self.clip_sources_existed = []

    async def isolate_voice(self, audio_path):
        self.calls.append(("isolate_voice", audio_path))
        if self.isolate_error:
            raise self.isolate_error
        _write(audio_path, b"isolated-audio")
        return audio_path

    async def clip(self, source_path, output_path, start_time, end_time):
        self.calls.append(("clip", (source_path, output_path, start_time, end_time)))
        self.clip_sources_existed.append(os.path.exists(source_path))
        if self.clip_error:
            raise self.clip_error
        _write(output_path, b"clip-bytes")
        return output_path

    async def fetch_remote(self, media_url, output_path):
        self.calls.append(("fetch_remote", (media_url, output_path)))
        if self.fetch_error:
            raise self.fetch_error
        _write(output_path, b"remote-bytes")
        return output_path


class FakeTranscriber:
    def __init__(self):
        self.configured = True
        self.text = "Hello world. This is the transcript."
        self.error = None
        self.calls = []

    async def transcribe(self, audio_path, language=None):
        self.calls.append(audio_path)
        if self.error:
            raise self.error
        return self.text


class FakeStore:
    """In-memory stand-in for the Supabase knowledge base."""

    def __init__(self):
        self.configured = True
        self.fail_saves = False
        self.fail_lookups = False
        self.media_items = []
        self.transcripts = []
        self.profiles = {}
        self.monthly_counts = {}
        self.tokens = {}
        self.conversations = {}
        self.messages = {}
        self.profile_updates = []
        self.customer_updates = []

    async def save_media_item(self, record):
        if self.fail_saves:
            raise PersistenceError("Failed to save media item: database unavailable")
        row = dict(record, id=f"media-{len(self.media_items) + 1}")
        self.media_items.append(row)
        return row

    async def save_transcript(self, record):
        if self.fail_saves:
            raise PersistenceError("Failed to save transcript: database unavailable")
        row = dict(record, id=f"transcript-{len(self.transcripts) + 1}")
        self.transcripts.append(row)
        return row

    async def get_profile(self, user_id):
        if self.fail_lookups:
            raise PersistenceError("Failed to load user profile: database unavailable")
        return self.profiles.get(user_id)

    async def count_monthly_media_items(self, user_id, now=None):
        if self.fail_lookups:
            raise PersistenceError("Failed to count monthly media items: database unavailable")
        return self.monthly_counts.get(user_id, 0)

    async def update_profile(self, user_id, fields):
        self.profile_updates.append((user_id, fields))

    async def update_profile_by_customer(self, customer_id, fields):
        self.customer_updates.append((customer_id, fields))

    async def get_user_from_token(self, token):
        if token not in self.tokens:
            raise AuthError("Invalid or expired token")
        return self.tokens[token]

    async def get_conversation(self, conversation_id, user_id):
        conversation = self.conversations.get(conversation_id)
        if conversation and conversation.get("user_id") == user_id:
            return conversation
        return None

    async def get_recent_messages(self, conversation_id, limit):
        return self.messages.get(conversation_id, [])[-limit:]

    async def get_media_items(self, ids, user_id):
        return [m for m in self.media_items if m["id"] in ids and m.get("user_id") == user_id]

    async def get_transcripts(self, ids, user_id):
        return [t for t in self.transcripts if t["id"] in ids and t.get("user_id") == user_id]


class FakeDelivery:
    def __init__(self):
        self.configured = False
        self.error = None
        self.deliveries = []

    async def deliver(self, file_path, metadata=None):
        self.deliveries.append((file_path, metadata))
        if self.error:
            raise self.error
        return {"id": "drive-file-1"}


@pytest.fixture
def downloads_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return str(path)


@pytest.fixture
def settings(downloads_dir):
    """Settings isolated from the environment and any local .env file."""
    return Settings(
        _env_file=None,
        downloads_dir=downloads_dir,
        allowed_origin="*",
        public_base_url=None,
        openai_api_key="sk-test",
        supabase_url=None,
        supabase_service_key=None,
        delivery_webhook_url=None,
        stripe_secret_key=None,
        stripe_webhook_secret=None,
        stripe_price_pro=None,
        artifact_ttl_hours=0,
        free_tier_monthly_limit=5,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_ytdlp():
    return FakeYtDlp()


@pytest.fixture
def fake_ffmpeg():
    return FakeFfmpeg()


@pytest.fixture
def fake_transcriber():
    return FakeTranscriber()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_delivery():
    return FakeDelivery()


@pytest.fixture
def media_service(settings, fake_ytdlp, fake_ffmpeg, fake_transcriber, fake_store, fake_delivery):
    return MediaService(
        settings,
        ytdlp=fake_ytdlp,
        ffmpeg=fake_ffmpeg,
        store=fake_store,
        delivery=fake_delivery,
        strategies=default_strategies(fake_ytdlp, fake_transcriber),
    )


@pytest.fixture
def test_app(settings, media_service, fake_store, fake_delivery):
    """FastAPI app built from test settings with the fakes swapped in."""
    from main import create_app

    app = create_app(settings)
    app.state.media_service = media_service
    app.state.store = fake_store
    app.state.delivery_service = fake_delivery
    app.state.chat_service.store = fake_store
    app.state.billing_service.store = fake_store
    return app


@pytest_asyncio.fixture
async def client(test_app):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def sample_vtt():
    return SAMPLE_VTT


# Mark all tests as asyncio
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
