"""
Unit tests for the transcript strategy chain (app/services/subtitle_service.py).
"""

import logging
import pytest

from app.errors import NoTranscriptAvailable, TranscriptionError
from app.models.media import Artifact, ArtifactKind, TranscriptionMethod, TranscriptionResult
from app.services.subtitle_service import (
    SubtitleStrategy,
    TranscriptContext,
    WhisperStrategy,
    default_strategies,
    run_transcript_strategies,
)


logger = logging.getLogger("test")


def _result(text):
    return TranscriptionResult(
        text=text,
        method=TranscriptionMethod.SUBTITLES,
        source_artifact=Artifact(ArtifactKind.SUBTITLE, f"/tmp/{text}.vtt", derived_from="https://x"),
        text_artifact=Artifact(ArtifactKind.TEXT, f"/tmp/{text}.txt", derived_from=f"/tmp/{text}.vtt"),
    )


class RecordingStrategy:
    def __init__(self, name, log, result=None, error=None):
        self.name = name
        self.log = log
        self.result = result
        self.error = error

    async def run(self, ctx):
        self.log.append(self.name)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def ctx(fake_ytdlp, downloads_dir):
    return TranscriptContext(
        source_url="https://youtube.com/watch?v=abc",
        base_path=f"{downloads_dir}/test_video_abcd1234",
        media_info=fake_ytdlp.info,
    )


def test_default_order(fake_ytdlp, fake_transcriber):
    names = [s.name for s in default_strategies(fake_ytdlp, fake_transcriber)]
    assert names == ["whisper", "manual-subtitles", "automatic-subtitles"]


@pytest.mark.asyncio
async def test_stops_at_first_success(ctx):
    log = []
    winner = _result("winner")
    strategies = [
        RecordingStrategy("a", log, error=TranscriptionError("nope")),
        RecordingStrategy("b", log, result=winner),
        RecordingStrategy("c", log, result=_result("never")),
    ]
    assert await run_transcript_strategies(strategies, ctx, logger) is winner
    assert log == ["a", "b"]


@pytest.mark.asyncio
async def test_exhaustion_lists_every_failure(ctx):
    log = []
    strategies = [
        RecordingStrategy("a", log, error=TranscriptionError("no key")),
        RecordingStrategy("b", log, error=OSError("disk full")),
    ]
    with pytest.raises(NoTranscriptAvailable) as excinfo:
        await run_transcript_strategies(strategies, ctx, logger)
    assert "a: no key" in excinfo.value.message
    assert "b: disk full" in excinfo.value.message
    assert log == ["a", "b"]


@pytest.mark.asyncio
async def test_unexpected_errors_propagate(ctx):
    log = []
    strategies = [
        RecordingStrategy("a", log, error=KeyError("bug")),
        RecordingStrategy("b", log, result=_result("never")),
    ]
    with pytest.raises(KeyError):
        await run_transcript_strategies(strategies, ctx, logger)
    assert log == ["a"]


@pytest.mark.asyncio
async def test_whisper_strategy_writes_text_and_vtt(ctx, fake_ytdlp, fake_transcriber):
    result = await WhisperStrategy(fake_ytdlp, fake_transcriber).run(ctx)
    assert result.method is TranscriptionMethod.WHISPER
    assert result.source_artifact.path == f"{ctx.base_path}.vtt"
    assert result.text_artifact.path == f"{ctx.base_path}.txt"
    assert fake_transcriber.calls == [f"{ctx.base_path}.mp3"]
    with open(result.source_artifact.path) as f:
        assert f.read() == (
            "WEBVTT\n\n1\n00:00:00.000 --> 00:02:05.500\nHello world. This is the transcript.\n"
        )


@pytest.mark.asyncio
async def test_whisper_strategy_without_key_skips_download(ctx, fake_ytdlp, fake_transcriber):
    fake_transcriber.configured = False
    with pytest.raises(TranscriptionError):
        await WhisperStrategy(fake_ytdlp, fake_transcriber).run(ctx)
    assert fake_ytdlp.calls == []


@pytest.mark.asyncio
async def test_subtitle_strategy_parses_track(ctx, fake_ytdlp, sample_vtt):
    fake_ytdlp.manual_subtitles = sample_vtt
    result = await SubtitleStrategy(fake_ytdlp, automatic=False).run(ctx)
    assert result.method is TranscriptionMethod.SUBTITLES
    assert result.text == "Hello and welcome\nto the show"
    with open(f"{ctx.base_path}.txt") as f:
        assert f.read() == result.text


@pytest.mark.asyncio
async def test_subtitle_strategy_rejects_empty_track(ctx, fake_ytdlp):
    fake_ytdlp.auto_subtitles = "WEBVTT\n\n00:00:00.000 --> 00:00:01.000\n<c></c>\n"
    with pytest.raises(Exception) as excinfo:
        await SubtitleStrategy(fake_ytdlp, automatic=True).run(ctx)
    assert "no caption text" in str(excinfo.value)
