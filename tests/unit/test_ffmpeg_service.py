"""
Unit tests for the ffmpeg post-processor with run_command patched out.
"""

import os
import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from app.errors import ClipSourceFetchError, PostProcessingError
from app.services.ffmpeg_service import FfmpegService, processed_path_for
from app.utils.process_utils import CommandResult


def _touch(path, content=b"data"):
    with open(path, 'wb') as f:
        f.write(content)


def _read(path):
    with open(path, 'rb') as f:
        return f.read()


def _result(code=0, stderr=""):
    return CommandResult(returncode=code, stdout="", stderr=stderr)


def test_processed_path():
    assert processed_path_for("/d/talk_ab12.mp3") == "/d/talk_ab12_processed.mp3"


class TestIsolateVoice:

    @pytest.mark.asyncio
    async def test_replaces_original(self, settings, downloads_dir):
        audio = os.path.join(downloads_dir, "talk.mp3")
        _touch(audio, b"original")

        async def fake_run(cmd, timeout=None):
            _touch(cmd[-1], b"isolated")
            return _result()

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)) as mock_run:
            await FfmpegService(settings).isolate_voice(audio)

        assert _read(audio) == b"isolated"
        assert not os.path.exists(processed_path_for(audio))
        cmd = mock_run.call_args.args[0]
        assert cmd[0] == settings.ffmpeg_binary
        assert '-af' in cmd

    @pytest.mark.asyncio
    async def test_failure_keeps_original_and_removes_temp(self, settings, downloads_dir):
        audio = os.path.join(downloads_dir, "talk.mp3")
        _touch(audio, b"original")

        async def fake_run(cmd, timeout=None):
            _touch(cmd[-1], b"half-written")
            return _result(1, "Invalid data found when processing input")

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)):
            with pytest.raises(PostProcessingError) as excinfo:
                await FfmpegService(settings).isolate_voice(audio)

        assert "Invalid data" in excinfo.value.message
        assert _read(audio) == b"original"
        assert not os.path.exists(processed_path_for(audio))

    @pytest.mark.asyncio
    async def test_cancellation_removes_temp(self, settings, downloads_dir):
        audio = os.path.join(downloads_dir, "talk.mp3")
        _touch(audio, b"original")

        async def fake_run(cmd, timeout=None):
            _touch(cmd[-1], b"partial")
            raise asyncio.CancelledError()

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)):
            with pytest.raises(asyncio.CancelledError):
                await FfmpegService(settings).isolate_voice(audio)

        assert not os.path.exists(processed_path_for(audio))
        assert _read(audio) == b"original"


class TestClip:

    @pytest.mark.asyncio
    async def test_video_clip_args(self, settings, downloads_dir):
        source = os.path.join(downloads_dir, "source.mp4")
        output = os.path.join(downloads_dir, "clip_1.mp4")
        _touch(source)

        async def fake_run(cmd, timeout=None):
            _touch(output)
            return _result()

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)) as mock_run:
            await FfmpegService(settings).clip(source, output, 10.0, 25.5)

        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index('-ss') + 1] == "10.000"
        assert cmd[cmd.index('-t') + 1] == "15.500"
        assert 'libx264' in cmd
        assert cmd[-1] == output
        assert os.path.exists(source)

    @pytest.mark.asyncio
    async def test_audio_clip_uses_mp3_encoder(self, settings, downloads_dir):
        output = os.path.join(downloads_dir, "clip_1.mp3")

        async def fake_run(cmd, timeout=None):
            _touch(output)
            return _result()

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)) as mock_run:
            await FfmpegService(settings).clip("in.mp3", output, 0, 1)

        cmd = mock_run.call_args.args[0]
        assert 'libmp3lame' in cmd
        assert '-vn' in cmd

    @pytest.mark.asyncio
    async def test_failure_removes_partial_output(self, settings, downloads_dir):
        output = os.path.join(downloads_dir, "clip_1.mp4")

        async def fake_run(cmd, timeout=None):
            _touch(output)
            return _result(1, "Conversion failed!")

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)):
            with pytest.raises(PostProcessingError):
                await FfmpegService(settings).clip("in.mp4", output, 0, 1)

        assert not os.path.exists(output)


class TestFetchRemote:

    @pytest.mark.asyncio
    async def test_stream_copy(self, settings, downloads_dir):
        output = os.path.join(downloads_dir, "temp_1.mp4")

        async def fake_run(cmd, timeout=None):
            _touch(output)
            return _result()

        with patch("app.services.ffmpeg_service.run_command", AsyncMock(side_effect=fake_run)) as mock_run:
            await FfmpegService(settings).fetch_remote("https://cdn/x.mp4", output)

        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index('-i') + 1] == "https://cdn/x.mp4"
        assert cmd[cmd.index('-c') + 1] == 'copy'

    @pytest.mark.asyncio
    async def test_fetch_failure(self, settings, downloads_dir):
        output = os.path.join(downloads_dir, "temp_1.mp4")
        with patch("app.services.ffmpeg_service.run_command", AsyncMock(return_value=_result(1, "404 Not Found"))):
            with pytest.raises(ClipSourceFetchError) as excinfo:
                await FfmpegService(settings).fetch_remote("https://cdn/x.mp4", output)
        assert "404" in excinfo.value.message
