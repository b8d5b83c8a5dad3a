"""
FFmpeg post-processor.

Voice isolation, trimming and fetching remote clip sources, all through the
ffmpeg binary with a per-call timeout.
"""

import os
from typing import List

from app.config import Settings
from app.errors import ClipSourceFetchError, PostProcessingError
from app.utils.process_utils import CommandNotFound, CommandResult, CommandTimeout, run_command


# Center-channel extraction followed by loudness normalization and compression
VOICE_ISOLATION_FILTERS = [
    'pan=stereo|c0=c0|c1=c1',
    'stereotools=phasel=1',
    'pan=mono|c0=0.5*c0+0.5*c1',
    'loudnorm=I=-16:TP=-1.5:LRA=11',
    'acompressor=threshold=0.089:ratio=9:attack=200:release=1000',
]


def summarize_ffmpeg_error(stderr: str, limit: int = 300) -> str:
    lines = [line.strip() for line in (stderr or '').splitlines() if line.strip()]
    return (lines or ['unknown error'])[-1][:limit]


def processed_path_for(audio_path: str) -> str:
    """<base>.mp3 -> <base>_processed.mp3"""
    stem, ext = os.path.splitext(audio_path)
    return f"{stem}_processed{ext}"


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class FfmpegService:
    """Runs ffmpeg for voice isolation, clipping and remote fetches."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def _run(self, args: List[str], error_cls=PostProcessingError) -> CommandResult:
        cmd = [self.settings.ffmpeg_binary, '-hide_banner', '-loglevel', 'error', '-y'] + args
        try:
            result = await run_command(cmd, timeout=self.settings.ffmpeg_timeout)
        except CommandNotFound:
            raise error_cls(
                f"ffmpeg binary not found at {self.settings.ffmpeg_binary}. "
                "Install ffmpeg or set FFMPEG_BINARY."
            )
        except CommandTimeout as e:
            raise error_cls(f"ffmpeg timed out: {str(e)}")
        return result

    async def isolate_voice(self, audio_path: str) -> str:
        """
        Apply the voice isolation filter chain to audio_path in place.

        The filtered audio is written to <base>_processed.mp3 and then moved
        over the original. On any failure the temporary file is removed and
        the original is left untouched.

        Raises:
            PostProcessingError: If ffmpeg fails or produces no output
        """
        processed = processed_path_for(audio_path)
        try:
            result = await self._run([
                '-i', audio_path,
                '-af', ','.join(VOICE_ISOLATION_FILTERS),
                '-c:a', 'libmp3lame',
                '-q:a', '2',
                processed,
            ])
            if not result.ok:
                raise PostProcessingError(
                    f"Voice isolation failed: {summarize_ffmpeg_error(result.stderr)}",
                    detail=result.stderr,
                )
            if not os.path.exists(processed) or os.path.getsize(processed) == 0:
                raise PostProcessingError("Voice isolation produced no output")
            os.replace(processed, audio_path)
        except BaseException:
            _remove_quietly(processed)
            raise
        return audio_path

    async def clip(self, source_path: str, output_path: str, start_time: float, end_time: float) -> str:
        """
        Cut [start_time, end_time) out of source_path into output_path.

        The source file is only read. Re-encodes so that cuts are frame
        accurate rather than keyframe aligned.

        Raises:
            PostProcessingError: If ffmpeg fails or produces no output
        """
        duration = end_time - start_time
        args = [
            '-ss', f"{start_time:.3f}",
            '-i', source_path,
            '-t', f"{duration:.3f}",
        ]
        if output_path.endswith('.mp3'):
            args += ['-vn', '-c:a', 'libmp3lame', '-q:a', '2']
        else:
            args += ['-c:v', 'libx264', '-preset', 'veryfast', '-c:a', 'aac', '-movflags', '+faststart']
        args.append(output_path)

        try:
            result = await self._run(args)
            if not result.ok:
                raise PostProcessingError(
                    f"Failed to clip media: {summarize_ffmpeg_error(result.stderr)}",
                    detail=result.stderr,
                )
            if not os.path.exists(output_path):
                raise PostProcessingError("Clip completed but output file not found")
        except BaseException:
            _remove_quietly(output_path)
            raise
        return output_path

    async def fetch_remote(self, media_url: str, output_path: str) -> str:
        """
        Copy a remote media stream to output_path without re-encoding.

        Raises:
            ClipSourceFetchError: If the source cannot be fetched
        """
        try:
            result = await self._run(['-i', media_url, '-c', 'copy', output_path], error_cls=ClipSourceFetchError)
            if not result.ok or not os.path.exists(output_path):
                raise ClipSourceFetchError(
                    f"Failed to fetch media: {summarize_ffmpeg_error(result.stderr)}",
                    detail=result.stderr,
                )
        except BaseException:
            _remove_quietly(output_path)
            raise
        return output_path
