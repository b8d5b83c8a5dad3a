"""
YT-DLP service module (acquisition adapter).

Metadata lookups go through the yt-dlp Python API; downloads and subtitle
tracks go through the yt-dlp binary so that long-running transfers can be
bounded by a timeout and killed when the request is cancelled.
"""

import os
import asyncio
from typing import Any, Dict, List, Optional

import yt_dlp

from app.config import Settings
from app.errors import DownloadError, InfoFetchError, SubtitlesNotFound
from app.models.media import MediaInfo
from app.utils.process_utils import CommandNotFound, CommandResult, CommandTimeout, run_command


# Prefer a single mp4 with video+m4a audio, then any mp4, then whatever is best
VIDEO_FORMAT_SELECTOR = 'bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best'
SUBTITLE_EXTENSIONS = ('.vtt', '.srt')


def summarize_ytdlp_error(stderr: str, limit: int = 300) -> str:
    """Pick the most useful line out of yt-dlp's stderr for user-facing messages."""
    lines = [line.strip() for line in (stderr or '').splitlines() if line.strip()]
    error_lines = [line for line in lines if line.startswith('ERROR:')]
    summary = (error_lines or lines or ['unknown error'])[-1]
    return summary[:limit]


def _format_upload_date(raw: Optional[str]) -> Optional[str]:
    # yt-dlp reports YYYYMMDD
    if raw and len(raw) == 8 and raw.isdigit():
        return f"{raw[:4]}-{raw[4:6]}-{raw[6:]}"
    return raw


def _summarize_formats(formats: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    summary = []
    for fmt in formats or []:
        summary.append({
            "format_id": fmt.get("format_id"),
            "ext": fmt.get("ext"),
            "resolution": fmt.get("resolution") or fmt.get("format_note"),
            "vcodec": fmt.get("vcodec"),
            "acodec": fmt.get("acodec"),
            "filesize": fmt.get("filesize") or fmt.get("filesize_approx"),
        })
    return summary


class YtDlpService:
    """Fetches metadata, media and subtitle tracks for a source URL."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def _metadata_options(self) -> Dict[str, Any]:
        opts = {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'noplaylist': True,
            'socket_timeout': self.settings.ytdlp_info_timeout,
        }
        cookies_file = self.settings.ytdlp_cookies_file
        if cookies_file and os.path.exists(cookies_file):
            opts['cookiefile'] = cookies_file
        return opts

    def _extract_info(self, url: str) -> Dict[str, Any]:
        with yt_dlp.YoutubeDL(self._metadata_options()) as ydl:
            return ydl.extract_info(url, download=False)

    async def fetch_info(self, url: str) -> MediaInfo:
        """
        Fetch title, duration, thumbnail and formats for a URL.

        Raises:
            InfoFetchError: If yt-dlp cannot resolve the URL
        """
        try:
            info = await asyncio.wait_for(
                asyncio.to_thread(self._extract_info, url),
                timeout=self.settings.ytdlp_info_timeout,
            )
        except asyncio.TimeoutError:
            raise InfoFetchError(
                f"Failed to get video info: timed out after {self.settings.ytdlp_info_timeout}s"
            )
        except Exception as e:
            raise InfoFetchError(f"Failed to get video info: {str(e)}", detail=repr(e))

        if not info:
            raise InfoFetchError("Failed to get video info: no information returned")

        return MediaInfo(
            title=info.get("title") or "Untitled",
            duration_seconds=info.get("duration"),
            thumbnail_url=info.get("thumbnail"),
            available_formats=_summarize_formats(info.get("formats")),
            description=info.get("description"),
            uploader_name=info.get("uploader"),
            view_count=info.get("view_count"),
            upload_date=_format_upload_date(info.get("upload_date")),
        )

    # ------------------------------------------------------------------
    # Binary downloads
    # ------------------------------------------------------------------

    def _base_args(self) -> List[str]:
        args = [self.settings.ytdlp_binary, '--no-playlist', '--no-progress']
        cookies_file = self.settings.ytdlp_cookies_file
        if cookies_file and os.path.exists(cookies_file):
            args.extend(['--cookies', cookies_file])
        return args

    async def _run(self, args: List[str]) -> CommandResult:
        cmd = self._base_args() + args
        try:
            return await run_command(cmd, timeout=self.settings.ytdlp_download_timeout)
        except CommandNotFound:
            raise DownloadError(
                f"yt-dlp binary not found at {self.settings.ytdlp_binary}. "
                "Install yt-dlp or set YTDLP_BINARY."
            )
        except CommandTimeout as e:
            raise DownloadError(f"Download timed out: {str(e)}")

    async def download_video(self, url: str, output_path: str) -> str:
        """
        Download the best mp4 rendition of url to output_path.

        Raises:
            DownloadError: If yt-dlp fails or produces no file
        """
        result = await self._run([
            url,
            '-f', VIDEO_FORMAT_SELECTOR,
            '--merge-output-format', 'mp4',
            '-o', output_path,
        ])
        if not result.ok:
            raise DownloadError(
                f"Failed to download video: {summarize_ytdlp_error(result.stderr)}",
                detail=result.stderr,
            )
        if not os.path.exists(output_path):
            raise DownloadError("Video download completed but file not found")
        return output_path

    async def download_audio(self, url: str, output_path: str, audio_format: str = 'mp3') -> str:
        """
        Extract the audio track of url as audio_format into output_path.

        Raises:
            DownloadError: If yt-dlp fails or produces no file
        """
        # yt-dlp picks the intermediate extension; the post-processor renames to audio_format
        stem, _ = os.path.splitext(output_path)
        result = await self._run([
            url,
            '-f', 'bestaudio/best',
            '-x', '--audio-format', audio_format,
            '-o', f"{stem}.%(ext)s",
        ])
        if not result.ok:
            raise DownloadError(
                f"Failed to extract audio: {summarize_ytdlp_error(result.stderr)}",
                detail=result.stderr,
            )
        if not os.path.exists(output_path):
            raise DownloadError("Audio extraction completed but file not found")
        return output_path

    async def download_subtitles(self, url: str, output_base: str, automatic: bool = False) -> str:
        """
        Download manual (or automatic) subtitles for url next to output_base.

        Args:
            url: Source video URL
            output_base: Path without extension; yt-dlp appends .<lang>.vtt
            automatic: Request auto-generated captions instead of manual ones

        Returns:
            Path to the first subtitle file found

        Raises:
            SubtitlesNotFound: If no subtitle track was written
            DownloadError: If yt-dlp itself fails
        """
        kind = 'automatic' if automatic else 'manual'
        result = await self._run([
            url,
            '--skip-download',
            '--write-auto-sub' if automatic else '--write-sub',
            '--sub-format', 'vtt/srt/best',
            '--sub-langs', self.settings.subtitle_langs,
            '--convert-subs', 'vtt',
            '-o', f"{output_base}.%(ext)s",
        ])
        if not result.ok:
            raise DownloadError(
                f"Failed to download {kind} subtitles: {summarize_ytdlp_error(result.stderr)}",
                detail=result.stderr,
            )

        found = find_subtitle_files(output_base)
        if not found:
            raise SubtitlesNotFound(f"No {kind} subtitles found")
        return found[0]


def find_subtitle_files(output_base: str) -> List[str]:
    """Subtitle files written for output_base, preferring .vtt over .srt."""
    directory = os.path.dirname(output_base) or '.'
    prefix = os.path.basename(output_base) + '.'
    if not os.path.isdir(directory):
        return []
    matches = [
        os.path.join(directory, name)
        for name in os.listdir(directory)
        if name.startswith(prefix) and name.endswith(SUBTITLE_EXTENSIONS)
    ]
    return sorted(matches, key=lambda path: (not path.endswith('.vtt'), path))
