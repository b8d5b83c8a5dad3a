"""
Cache service module for managing produced artifacts.

This module provides utilities for:
- Cleaning up artifacts in the downloads directory older than the TTL
- Reporting what the downloads directory currently holds
"""

import os
import time
from typing import Any, Dict, Optional


ARTIFACT_CATEGORIES = {
    ".mp4": "videos",
    ".mp3": "audio",
    ".docx": "documents",
    ".txt": "transcripts",
    ".vtt": "subtitles",
    ".srt": "subtitles",
}


def _category_for(filename: str) -> str:
    return ARTIFACT_CATEGORIES.get(os.path.splitext(filename)[1].lower(), "other")


def _empty_counts() -> Dict[str, int]:
    counts = {category: 0 for category in ARTIFACT_CATEGORIES.values()}
    counts["other"] = 0
    return counts


def cleanup_artifacts(downloads_dir: str, ttl_hours: float, now: Optional[float] = None) -> Dict[str, Any]:
    """
    Delete all artifacts older than TTL.

    Only regular files directly inside downloads_dir are considered; a file
    that disappears or cannot be removed mid-scan is skipped.

    Args:
        downloads_dir: Directory served under /downloads
        ttl_hours: Maximum age in hours; 0 or less deletes nothing
        now: Reference time (epoch seconds), defaults to the current time

    Returns:
        Dictionary containing:
        - deleted: Count of files deleted per category
        - total_deleted: Total number of files deleted
        - freed_bytes: Total disk space freed in bytes

    Example:
        >>> result = cleanup_artifacts("./downloads", ttl_hours=24)
        >>> print(f"Deleted {result['total_deleted']} files, freed {result['freed_bytes']} bytes")
    """
    deleted = _empty_counts()
    freed_bytes = 0

    if ttl_hours > 0 and os.path.isdir(downloads_dir):
        cutoff = (now if now is not None else time.time()) - (ttl_hours * 3600)
        for filename in os.listdir(downloads_dir):
            filepath = os.path.join(downloads_dir, filename)
            try:
                if not os.path.isfile(filepath) or os.path.getmtime(filepath) >= cutoff:
                    continue
                size = os.path.getsize(filepath)
                os.remove(filepath)
            except OSError:
                continue
            freed_bytes += size
            deleted[_category_for(filename)] += 1

    return {
        "deleted": deleted,
        "total_deleted": sum(deleted.values()),
        "freed_bytes": freed_bytes
    }


def get_artifact_stats(downloads_dir: str) -> Dict[str, Any]:
    """File counts per category and total size of the downloads directory."""
    counts = _empty_counts()
    total_bytes = 0
    if os.path.isdir(downloads_dir):
        for filename in os.listdir(downloads_dir):
            filepath = os.path.join(downloads_dir, filename)
            if os.path.isfile(filepath):
                counts[_category_for(filename)] += 1
                total_bytes += os.path.getsize(filepath)
    return {"files": counts, "total_files": sum(counts.values()), "total_bytes": total_bytes}
