"""
Filename utility functions for naming request artifacts.

This module provides utilities for:
- Sanitizing media titles into filesystem-safe base names
- Deriving a per-request artifact base name (title prefix + request key)
- Naming clip artifacts
"""

import re
import time
import uuid
import hashlib
from typing import Optional


MAX_BASE_NAME_LENGTH = 100


def sanitize_title(title: Optional[str]) -> str:
    """
    Sanitize a media title: every non-alphanumeric character becomes an
    underscore and the result is lower-cased.

    Example: "My Video: Part 1!" -> "my_video__part_1_"
    """
    sanitized = re.sub(r'[^a-z0-9]', '_', title or '', flags=re.IGNORECASE).lower()
    sanitized = sanitized[:MAX_BASE_NAME_LENGTH]
    return sanitized or 'media'


def make_request_key(source_url: str, nonce: Optional[str] = None) -> str:
    """Short hex key unique to one request for a source URL."""
    nonce = nonce or uuid.uuid4().hex
    return hashlib.sha1(f"{source_url}|{nonce}".encode()).hexdigest()[:8]


def build_artifact_base_name(title: Optional[str], source_url: str, request_key: Optional[str] = None) -> str:
    """
    Base name shared by every artifact of one request: <sanitized-title>_<key>.

    The title prefix keeps files recognizable; the key keeps two requests for
    the same title from overwriting each other's files.
    """
    key = request_key or make_request_key(source_url)
    return f"{sanitize_title(title)}_{key}"


def build_clip_filename(extension: str, timestamp_ms: Optional[int] = None) -> str:
    """Clip artifacts are named clip_<milliseconds>.<ext>."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"clip_{timestamp_ms}.{extension}"


def build_temp_filename(extension: str, timestamp_ms: Optional[int] = None) -> str:
    """Name for an external clip source fetched to local storage."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"temp_{timestamp_ms}.{extension}"
