"""
URL utility functions for artifact links.

This module provides utilities for:
- Building fully qualified artifact URLs under the /downloads static path
- Mapping a /downloads URL or relative path back to a file inside the
  downloads directory (rejecting anything that escapes it)
- Telling local artifact URLs apart from external media URLs
"""

import os
from typing import Optional
from urllib.parse import quote, unquote, urlparse


DOWNLOADS_ROUTE = "/downloads"


def build_file_url(base_url: str, filename: str) -> str:
    """Join scheme+host with the static downloads path: http://host/downloads/<file>."""
    return f"{base_url.rstrip('/')}{DOWNLOADS_ROUTE}/{quote(filename)}"


def is_http_url(value: str) -> bool:
    return urlparse(value).scheme in ("http", "https")


def is_local_artifact_url(media_url: str, serving_hosts: tuple) -> bool:
    """
    True if media_url points at this server's /downloads path.

    Relative URLs ("/downloads/x.mp4") are always local; absolute URLs are
    local when their host matches one of serving_hosts.
    """
    parsed = urlparse(media_url)
    if not parsed.path.startswith(DOWNLOADS_ROUTE + "/"):
        return False
    if not parsed.netloc:
        return True
    return parsed.netloc.lower() in {h.lower() for h in serving_hosts if h}


def resolve_downloads_path(downloads_dir: str, relative: str) -> Optional[str]:
    """
    Resolve a path relative to the downloads directory.

    Accepts "x.mp4", "downloads/x.mp4", "/downloads/x.mp4" or a full
    /downloads URL. Returns None when the result would leave the directory.
    """
    path = unquote(urlparse(relative).path if is_http_url(relative) else relative)
    path = path.lstrip("/")
    route_prefix = DOWNLOADS_ROUTE.lstrip("/") + "/"
    if path.startswith(route_prefix):
        path = path[len(route_prefix):]
    if not path:
        return None

    root = os.path.realpath(downloads_dir)
    candidate = os.path.realpath(os.path.join(root, path))
    if os.path.commonpath([root, candidate]) != root or candidate == root:
        return None
    return candidate
