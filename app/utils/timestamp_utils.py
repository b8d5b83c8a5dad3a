"""
Timestamp utility functions for parsing and formatting timestamps.

This module provides utilities for:
- Parsing various timestamp formats to seconds
- Converting seconds to WebVTT timestamp format
"""

from typing import Optional


def parse_timestamp_to_seconds(timestamp: str) -> float:
    """
    Auto-detect and parse timestamp to seconds.
    Supports: SRT "00:01:30,500", VTT "00:01:30.500" or "01:30.500", float "90.5"
    """
    timestamp = timestamp.strip()

    if ':' in timestamp:
        timestamp = timestamp.replace(',', '.')
        parts = timestamp.split(':')
        if len(parts) == 3:
            hours = int(parts[0])
            minutes = int(parts[1])
            seconds = float(parts[2])
            return hours * 3600 + minutes * 60 + seconds
        if len(parts) == 2:
            minutes = int(parts[0])
            seconds = float(parts[1])
            return minutes * 60 + seconds

    # Try float seconds
    return float(timestamp)


def _split_seconds(seconds: float):
    total_millis = int(round(max(seconds, 0) * 1000))
    hours, remainder = divmod(total_millis, 3600 * 1000)
    minutes, remainder = divmod(remainder, 60 * 1000)
    secs, millis = divmod(remainder, 1000)
    return hours, minutes, secs, millis


def format_seconds_to_vtt(seconds: Optional[float]) -> str:
    """Convert seconds to WebVTT timestamp format: HH:MM:SS.mmm (None -> zero)."""
    hours, minutes, secs, millis = _split_seconds(seconds or 0)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"
