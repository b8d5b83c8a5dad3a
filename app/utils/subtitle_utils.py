"""Subtitle parsing and synthesis utilities for VTT and SRT formats."""

import re
import html
from typing import List, Optional

from app.utils.timestamp_utils import format_seconds_to_vtt


TAG_PATTERN = re.compile(r'<[^>]+>')
BLOCK_KEYWORDS = ('NOTE', 'STYLE', 'REGION')


def extract_caption_lines(content: str) -> List[str]:
    """
    Extract caption text lines from VTT or SRT content, in order.

    Drops the WEBVTT header block, NOTE/STYLE/REGION blocks, cue identifiers
    (numeric or named), timing lines, blank lines and inline markup tags.
    """
    content = content.lstrip('\ufeff')
    lines = content.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    captions = []
    skipping_block = False

    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not line:
            skipping_block = False
            continue
        if skipping_block:
            continue

        at_block_start = index == 0 or not lines[index - 1].strip()
        if line.startswith('WEBVTT') or (at_block_start and line.split(' ', 1)[0] in BLOCK_KEYWORDS):
            skipping_block = True
            continue

        if '-->' in line:
            continue

        next_line = lines[index + 1].strip() if index + 1 < len(lines) else ''
        if at_block_start and '-->' in next_line:
            # cue identifier
            continue

        text = html.unescape(TAG_PATTERN.sub('', line)).strip()
        if text:
            captions.append(text)

    return captions


def subtitle_to_text(content: str) -> str:
    """Parse VTT/SRT content into plain text, one caption line per line."""
    return '\n'.join(extract_caption_lines(content))


def has_cue_timing(content: str) -> bool:
    """True if the content holds at least one cue timing line."""
    return any('-->' in line for line in content.splitlines())


def build_single_cue_vtt(text: str, duration_seconds: Optional[float]) -> str:
    """
    Build a WebVTT document with one cue spanning the whole media duration
    and carrying the full transcript as its caption.
    """
    # A blank line would terminate the cue early
    caption = re.sub(r'\n\s*\n', '\n', text.strip())
    # A literal arrow would be read back as a timing line
    caption = caption.replace('-->', '->')
    end = format_seconds_to_vtt(duration_seconds)
    return f"WEBVTT\n\n1\n00:00:00.000 --> {end}\n{caption}\n"
