"""Word document export of subtitle tracks (python-docx)."""

import os

from docx import Document

from app.errors import DocumentExportError
from app.utils.subtitle_utils import extract_caption_lines, has_cue_timing


def export_subtitles_to_docx(subtitle_path: str, docx_path: str, title: str) -> str:
    """
    Write the caption lines of a VTT or SRT file to a .docx document.

    The document holds a heading with the title followed by one paragraph per
    caption line, in subtitle order.

    Raises:
        DocumentExportError: Unreadable or undecodable file, or no cue timing
    """
    try:
        with open(subtitle_path, 'rb') as f:
            raw = f.read()
    except OSError as e:
        raise DocumentExportError(f"Failed to read subtitle file: {str(e)}")

    try:
        content = raw.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise DocumentExportError(f"Subtitle file is not valid UTF-8: {str(e)}")

    if not has_cue_timing(content):
        raise DocumentExportError(
            f"{os.path.basename(subtitle_path)} is not a subtitle file (no cue timing found)"
        )

    document = Document()
    document.add_heading(title or "Transcript", level=1)
    for line in extract_caption_lines(content):
        document.add_paragraph(line)

    try:
        document.save(docx_path)
    except OSError as e:
        raise DocumentExportError(f"Failed to write document: {str(e)}")
    return docx_path
