"""File validation utilities for content security.

Validates file signatures (magic numbers) to prevent MIME type spoofing:
strategy documents must really be PDFs (or UTF-8 text exported from
Notion) and chart screenshots must really be PNG, JPEG, GIF or WebP.
"""

from __future__ import annotations

import logging
from typing import Literal, Optional, cast

logger = logging.getLogger(__name__)

FileKind = Literal["pdf", "image", "text"]

IMAGE_MEDIA_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp")


def _is_png(data: bytes) -> bool:
    return len(data) >= 8 and data.startswith(b"\x89PNG")


def _is_jpeg(data: bytes) -> bool:
    # SOI marker at the start and EOI marker at the end.
    return len(data) >= 4 and data.startswith(b"\xff\xd8") and data.endswith(b"\xff\xd9")


def _is_gif(data: bytes) -> bool:
    return len(data) >= 6 and data.startswith(b"GIF")


def _is_webp(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP"


def detect_image_media_type(data: bytes) -> Optional[str]:
    """Return the image MIME type matching the file signature, if any."""
    if _is_png(data):
        return "image/png"
    if _is_jpeg(data):
        return "image/jpeg"
    if _is_gif(data):
        return "image/gif"
    if _is_webp(data):
        return "image/webp"
    return None


def validate_pdf_signature(data: bytes) -> bool:
    """Check the ``%PDF`` magic number."""
    if data.startswith(b"%PDF"):
        return True

    logger.warning(
        "file_signature.invalid",
        extra={"expected_type": "pdf", "actual_prefix": data[:10] if data else "EMPTY"},
    )
    return False


def validate_text_content(data: bytes) -> Optional[str]:
    """Decode plain text uploads; returns None when empty or not UTF-8."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("file_signature.invalid_text_encoding")
        return None
    return text if text else None


def get_file_kind(content_type: str | None, filename: str | None = None) -> Optional[FileKind]:
    """Map the declared MIME type (or a .pdf filename) to a file kind."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime == "application/pdf" or (filename or "").lower().endswith(".pdf"):
        return "pdf"
    if mime.startswith("image/"):
        return "image"
    if mime == "text/plain":
        return "text"
    return cast(Optional[FileKind], None)
