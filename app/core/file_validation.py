"""Upload validation: size limits and content checks for uploaded files."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, UploadFile

from app.core.config import settings
from app.core.errors import ValidationAppError
from app.utils.file_validators import (
    FileKind,
    detect_image_media_type,
    get_file_kind,
    validate_pdf_signature,
    validate_text_content,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedUpload:
    """An upload whose size and signature have been checked."""

    filename: str | None
    kind: FileKind
    media_type: str
    data: bytes
    text: str | None = None


async def read_upload_file_limited(file: UploadFile) -> bytes:
    """Read an uploaded file in chunks enforcing the max size limit.

    Uses file.size if available (multipart headers), falls back to chunked
    reading with enforcement.

    Args:
        file: FastAPI upload file instance.

    Returns:
        File content as bytes if within the allowed size limit.

    Raises:
        HTTPException: 413 if the file exceeds the configured size limit.
    """
    max_bytes = settings.app.max_upload_size_mb * 1024 * 1024

    # Check size from multipart headers if available
    file_size = getattr(file, "size", None)

    if file_size is not None and file_size > max_bytes:
        logger.warning(
            "file_validation.rejected_by_header",
            extra={"file_size": file_size, "max_bytes": max_bytes},
        )
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.app.max_upload_size_mb}MB",
        )

    # Chunked reading with secondary enforcement
    size = 0
    chunks: list[bytes] = []

    while True:
        chunk = await file.read(8192)
        if not chunk:
            break

        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "file_validation.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {settings.app.max_upload_size_mb}MB",
            )
        chunks.append(chunk)

    return b"".join(chunks)


def validate_upload_content(
    data: bytes,
    content_type: str | None,
    filename: str | None = None,
    *,
    allowed: tuple[FileKind, ...] = ("pdf", "image", "text"),
) -> ValidatedUpload:
    """Check that the bytes match the declared type.

    Raises:
        ValidationAppError: If the type is unsupported or the content does
            not match it.
    """
    kind = get_file_kind(content_type, filename)
    if kind is None or kind not in allowed:
        raise ValidationAppError(
            code="unsupported_file_type",
            message=f"Unsupported file type: {content_type or 'unknown'}",
        )

    if not data:
        raise ValidationAppError(code="empty_file", message="Empty file.")

    if kind == "pdf":
        if not validate_pdf_signature(data):
            raise ValidationAppError(
                code="invalid_pdf",
                message="Invalid PDF file. File does not match PDF format.",
                details={"file_type": "pdf"},
            )
        return ValidatedUpload(filename=filename, kind=kind, media_type="application/pdf", data=data)

    if kind == "image":
        media_type = detect_image_media_type(data)
        if media_type is None:
            raise ValidationAppError(
                code="invalid_image",
                message="Invalid image file. Only PNG, JPEG, GIF, and WebP formats are supported.",
            )
        return ValidatedUpload(filename=filename, kind=kind, media_type=media_type, data=data)

    text = validate_text_content(data)
    if text is None:
        raise ValidationAppError(
            code="invalid_text",
            message="Text file is empty or not valid UTF-8.",
        )
    return ValidatedUpload(filename=filename, kind=kind, media_type="text/plain", data=data, text=text)


async def read_validated_upload(
    file: UploadFile,
    *,
    allowed: tuple[FileKind, ...] = ("pdf", "image", "text"),
) -> ValidatedUpload:
    """Size-check, read, and signature-check an upload."""
    data = await read_upload_file_limited(file)
    upload = validate_upload_content(data, file.content_type, file.filename, allowed=allowed)
    logger.debug(
        "file_validation.accepted",
        extra={"kind": upload.kind, "media_type": upload.media_type, "size_bytes": len(data)},
    )
    return upload
