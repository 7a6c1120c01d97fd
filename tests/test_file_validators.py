"""Tests for file validation utilities.

Tests cover:
- Magic number validation for PDF and chart images
- MIME type mapping
- Content checks on validated uploads
"""

import io

import pytest
from fastapi import HTTPException, UploadFile
from unittest.mock import patch

from app.core.config import settings
from app.core.errors import ValidationAppError
from app.core.file_validation import (
    read_upload_file_limited,
    read_validated_upload,
    validate_upload_content,
)
from app.utils.file_validators import (
    detect_image_media_type,
    get_file_kind,
    validate_pdf_signature,
    validate_text_content,
)


class TestImageSignatures:
    def test_png(self, png_bytes: bytes) -> None:
        assert detect_image_media_type(png_bytes) == "image/png"

    def test_jpeg(self, jpeg_bytes: bytes) -> None:
        assert detect_image_media_type(jpeg_bytes) == "image/jpeg"

    def test_jpeg_without_end_marker_rejected(self) -> None:
        assert detect_image_media_type(b"\xff\xd8\xff\xe0" + b"\x00" * 32) is None

    def test_gif(self) -> None:
        assert detect_image_media_type(b"GIF89a" + b"\x00" * 10) == "image/gif"

    def test_webp(self) -> None:
        assert detect_image_media_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"

    def test_text_is_not_an_image(self) -> None:
        assert detect_image_media_type(b"this claims to be a chart") is None


class TestPdfSignature:
    def test_valid(self) -> None:
        assert validate_pdf_signature(b"%PDF-1.4\n1 0 obj") is True

    def test_invalid(self) -> None:
        assert validate_pdf_signature(b"This is not a PDF but claims to be") is False

    def test_empty(self) -> None:
        assert validate_pdf_signature(b"") is False


class TestTextContent:
    def test_utf8(self) -> None:
        assert validate_text_content("Entrada en ruptura".encode()) == "Entrada en ruptura"

    def test_not_utf8(self) -> None:
        assert validate_text_content(b"\xff\xfe\x00bad") is None


class TestGetFileKind:
    @pytest.mark.parametrize(
        "content_type,filename,expected",
        [
            ("application/pdf", None, "pdf"),
            ("application/octet-stream", "Strategy.PDF", "pdf"),
            ("image/png", None, "image"),
            ("image/jpeg; charset=binary", None, "image"),
            ("text/plain", "notes.txt", "text"),
            ("application/msword", "strategy.doc", None),
            (None, None, None),
        ],
    )
    def test_mapping(self, content_type, filename, expected) -> None:
        assert get_file_kind(content_type, filename) == expected


class TestValidateUploadContent:
    def test_pdf(self) -> None:
        upload = validate_upload_content(b"%PDF-1.7 body", "application/pdf", "s.pdf")
        assert upload.kind == "pdf"
        assert upload.media_type == "application/pdf"

    def test_image_media_type_comes_from_signature(self, jpeg_bytes: bytes) -> None:
        # Declared PNG, actually JPEG: the bytes win.
        upload = validate_upload_content(jpeg_bytes, "image/png", "chart.png")
        assert upload.media_type == "image/jpeg"

    def test_text_is_decoded(self) -> None:
        upload = validate_upload_content(b"Buy the dip", "text/plain", "s.txt")
        assert upload.text == "Buy the dip"

    def test_spoofed_pdf(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_upload_content(b"MZ\x90\x00", "application/pdf", "evil.pdf")
        assert exc_info.value.code == "invalid_pdf"

    def test_spoofed_image(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_upload_content(b"<svg/>", "image/png", "chart.png")
        assert exc_info.value.code == "invalid_image"

    def test_unsupported_type(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_upload_content(b"data", "application/zip", "a.zip")
        assert exc_info.value.code == "unsupported_file_type"

    def test_kind_not_allowed(self, png_bytes: bytes) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_upload_content(png_bytes, "image/png", allowed=("pdf", "text"))
        assert exc_info.value.code == "unsupported_file_type"

    def test_empty_file(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_upload_content(b"", "application/pdf", "s.pdf")
        assert exc_info.value.code == "empty_file"


class TestReadUploadLimited:
    @pytest.mark.asyncio
    async def test_within_limit(self) -> None:
        upload = UploadFile(file=io.BytesIO(b"%PDF-1.4 small"), filename="s.pdf")
        assert await read_upload_file_limited(upload) == b"%PDF-1.4 small"

    @pytest.mark.asyncio
    async def test_rejects_oversized_by_reading(self) -> None:
        upload = UploadFile(file=io.BytesIO(b"x" * (1024 * 1024 + 1)), filename="big.pdf")
        with patch.object(settings.app, "max_upload_size_mb", 1):
            with pytest.raises(HTTPException) as exc_info:
                await read_upload_file_limited(upload)
        assert exc_info.value.status_code == 413

    @pytest.mark.asyncio
    async def test_rejects_oversized_by_declared_size(self) -> None:
        upload = UploadFile(file=io.BytesIO(b"tiny"), filename="big.pdf", size=50 * 1024 * 1024)
        with patch.object(settings.app, "max_upload_size_mb", 1):
            with pytest.raises(HTTPException) as exc_info:
                await read_upload_file_limited(upload)
        assert exc_info.value.detail == "File too large. Maximum size is 1MB"

    @pytest.mark.asyncio
    async def test_read_validated_upload(self, png_bytes: bytes) -> None:
        upload = UploadFile(
            file=io.BytesIO(png_bytes),
            filename="chart.png",
            headers={"content-type": "image/png"},
        )
        validated = await read_validated_upload(upload, allowed=("image",))
        assert validated.kind == "image"
        assert validated.data == png_bytes
