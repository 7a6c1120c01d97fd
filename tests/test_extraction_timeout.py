"""Unit tests for extraction timeout protection."""

import asyncio
import time
from unittest.mock import patch

import pytest

from app.core.config import settings
from app.core.errors import ValidationAppError
from app.core.file_validation import ValidatedUpload
from app.services.strategy_service import StrategyService, _extract_pdf_text_with_timeout


def _pdf_upload() -> ValidatedUpload:
    return ValidatedUpload(
        filename="strategy.pdf", kind="pdf", media_type="application/pdf", data=b"%PDF-1.4\n%test"
    )


class TestExtractionTimeout:
    """Test timeout protection for PDF extraction."""

    @pytest.mark.asyncio
    async def test_extraction_completes_within_timeout(self):
        with patch("app.services.strategy_service.extract_text_from_pdf_bytes") as mock_extract:
            mock_extract.return_value = ("extracted text", 1)

            text, page_count = await _extract_pdf_text_with_timeout(b"%PDF-1.4\n%test")

        assert text == "extracted text"
        assert page_count == 1

    @pytest.mark.asyncio
    async def test_extraction_timeout_raises_timeout_error(self, monkeypatch):
        monkeypatch.setattr(settings.app, "file_extraction_timeout_seconds", 0.05)

        def slow_extraction(raw_bytes):
            time.sleep(0.3)
            return ("text", 1)

        with patch("app.services.strategy_service.extract_text_from_pdf_bytes", slow_extraction):
            with pytest.raises(asyncio.TimeoutError):
                await _extract_pdf_text_with_timeout(b"%PDF-1.4\n%test")

    @pytest.mark.asyncio
    async def test_extraction_error_propagates(self):
        with patch("app.services.strategy_service.extract_text_from_pdf_bytes") as mock_extract:
            mock_extract.side_effect = ValueError("Too many pages")

            with pytest.raises(ValueError, match="Too many pages"):
                await _extract_pdf_text_with_timeout(b"%PDF-1.4\n%test")

    @pytest.mark.asyncio
    async def test_service_maps_timeout_to_validation_error(self, fake_llm):
        with patch(
            "app.services.strategy_service._extract_pdf_text_with_timeout",
            side_effect=asyncio.TimeoutError,
        ):
            with pytest.raises(ValidationAppError) as exc_info:
                await StrategyService(fake_llm).analyze(_pdf_upload())

        assert exc_info.value.code == "extraction_timeout"
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_service_maps_unreadable_pdf(self, fake_llm):
        with patch(
            "app.services.strategy_service._extract_pdf_text_with_timeout",
            side_effect=ValueError("Unreadable PDF"),
        ):
            with pytest.raises(ValidationAppError) as exc_info:
                await StrategyService(fake_llm).analyze(_pdf_upload())

        assert exc_info.value.code == "invalid_pdf"

    def test_timeout_value_from_config(self):
        assert 0 < settings.app.file_extraction_timeout_seconds <= 300
