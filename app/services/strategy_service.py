"""Strategy document analysis.

Turns an uploaded strategy (PDF or plain text exported from Notion) into a
structured summary produced by the model, plus the strategy text kept for
later chart analysis and chat. It handles:
- Local text extraction from PDFs (with timeout protection)
- Prompt construction, optionally enriched with the trader's comments
- The model call itself (the PDF is sent as a document part)
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from app.adapters.llm.base import AbstractLLMClient
from app.core.config import settings
from app.core.errors import ValidationAppError
from app.core.file_validation import ValidatedUpload
from app.schemas.llm import ContentPart, DocumentPart, LLMMessage, TextPart
from app.utils.pdf_extractor import extract_text_from_pdf_bytes
from app.utils.text_normalizer import normalize_text, truncate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyAnalysis:
    analysis: str
    strategy_text: str
    file_type: str
    page_count: Optional[int] = None


def build_strategy_prompt(additional_comments: str | None = None) -> str:
    """Build the instruction sent alongside the strategy document."""
    prompt = (
        "You are a trading strategy analyzer. IMPORTANT: Respond in the same language "
        "as the content of the document provided. Please analyze the trading strategy "
        "document provided and extract the key rules, entry criteria, exit criteria, and "
        "risk management guidelines. Provide a clear, structured summary that can be used "
        "to evaluate chart setups."
    )

    if additional_comments and additional_comments.strip():
        prompt += (
            "\n\nThe user has provided additional context:\n"
            f"{additional_comments.strip()}\n\n"
            "Please incorporate this additional information into your analysis."
        )

    prompt += """

Please provide:
1. Strategy Name/Type
2. Key Entry Rules
3. Key Exit Rules
4. Risk Management Rules
5. Important Notes or Conditions"""
    return prompt


async def _extract_pdf_text_with_timeout(raw_bytes: bytes) -> Tuple[str, int]:
    """Run PDF text extraction in the thread pool with a deadline.

    Raises:
        asyncio.TimeoutError: If extraction exceeds the configured timeout.
        ValueError: If the PDF is unreadable or has too many pages.
    """
    loop = asyncio.get_event_loop()
    timeout_seconds = settings.app.file_extraction_timeout_seconds

    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, extract_text_from_pdf_bytes, raw_bytes),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "strategy.extraction_timeout",
            extra={"timeout_seconds": timeout_seconds},
        )
        raise


def build_strategy_message(
    upload: ValidatedUpload, additional_comments: str | None = None
) -> LLMMessage:
    """Build the single user turn carrying the strategy document."""
    prompt = build_strategy_prompt(additional_comments)

    if upload.kind == "text":
        return LLMMessage(
            role="user",
            content=[TextPart(text=f"Here is the trading strategy:\n\n{upload.text}\n\n{prompt}")],
        )

    parts: list[ContentPart] = [
        DocumentPart(
            data=base64.b64encode(upload.data).decode("ascii"),
            filename=upload.filename or "strategy.pdf",
        ),
        TextPart(text=prompt),
    ]
    return LLMMessage(role="user", content=parts)


class StrategyService:
    """Analyze strategy documents with the model.

    Attributes:
        llm: Multimodal LLM client.
    """

    def __init__(self, llm: AbstractLLMClient) -> None:
        self.llm = llm

    async def _extract_text(self, upload: ValidatedUpload) -> Tuple[str, Optional[int]]:
        if upload.kind == "text":
            return normalize_text(upload.text or ""), None

        try:
            text, page_count = await _extract_pdf_text_with_timeout(upload.data)
        except asyncio.TimeoutError:
            raise ValidationAppError(
                code="extraction_timeout",
                message=(
                    "File extraction took too long "
                    f"(timeout: {settings.app.file_extraction_timeout_seconds}s). "
                    "File may be corrupted or too complex."
                ),
                details={"file_type": "pdf"},
            ) from None
        except ValueError as exc:
            raise ValidationAppError(code="invalid_pdf", message=str(exc)) from exc

        return normalize_text(text), page_count

    async def analyze(
        self,
        upload: ValidatedUpload,
        additional_comments: str | None = None,
    ) -> StrategyAnalysis:
        """Analyze an uploaded strategy.

        Args:
            upload: Validated PDF or text upload.
            additional_comments: Optional free-text context from the trader.

        Returns:
            StrategyAnalysis with the model summary and the strategy text.
            Scanned PDFs without a text layer fall back to the summary as
            strategy text.

        Raises:
            ValidationAppError: If the upload is not a PDF/text or the PDF
                cannot be read.
            LLMAppError: If the model call fails.
        """
        if upload.kind not in ("pdf", "text"):
            raise ValidationAppError(
                code="unsupported_file_type",
                message="Strategy must be a PDF or a text file.",
            )

        extracted_text, page_count = await self._extract_text(upload)

        logger.info(
            "strategy.analysis_start",
            extra={
                "file_type": upload.kind,
                "size_bytes": len(upload.data),
                "page_count": page_count,
                "char_count": len(extracted_text),
                "strategy_hash": hashlib.sha256(upload.data).hexdigest()[:16],
            },
        )

        analysis = await self.llm.generate_text(
            system="You analyze trading strategy documents for traders.",
            messages=[build_strategy_message(upload, additional_comments)],
            max_tokens=settings.llm.strategy_max_tokens,
            timeout_seconds=settings.llm.strategy_timeout_seconds,
        )

        strategy_text = truncate(extracted_text or analysis, settings.app.max_strategy_chars)

        logger.info(
            "strategy.analysis_success",
            extra={"analysis_len": len(analysis), "strategy_len": len(strategy_text)},
        )

        return StrategyAnalysis(
            analysis=analysis,
            strategy_text=strategy_text,
            file_type=upload.kind,
            page_count=page_count,
        )
