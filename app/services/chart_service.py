"""Chart setup analysis against a stored strategy."""

from __future__ import annotations

import logging

from app.adapters.llm.base import AbstractLLMClient
from app.core.config import settings
from app.core.errors import ValidationAppError
from app.schemas.chat import ChartImage
from app.schemas.llm import ContentPart, ImagePart, LLMMessage, TextPart

logger = logging.getLogger(__name__)

MULTI_TIMEFRAME_CHECKLIST = [
    "**Multi-Timeframe Analysis**: How do the different timeframes align or conflict?",
    "**Entry Signal**: YES or NO - Is there a valid entry based on the strategy across all timeframes?",
    "**Confidence Level**: High, Medium, or Low",
    "**Key Observations**: What patterns, indicators, or price action do you see on each timeframe?",
    "**Entry Criteria Met**: Which specific strategy rules are satisfied across the timeframes?",
    "**Entry Criteria Not Met**: Which rules are missing or not satisfied?",
    "**Timeframe Alignment**: Are the timeframes confirming each other or showing divergence?",
    "**Recommendations**: Should the trader take this setup? Any warnings or considerations?",
    "**Entry Price**: If applicable, suggest an entry price",
    "**Stop Loss**: If applicable, suggest a stop loss level",
    "**Take Profit**: If applicable, suggest take profit targets",
]

SINGLE_CHART_CHECKLIST = [
    "**Entry Signal**: YES or NO - Is there a valid entry based on the strategy?",
    "**Confidence Level**: High, Medium, or Low",
    "**Key Observations**: What patterns, indicators, or price action do you see?",
    "**Entry Criteria Met**: Which specific strategy rules are satisfied?",
    "**Entry Criteria Not Met**: Which rules are missing or not satisfied?",
    "**Recommendations**: Should the trader take this setup? Any warnings or considerations?",
    "**Entry Price**: If applicable, suggest an entry price",
    "**Stop Loss**: If applicable, suggest a stop loss level",
    "**Take Profit**: If applicable, suggest take profit targets",
]


def label_timeframes(charts: list[ChartImage]) -> list[ChartImage]:
    """Give unlabeled charts a positional label (``Chart 1``, ``Chart 2``...)."""
    return [
        chart if chart.timeframe.strip() else chart.model_copy(update={"timeframe": f"Chart {i}"})
        for i, chart in enumerate(charts, start=1)
    ]


def build_chart_prompt(strategy: str, charts: list[ChartImage]) -> str:
    """Build the analysis instruction placed after the chart images."""
    count = len(charts)
    plural = "s" if count > 1 else ""
    lines = [
        "You are a professional trading analyst. IMPORTANT: Respond in the same language "
        "as the trading strategy content provided below. I'm providing "
        f"{count} chart screenshot{plural} for analysis across different timeframes:",
        "",
    ]
    lines += [f"**Chart {i}**: {chart.timeframe}" for i, chart in enumerate(charts, start=1)]
    lines += ["", f"**Trading Strategy:**\n{strategy}", ""]

    if count > 1:
        lines.append(
            "Please analyze ALL charts together, considering the multi-timeframe "
            "perspective, and provide:"
        )
        checklist = MULTI_TIMEFRAME_CHECKLIST
        closing = (
            "Be specific about which timeframe shows which signal and reference the "
            "actual strategy rules provided."
        )
    else:
        lines.append("Please analyze the chart and provide:")
        checklist = SINGLE_CHART_CHECKLIST
        closing = "Be specific and reference the actual strategy rules provided."

    lines.append("")
    lines += [f"{i}. {item}" for i, item in enumerate(checklist, start=1)]
    lines += ["", closing]
    return "\n".join(lines)


def build_chart_message(strategy: str, charts: list[ChartImage]) -> LLMMessage:
    parts: list[ContentPart] = [
        ImagePart(media_type=chart.mime_type, data=chart.base64) for chart in charts
    ]
    parts.append(TextPart(text=build_chart_prompt(strategy, charts)))
    return LLMMessage(role="user", content=parts)


class ChartAnalysisService:
    def __init__(self, llm: AbstractLLMClient) -> None:
        self.llm = llm

    async def analyze(self, strategy: str, charts: list[ChartImage]) -> str:
        """Evaluate chart screenshots against the strategy.

        Raises:
            ValidationAppError: If the strategy or charts are missing.
            LLMAppError: If the model call fails.
        """
        if not strategy or not strategy.strip():
            raise ValidationAppError(
                code="strategy_required",
                message="No strategy provided. Please upload a strategy PDF first.",
            )
        if not charts:
            raise ValidationAppError(code="charts_required", message="No chart images provided")

        charts = label_timeframes(charts)
        logger.info(
            "chart.analysis_start",
            extra={"chart_count": len(charts), "timeframes": [c.timeframe for c in charts]},
        )

        return await self.llm.generate_text(
            system="You evaluate trade setups on chart screenshots against a trading strategy.",
            messages=[build_chart_message(strategy, charts)],
            max_tokens=settings.llm.chart_max_tokens,
            timeout_seconds=settings.llm.chart_timeout_seconds,
        )
