"""Pydantic schemas for chart analysis, chat and chart image import."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.llm import ImageMediaType


class ChartImage(BaseModel):
    """A chart screenshot already encoded by the client."""

    base64: str
    mime_type: ImageMediaType = "image/png"
    timeframe: str = ""


class HistoryMessage(BaseModel):
    """Prior transcript entry posted with a chat message."""

    role: Literal["user", "assistant"]
    content: str
    type: str | None = None


class ChartAnalysisResponse(BaseModel):
    success: bool = True
    analysis: str
    chart_count: int


class ChatResponse(BaseModel):
    success: bool = True
    response: str


class ChartImageRequest(BaseModel):
    url: str | None = Field(None, description="TradingView snapshot link (https)")


class ChartImageResponse(BaseModel):
    image_url: str
    base64: str
    mime_type: str = "image/png"
