"""Pydantic schemas for stored trading strategies."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

StrategyFileType = Literal["pdf", "text"]


class StrategyCreate(BaseModel):
    user_id: str
    name: str
    analysis: str
    strategy_text: str
    file_type: StrategyFileType | None = None
    additional_comments: str | None = None


class StrategyRecord(StrategyCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class StrategyOut(BaseModel):
    id: str
    name: str
    analysis: str
    strategy_text: str
    file_type: StrategyFileType | None = None
    additional_comments: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: StrategyRecord) -> "StrategyOut":
        return cls.model_validate(record.model_dump(exclude={"user_id"}))


class StrategyAnalysisResponse(BaseModel):
    success: bool = True
    strategy_id: str
    name: str
    analysis: str = Field(..., description="Structured summary produced by the model")
    strategy_text: str = Field(..., description="Strategy text kept for later chart analysis")
    page_count: int | None = None


class StrategyListResponse(BaseModel):
    success: bool = True
    strategies: list[StrategyOut]
