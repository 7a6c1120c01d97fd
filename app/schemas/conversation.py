"""Pydantic schemas for conversations and their messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_CONVERSATION_TITLE = "New Conversation"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageMetadata(BaseModel):
    file_name: str | None = None
    timeframes: list[str] | None = None
    chart_count: int | None = None


class ChatMessage(BaseModel):
    """One entry of a conversation transcript.

    ``type`` marks messages that stand for an upload (``strategy`` or
    ``chart``) rather than typed text; those are left out of the history
    sent back to the model.
    """

    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: Literal["strategy", "chart", "text"] | None = None
    metadata: MessageMetadata | None = None


class EmbeddedStrategy(BaseModel):
    id: str
    name: str
    text: str
    analysis: str


class ConversationRecord(BaseModel):
    id: str
    user_id: str
    title: str
    messages: list[ChatMessage] = Field(default_factory=list)
    strategies: list[EmbeddedStrategy] | None = None
    # Single-strategy fields kept for conversations created before
    # ``strategies`` existed.
    strategy_text: str | None = None
    strategy_analysis: str | None = None
    is_manually_renamed: bool = False
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime


class ConversationCreate(BaseModel):
    title: str | None = None


class ConversationUpdate(BaseModel):
    """Partial update; only fields that are set are written."""

    messages: list[ChatMessage] | None = None
    strategies: list[EmbeddedStrategy] | None = None
    strategy_text: str | None = None
    strategy_analysis: str | None = None
    title: str | None = None
    is_manually_renamed: bool | None = None


class ConversationOut(BaseModel):
    id: str
    title: str
    messages: list[ChatMessage]
    strategies: list[EmbeddedStrategy] | None = None
    strategy_text: str | None = None
    strategy_analysis: str | None = None
    is_manually_renamed: bool = False
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime

    @classmethod
    def from_record(cls, record: ConversationRecord) -> "ConversationOut":
        return cls.model_validate(record.model_dump(exclude={"user_id"}))


class ConversationResponse(BaseModel):
    conversation: ConversationOut


class ConversationCreatedResponse(BaseModel):
    conversation_id: str
    conversation: ConversationOut


class ConversationListResponse(BaseModel):
    conversations: list[ConversationOut]


class TitleMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    type: str | None = None


class GenerateTitleRequest(BaseModel):
    messages: list[TitleMessage] = Field(default_factory=list)


class GenerateTitleResponse(BaseModel):
    title: str
