"""Free-form chat about a strategy, and conversation title generation."""

from __future__ import annotations

import logging
import re
from typing import Sequence

from app.adapters.llm.base import AbstractLLMClient
from app.core.config import settings
from app.core.errors import LLMAppError, ValidationAppError
from app.schemas.chat import ChartImage, HistoryMessage
from app.schemas.conversation import DEFAULT_CONVERSATION_TITLE, TitleMessage
from app.schemas.llm import ContentPart, ImagePart, LLMMessage, TextPart
from app.utils.text_normalizer import truncate

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 10
# Upload markers stand in for files the model already saw; they are not dialogue.
NON_DIALOGUE_TYPES = {"strategy", "chart"}

TITLE_CONTEXT_MESSAGES = 4
TITLE_MESSAGE_CHARS = 300
MAX_TITLE_CHARS = 60

_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")


def build_system_prompt(
    strategy: str | None,
    charts: Sequence[ChartImage] = (),
    custom_instructions: str | None = None,
) -> str:
    prompt = (
        "You are an expert trading assistant helping traders analyze their strategies "
        "and make informed trading decisions. You provide clear, actionable advice based "
        "on trading principles and technical analysis. IMPORTANT: Always respond in the "
        "same language as the user's messages and strategy content."
    )

    if custom_instructions:
        prompt += f"\n\nThe user has asked you to follow these instructions:\n{custom_instructions}"

    if strategy:
        prompt += (
            "\n\nThe user has uploaded the following trading strategy:\n\n"
            f"{strategy}\n\nUse this strategy as context when answering questions."
        )

    if charts:
        timeframes = ", ".join(chart.timeframe for chart in charts)
        prompt += (
            f"\n\nThe user has uploaded {len(charts)} chart image(s) for analysis. "
            f"These charts show different timeframes: {timeframes}. Reference these charts "
            "when answering questions about the current market setup."
        )
    return prompt


def select_history(history: Sequence[HistoryMessage]) -> list[LLMMessage]:
    """Keep the last turns of dialogue to send back to the model.

    The window is applied before upload markers are dropped, so fewer than
    ``HISTORY_WINDOW`` messages may remain.
    """
    recent = list(history)[-HISTORY_WINDOW:]
    return [
        LLMMessage(role=msg.role, content=msg.content)
        for msg in recent
        if msg.type not in NON_DIALOGUE_TYPES
    ]


def build_user_message(message: str, charts: Sequence[ChartImage] = ()) -> LLMMessage:
    if not charts:
        return LLMMessage(role="user", content=message)

    parts: list[ContentPart] = [
        ImagePart(media_type=chart.mime_type, data=chart.base64) for chart in charts
    ]
    parts.append(TextPart(text=message))
    return LLMMessage(role="user", content=parts)


def build_title_prompt(messages: Sequence[TitleMessage]) -> str:
    lines = []
    for msg in list(messages)[:TITLE_CONTEXT_MESSAGES]:
        label = "User" if msg.role == "user" else "Assistant"
        content = msg.content
        if len(content) > TITLE_MESSAGE_CHARS:
            content = content[:TITLE_MESSAGE_CHARS] + "..."
        lines.append(f"{label}: {content}")
    context = "\n\n".join(lines)

    return (
        "Based on this conversation, generate a short, descriptive title (3-7 words max). "
        "The title should capture the main topic or intent. Respond with ONLY the title, "
        f"no quotes or extra text.\n\nConversation:\n{context}"
    )


def clean_title(raw: str) -> str:
    """Strip quotes and cap the title length."""
    title = _SURROUNDING_QUOTES.sub("", raw.strip()).strip()
    if not title:
        return DEFAULT_CONVERSATION_TITLE
    return truncate(title, MAX_TITLE_CHARS, suffix="...")


class ChatService:
    """Answer chat messages and name conversations.

    Attributes:
        llm: Multimodal LLM client.
    """

    def __init__(self, llm: AbstractLLMClient) -> None:
        self.llm = llm

    async def reply(
        self,
        message: str,
        *,
        strategy: str | None = None,
        history: Sequence[HistoryMessage] = (),
        charts: Sequence[ChartImage] = (),
        custom_instructions: str | None = None,
    ) -> str:
        """Produce the assistant reply to ``message``.

        Raises:
            ValidationAppError: If the message is empty.
            LLMAppError: If the model call fails.
        """
        if not message or not message.strip():
            raise ValidationAppError(code="message_required", message="No message provided")

        messages = select_history(history)
        messages.append(build_user_message(message, charts))

        logger.info(
            "chat.request",
            extra={
                "history_len": len(messages) - 1,
                "chart_count": len(charts),
                "has_strategy": bool(strategy),
            },
        )

        return await self.llm.generate_text(
            system=build_system_prompt(strategy, charts, custom_instructions),
            messages=messages,
            max_tokens=settings.llm.chat_max_tokens,
            timeout_seconds=settings.llm.chat_timeout_seconds,
        )

    async def generate_title(self, messages: Sequence[TitleMessage]) -> str:
        """Summarize the opening of a conversation as a short title.

        Raises:
            ValidationAppError: If there are no messages.
            LLMAppError: If the model call fails.
        """
        if not messages:
            raise ValidationAppError(code="messages_required", message="No messages provided")

        try:
            raw = await self.llm.generate_text(
                system="You write short titles for conversations.",
                messages=[LLMMessage(role="user", content=build_title_prompt(messages))],
                max_tokens=settings.llm.title_max_tokens,
                timeout_seconds=settings.llm.title_timeout_seconds,
            )
        except LLMAppError as exc:
            if exc.code != "llm_empty_response":
                raise
            raw = ""

        return clean_title(raw)
