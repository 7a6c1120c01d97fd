"""Tests for strategy chat and conversation title generation."""

import pytest

from app.core.config import settings
from app.core.errors import LLMAppError, ValidationAppError
from app.schemas.chat import ChartImage, HistoryMessage
from app.schemas.conversation import TitleMessage
from app.services.chat_service import (
    ChatService,
    build_system_prompt,
    build_title_prompt,
    build_user_message,
    clean_title,
    select_history,
)


def _history(n: int) -> list[HistoryMessage]:
    return [
        HistoryMessage(role="user" if i % 2 == 0 else "assistant", content=f"m{i}")
        for i in range(n)
    ]


class TestSystemPrompt:
    def test_base_only(self) -> None:
        prompt = build_system_prompt(None)
        assert prompt.startswith("You are an expert trading assistant")
        assert "uploaded" not in prompt

    def test_all_context(self) -> None:
        charts = [ChartImage(base64="x", timeframe="4H"), ChartImage(base64="y", timeframe="1D")]

        prompt = build_system_prompt("Buy dips", charts, "Answer in Spanish")

        assert "follow these instructions:\nAnswer in Spanish" in prompt
        assert "trading strategy:\n\nBuy dips\n\n" in prompt
        assert "2 chart image(s)" in prompt
        assert "timeframes: 4H, 1D." in prompt
        assert prompt.index("Answer in Spanish") < prompt.index("Buy dips")


class TestHistory:
    def test_last_ten_kept(self) -> None:
        selected = select_history(_history(15))

        assert len(selected) == 10
        assert selected[0].content == "m5"

    def test_window_applied_before_marker_filter(self) -> None:
        history = _history(10)
        history[-1] = HistoryMessage(role="user", content="[strategy.pdf]", type="strategy")
        history[-2] = HistoryMessage(role="user", content="[chart]", type="chart")

        selected = select_history(history)

        assert len(selected) == 8
        assert all("[" not in m.content for m in selected)

    def test_text_type_kept(self) -> None:
        selected = select_history([HistoryMessage(role="user", content="hi", type="text")])
        assert selected[0].content == "hi"


class TestUserMessage:
    def test_plain(self) -> None:
        assert build_user_message("hello").content == "hello"

    def test_with_charts(self) -> None:
        message = build_user_message("look", [ChartImage(base64="x", mime_type="image/webp")])

        assert message.content[0].media_type == "image/webp"
        assert message.content[-1].text == "look"


class TestTitles:
    def test_prompt_uses_first_four_messages_truncated(self) -> None:
        messages = [TitleMessage(role="user", content="a" * 400)] + [
            TitleMessage(role="assistant", content=f"reply {i}") for i in range(5)
        ]

        prompt = build_title_prompt(messages)

        assert "User: " + "a" * 300 + "..." in prompt
        assert "Assistant: reply 2" in prompt
        assert "reply 3" not in prompt

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('"EURUSD Breakout Setup"', "EURUSD Breakout Setup"),
            ("'Gold scalping'", "Gold scalping"),
            ("  ", "New Conversation"),
            ('""', "New Conversation"),
            ("x" * 80, "x" * 57 + "..."),
        ],
    )
    def test_clean_title(self, raw: str, expected: str) -> None:
        assert clean_title(raw) == expected


class TestChatService:
    @pytest.mark.asyncio
    async def test_reply(self, fake_llm) -> None:
        fake_llm.reply = "Wait for confirmation."

        answer = await ChatService(fake_llm).reply(
            "Should I enter?", strategy="Buy dips", history=_history(3)
        )

        assert answer == "Wait for confirmation."
        call = fake_llm.calls[0]
        assert call["max_tokens"] == settings.llm.chat_max_tokens
        assert [m.content for m in call["messages"]] == ["m0", "m1", "m2", "Should I enter?"]
        assert "Buy dips" in call["system"]

    @pytest.mark.asyncio
    async def test_empty_message(self, fake_llm) -> None:
        with pytest.raises(ValidationAppError):
            await ChatService(fake_llm).reply("   ")

    @pytest.mark.asyncio
    async def test_generate_title(self, fake_llm) -> None:
        fake_llm.reply = '"Breakout on EURUSD"'

        title = await ChatService(fake_llm).generate_title(
            [TitleMessage(role="user", content="Breakout on EURUSD?")]
        )

        assert title == "Breakout on EURUSD"
        assert fake_llm.calls[0]["max_tokens"] == settings.llm.title_max_tokens

    @pytest.mark.asyncio
    async def test_empty_model_reply_gives_default_title(self, fake_llm) -> None:
        fake_llm.error = LLMAppError(code="llm_empty_response", message="empty")

        title = await ChatService(fake_llm).generate_title([TitleMessage(role="user", content="hi")])

        assert title == "New Conversation"

    @pytest.mark.asyncio
    async def test_other_llm_errors_propagate(self, fake_llm) -> None:
        fake_llm.error = LLMAppError(code="llm_timeout", message="timeout")

        with pytest.raises(LLMAppError):
            await ChatService(fake_llm).generate_title([TitleMessage(role="user", content="hi")])

    @pytest.mark.asyncio
    async def test_title_requires_messages(self, fake_llm) -> None:
        with pytest.raises(ValidationAppError):
            await ChatService(fake_llm).generate_title([])
