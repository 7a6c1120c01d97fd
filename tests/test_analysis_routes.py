"""Route tests for chart analysis and chat."""

import base64
import json

from app.core.errors import LLMAppError


def _charts(*payloads: bytes, mime: str = "image/png") -> list:
    return [("charts", (f"chart{i}.png", data, mime)) for i, data in enumerate(payloads)]


class TestAnalyzeChart:
    def test_multi_timeframe_analysis(self, client, auth_headers, fake_llm, png_bytes, jpeg_bytes) -> None:
        fake_llm.reply = "Entry Signal: YES"

        response = client.post(
            "/api/analyze-chart",
            headers=auth_headers,
            data={"strategy": "Buy pullbacks", "timeframes": ["4H", "1D"]},
            files=_charts(png_bytes, jpeg_bytes),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "analysis": "Entry Signal: YES", "chart_count": 2}

        parts = fake_llm.calls[0]["messages"][0].content
        assert parts[0].media_type == "image/png"
        assert parts[1].media_type == "image/jpeg"
        assert base64.b64decode(parts[0].data) == png_bytes
        assert "**Chart 1**: 4H" in parts[-1].text
        assert "**Chart 2**: 1D" in parts[-1].text

    def test_missing_timeframes_get_positional_labels(self, client, auth_headers, fake_llm, png_bytes) -> None:
        response = client.post(
            "/api/analyze-chart",
            headers=auth_headers,
            data={"strategy": "rules"},
            files=_charts(png_bytes),
        )

        assert response.status_code == 200
        assert "**Chart 1**: Chart 1" in fake_llm.calls[0]["messages"][0].content[-1].text

    def test_strategy_required(self, client, auth_headers, png_bytes) -> None:
        response = client.post("/api/analyze-chart", headers=auth_headers, files=_charts(png_bytes))

        assert response.status_code == 400
        assert response.json()["error"] == "No strategy provided. Please upload a strategy PDF first."

    def test_charts_required(self, client, auth_headers) -> None:
        response = client.post("/api/analyze-chart", headers=auth_headers, data={"strategy": "rules"})

        assert response.status_code == 400
        assert response.json()["error"] == "No chart images provided"

    def test_non_image_chart_rejected(self, client, auth_headers, fake_llm) -> None:
        response = client.post(
            "/api/analyze-chart",
            headers=auth_headers,
            data={"strategy": "rules"},
            files=_charts(b"<script>alert(1)</script>"),
        )

        assert response.status_code == 400
        assert fake_llm.calls == []

    def test_rate_limited(self, client, auth_headers, png_bytes) -> None:
        statuses = [
            client.post(
                "/api/analyze-chart",
                headers={**auth_headers, "X-Forwarded-For": "5.5.5.5"},
                data={"strategy": "rules"},
                files=_charts(png_bytes),
            ).status_code
            for _ in range(11)
        ]

        assert statuses == [200] * 10 + [429]

    def test_unauthenticated_calls_do_not_use_the_budget(self, client, auth_headers, png_bytes) -> None:
        headers = {"X-Forwarded-For": "5.5.5.6"}
        for _ in range(10):
            response = client.post(
                "/api/analyze-chart", headers=headers, data={"strategy": "rules"}, files=_charts(png_bytes)
            )
            assert response.status_code == 401

        response = client.post(
            "/api/analyze-chart",
            headers={**auth_headers, **headers},
            data={"strategy": "rules"},
            files=_charts(png_bytes),
        )
        assert response.status_code == 200

    def test_llm_rate_limit_passes_through(self, client, auth_headers, fake_llm, png_bytes) -> None:
        fake_llm.error = LLMAppError(
            code="llm_rate_limited",
            message="Too many requests. Please wait a moment and try again.",
            details={"http_status": 429},
        )

        response = client.post(
            "/api/analyze-chart",
            headers=auth_headers,
            data={"strategy": "rules"},
            files=_charts(png_bytes),
        )

        assert response.status_code == 429
        assert response.json()["code"] == "llm_rate_limited"


class TestChat:
    def test_chat_with_history_and_charts(self, client, auth_headers, store, user, fake_llm) -> None:
        store.set_custom_instructions(user.id, "Answer in Spanish")
        history = [
            {"role": "user", "content": "[strategy.pdf]", "type": "strategy"},
            {"role": "user", "content": "What is my stop?"},
            {"role": "assistant", "content": "Below the swing low."},
        ]
        charts = [{"base64": "iVBORw0KGgo=", "mime_type": "image/png", "timeframe": "15m"}]

        response = client.post(
            "/api/chat",
            headers=auth_headers,
            data={
                "message": "And the target?",
                "strategy": "Buy dips",
                "conversation_history": json.dumps(history),
                "chart_images": json.dumps(charts),
            },
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "response": "Model reply"}

        call = fake_llm.calls[0]
        assert "Answer in Spanish" in call["system"]
        assert "Buy dips" in call["system"]
        assert "timeframes: 15m" in call["system"]
        assert call["messages"][0].content == "What is my stop?"
        assert call["messages"][-1].content[-1].text == "And the target?"
        assert len(call["messages"]) == 3

    def test_malformed_json_fields_are_ignored(self, client, auth_headers, fake_llm) -> None:
        response = client.post(
            "/api/chat",
            headers=auth_headers,
            data={"message": "Hi", "conversation_history": "{oops", "chart_images": "42"},
        )

        assert response.status_code == 200
        call = fake_llm.calls[0]
        assert [m.content for m in call["messages"]] == ["Hi"]
        assert "chart image" not in call["system"]

    def test_message_required(self, client, auth_headers) -> None:
        response = client.post("/api/chat", headers=auth_headers, data={"message": "  "})

        assert response.status_code == 400
        assert response.json()["error"] == "No message provided"

    def test_requires_auth(self, client) -> None:
        assert client.post("/api/chat", data={"message": "Hi"}).status_code == 401
