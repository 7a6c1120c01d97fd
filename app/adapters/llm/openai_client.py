"""OpenAI LLM client adapter."""

import logging
from typing import Any

from openai import APITimeoutError, AsyncOpenAI, BadRequestError, OpenAIError, RateLimitError

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError
from app.schemas.llm import ContentPart, DocumentPart, ImagePart, LLMMessage, TextPart

logger = logging.getLogger(__name__)


def _data_url(media_type: str, data: str) -> str:
    return f"data:{media_type};base64,{data}"


def _convert_part(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ImagePart):
        return {"type": "image_url", "image_url": {"url": _data_url(part.media_type, part.data)}}
    if isinstance(part, DocumentPart):
        return {
            "type": "file",
            "file": {
                "filename": part.filename,
                "file_data": _data_url(part.media_type, part.data),
            },
        }
    raise TypeError(f"Unsupported content part: {type(part).__name__}")


def to_openai_messages(system: str, messages: list[LLMMessage]) -> list[dict[str, Any]]:
    """Convert provider-neutral messages to the chat completions format."""
    converted: list[dict[str, Any]] = [{"role": "system", "content": system}]
    for message in messages:
        if isinstance(message.content, str):
            content: Any = message.content
        else:
            content = [_convert_part(part) for part in message.content]
        converted.append({"role": message.role, "content": content})
    return converted


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI chat completions with image and PDF inputs.

    Retries are disabled; each call gets its own timeout so long strategy
    analyses and short title generations can use different deadlines.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model

    async def generate_text(
        self,
        *,
        system: str,
        messages: list[LLMMessage],
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(system, messages),
            "max_tokens": max_tokens,
            "timeout": timeout_seconds,
        }

        try:
            response = await self.client.chat.completions.create(**request_params)
        except APITimeoutError as exc:
            raise LLMAppError(
                code="llm_timeout",
                message="Request timed out. Please try again.",
                details={"http_status": 408, "model": self.model},
            ) from exc
        except RateLimitError as exc:
            raise LLMAppError(
                code="llm_rate_limited",
                message="Too many requests. Please wait a moment and try again.",
                details={"http_status": 429, "model": self.model},
            ) from exc
        except BadRequestError as exc:
            raise LLMAppError(
                code="llm_bad_request",
                message="The model rejected the request. Check the uploaded files and try again.",
                details={"http_status": 400, "model": self.model},
            ) from exc
        except OpenAIError as exc:
            logger.error(
                "llm.request_failed",
                extra={"model": self.model, "error_type": type(exc).__name__},
            )
            raise LLMAppError(
                code="llm_error",
                message=f"OpenAI API error: {exc}",
                details={"http_status": 500, "model": self.model},
            ) from exc

        if not response.choices:
            raise LLMAppError(code="llm_empty_response", message="LLM returned empty response")

        content = response.choices[0].message.content
        if not content:
            raise LLMAppError(code="llm_empty_response", message="LLM returned empty response")

        return content.strip()
