from abc import ABC, abstractmethod

from app.schemas.llm import LLMMessage


class AbstractLLMClient(ABC):
    """Interface for multimodal LLM clients that produce free text."""

    @abstractmethod
    async def generate_text(
        self,
        *,
        system: str,
        messages: list[LLMMessage],
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        """Send a system prompt plus conversation and return the reply text.

        Args:
            system: System prompt.
            messages: Ordered user/assistant turns; content may mix text,
                images and PDF documents.
            max_tokens: Output token budget.
            timeout_seconds: Per-call deadline.

        Returns:
            str: Concatenated text of the model reply.

        Raises:
            LLMAppError: If the provider call fails or returns no text.
        """
        ...
