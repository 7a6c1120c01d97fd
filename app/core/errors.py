"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    min_value: int
    max_value: int
    actual_value: int
    http_status: int
    retry_after: float
    file_type: str
    model: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when a bearer token or credentials are missing or invalid."""


class NotFoundAppError(AppError):
    """Raised when a record does not exist or is not owned by the caller."""


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail.

    ``details["http_status"]`` carries the status the API should surface
    (408 on timeout, 429 when the provider throttles, 400 when it rejects
    the request); anything else is a 500.
    """


class UpstreamAppError(AppError):
    """Raised when Notion or TradingView calls fail."""


class ConfigurationAppError(AppError):
    """Raised when a feature is used without its required configuration."""
