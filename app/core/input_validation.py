"""Validation and sanitisation of user-supplied strings.

Each validator raises ValidationAppError with a human-readable message and
returns the cleaned value, so routes can call them inline.
"""

from __future__ import annotations

import logging
import re
from typing import TypeVar
from urllib.parse import urlsplit

from pydantic import TypeAdapter, ValidationError

from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 128
MAX_TITLE_LENGTH = 200
MAX_INSTRUCTIONS_LENGTH = 5000


def sanitize_string(value: str | None, max_length: int = 10000) -> str:
    """Strip NUL bytes and surrounding whitespace, then cap the length."""
    if not isinstance(value, str):
        return ""
    return value.replace("\x00", "").strip()[:max_length]


def validate_email(email: str | None) -> str:
    """Validate an email address and return it lower-cased."""
    if not email or not isinstance(email, str):
        raise ValidationAppError(code="email_required", message="Email is required")

    email = email.strip()
    if not EMAIL_RE.match(email):
        raise ValidationAppError(code="email_invalid", message="Invalid email format")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationAppError(code="email_too_long", message="Email is too long")
    return email.lower()


def validate_password(password: str | None) -> str:
    """Enforce length and character-class rules for new passwords."""
    if not password or not isinstance(password, str):
        raise ValidationAppError(code="password_required", message="Password is required")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationAppError(
            code="password_too_short",
            message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            details={"min_value": MIN_PASSWORD_LENGTH, "actual_value": len(password)},
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationAppError(
            code="password_too_long",
            message=f"Password is too long (max {MAX_PASSWORD_LENGTH} characters)",
        )

    has_upper = re.search(r"[A-Z]", password) is not None
    has_lower = re.search(r"[a-z]", password) is not None
    has_digit = re.search(r"\d", password) is not None
    if not (has_upper and has_lower and has_digit):
        raise ValidationAppError(
            code="password_too_weak",
            message="Password must contain uppercase letters, lowercase letters, and numbers",
        )
    return password


def validate_conversation_title(title: str | None) -> str:
    if not title or not isinstance(title, str):
        raise ValidationAppError(code="title_required", message="Title is required")

    # Sanitise without truncating so over-long titles are reported, not cut.
    cleaned = sanitize_string(title, max_length=len(title))
    if not cleaned:
        raise ValidationAppError(code="title_empty", message="Title cannot be empty")
    if len(cleaned) > MAX_TITLE_LENGTH:
        raise ValidationAppError(
            code="title_too_long",
            message=f"Title is too long (max {MAX_TITLE_LENGTH} characters)",
        )
    return cleaned


def validate_custom_instructions(instructions: str | None) -> str:
    if not isinstance(instructions, str):
        raise ValidationAppError(
            code="instructions_invalid",
            message="Instructions must be a string",
        )

    cleaned = sanitize_string(instructions, max_length=len(instructions))
    if len(cleaned) > MAX_INSTRUCTIONS_LENGTH:
        raise ValidationAppError(
            code="instructions_too_long",
            message=f"Instructions are too long (max {MAX_INSTRUCTIONS_LENGTH} characters)",
        )
    return cleaned


def parse_domain_list(domains: str | None) -> list[str]:
    """Parse a comma-separated domain list from configuration."""
    if not domains:
        return []
    return [d.strip().lower() for d in domains.split(",") if d.strip()]


def validate_url(url: str | None, allowed_domains: list[str] | None = None) -> str:
    """Accept only HTTPS URLs whose host is an allowed domain or subdomain."""
    if not url or not isinstance(url, str):
        raise ValidationAppError(code="url_required", message="URL is required")

    try:
        parsed = urlsplit(url.strip())
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        raise ValidationAppError(code="url_invalid", message="Invalid URL format") from None

    if not parsed.scheme or not hostname:
        raise ValidationAppError(code="url_invalid", message="Invalid URL format")
    if parsed.scheme.lower() != "https":
        raise ValidationAppError(code="url_not_https", message="Only HTTPS URLs are allowed")

    if allowed_domains:
        allowed_domains = [d.lower() for d in allowed_domains]
        allowed = any(hostname == d or hostname.endswith("." + d) for d in allowed_domains)
        if not allowed:
            raise ValidationAppError(
                code="url_domain_not_allowed",
                message=f"URL must be from one of these domains: {', '.join(allowed_domains)}",
            )
    return url.strip()


def parse_json_field(raw: str | None, adapter: TypeAdapter[T]) -> T | None:
    """Parse a JSON-encoded form field.

    Returns None when the field is absent, is not valid JSON, or does not
    match ``adapter``. Callers pick the fallback explicitly, e.g.
    ``parse_json_field(raw, adapter) or []``.
    """
    if not raw:
        return None
    try:
        return adapter.validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "input_validation.malformed_json_field",
            extra={"error_count": exc.error_count()},
        )
        return None
