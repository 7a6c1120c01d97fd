"""Bearer token authentication and password hashing.

Users authenticate with email/password once and receive a signed JWT that
is sent back as ``Authorization: Bearer <token>`` on every protected route.

- Passwords are hashed with bcrypt.
- Tokens are HS256 JWTs carrying ``sub`` (user id) and ``email``.
- The Notion OAuth ``state`` parameter is a short-lived JWT as well, so the
  unauthenticated callback can recover the user without trusting raw input.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

OAUTH_STATE_PURPOSE = "notion_oauth"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TokenPayload:
    """Identity recovered from a valid bearer token."""

    user_id: str
    email: str


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.auth.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its bcrypt hash.

    Malformed hashes count as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("auth.malformed_password_hash")
        return False


def create_access_token(user_id: str, email: str, *, now: datetime | None = None) -> str:
    """Create a signed bearer token for a user."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.auth.token_ttl_hours),
    }
    return jwt.encode(payload, settings.auth.jwt_secret, algorithm=settings.auth.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload | None:
    """Decode and validate a bearer token.

    Returns:
        TokenPayload, or None if the token is expired, tampered with or
        missing required claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth.jwt_secret,
            algorithms=[settings.auth.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("auth.token_expired")
        return None
    except jwt.InvalidTokenError as exc:
        logger.info("auth.token_invalid", extra={"reason": type(exc).__name__})
        return None

    if payload.get("purpose"):
        # OAuth state tokens are not bearer tokens.
        return None

    return TokenPayload(user_id=str(payload["sub"]), email=str(payload.get("email", "")))


def create_oauth_state(user_id: str) -> str:
    """Sign the user id into a short-lived OAuth ``state`` value."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "purpose": OAUTH_STATE_PURPOSE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.auth.oauth_state_ttl_minutes),
    }
    return jwt.encode(payload, settings.auth.jwt_secret, algorithm=settings.auth.jwt_algorithm)


def decode_oauth_state(state: str) -> str | None:
    """Return the user id carried by a valid OAuth ``state`` value."""
    try:
        payload = jwt.decode(
            state,
            settings.auth.jwt_secret,
            algorithms=[settings.auth.jwt_algorithm],
            options={"require": ["sub", "exp", "purpose"]},
        )
    except jwt.InvalidTokenError as exc:
        logger.warning("auth.oauth_state_invalid", extra={"reason": type(exc).__name__})
        return None

    if payload.get("purpose") != OAUTH_STATE_PURPOSE:
        return None
    return str(payload["sub"])


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenPayload:
    """FastAPI dependency resolving the caller from the bearer token.

    Usage:
        @router.get("/me")
        async def me(user: CurrentUser): ...

    Raises:
        AuthenticationAppError: 401 when the header is missing or the token
            is invalid.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        logger.info("auth.missing_token")
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        token_hash = hashlib.sha256(credentials.credentials.encode()).hexdigest()[:16]
        logger.warning("auth.rejected_token", extra={"token_hash": token_hash})
        raise AuthenticationAppError(code="invalid_token", message="Invalid token")

    return payload


CurrentUser = Annotated[TokenPayload, Depends(get_current_user)]
