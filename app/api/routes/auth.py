from __future__ import annotations

import hashlib
import logging

from fastapi import APIRouter, Depends

from app.adapters.storage.base import DuplicateEmailError
from app.api.dependencies import CurrentUserRecord, DocumentStore
from app.core.auth import CurrentUser, create_access_token, hash_password, verify_password
from app.core.errors import AuthenticationAppError, NotFoundAppError, ValidationAppError
from app.core.input_validation import (
    validate_custom_instructions,
    validate_email,
    validate_password,
)
from app.core.rate_limit import enforce_rate_limit
from app.schemas.auth import (
    AuthResponse,
    CredentialsRequest,
    InstructionsResponse,
    InstructionsUpdate,
    MeResponse,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _email_hash(email: str) -> str:
    return hashlib.sha256(email.encode()).hexdigest()[:16]


@router.post(
    "/register",
    response_model=AuthResponse,
    dependencies=[Depends(enforce_rate_limit("register"))],
)
def register(body: CredentialsRequest, store: DocumentStore) -> AuthResponse:
    """Create an account and return a bearer token.

    Raises:
        ValidationAppError: 400 for invalid email/password or a taken email.
    """
    email = validate_email(body.email)
    password = validate_password(body.password)

    try:
        user = store.create_user(email, hash_password(password))
    except DuplicateEmailError:
        logger.info("auth.register_duplicate", extra={"email_hash": _email_hash(email)})
        raise ValidationAppError(
            code="email_taken",
            message="User with this email already exists",
        ) from None

    logger.info("auth.registered", extra={"user_id": user.id})
    return AuthResponse(token=create_access_token(user.id, user.email), user=UserOut.from_record(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(enforce_rate_limit("login"))],
)
def login(body: CredentialsRequest, store: DocumentStore) -> AuthResponse:
    """Exchange email/password for a bearer token.

    Unknown emails and wrong passwords produce the same 401.
    """
    if not body.email or not body.password:
        raise ValidationAppError(
            code="credentials_required",
            message="Email and password are required",
        )

    user = store.get_user_by_email(body.email.strip().lower())
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("auth.login_failed", extra={"email_hash": _email_hash(body.email.strip().lower())})
        raise AuthenticationAppError(
            code="invalid_credentials",
            message="Invalid email or password",
        )

    logger.info("auth.login_succeeded", extra={"user_id": user.id})
    return AuthResponse(token=create_access_token(user.id, user.email), user=UserOut.from_record(user))


@router.get("/me", response_model=MeResponse)
def me(user: CurrentUserRecord) -> MeResponse:
    return MeResponse(user=UserOut.from_record(user))


@router.get("/instructions", response_model=InstructionsResponse)
def get_instructions(user: CurrentUserRecord) -> InstructionsResponse:
    return InstructionsResponse(custom_instructions=user.custom_instructions or "")


@router.patch("/instructions", response_model=InstructionsResponse)
def update_instructions(
    body: InstructionsUpdate,
    user: CurrentUser,
    store: DocumentStore,
) -> InstructionsResponse:
    instructions = validate_custom_instructions(body.custom_instructions)
    updated = store.set_custom_instructions(user.user_id, instructions)
    if updated is None:
        raise NotFoundAppError(code="user_not_found", message="User not found")
    return InstructionsResponse(custom_instructions=updated.custom_instructions or "")
