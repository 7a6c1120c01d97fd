"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any app import so the settings object
is built with a known JWT secret, the in-memory store and a dummy LLM key.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-for-unit-tests")
os.environ.setdefault("AUTH_BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_BACKEND", "memory")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import io
from typing import Iterator

import pytest
from pypdf import PdfWriter
from fastapi.testclient import TestClient

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.factory import get_llm_client
from app.adapters.storage.in_memory import InMemoryDocumentStore
from app.api.dependencies import get_document_store
from app.core.auth import create_access_token, hash_password
from app.core.rate_limit import reset_rate_limiter
from app.main import app
from app.schemas.llm import LLMMessage


class FakeLLMClient(AbstractLLMClient):
    """Records every call and answers with a canned reply."""

    def __init__(self, reply: str = "Model reply") -> None:
        self.reply = reply
        self.calls: list[dict] = []
        self.error: Exception | None = None

    async def generate_text(
        self,
        *,
        system: str,
        messages: list[LLMMessage],
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        self.calls.append(
            {
                "system": system,
                "messages": messages,
                "max_tokens": max_tokens,
                "timeout_seconds": timeout_seconds,
            }
        )
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def fresh_rate_limiter() -> Iterator[None]:
    """Every test starts with an empty rate limit table."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def client(store: InMemoryDocumentStore, fake_llm: FakeLLMClient) -> Iterator[TestClient]:
    """Test client wired to a fresh in-memory store and the fake LLM."""
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user(store: InMemoryDocumentStore):
    return store.create_user("trader@example.com", hash_password("CorrectHorse42"))


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """One blank page: a valid PDF without a text layer, like a scanned document."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0" + b"\x00" * 32 + b"\xff\xd9"
