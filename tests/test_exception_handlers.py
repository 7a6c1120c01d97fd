"""Tests for global exception handlers.

Validates that all exception types are rendered in the same
``{"error", "code", "request_id"}`` envelope with the right status code
and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    LLMAppError,
    NotFoundAppError,
    UpstreamAppError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _raising(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def endpoint():
        raise exc


class TestAppErrorHandler:
    @pytest.mark.parametrize(
        "exc,status",
        [
            (ValidationAppError(code="bad", message="Bad input"), 400),
            (AuthenticationAppError(code="unauthorized", message="Unauthorized"), 401),
            (NotFoundAppError(code="missing", message="Not found"), 404),
            (UpstreamAppError(code="notion_error", message="Notion down"), 502),
            (ConfigurationAppError(code="notion_not_configured", message="Not configured"), 500),
            (LLMAppError(code="llm_error", message="Boom"), 500),
        ],
    )
    def test_status_mapping(
        self, client: TestClient, app_with_handlers: FastAPI, exc: AppError, status: int
    ) -> None:
        _raising(app_with_handlers, "/err", exc)

        response = client.get("/err")

        assert response.status_code == status
        data = response.json()
        assert data["error"] == exc.message
        assert data["code"] == exc.code
        assert "request_id" in data

    @pytest.mark.parametrize("http_status", [400, 408, 429])
    def test_llm_error_passes_through_known_statuses(
        self, client: TestClient, app_with_handlers: FastAPI, http_status: int
    ) -> None:
        _raising(
            app_with_handlers,
            "/llm",
            LLMAppError(code="llm", message="LLM failed", details={"http_status": http_status}),
        )

        assert client.get("/llm").status_code == http_status

    def test_llm_error_unknown_status_becomes_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        _raising(
            app_with_handlers,
            "/llm",
            LLMAppError(code="llm", message="LLM failed", details={"http_status": 503}),
        )

        assert client.get("/llm").status_code == 500

    def test_details_included(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        _raising(
            app_with_handlers,
            "/details",
            ValidationAppError(
                code="password_too_short",
                message="Password too short",
                details={"min_value": 12, "actual_value": 5},
            ),
        )

        data = client.get("/details").json()
        assert data["details"] == {"min_value": 12, "actual_value": 5}


class TestHttpAndValidationHandlers:
    def test_http_exception_uses_envelope(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        _raising(
            app_with_handlers,
            "/too-large",
            HTTPException(status_code=413, detail="File too large. Maximum size is 10MB"),
        )

        response = client.get("/too-large")
        assert response.status_code == 413
        assert response.json()["error"] == "File too large. Maximum size is 10MB"
        assert response.json()["code"] == "http_413"

    def test_unknown_route_is_404_envelope(self, client: TestClient) -> None:
        response = client.get("/does-not-exist")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_request_validation_is_400(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        class Body(BaseModel):
            page_id: str

        @app_with_handlers.post("/body")
        async def endpoint(body: Body):
            return body

        response = client.post("/body", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"
        assert "page_id" in response.json()["error"]

    def test_malformed_json_is_400(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        class Body(BaseModel):
            page_id: str

        @app_with_handlers.post("/body")
        async def endpoint(body: Body):
            return body

        response = client.post(
            "/body", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


class TestGeneralExceptionHandler:
    def test_unexpected_exception_is_generic_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        _raising(app_with_handlers, "/crash", RuntimeError("database connection failed"))

        response = client.get("/crash")
        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "internal_server_error"
        assert "database connection" not in data["error"]

    def test_general_exception_handler_never_leaks_stack_trace(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("secret details")))

        body = json.loads(bytes(response.body).decode())
        text = json.dumps(body)
        assert response.status_code == 500
        assert "Traceback" not in text
        assert "ValueError" not in text
        assert "secret details" not in text

    def test_handlers_registered(self, app_with_handlers: FastAPI) -> None:
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers
