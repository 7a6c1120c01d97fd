"""Tests for password hashing, bearer tokens and the auth routes."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from app.core.auth import (
    create_access_token,
    create_oauth_state,
    decode_access_token,
    decode_oauth_state,
    hash_password,
    verify_password,
)
from app.core.config import settings


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("CorrectHorse42")
        assert hashed != "CorrectHorse42"
        assert verify_password("CorrectHorse42", hashed) is True
        assert verify_password("WrongHorse42", hashed) is False

    def test_malformed_hash_is_a_mismatch(self) -> None:
        assert verify_password("CorrectHorse42", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_round_trip(self) -> None:
        token = create_access_token("user-1", "a@b.co")
        payload = decode_access_token(token)
        assert payload is not None
        assert payload.user_id == "user-1"
        assert payload.email == "a@b.co"

    def test_expired_token_rejected(self) -> None:
        issued = datetime.now(timezone.utc) - timedelta(hours=settings.auth.token_ttl_hours + 1)
        token = create_access_token("user-1", "a@b.co", now=issued)
        assert decode_access_token(token) is None

    def test_wrong_secret_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "user-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "another-secret",
            algorithm="HS256",
        )
        assert decode_access_token(token) is None

    def test_garbage_rejected(self) -> None:
        assert decode_access_token("not.a.token") is None

    def test_oauth_state_is_not_a_bearer_token(self) -> None:
        state = create_oauth_state("user-1")
        assert decode_access_token(state) is None
        assert decode_oauth_state(state) == "user-1"

    def test_bearer_token_is_not_an_oauth_state(self) -> None:
        assert decode_oauth_state(create_access_token("user-1", "a@b.co")) is None


class TestRegister:
    def test_register_returns_token(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/register",
            json={"email": " New.Trader@Example.com ", "password": "StrongPass123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "new.trader@example.com"
        assert data["user"]["notion_connected"] is False
        assert decode_access_token(data["token"]).user_id == data["user"]["id"]

    def test_duplicate_email(self, client: TestClient, user) -> None:
        response = client.post(
            "/api/auth/register",
            json={"email": "TRADER@example.com", "password": "StrongPass123"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "User with this email already exists"

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"password": "StrongPass123"}, "Email is required"),
            ({"email": "nope", "password": "StrongPass123"}, "Invalid email format"),
            ({"email": "a@b.co"}, "Password is required"),
            ({"email": "a@b.co", "password": "Short1"}, "Password must be at least 12 characters long"),
            (
                {"email": "a@b.co", "password": "alllowercase123"},
                "Password must contain uppercase letters, lowercase letters, and numbers",
            ),
        ],
    )
    def test_validation_errors(self, client: TestClient, body: dict, message: str) -> None:
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == message

    def test_register_is_rate_limited(self, client: TestClient) -> None:
        headers = {"X-Forwarded-For": "9.9.9.9"}
        statuses = [
            client.post(
                "/api/auth/register",
                json={"email": f"u{i}@example.com", "password": "StrongPass123"},
                headers=headers,
            ).status_code
            for i in range(4)
        ]
        assert statuses == [200, 200, 200, 429]


class TestLogin:
    def test_login_success(self, client: TestClient, user) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": "Trader@Example.com", "password": "CorrectHorse42"},
        )
        assert response.status_code == 200
        assert response.json()["user"]["id"] == user.id

    def test_wrong_password(self, client: TestClient, user) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": "trader@example.com", "password": "WrongHorse42"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_unknown_email_same_error(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": "ghost@example.com", "password": "WrongHorse42"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/auth/login", json={"email": "a@b.co"})
        assert response.status_code == 400

    def test_login_rate_limit_counts_failures(self, client: TestClient, user) -> None:
        for _ in range(5):
            client.post("/api/auth/login", json={"email": "trader@example.com", "password": "x"})

        response = client.post(
            "/api/auth/login",
            json={"email": "trader@example.com", "password": "CorrectHorse42"},
        )
        assert response.status_code == 429
        assert response.headers["X-RateLimit-Limit"] == "5"


class TestProtectedRoutes:
    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_me(self, client: TestClient, user, auth_headers: dict) -> None:
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"] == {
            "id": user.id,
            "email": "trader@example.com",
            "notion_connected": False,
            "notion_workspace_name": None,
        }

    def test_me_for_deleted_user(self, client: TestClient) -> None:
        token = create_access_token("deadbeef", "gone@example.com")
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 404


class TestInstructions:
    def test_defaults_to_empty(self, client: TestClient, auth_headers: dict) -> None:
        response = client.get("/api/auth/instructions", headers=auth_headers)
        assert response.json()["custom_instructions"] == ""

    def test_update_is_sanitised(self, client: TestClient, auth_headers: dict) -> None:
        response = client.patch(
            "/api/auth/instructions",
            json={"custom_instructions": "  Answer in Spanish\x00  "},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["custom_instructions"] == "Answer in Spanish"

        stored = client.get("/api/auth/instructions", headers=auth_headers).json()
        assert stored["custom_instructions"] == "Answer in Spanish"

    def test_too_long(self, client: TestClient, auth_headers: dict) -> None:
        response = client.patch(
            "/api/auth/instructions",
            json={"custom_instructions": "x" * 5001},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_must_be_string(self, client: TestClient, auth_headers: dict) -> None:
        response = client.patch("/api/auth/instructions", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Instructions must be a string"
