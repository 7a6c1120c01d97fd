"""Pydantic schemas for users and authentication."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserRecord(BaseModel):
    """A stored user account."""

    id: str
    email: str
    password_hash: str
    created_at: datetime
    notion_access_token: str | None = None
    notion_workspace_name: str | None = None
    custom_instructions: str | None = None

    @property
    def notion_connected(self) -> bool:
        return bool(self.notion_access_token)


class CredentialsRequest(BaseModel):
    """Body of the register and login endpoints.

    Fields are optional so a missing value produces the same readable
    message as an empty one.
    """

    email: str | None = None
    password: str | None = None


class UserOut(BaseModel):
    id: str
    email: str
    notion_connected: bool = False
    notion_workspace_name: str | None = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserOut":
        return cls(
            id=user.id,
            email=user.email,
            notion_connected=user.notion_connected,
            notion_workspace_name=user.notion_workspace_name,
        )


class AuthResponse(BaseModel):
    success: bool = True
    token: str = Field(..., description="Bearer token for the Authorization header")
    user: UserOut


class MeResponse(BaseModel):
    success: bool = True
    user: UserOut


class InstructionsUpdate(BaseModel):
    custom_instructions: str | None = None


class InstructionsResponse(BaseModel):
    success: bool = True
    custom_instructions: str = ""
