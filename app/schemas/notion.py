"""Pydantic schemas for the Notion integration."""

from __future__ import annotations

from pydantic import BaseModel


class NotionToken(BaseModel):
    access_token: str
    workspace_name: str | None = None


class NotionPage(BaseModel):
    id: str
    title: str
    last_edited: str | None = None
    url: str | None = None


class NotionPageList(BaseModel):
    pages: list[NotionPage]
    has_more: bool = False
    next_cursor: str | None = None


class NotionAuthUrlResponse(BaseModel):
    auth_url: str


class PageContentRequest(BaseModel):
    page_id: str | None = None


class PageContentResponse(BaseModel):
    title: str
    content: str
    url: str | None = None
    content_length: int


class SuccessResponse(BaseModel):
    success: bool = True
