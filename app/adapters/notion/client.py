"""Thin async client for the Notion REST API (OAuth, search, pages, blocks)."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.errors import UpstreamAppError
from app.schemas.notion import NotionToken

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 100


class NotionClient:
    """Async Notion client.

    A fresh ``httpx.AsyncClient`` is opened per call; ``transport`` lets
    tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_version: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self, headers: dict[str, str] | None = None, auth: Any = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            headers={"Notion-Version": self.api_version, **(headers or {})},
            auth=auth,
            transport=self._transport,
        )

    def build_authorize_url(self, client_id: str, redirect_uri: str, state: str) -> str:
        query = urlencode(
            {
                "client_id": client_id,
                "redirect_uri": redirect_uri,
                "response_type": "code",
                "owner": "user",
                "state": state,
            }
        )
        return f"{self.base_url}/oauth/authorize?{query}"

    async def exchange_code(
        self, code: str, *, client_id: str, client_secret: str, redirect_uri: str
    ) -> NotionToken:
        """Trade an OAuth authorization code for an access token.

        Raises:
            UpstreamAppError: If Notion rejects the exchange or is unreachable.
        """
        body = {"grant_type": "authorization_code", "code": code, "redirect_uri": redirect_uri}
        try:
            async with self._client(auth=httpx.BasicAuth(client_id, client_secret)) as client:
                response = await client.post("/oauth/token", json=body)
        except httpx.HTTPError as exc:
            raise UpstreamAppError(
                code="notion_token_exchange_failed",
                message="Failed to reach Notion",
            ) from exc

        if response.is_error:
            logger.warning(
                "notion.token_exchange_failed",
                extra={"status_code": response.status_code},
            )
            raise UpstreamAppError(
                code="notion_token_exchange_failed",
                message="Notion token exchange failed",
                details={"http_status": response.status_code},
            )

        payload = response.json()
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            logger.warning("notion.token_missing")
            raise UpstreamAppError(
                code="notion_token_exchange_failed",
                message="Notion did not return an access token",
            )
        return NotionToken(
            access_token=access_token,
            workspace_name=payload.get("workspace_name") or None,
        )

    async def _request(
        self, access_token: str, method: str, path: str, **kwargs: Any
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._client(headers=headers) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamAppError(code="notion_unreachable", message="Failed to reach Notion") from exc

        if response.is_error:
            message = "Notion request failed"
            try:
                message = response.json().get("message") or message
            except ValueError:
                pass
            logger.warning(
                "notion.request_failed",
                extra={"status_code": response.status_code, "path": path},
            )
            raise UpstreamAppError(
                code="notion_error",
                message=message,
                details={"http_status": response.status_code},
            )
        return response.json()

    async def search_pages(self, access_token: str, start_cursor: str | None = None) -> dict[str, Any]:
        """One page of search results: pages only, most recently edited first."""
        body: dict[str, Any] = {
            "filter": {"property": "object", "value": "page"},
            "sort": {"direction": "descending", "timestamp": "last_edited_time"},
            "page_size": SEARCH_PAGE_SIZE,
        }
        if start_cursor:
            body["start_cursor"] = start_cursor
        return await self._request(access_token, "POST", "/search", json=body)

    async def retrieve_page(self, access_token: str, page_id: str) -> dict[str, Any]:
        return await self._request(access_token, "GET", f"/pages/{page_id}")

    async def list_block_children(self, access_token: str, block_id: str) -> list[dict[str, Any]]:
        """All direct children of a block, following pagination to the end."""
        blocks: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"page_size": SEARCH_PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor
            payload = await self._request(
                access_token, "GET", f"/blocks/{block_id}/children", params=params
            )
            blocks.extend(payload.get("results") or [])
            cursor = payload.get("next_cursor")
            if not payload.get("has_more") or not cursor:
                return blocks


@lru_cache(maxsize=1)
def get_notion_client() -> NotionClient:
    """FastAPI dependency returning a client configured from settings."""
    return NotionClient(
        base_url=settings.notion.api_base_url,
        api_version=settings.notion.api_version,
        timeout_seconds=settings.notion.timeout_seconds,
    )
