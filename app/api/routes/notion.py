from __future__ import annotations

import logging
from typing import Annotated, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from app.adapters.notion.client import NotionClient, get_notion_client
from app.api.dependencies import DocumentStore, NotionAccessToken, get_notion_service
from app.core.auth import CurrentUser, create_oauth_state, decode_oauth_state
from app.core.config import settings
from app.core.errors import AppError, ConfigurationAppError, ValidationAppError
from app.schemas.notion import (
    NotionAuthUrlResponse,
    NotionPageList,
    PageContentRequest,
    PageContentResponse,
    SuccessResponse,
)
from app.services.notion_service import NotionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notion", tags=["Notion"])


def _frontend_redirect(**params: str) -> RedirectResponse:
    base = settings.app.frontend_url.rstrip("/")
    return RedirectResponse(f"{base}/?{urlencode(params)}", status_code=307)


@router.get("/auth", response_model=NotionAuthUrlResponse)
def notion_auth(
    user: CurrentUser,
    client: Annotated[NotionClient, Depends(get_notion_client)],
) -> NotionAuthUrlResponse:
    """Return the Notion authorization URL for the caller.

    The client performs the redirect itself so the bearer token never has
    to travel through a browser navigation.
    """
    cfg = settings.notion
    if not cfg.client_id or not cfg.redirect_uri:
        raise ConfigurationAppError(
            code="notion_not_configured",
            message="Notion OAuth not configured",
        )

    url = client.build_authorize_url(cfg.client_id, cfg.redirect_uri, create_oauth_state(user.user_id))
    return NotionAuthUrlResponse(auth_url=url)


@router.get("/callback", include_in_schema=False)
async def notion_callback(
    store: DocumentStore,
    client: Annotated[NotionClient, Depends(get_notion_client)],
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
) -> RedirectResponse:
    """OAuth redirect target; always answers with a redirect to the frontend."""
    if error:
        logger.warning("notion.oauth_denied", extra={"reason": error})
        return _frontend_redirect(notion_error=error)
    if not code:
        return _frontend_redirect(notion_error="no_code")

    user_id = decode_oauth_state(state) if state else None
    if user_id is None:
        return _frontend_redirect(notion_error="unauthorized")

    cfg = settings.notion
    if not cfg.client_id or not cfg.client_secret or not cfg.redirect_uri:
        logger.error("notion.oauth_not_configured")
        return _frontend_redirect(notion_error="not_configured")

    try:
        token = await client.exchange_code(
            code,
            client_id=cfg.client_id,
            client_secret=cfg.client_secret,
            redirect_uri=cfg.redirect_uri,
        )
    except AppError as exc:
        logger.warning("notion.oauth_exchange_failed", extra={"error_code": exc.code})
        return _frontend_redirect(notion_error="token_exchange_failed")

    if store.set_notion_credentials(user_id, token.access_token, token.workspace_name) is None:
        return _frontend_redirect(notion_error="unauthorized")

    logger.info("notion.connected", extra={"user_id": user_id})
    return _frontend_redirect(notion_connected="true")


@router.get("/pages", response_model=NotionPageList)
async def list_pages(
    access_token: NotionAccessToken,
    service: Annotated[NotionService, Depends(get_notion_service)],
    cursor: Optional[str] = Query(None, description="Pagination cursor from a previous response"),
) -> NotionPageList:
    return await service.list_pages(access_token, cursor=cursor)


@router.post("/page-content", response_model=PageContentResponse)
async def page_content(
    body: PageContentRequest,
    access_token: NotionAccessToken,
    service: Annotated[NotionService, Depends(get_notion_service)],
) -> PageContentResponse:
    if not body.page_id:
        raise ValidationAppError(code="page_id_required", message="Page ID required")
    return await service.fetch_page_content(access_token, body.page_id)


@router.post("/disconnect", response_model=SuccessResponse)
def disconnect(user: CurrentUser, store: DocumentStore) -> SuccessResponse:
    store.clear_notion_credentials(user.user_id)
    logger.info("notion.disconnected", extra={"user_id": user.user_id})
    return SuccessResponse()
