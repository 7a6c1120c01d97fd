"""FastAPI dependencies wiring adapters into services.

Each provider is cached so the process shares one store and one client;
tests replace them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.factory import get_llm_client
from app.adapters.notion.client import NotionClient, get_notion_client
from app.adapters.storage.base import AbstractDocumentStore
from app.adapters.storage.factory import create_document_store
from app.core.auth import CurrentUser
from app.core.config import settings
from app.core.errors import AuthenticationAppError, NotFoundAppError
from app.core.input_validation import parse_domain_list
from app.schemas.auth import UserRecord
from app.services.chart_service import ChartAnalysisService
from app.services.chat_service import ChatService
from app.services.notion_service import NotionService
from app.services.strategy_service import StrategyService
from app.services.tradingview_service import TradingViewService


@lru_cache(maxsize=1)
def get_document_store() -> AbstractDocumentStore:
    return create_document_store()


DocumentStore = Annotated[AbstractDocumentStore, Depends(get_document_store)]
LLMClient = Annotated[AbstractLLMClient, Depends(get_llm_client)]


def get_strategy_service(llm: LLMClient) -> StrategyService:
    return StrategyService(llm)


def get_chart_service(llm: LLMClient) -> ChartAnalysisService:
    return ChartAnalysisService(llm)


def get_chat_service(llm: LLMClient) -> ChatService:
    return ChatService(llm)


def get_notion_service(
    client: Annotated[NotionClient, Depends(get_notion_client)],
) -> NotionService:
    return NotionService(client)


@lru_cache(maxsize=1)
def get_tradingview_service() -> TradingViewService:
    return TradingViewService(
        allowed_domains=parse_domain_list(settings.app.tradingview_allowed_domains),
        timeout_seconds=settings.app.http_timeout_seconds,
    )


def get_current_user_record(user: CurrentUser, store: DocumentStore) -> UserRecord:
    """Load the caller's stored account.

    Raises:
        NotFoundAppError: If the token refers to a deleted user.
    """
    record = store.get_user(user.user_id)
    if record is None:
        raise NotFoundAppError(code="user_not_found", message="User not found")
    return record


CurrentUserRecord = Annotated[UserRecord, Depends(get_current_user_record)]


def get_notion_access_token(user: CurrentUserRecord) -> str:
    """Return the caller's Notion token.

    Raises:
        AuthenticationAppError: If the account has no Notion connection.
    """
    if not user.notion_access_token:
        raise AuthenticationAppError(code="notion_not_connected", message="Not connected to Notion")
    return user.notion_access_token


NotionAccessToken = Annotated[str, Depends(get_notion_access_token)]
