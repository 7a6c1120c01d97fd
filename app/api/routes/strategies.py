from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.adapters.storage.base import AbstractDocumentStore
from app.api.dependencies import DocumentStore, get_strategy_service
from app.core.auth import CurrentUser
from app.core.errors import NotFoundAppError, ValidationAppError
from app.core.file_validation import read_validated_upload
from app.core.input_validation import sanitize_string
from app.schemas.notion import SuccessResponse
from app.schemas.strategy import (
    StrategyAnalysisResponse,
    StrategyCreate,
    StrategyListResponse,
    StrategyOut,
)
from app.services.strategy_service import StrategyService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Strategies"])

MAX_NAME_LENGTH = 200
MAX_COMMENTS_LENGTH = 5000


def _default_name(filename: str | None) -> str:
    if not filename:
        return "Untitled strategy"
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    return stem or "Untitled strategy"


@router.post("/analyze-strategy", response_model=StrategyAnalysisResponse)
async def analyze_strategy(
    user: CurrentUser,
    store: DocumentStore,
    service: Annotated[StrategyService, Depends(get_strategy_service)],
    file: UploadFile = File(..., description="Strategy document: PDF, or text exported from Notion"),
    name: Optional[str] = Form(None, description="Display name; defaults to the file name"),
    additional_comments: Optional[str] = Form(
        None,
        description="Extra context about the strategy to include in the analysis",
    ),
) -> StrategyAnalysisResponse:
    """Analyze a strategy document and store it for the caller.

    Raises:
        HTTPException: 413 when the file is too large.
        ValidationAppError: 400 for unsupported or malformed files.
        LLMAppError: 408/429/400/500 depending on the model failure.
    """
    upload = await read_validated_upload(file, allowed=("pdf", "text"))
    comments = sanitize_string(additional_comments, MAX_COMMENTS_LENGTH) or None
    strategy_name = sanitize_string(name, MAX_NAME_LENGTH) or _default_name(file.filename)

    result = await service.analyze(upload, additional_comments=comments)

    record = store.create_strategy(
        StrategyCreate(
            user_id=user.user_id,
            name=strategy_name,
            analysis=result.analysis,
            strategy_text=result.strategy_text,
            file_type=result.file_type,
            additional_comments=comments,
        )
    )
    logger.info("strategy.stored", extra={"strategy_id": record.id, "user_id": user.user_id})

    return StrategyAnalysisResponse(
        strategy_id=record.id,
        name=record.name,
        analysis=record.analysis,
        strategy_text=record.strategy_text,
        page_count=result.page_count,
    )


@router.get("/strategies", response_model=StrategyListResponse)
def list_strategies(user: CurrentUser, store: DocumentStore) -> StrategyListResponse:
    records = store.list_strategies(user.user_id)
    return StrategyListResponse(strategies=[StrategyOut.from_record(r) for r in records])


def _delete(user_id: str, strategy_id: str | None, store: AbstractDocumentStore) -> SuccessResponse:
    if not strategy_id:
        raise ValidationAppError(code="strategy_id_required", message="Strategy ID required")
    if not store.delete_strategy(user_id, strategy_id):
        raise NotFoundAppError(code="strategy_not_found", message="Strategy not found")
    logger.info("strategy.deleted", extra={"strategy_id": strategy_id, "user_id": user_id})
    return SuccessResponse()


@router.delete("/strategies", response_model=SuccessResponse)
def delete_strategy_by_query(
    user: CurrentUser,
    store: DocumentStore,
    id: Optional[str] = Query(None, description="Strategy id"),
) -> SuccessResponse:
    return _delete(user.user_id, id, store)


@router.delete("/strategies/{strategy_id}", response_model=SuccessResponse)
def delete_strategy(strategy_id: str, user: CurrentUser, store: DocumentStore) -> SuccessResponse:
    return _delete(user.user_id, strategy_id, store)
