"""Chart analysis and chat endpoints (both call the model API).

``/analyze-chart`` checks the token before charging the per-IP budget.
"""

from __future__ import annotations

import base64
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import TypeAdapter

from app.api.dependencies import (
    CurrentUserRecord,
    get_chart_service,
    get_chat_service,
)
from app.core.auth import CurrentUser, get_current_user
from app.core.errors import ValidationAppError
from app.core.file_validation import read_validated_upload
from app.core.input_validation import parse_json_field
from app.core.rate_limit import enforce_rate_limit
from app.schemas.chat import (
    ChartAnalysisResponse,
    ChartImage,
    ChatResponse,
    HistoryMessage,
)
from app.services.chart_service import ChartAnalysisService
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"])

_history_adapter = TypeAdapter(list[HistoryMessage])
_chart_images_adapter = TypeAdapter(list[ChartImage])


@router.post(
    "/analyze-chart",
    response_model=ChartAnalysisResponse,
    dependencies=[Depends(get_current_user), Depends(enforce_rate_limit("analyze_chart"))],
)
async def analyze_chart(
    user: CurrentUser,
    service: Annotated[ChartAnalysisService, Depends(get_chart_service)],
    strategy: Optional[str] = Form(None, description="Strategy text the charts are evaluated against"),
    charts: Optional[list[UploadFile]] = File(None, description="Chart screenshots (PNG, JPEG, GIF, WebP)"),
    timeframes: Optional[list[str]] = Form(None, description="Timeframe label per chart, same order"),
) -> ChartAnalysisResponse:
    """Evaluate one or more chart screenshots against a strategy.

    Raises:
        ValidationAppError: 400 when the strategy or charts are missing or a
            chart is not a real image.
        HTTPException: 413 for oversized charts, 429 when rate limited.
    """
    if not strategy or not strategy.strip():
        raise ValidationAppError(
            code="strategy_required",
            message="No strategy provided. Please upload a strategy PDF first.",
        )
    if not charts:
        raise ValidationAppError(code="charts_required", message="No chart images provided")

    timeframes = timeframes or []
    images: list[ChartImage] = []
    for index, chart in enumerate(charts):
        upload = await read_validated_upload(chart, allowed=("image",))
        timeframe = timeframes[index] if index < len(timeframes) else ""
        images.append(
            ChartImage(
                base64=base64.b64encode(upload.data).decode("ascii"),
                mime_type=upload.media_type,
                timeframe=timeframe,
            )
        )

    analysis = await service.analyze(strategy, images)
    logger.info("chart.analysis_success", extra={"user_id": user.user_id, "chart_count": len(images)})
    return ChartAnalysisResponse(analysis=analysis, chart_count=len(images))


@router.post("/chat", response_model=ChatResponse)
async def chat(
    user: CurrentUserRecord,
    service: Annotated[ChatService, Depends(get_chat_service)],
    message: Optional[str] = Form(None),
    strategy: Optional[str] = Form(None),
    conversation_history: Optional[str] = Form(None, description="JSON array of prior messages"),
    chart_images: Optional[str] = Form(None, description="JSON array of {base64, mime_type, timeframe}"),
) -> ChatResponse:
    """Answer a chat message with the strategy, history and charts as context.

    Malformed ``conversation_history`` or ``chart_images`` JSON is ignored
    and the chat continues without it.
    """
    if not message or not message.strip():
        raise ValidationAppError(code="message_required", message="No message provided")

    history = parse_json_field(conversation_history, _history_adapter) or []
    charts = parse_json_field(chart_images, _chart_images_adapter) or []

    reply = await service.reply(
        message,
        strategy=strategy,
        history=history,
        charts=charts,
        custom_instructions=user.custom_instructions,
    )
    return ChatResponse(response=reply)
