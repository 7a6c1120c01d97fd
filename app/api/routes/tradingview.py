"""TradingView snapshot import.

The token is checked before the per-IP ``chart_image`` budget is charged,
so unauthenticated calls do not use it up.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_tradingview_service
from app.core.auth import CurrentUser, get_current_user
from app.core.config import settings
from app.core.input_validation import parse_domain_list, validate_url
from app.core.rate_limit import enforce_rate_limit
from app.schemas.chat import ChartImageRequest, ChartImageResponse
from app.services.tradingview_service import TradingViewService

router = APIRouter(prefix="/tradingview", tags=["Analysis"])


@router.post(
    "/get-image",
    response_model=ChartImageResponse,
    dependencies=[Depends(get_current_user), Depends(enforce_rate_limit("chart_image"))],
)
async def get_chart_image(
    body: ChartImageRequest,
    user: CurrentUser,
    service: Annotated[TradingViewService, Depends(get_tradingview_service)],
) -> ChartImageResponse:
    """Import a chart screenshot from a TradingView snapshot link.

    Only HTTPS links on the configured domains are fetched.
    """
    url = validate_url(body.url, parse_domain_list(settings.app.tradingview_allowed_domains))
    return await service.fetch_chart_image(url)
