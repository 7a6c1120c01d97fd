from __future__ import annotations

from app.api.routes.analysis import router as analysis_router
from app.api.routes.auth import router as auth_router
from app.api.routes.conversations import router as conversations_router
from app.api.routes.health import router as health_router
from app.api.routes.notion import router as notion_router
from app.api.routes.strategies import router as strategies_router
from app.api.routes.tradingview import router as tradingview_router

__all__ = [
    "analysis_router",
    "auth_router",
    "conversations_router",
    "health_router",
    "notion_router",
    "strategies_router",
    "tradingview_router",
]
