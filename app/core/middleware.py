"""HTTP middleware for request correlation and access logging.

Every request/response pair carries a request id (taken from the incoming
header named by ``LOG_REQUEST_ID_HEADER`` or generated) that is stored in
contextvars for the duration of the request, so log lines emitted by
routes, services and adapters can be correlated.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate the request id and report the request duration.

    Side Effects:
        - Sets request_id in contextvars (accessible via get_request_id())
        - Adds the request id header and X-Request-Duration-ms to the response
        - Logs one ``http.request`` line per request
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "request_method": request.method,
                "request_path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
