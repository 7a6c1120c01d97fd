"""Fetch chart images from TradingView snapshot links."""

from __future__ import annotations

import base64
import logging
import re

import httpx

from app.core.errors import UpstreamAppError, ValidationAppError
from app.core.input_validation import validate_url
from app.schemas.chat import ChartImageResponse

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_DOMAINS = ("tradingview.com",)

# Tried in order against the snapshot page HTML.
_IMAGE_URL_PATTERNS = [
    re.compile(r'<meta property="og:image" content="([^"]+)"'),
    re.compile(r'<meta name="twitter:image" content="([^"]+)"'),
    re.compile(r"""<img src=['"]([^'"]+)['"] alt=[^>]*class="tv-snapshot-image\""""),
    re.compile(r"(https://s3\.tradingview\.com/snapshots/[a-z]/[a-zA-Z0-9]+\.png)"),
]


def extract_image_url(html: str) -> str | None:
    """Find the snapshot image URL in a TradingView page."""
    for pattern in _IMAGE_URL_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


class TradingViewService:
    """Resolve a snapshot link to its PNG and return it base64-encoded.

    Every hop (redirects and the image link scraped from the page) must be an
    HTTPS URL on ``allowed_domains``. ``transport`` lets tests substitute
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        allowed_domains: list[str] | None = None,
        timeout_seconds: float = 30.0,
        max_redirects: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.allowed_domains = allowed_domains or list(DEFAULT_ALLOWED_DOMAINS)
        self.timeout_seconds = timeout_seconds
        self.max_redirects = max_redirects
        self._transport = transport

    def _check_url(self, url: str) -> str:
        try:
            return validate_url(url, self.allowed_domains)
        except ValidationAppError as exc:
            logger.warning("tradingview.url_rejected", extra={"error_code": exc.code})
            raise UpstreamAppError(
                code="tradingview_url_not_allowed",
                message="TradingView returned a link outside the allowed domains",
            ) from exc

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """GET ``url``, following redirects only to allowed URLs."""
        for _ in range(self.max_redirects + 1):
            url = self._check_url(url)
            response = await client.get(url)
            if not response.is_redirect:
                response.raise_for_status()
                return response
            url = str(response.url.join(response.headers["location"]))

        raise UpstreamAppError(
            code="tradingview_too_many_redirects",
            message="Failed to fetch TradingView image",
        )

    async def fetch_chart_image(self, url: str) -> ChartImageResponse:
        """Download the image behind a validated snapshot URL.

        Raises:
            UpstreamAppError: If the page or image cannot be fetched, the
                page has no snapshot image, or a link leaves the allowed
                domains.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                follow_redirects=False,
                transport=self._transport,
            ) as client:
                page = await self._get(client, url)

                image_url = extract_image_url(page.text)
                if image_url is None:
                    logger.warning("tradingview.image_not_found")
                    raise UpstreamAppError(
                        code="tradingview_image_not_found",
                        message="Image URL not found in the page",
                    )
                image_url = str(page.url.join(image_url))

                image = await self._get(client, image_url)
        except httpx.HTTPError as exc:
            logger.warning(
                "tradingview.fetch_failed",
                extra={"error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="tradingview_fetch_failed",
                message="Failed to fetch TradingView image",
            ) from exc

        logger.info("tradingview.image_fetched", extra={"size_bytes": len(image.content)})
        return ChartImageResponse(
            image_url=image_url,
            base64=base64.b64encode(image.content).decode("ascii"),
            mime_type="image/png",
        )
