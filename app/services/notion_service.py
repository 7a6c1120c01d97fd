"""Notion page listing and block-tree flattening.

Notion pages are trees of typed blocks. Strategy import only needs plain
text, so blocks are flattened to a light markdown-like rendering.
"""

from __future__ import annotations

import logging
from typing import Any

from app.adapters.notion.client import NotionClient
from app.schemas.notion import NotionPage, NotionPageList, PageContentResponse

logger = logging.getLogger(__name__)

DEFAULT_PAGE_TITLE = "Untitled"


def rich_text_to_plain(rich_text: Any) -> str:
    if not isinstance(rich_text, list):
        return ""
    return "".join(str(item.get("plain_text", "")) for item in rich_text if isinstance(item, dict))


def _block_text(block: dict[str, Any]) -> str:
    body = block.get(block.get("type", ""))
    if not isinstance(body, dict):
        return ""
    return rich_text_to_plain(body.get("rich_text"))


def render_block(block: dict[str, Any]) -> str:
    """Render a single block, without its children."""
    block_type = block.get("type")
    text = _block_text(block)

    if block_type == "paragraph":
        return f"{text}\n\n"
    if block_type == "heading_1":
        return f"# {text}\n\n"
    if block_type == "heading_2":
        return f"## {text}\n\n"
    if block_type == "heading_3":
        return f"### {text}\n\n"
    if block_type == "bulleted_list_item":
        return f"• {text}\n"
    if block_type == "numbered_list_item":
        return f"{text}\n"
    if block_type == "code":
        return f"```\n{text}\n```\n\n"
    if block_type == "quote":
        return f"> {text}\n\n"
    if block_type == "divider":
        return "---\n\n"
    if block_type == "toggle":
        return f"{text}\n"
    return f"{text}\n\n" if text else ""


async def flatten_blocks(client: NotionClient, access_token: str, block_id: str) -> str:
    """Flatten a block and all its descendants to text, depth first."""
    content = []
    for block in await client.list_block_children(access_token, block_id):
        content.append(render_block(block))
        if block.get("has_children") and block.get("id"):
            content.append(await flatten_blocks(client, access_token, block["id"]))
    return "".join(content)


def _first_plain_text(values: Any) -> str | None:
    if isinstance(values, list) and values and isinstance(values[0], dict):
        return values[0].get("plain_text") or None
    return None


def extract_page_title(page: dict[str, Any], *, fallback: str | None = None) -> str:
    """Find a human title for a page.

    Tries the ``title`` property, then the first property holding a title
    or rich text value. When nothing is found, ``fallback`` is returned, or
    ``Page <last 8 chars of id>`` if no fallback is given.
    """
    properties = page.get("properties") or {}

    title_prop = properties.get("title")
    if isinstance(title_prop, dict):
        title = _first_plain_text(title_prop.get("title"))
        if title:
            return title

    for prop in properties.values():
        if not isinstance(prop, dict):
            continue
        title = _first_plain_text(prop.get("title")) or _first_plain_text(prop.get("rich_text"))
        if title:
            return title

    if fallback is not None:
        return fallback
    return f"Page {str(page.get('id', ''))[-8:]}"


def format_search_results(payload: dict[str, Any]) -> NotionPageList:
    pages = [
        NotionPage(
            id=item["id"],
            title=extract_page_title(item),
            last_edited=item.get("last_edited_time"),
            url=item.get("url"),
        )
        for item in payload.get("results") or []
        if item.get("object") == "page"
    ]
    return NotionPageList(
        pages=pages,
        has_more=bool(payload.get("has_more")),
        next_cursor=payload.get("next_cursor") or None,
    )


class NotionService:
    def __init__(self, client: NotionClient) -> None:
        self.client = client

    async def list_pages(self, access_token: str, cursor: str | None = None) -> NotionPageList:
        payload = await self.client.search_pages(access_token, start_cursor=cursor)
        result = format_search_results(payload)
        logger.info(
            "notion.pages_listed",
            extra={"page_count": len(result.pages), "has_more": result.has_more},
        )
        return result

    async def fetch_page_content(self, access_token: str, page_id: str) -> PageContentResponse:
        """Retrieve a page title and its full flattened content."""
        page = await self.client.retrieve_page(access_token, page_id)
        title = extract_page_title(page, fallback=DEFAULT_PAGE_TITLE)
        content = await flatten_blocks(self.client, access_token, page_id)

        logger.info("notion.page_fetched", extra={"content_length": len(content)})
        return PageContentResponse(
            title=title,
            content=content,
            url=page.get("url"),
            content_length=len(content),
        )
