"""Notion REST API adapter."""

from app.adapters.notion.client import NotionClient, get_notion_client

__all__ = ["NotionClient", "get_notion_client"]
