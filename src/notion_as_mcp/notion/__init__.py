"""Notion API client and data models."""

from notion_as_mcp.notion.client import NotionClient
from notion_as_mcp.notion.models import (
    Block,
    BoolValue,
    ListValue,
    NumberValue,
    Page,
    PageContent,
    PropertyValue,
    SelectValue,
    StringValue,
)

__all__ = [
    "Block",
    "BoolValue",
    "ListValue",
    "NotionClient",
    "NumberValue",
    "Page",
    "PageContent",
    "PropertyValue",
    "SelectValue",
    "StringValue",
]
