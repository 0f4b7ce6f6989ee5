"""Cached page collections served to the protocol layer."""

from notion_as_mcp.catalog.impl import PageCatalog
from notion_as_mcp.catalog.serialization import deserialize_pages, serialize_pages
from notion_as_mcp.catalog.snapshots import (
    CACHE_KEY_PROMPTS,
    CACHE_KEY_RESOURCES,
    CACHE_KEYS_BY_KIND,
    PAGE_KIND_PROMPT,
    PAGE_KIND_RESOURCE,
    PAGE_KIND_TOOL,
    SnapshotSource,
    cache_key_for,
    pages_of_kind,
)

__all__ = [
    "CACHE_KEYS_BY_KIND",
    "CACHE_KEY_PROMPTS",
    "CACHE_KEY_RESOURCES",
    "PAGE_KIND_PROMPT",
    "PAGE_KIND_RESOURCE",
    "PAGE_KIND_TOOL",
    "PageCatalog",
    "SnapshotSource",
    "cache_key_for",
    "deserialize_pages",
    "pages_of_kind",
    "serialize_pages",
]
