"""Two-tier cache and the background refresh that keeps it current."""

from notion_as_mcp.cache.base import Cache, CacheEntry, CacheStats, hash_content
from notion_as_mcp.cache.factory import new_cache
from notion_as_mcp.cache.file import FileCache
from notion_as_mcp.cache.layered import LayeredCache
from notion_as_mcp.cache.memory import MemoryCache
from notion_as_mcp.cache.refresh import Fetcher, RefreshManager

__all__ = [
    "Cache",
    "CacheEntry",
    "CacheStats",
    "Fetcher",
    "FileCache",
    "LayeredCache",
    "MemoryCache",
    "RefreshManager",
    "hash_content",
    "new_cache",
]
