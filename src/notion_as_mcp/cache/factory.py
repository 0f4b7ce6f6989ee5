from __future__ import annotations

import logging
from typing import Optional

from notion_as_mcp.cache.base import Cache
from notion_as_mcp.cache.file import FileCache
from notion_as_mcp.cache.layered import LayeredCache
from notion_as_mcp.cache.memory import MemoryCache
from notion_as_mcp.config.models import CacheSettings
from notion_as_mcp.errors import CacheError

_module_logger = logging.getLogger(__name__)


def new_cache(settings: CacheSettings, *, logger: Optional[logging.Logger] = None) -> Cache:
    """
    Build the memory-over-file cache described by `settings`.

    If the durable tier cannot be created the service still runs on the memory tier alone.
    """
    log = logger or _module_logger
    memory = MemoryCache(max_items=settings.memory_max_items, logger=logger)
    try:
        durable = FileCache(settings.dir, logger=logger)
    except CacheError as e:
        log.error("Durable cache unavailable, using memory cache only. dir=%s error=%s", settings.dir, e)
        return memory

    log.info("Cache initialized. dir=%s memory_max_items=%d", durable.directory, settings.memory_max_items)
    return LayeredCache(memory, durable, promotion_ttl_seconds=settings.ttl_seconds, logger=logger)
