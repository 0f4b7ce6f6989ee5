from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import aiohttp

from notion_as_mcp.cache.base import Cache
from notion_as_mcp.catalog.serialization import deserialize_pages, serialize_pages
from notion_as_mcp.catalog.snapshots import SnapshotSource, cache_key_for
from notion_as_mcp.errors import CacheError, CatalogError, NotionError
from notion_as_mcp.notion.client import NotionClient
from notion_as_mcp.notion.models import Page, PageContent

_module_logger = logging.getLogger(__name__)

_UPSTREAM_ERRORS = (NotionError, aiohttp.ClientError, asyncio.TimeoutError)


class PageCatalog:
    """
    Read path used by the protocol layer.

    Collections come from the cache; a miss is answered by a live fetch which then
    populates the cache. A failed live fetch raises CatalogError rather than returning an
    empty list, so "no pages" and "could not load pages" stay distinguishable.
    """

    def __init__(
        self,
        *,
        cache: Cache,
        client: NotionClient,
        snapshots: SnapshotSource,
        entry_ttl_seconds: float,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache
        self._client = client
        self._snapshots = snapshots
        self._entry_ttl_seconds = entry_ttl_seconds
        self._logger = logger or _module_logger

    async def list_pages(self, kind: str) -> List[Page]:
        key = cache_key_for(kind)

        cached = await self._read_cache(key)
        if cached is not None:
            try:
                pages = deserialize_pages(cached)
            except ValueError as e:
                self._logger.warning("Cached collection is unreadable, fetching live. key=%s error=%s", key, e)
            else:
                self._logger.debug("Serving collection from cache. key=%s items=%d", key, len(pages))
                return pages

        self._logger.info("Cache miss, fetching collection from Notion. key=%s", key)
        try:
            pages = await self._snapshots.collection(kind)
        except _UPSTREAM_ERRORS as e:
            raise CatalogError(f"Failed to load {kind} pages: {e}") from e

        try:
            await self._cache.set(key, serialize_pages(pages), self._entry_ttl_seconds)
        except CacheError as e:
            self._logger.warning("Failed to populate cache after live fetch. key=%s error=%s", key, e)
        return pages

    async def get_page_content(self, page_id: str) -> PageContent:
        try:
            return await self._client.get_page_content(page_id)
        except _UPSTREAM_ERRORS as e:
            raise CatalogError(f"Failed to load page content. page_id={page_id}: {e}") from e

    async def _read_cache(self, key: str) -> Optional[bytes]:
        try:
            return await self._cache.get(key)
        except CacheError as e:
            self._logger.warning("Cache read failed, fetching live. key=%s error=%s", key, e)
            return None
