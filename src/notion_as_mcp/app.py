from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from notion_as_mcp.cache.base import Cache
from notion_as_mcp.cache.factory import new_cache
from notion_as_mcp.cache.refresh import RefreshManager
from notion_as_mcp.catalog.impl import PageCatalog
from notion_as_mcp.catalog.snapshots import CACHE_KEYS_BY_KIND, SnapshotSource
from notion_as_mcp.config.models import AppConfig
from notion_as_mcp.notion.client import NotionClient

logger = logging.getLogger(__name__)


class Application:
    """Wires the upstream client, the cache and the refresh loops, and owns their lifecycle."""

    def __init__(
        self,
        config: AppConfig,
        *,
        client: Optional[NotionClient] = None,
        cache: Optional[Cache] = None,
    ) -> None:
        self.config = config
        self.shutdown_event = asyncio.Event()
        self.client = client or NotionClient(config.notion)
        self.cache = cache or new_cache(config.cache)
        self.snapshots = SnapshotSource(
            self.client,
            type_field=config.notion.type_field,
            reuse_seconds=config.cache.snapshot_reuse_seconds,
        )
        self.refresh = RefreshManager(
            self.cache,
            shutdown_event=self.shutdown_event,
            entry_ttl_seconds=config.cache.durable_ttl_seconds,
            warm_timeout_seconds=config.cache.warm_timeout_seconds,
            shutdown_grace_seconds=config.cache.shutdown_grace_seconds,
        )
        self.catalog = PageCatalog(
            cache=self.cache,
            client=self.client,
            snapshots=self.snapshots,
            entry_ttl_seconds=config.cache.durable_ttl_seconds,
        )

    async def warm(self) -> Dict[str, bool]:
        """Warm every cached collection concurrently; they share a single database query."""
        kinds = list(CACHE_KEYS_BY_KIND)
        results = await asyncio.gather(
            *(self.refresh.warm(CACHE_KEYS_BY_KIND[kind], self.snapshots.fetcher_for(kind)) for kind in kinds)
        )
        return {CACHE_KEYS_BY_KIND[kind]: ok for kind, ok in zip(kinds, results)}

    async def start(self) -> None:
        if self.config.cache.refresh_on_start:
            results = await self.warm()
            failed = [key for key, ok in results.items() if not ok]
            if failed:
                logger.warning("Cache warm-up incomplete, reads will fall back to live fetches. keys=%s", failed)
        else:
            logger.info("Cache warm-up disabled by configuration.")

        interval = self.config.cache.refresh_interval_seconds
        for kind, key in CACHE_KEYS_BY_KIND.items():
            await self.refresh.start_periodic_refresh(key, interval, self.snapshots.fetcher_for(kind))

    async def stop(self) -> None:
        self.shutdown_event.set()
        try:
            await self.refresh.stop_all()
        finally:
            await self.cache.close()
            await self.client.close()
        logger.info("Application stopped.")
