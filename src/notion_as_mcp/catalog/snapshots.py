from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Protocol, Sequence

from notion_as_mcp.cache.refresh import Fetcher
from notion_as_mcp.catalog.serialization import serialize_pages
from notion_as_mcp.notion.models import Page
from notion_as_mcp.notion.parser import page_type

_module_logger = logging.getLogger(__name__)

PAGE_KIND_RESOURCE = "resource"
PAGE_KIND_PROMPT = "prompt"
# Tool pages are listed from the snapshot but never cached under their own key.
PAGE_KIND_TOOL = "tool"

CACHE_KEY_RESOURCES = "mcp:resources"
CACHE_KEY_PROMPTS = "mcp:prompts"

CACHE_KEYS_BY_KIND = {
    PAGE_KIND_RESOURCE: CACHE_KEY_RESOURCES,
    PAGE_KIND_PROMPT: CACHE_KEY_PROMPTS,
}


def cache_key_for(kind: str) -> str:
    try:
        return CACHE_KEYS_BY_KIND[kind]
    except KeyError:
        raise ValueError(f"No cached collection for page kind: {kind}") from None


def pages_of_kind(pages: Sequence[Page], kind: str, type_field: str) -> List[Page]:
    return [page for page in pages if page_type(page, type_field) == kind]


class DatabaseReader(Protocol):
    async def query_database(self) -> List[Page]:
        ...


class SnapshotSource:
    """
    Shares one full database query between every cached collection.

    Callers that arrive while a query is running wait for it, and callers within
    `reuse_seconds` of the last query get its result (or its error) instead of issuing
    another one. Warm-up and refresh for both keys therefore cost one upstream scan.
    """

    def __init__(
        self,
        client: DatabaseReader,
        *,
        type_field: str,
        reuse_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._type_field = type_field
        self._reuse_seconds = reuse_seconds
        self._clock = clock
        self._logger = logger or _module_logger
        self._lock = asyncio.Lock()
        self._fetched_at: Optional[float] = None
        self._pages: List[Page] = []
        self._error: Optional[Exception] = None

    @property
    def type_field(self) -> str:
        return self._type_field

    def invalidate(self) -> None:
        self._fetched_at = None

    async def fetch_pages(self) -> List[Page]:
        async with self._lock:
            if self._fetched_at is not None and self._clock() - self._fetched_at <= self._reuse_seconds:
                if self._error is not None:
                    raise self._error
                return list(self._pages)

            try:
                pages = await self._client.query_database()
            except Exception as e:
                self._fetched_at = self._clock()
                self._error = e
                self._pages = []
                raise

            self._fetched_at = self._clock()
            self._error = None
            self._pages = pages
            self._logger.debug("Database snapshot fetched. items=%d", len(pages))
            return list(pages)

    async def collection(self, kind: str) -> List[Page]:
        return pages_of_kind(await self.fetch_pages(), kind, self._type_field)

    def fetcher_for(self, kind: str) -> Fetcher:
        """Return the fetch-and-serialize closure the refresh manager runs for `kind`."""

        async def _fetch() -> bytes:
            return serialize_pages(await self.collection(kind))

        return _fetch
