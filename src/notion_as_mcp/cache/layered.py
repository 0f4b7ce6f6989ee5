from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from notion_as_mcp.cache.base import Cache
from notion_as_mcp.errors import CacheError

_module_logger = logging.getLogger(__name__)

DEFAULT_PROMOTION_TTL_SECONDS = 300.0


class LayeredCache:
    """
    Memory tier (L1) in front of the durable tier (L2).

    Reads fall through to L2 and promote hits into L1. Writes go to both tiers. A failed L2
    write is logged and the write still counts.
    """

    def __init__(
        self,
        l1: Cache,
        l2: Cache,
        *,
        promotion_ttl_seconds: float = DEFAULT_PROMOTION_TTL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._l1 = l1
        self._l2 = l2
        self._promotion_ttl_seconds = promotion_ttl_seconds
        self._logger = logger or _module_logger

    @property
    def l1(self) -> Cache:
        return self._l1

    @property
    def l2(self) -> Cache:
        return self._l2

    async def get(self, key: str) -> Optional[bytes]:
        value = await self._l1.get(key)
        if value is not None:
            return value

        value = await self._l2.get(key)
        if value is None:
            return None

        await self._l1.set(key, value, self._promotion_ttl_seconds)
        self._logger.debug("Promoted durable cache entry into memory. key=%s size=%d", key, len(value))
        return value

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        await self._l1.set(key, value, ttl_seconds)
        try:
            await self._l2.set(key, value, ttl_seconds)
        except (CacheError, OSError) as e:
            self._logger.warning("Durable cache write failed, keeping memory copy only. key=%s error=%s", key, e)

    async def delete(self, key: str) -> None:
        await self._fan_out("delete", lambda tier: tier.delete(key))

    async def has(self, key: str) -> bool:
        if await self._l1.has(key):
            return True
        return await self._l2.has(key)

    async def clear(self) -> None:
        await self._fan_out("clear", lambda tier: tier.clear())

    async def close(self) -> None:
        await self._fan_out("close", lambda tier: tier.close(), raise_first=False)

    async def _fan_out(
        self,
        operation: str,
        call: Callable[[Cache], Awaitable[None]],
        *,
        raise_first: bool = True,
    ) -> None:
        errors: List[Exception] = []
        for name, tier in (("l1", self._l1), ("l2", self._l2)):
            try:
                await call(tier)
            except Exception as e:
                self._logger.warning("Cache tier operation failed. tier=%s operation=%s error=%s", name, operation, e)
                errors.append(e)
        if errors and raise_first:
            raise errors[0]
