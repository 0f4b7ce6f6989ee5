from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    items: int = 0
    bytes_used: int = 0


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    value: bytes
    created_at: float
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class Cache(Protocol):
    """
    Contract shared by every cache tier.

    Implementations must be safe to call from concurrent tasks without any locking by
    the caller. A missing or expired key is reported by `get` returning None, never by
    raising.
    """

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def has(self, key: str) -> bool:
        ...

    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        ...


def hash_content(data: bytes) -> str:
    """Return the hex SHA-256 digest used to detect content changes."""
    return hashlib.sha256(data).hexdigest()


def validate_ttl(ttl_seconds: float) -> float:
    if ttl_seconds <= 0:
        raise ValueError(f"TTL must be positive, got: {ttl_seconds}")
    return float(ttl_seconds)
