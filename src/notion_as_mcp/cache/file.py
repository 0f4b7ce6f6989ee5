from __future__ import annotations

import base64
import hashlib
import json
import logging
import re
import time
from pathlib import Path
from typing import Callable, Optional

from notion_as_mcp.cache.base import CacheEntry, validate_ttl
from notion_as_mcp.errors import CacheError
from notion_as_mcp.utils import atomic_write_bytes, rfc3339_to_timestamp, timestamp_to_rfc3339

_module_logger = logging.getLogger(__name__)

CACHE_FILE_SUFFIX = ".cache"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def cache_filename(key: str) -> str:
    """
    Map a cache key to a single safe path component.

    Separators and other unsafe characters are replaced, so a key can never escape the
    cache directory. A digest of the raw key keeps distinct keys on distinct files.
    """
    safe = _UNSAFE_CHARS.sub("_", key).strip("._") or "key"
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
    return f"{safe[:64]}-{digest}{CACHE_FILE_SUFFIX}"


def encode_entry(entry: CacheEntry) -> bytes:
    payload = {
        "key": entry.key,
        "value": base64.b64encode(entry.value).decode("ascii"),
        "created_at": timestamp_to_rfc3339(entry.created_at),
        "expires_at": timestamp_to_rfc3339(entry.expires_at),
    }
    return json.dumps(payload, sort_keys=True).encode("utf-8")


def decode_entry(key: str, data: bytes) -> CacheEntry:
    payload = json.loads(data.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Cache record must be a JSON object, got: {type(payload).__name__}")
    for field in ("value", "expires_at", "created_at"):
        if field in payload and not isinstance(payload[field], str):
            raise ValueError(f"Cache record field {field} must be a string")
    expires_at = rfc3339_to_timestamp(payload["expires_at"])
    created_at_raw = payload.get("created_at")
    created_at = rfc3339_to_timestamp(created_at_raw) if created_at_raw else expires_at
    return CacheEntry(
        key=key,
        value=base64.b64decode(payload["value"]),
        created_at=created_at,
        expires_at=expires_at,
    )


class FileCache:
    """Durable tier: one JSON file per key, surviving process restarts."""

    def __init__(
        self,
        directory: str | Path,
        *,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._dir = Path(directory).expanduser()
        self._clock = clock
        self._logger = logger or _module_logger
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to create cache directory: {self._dir}") from e

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        return self._dir / cache_filename(key)

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._load(key)
        if entry is None:
            return None
        return entry.value

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        ttl = validate_ttl(ttl_seconds)
        now = self._clock()
        entry = CacheEntry(key=key, value=bytes(value), created_at=now, expires_at=now + ttl)
        path = self.path_for(key)
        try:
            atomic_write_bytes(path, encode_entry(entry))
        except OSError as e:
            raise CacheError(f"Failed to write cache file: {path}") from e

    async def delete(self, key: str) -> None:
        self._remove(self.path_for(key))

    async def has(self, key: str) -> bool:
        return self._load(key) is not None

    async def clear(self) -> None:
        try:
            paths = [path for path in self._dir.iterdir() if path.is_file()]
        except FileNotFoundError:
            return
        except OSError as e:
            raise CacheError(f"Failed to list cache directory: {self._dir}") from e
        for path in paths:
            self._remove(path)
        self._logger.debug("File cache cleared. dir=%s files=%d", self._dir, len(paths))

    async def close(self) -> None:
        return None

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry if it is present and still valid."""
        return self._load(key)

    def _load(self, key: str) -> Optional[CacheEntry]:
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Failed to read cache file: {path}") from e

        try:
            entry = decode_entry(key, data)
        except (ValueError, KeyError, TypeError) as e:
            self._logger.warning("Discarding unreadable cache file. path=%s error=%s", path, e)
            self._remove(path)
            return None

        if not entry.is_valid(self._clock()):
            self._remove(path)
            return None
        return entry

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to remove cache file: {path}") from e
