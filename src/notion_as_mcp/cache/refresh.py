from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from notion_as_mcp.cache.base import Cache, hash_content

_module_logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[bytes]]

DEFAULT_ENTRY_TTL_SECONDS = 3600.0
DEFAULT_WARM_TIMEOUT_SECONDS = 60.0
DEFAULT_SHUTDOWN_GRACE_SECONDS = 10.0


@dataclass(slots=True)
class RefreshTask:
    key: str
    interval_seconds: float
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None

    def running(self) -> bool:
        return self.task is not None and not self.task.done()


class RefreshManager:
    """
    Keeps cache keys populated from the upstream.

    `warm` fills a key once at startup. `start_periodic_refresh` runs one background task
    per key that re-fetches on a fixed interval and writes only when the content digest
    changed. Each task stops on its own stop event, on the shared shutdown event, or when
    cancelled.
    """

    def __init__(
        self,
        cache: Cache,
        *,
        shutdown_event: Optional[asyncio.Event] = None,
        entry_ttl_seconds: float = DEFAULT_ENTRY_TTL_SECONDS,
        warm_timeout_seconds: float = DEFAULT_WARM_TIMEOUT_SECONDS,
        shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache
        self._shutdown_event = shutdown_event or asyncio.Event()
        self._entry_ttl_seconds = entry_ttl_seconds
        self._warm_timeout_seconds = warm_timeout_seconds
        self._shutdown_grace_seconds = shutdown_grace_seconds
        self._logger = logger or _module_logger
        self._tasks: Dict[str, RefreshTask] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[bytes]:
        return await self._cache.get(key)

    def is_running(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and task.running()

    def active_keys(self) -> List[str]:
        return sorted(key for key, task in self._tasks.items() if task.running())

    async def warm(self, key: str, fetch: Fetcher) -> bool:
        """
        Populate `key` once. Failures are logged and reported as False so startup can go on.

        The fetch is bounded by the warm-up timeout; on a miss the read path fetches live.
        """
        self._logger.info("Warming cache. key=%s", key)
        try:
            data = await asyncio.wait_for(fetch(), timeout=self._warm_timeout_seconds)
        except asyncio.TimeoutError:
            self._logger.warning(
                "Cache warm-up timed out. key=%s timeout_seconds=%s",
                key,
                self._warm_timeout_seconds,
            )
            return False
        except Exception as e:
            self._logger.warning("Cache warm-up fetch failed. key=%s error=%s", key, e)
            return False

        try:
            await self._cache.set(key, data, self._entry_ttl_seconds)
        except Exception as e:
            self._logger.warning("Cache warm-up write failed. key=%s error=%s", key, e)
            return False

        self._logger.info("Cache warmed. key=%s size=%d", key, len(data))
        return True

    async def start_periodic_refresh(self, key: str, interval_seconds: float, fetch: Fetcher) -> None:
        """Start refreshing `key`, first stopping and awaiting any loop already running for it."""
        if interval_seconds <= 0:
            raise ValueError(f"Refresh interval must be positive, got: {interval_seconds}")

        async with self._lock:
            previous = self._tasks.pop(key, None)
            if previous is not None:
                await self._stop_task(previous)

            refresh_task = RefreshTask(key=key, interval_seconds=interval_seconds)
            refresh_task.task = asyncio.create_task(
                self._run(refresh_task, fetch),
                name=f"cache-refresh:{key}",
            )
            self._tasks[key] = refresh_task

        self._logger.info("Periodic refresh started. key=%s interval_seconds=%s", key, interval_seconds)

    async def stop(self, key: str) -> None:
        async with self._lock:
            refresh_task = self._tasks.pop(key, None)
            if refresh_task is not None:
                await self._stop_task(refresh_task)

    async def stop_all(self) -> None:
        """
        Stop every refresh loop.

        Loops get a grace period to finish an in-flight refresh; loops still running after
        it are cancelled.
        """
        async with self._lock:
            refresh_tasks = list(self._tasks.values())
            self._tasks.clear()
            for refresh_task in refresh_tasks:
                refresh_task.stop_event.set()

            pending_tasks = [t.task for t in refresh_tasks if t.task is not None and not t.task.done()]
            if not pending_tasks:
                return

            _, pending = await asyncio.wait(pending_tasks, timeout=self._shutdown_grace_seconds)
            for task in pending:
                self._logger.warning("Refresh loop did not stop in time, cancelling. task=%s", task.get_name())
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        self._logger.info("All periodic refreshes stopped. count=%d", len(refresh_tasks))

    async def refresh_once(self, key: str, fetch: Fetcher) -> bool:
        """Run one refresh cycle now. Returns True when the cached value was written."""
        return await self._refresh(key, fetch, cancelled=self._shutdown_event.is_set)

    async def _stop_task(self, refresh_task: RefreshTask) -> None:
        refresh_task.stop_event.set()
        if refresh_task.task is None:
            return
        try:
            await refresh_task.task
        except asyncio.CancelledError:
            if not refresh_task.task.cancelled():
                raise
        except Exception:
            self._logger.exception("Refresh loop exited with an error. key=%s", refresh_task.key)

    def _stop_requested(self, refresh_task: RefreshTask) -> bool:
        return refresh_task.stop_event.is_set() or self._shutdown_event.is_set()

    async def _run(self, refresh_task: RefreshTask, fetch: Fetcher) -> None:
        key = refresh_task.key
        started = time.monotonic()
        try:
            while True:
                elapsed = time.monotonic() - started
                sleep_seconds = max(0.0, refresh_task.interval_seconds - elapsed)
                if await self._wait_for_stop(refresh_task, sleep_seconds):
                    break
                started = time.monotonic()
                try:
                    await self._refresh(key, fetch, cancelled=lambda: self._stop_requested(refresh_task))
                except Exception:
                    self._logger.exception("Periodic refresh cycle failed. key=%s", key)
        finally:
            self._logger.info("Periodic refresh stopped. key=%s", key)

    async def _wait_for_stop(self, refresh_task: RefreshTask, timeout: float) -> bool:
        """Wait for the next tick. Returns True when a stop was signalled first."""
        if self._stop_requested(refresh_task):
            return True
        waiters = [
            asyncio.ensure_future(refresh_task.stop_event.wait()),
            asyncio.ensure_future(self._shutdown_event.wait()),
        ]
        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        return bool(done)

    async def _refresh(self, key: str, fetch: Fetcher, *, cancelled: Callable[[], bool]) -> bool:
        self._logger.debug("Refreshing cache. key=%s", key)
        try:
            new_data = await fetch()
        except Exception as e:
            self._logger.warning("Cache refresh fetch failed, keeping cached value. key=%s error=%s", key, e)
            return False

        if cancelled():
            self._logger.debug("Discarding refresh result after stop. key=%s", key)
            return False

        try:
            existing = await self._cache.get(key)
        except Exception as e:
            self._logger.warning("Failed to read cached value before refresh. key=%s error=%s", key, e)
            existing = None

        if existing is not None and hash_content(existing) == hash_content(new_data):
            self._logger.debug("Cache unchanged, skipping update. key=%s", key)
            return False

        try:
            await self._cache.set(key, new_data, self._entry_ttl_seconds)
        except Exception as e:
            self._logger.warning("Failed to update cache. key=%s error=%s", key, e)
            return False

        if existing is None:
            self._logger.info("Cache updated (was empty). key=%s size=%d", key, len(new_data))
        else:
            self._logger.info("Cache updated. key=%s size=%d", key, len(new_data))
        return True
