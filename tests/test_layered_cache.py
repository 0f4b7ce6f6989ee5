import tempfile
import unittest
from pathlib import Path

from fakes import FakeClock

from notion_as_mcp.cache.factory import new_cache
from notion_as_mcp.cache.file import FileCache
from notion_as_mcp.cache.layered import LayeredCache
from notion_as_mcp.cache.memory import MemoryCache
from notion_as_mcp.config.models import CacheSettings
from notion_as_mcp.errors import CacheError


class BrokenTier(MemoryCache):
    """Memory tier whose writes and deletes always fail."""

    async def set(self, key, value, ttl_seconds):
        raise CacheError("disk full")

    async def delete(self, key):
        raise CacheError("read-only")

    async def clear(self):
        raise CacheError("read-only")


class LayeredCacheTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.clock = FakeClock()
        self.l1 = MemoryCache(clock=self.clock)
        self.l2 = FileCache(Path(self._tmp.name), clock=self.clock)
        self.cache = LayeredCache(self.l1, self.l2, promotion_ttl_seconds=30)

    async def test_set_writes_both_tiers(self) -> None:
        await self.cache.set("k", b"v", 600)

        self.assertEqual(await self.l1.get("k"), b"v")
        self.assertEqual(await self.l2.get("k"), b"v")

    async def test_durable_hit_is_promoted_into_memory(self) -> None:
        await self.l2.set("k", b"v", 600)

        self.assertEqual(await self.cache.get("k"), b"v")
        promoted = self.l1.entry("k")
        self.assertIsNotNone(promoted)
        self.assertEqual(promoted.expires_at - promoted.created_at, 30)

        # The next read is served by L1 alone, even if L2 loses the entry.
        await self.l2.delete("k")
        hits_before = self.l1.stats().hits
        self.assertEqual(await self.cache.get("k"), b"v")
        self.assertEqual(self.l1.stats().hits, hits_before + 1)

    async def test_expired_entries_are_not_found_in_either_tier(self) -> None:
        await self.cache.set("k", b"v", 10)
        self.clock.advance(11)

        self.assertIsNone(await self.cache.get("k"))
        self.assertFalse(await self.cache.has("k"))

    async def test_has_checks_both_tiers(self) -> None:
        await self.l2.set("only-l2", b"v", 60)

        self.assertTrue(await self.cache.has("only-l2"))
        self.assertFalse(await self.cache.has("missing"))

    async def test_durable_write_failure_is_not_fatal(self) -> None:
        cache = LayeredCache(self.l1, BrokenTier(clock=self.clock))

        with self.assertLogs("notion_as_mcp.cache.layered", level="WARNING"):
            await cache.set("k", b"v", 60)

        self.assertEqual(await cache.get("k"), b"v")

    async def test_delete_reaches_second_tier_when_first_fails(self) -> None:
        await self.l2.set("k", b"v", 60)
        cache = LayeredCache(BrokenTier(clock=self.clock), self.l2)

        with self.assertLogs("notion_as_mcp.cache.layered", level="WARNING"):
            with self.assertRaises(CacheError):
                await cache.delete("k")

        self.assertFalse(await self.l2.has("k"))

    async def test_clear_and_close_fan_out(self) -> None:
        await self.cache.set("a", b"1", 60)
        await self.cache.set("b", b"2", 60)

        await self.cache.clear()

        self.assertFalse(await self.l1.has("a"))
        self.assertFalse(await self.l2.has("b"))
        await self.cache.close()


class NewCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)

    def test_builds_memory_over_file(self) -> None:
        cache = new_cache(CacheSettings(dir=str(self.root / "cache"), memory_max_items=5))

        self.assertIsInstance(cache, LayeredCache)
        self.assertIsInstance(cache.l1, MemoryCache)
        self.assertIsInstance(cache.l2, FileCache)
        self.assertTrue((self.root / "cache").is_dir())

    def test_falls_back_to_memory_when_directory_is_unusable(self) -> None:
        blocker = self.root / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        with self.assertLogs("notion_as_mcp.cache.factory", level="ERROR"):
            cache = new_cache(CacheSettings(dir=str(blocker / "cache")))

        self.assertIsInstance(cache, MemoryCache)


if __name__ == "__main__":
    unittest.main()
