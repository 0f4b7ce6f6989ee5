import tempfile
import unittest
from pathlib import Path

from fakes import FakeClock

from notion_as_mcp.cache.file import FileCache, cache_filename
from notion_as_mcp.errors import CacheError


class FileCacheTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name) / "nested" / "cache"
        self.clock = FakeClock()
        self.cache = FileCache(self.dir, clock=self.clock)

    async def test_creates_directory_with_parents(self) -> None:
        self.assertTrue(self.dir.is_dir())

    async def test_value_survives_a_new_instance(self) -> None:
        await self.cache.set("mcp:resources", b"\x00binary\xff", 60)

        reopened = FileCache(self.dir, clock=self.clock)

        self.assertEqual(await reopened.get("mcp:resources"), b"\x00binary\xff")

    async def test_expired_file_is_deleted_on_read(self) -> None:
        await self.cache.set("k", b"v", 5)
        path = self.cache.path_for("k")
        self.clock.advance(6)

        self.assertIsNone(await self.cache.get("k"))
        self.assertFalse(path.exists())

    async def test_unreadable_file_counts_as_miss(self) -> None:
        path = self.cache.path_for("k")
        path.write_text("not json", encoding="utf-8")

        with self.assertLogs("notion_as_mcp.cache.file", level="WARNING"):
            self.assertIsNone(await self.cache.get("k"))
        self.assertFalse(path.exists())

    async def test_mistyped_record_counts_as_miss(self) -> None:
        path = self.cache.path_for("k")
        for record in ('{"value": "", "expires_at": 123}', '{"value": 5, "expires_at": "2030-01-01T00:00:00Z"}', "[1]"):
            path.write_text(record, encoding="utf-8")

            with self.assertLogs("notion_as_mcp.cache.file", level="WARNING"):
                self.assertIsNone(await self.cache.get("k"))
            self.assertFalse(path.exists())

    async def test_keys_cannot_escape_the_directory(self) -> None:
        for key in ("../../etc/passwd", "/abs/path", "..", "a\\b"):
            path = self.cache.path_for(key)
            self.assertEqual(path.parent, self.dir)
            self.assertNotIn("/", cache_filename(key))

        await self.cache.set("../escape", b"v", 60)
        self.assertEqual(sorted(p.parent for p in self.dir.iterdir()), [self.dir])

    async def test_similar_keys_map_to_distinct_files(self) -> None:
        self.assertNotEqual(cache_filename("a/b"), cache_filename("a_b"))

    async def test_clear_removes_every_file(self) -> None:
        await self.cache.set("a", b"1", 60)
        await self.cache.set("b", b"2", 60)
        (self.dir / "stray.txt").write_text("x", encoding="utf-8")

        await self.cache.clear()

        self.assertEqual(list(self.dir.iterdir()), [])

    async def test_delete_missing_key_is_noop(self) -> None:
        await self.cache.delete("missing")
        self.assertFalse(await self.cache.has("missing"))

    def test_directory_creation_failure_is_fatal(self) -> None:
        blocker = Path(self._tmp.name) / "file"
        blocker.write_text("x", encoding="utf-8")

        with self.assertRaises(CacheError):
            FileCache(blocker / "sub")


if __name__ == "__main__":
    unittest.main()
