import unittest

from fakes import FakeClock, FakeNotionReader, make_page

from notion_as_mcp.cache.memory import MemoryCache
from notion_as_mcp.catalog.impl import PageCatalog
from notion_as_mcp.catalog.serialization import deserialize_pages, serialize_pages
from notion_as_mcp.catalog.snapshots import (
    CACHE_KEY_PROMPTS,
    CACHE_KEY_RESOURCES,
    PAGE_KIND_PROMPT,
    PAGE_KIND_RESOURCE,
    PAGE_KIND_TOOL,
    SnapshotSource,
    cache_key_for,
)
from notion_as_mcp.errors import CatalogError, NotionAPIError, RetriesExhaustedError
from notion_as_mcp.notion.models import Page, SelectValue


def _pages():
    return [
        make_page("r1", PAGE_KIND_RESOURCE, "Handbook"),
        make_page("p1", PAGE_KIND_PROMPT, "Summarize"),
        make_page("t1", PAGE_KIND_TOOL, "Search"),
        make_page("r2", PAGE_KIND_RESOURCE, "FAQ"),
    ]


class SnapshotSourceTests(unittest.IsolatedAsyncioTestCase):
    async def test_collections_share_one_query(self) -> None:
        reader = FakeNotionReader(_pages())
        clock = FakeClock()
        snapshots = SnapshotSource(reader, type_field="Type", reuse_seconds=5, clock=clock)

        resources = await snapshots.collection(PAGE_KIND_RESOURCE)
        prompts = await snapshots.collection(PAGE_KIND_PROMPT)

        self.assertEqual([page.id for page in resources], ["r1", "r2"])
        self.assertEqual([page.id for page in prompts], ["p1"])
        self.assertEqual(reader.query_calls, 1)

    async def test_tool_pages_come_from_the_same_snapshot(self) -> None:
        reader = FakeNotionReader(_pages())
        snapshots = SnapshotSource(reader, type_field="Type", clock=FakeClock())

        await snapshots.collection(PAGE_KIND_RESOURCE)
        tools = await snapshots.collection(PAGE_KIND_TOOL)

        self.assertEqual([page.id for page in tools], ["t1"])
        self.assertEqual(reader.query_calls, 1)

    async def test_query_repeats_after_reuse_window(self) -> None:
        reader = FakeNotionReader(_pages())
        clock = FakeClock()
        snapshots = SnapshotSource(reader, type_field="Type", reuse_seconds=5, clock=clock)

        await snapshots.fetch_pages()
        clock.advance(6)
        await snapshots.fetch_pages()

        self.assertEqual(reader.query_calls, 2)

    async def test_invalidate_forces_a_new_query(self) -> None:
        reader = FakeNotionReader(_pages())
        snapshots = SnapshotSource(reader, type_field="Type", clock=FakeClock())

        await snapshots.fetch_pages()
        snapshots.invalidate()
        await snapshots.fetch_pages()

        self.assertEqual(reader.query_calls, 2)

    async def test_errors_are_shared_within_window(self) -> None:
        error = NotionAPIError(401, "unauthorized", "API token is invalid.")
        reader = FakeNotionReader([], error=error)
        snapshots = SnapshotSource(reader, type_field="Type", clock=FakeClock())

        with self.assertRaises(NotionAPIError):
            await snapshots.collection(PAGE_KIND_RESOURCE)
        with self.assertRaises(NotionAPIError):
            await snapshots.collection(PAGE_KIND_PROMPT)

        self.assertEqual(reader.query_calls, 1)

    async def test_custom_type_field(self) -> None:
        page = Page(
            id="r1",
            created_time="2024-01-01T00:00:00.000Z",
            last_edited_time="2024-01-01T00:00:00.000Z",
            properties={"Type": SelectValue("ignored"), "Kind": SelectValue(PAGE_KIND_RESOURCE)},
        )
        snapshots = SnapshotSource(FakeNotionReader([page]), type_field="Kind", clock=FakeClock())

        resources = await snapshots.collection(PAGE_KIND_RESOURCE)

        self.assertEqual([p.id for p in resources], ["r1"])
        self.assertEqual(snapshots.type_field, "Kind")

    async def test_fetcher_serializes_the_collection(self) -> None:
        snapshots = SnapshotSource(FakeNotionReader(_pages()), type_field="Type", clock=FakeClock())

        data = await snapshots.fetcher_for(PAGE_KIND_PROMPT)()

        self.assertEqual([page.id for page in deserialize_pages(data)], ["p1"])

    def test_cache_keys(self) -> None:
        self.assertEqual(cache_key_for(PAGE_KIND_RESOURCE), CACHE_KEY_RESOURCES)
        self.assertEqual(cache_key_for(PAGE_KIND_PROMPT), CACHE_KEY_PROMPTS)
        with self.assertRaises(ValueError):
            cache_key_for(PAGE_KIND_TOOL)


class PageCatalogTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.cache = MemoryCache(clock=self.clock)

    def _catalog(self, reader: FakeNotionReader) -> PageCatalog:
        snapshots = SnapshotSource(reader, type_field="Type", clock=self.clock)
        return PageCatalog(cache=self.cache, client=reader, snapshots=snapshots, entry_ttl_seconds=3600)

    async def test_cached_collection_is_served_without_upstream(self) -> None:
        reader = FakeNotionReader(_pages())
        await self.cache.set(CACHE_KEY_RESOURCES, serialize_pages([make_page("cached", PAGE_KIND_RESOURCE)]), 60)
        catalog = self._catalog(reader)

        pages = await catalog.list_pages(PAGE_KIND_RESOURCE)

        self.assertEqual([page.id for page in pages], ["cached"])
        self.assertEqual(reader.query_calls, 0)

    async def test_miss_fetches_live_and_populates_cache(self) -> None:
        reader = FakeNotionReader(_pages())
        catalog = self._catalog(reader)

        pages = await catalog.list_pages(PAGE_KIND_RESOURCE)

        self.assertEqual([page.id for page in pages], ["r1", "r2"])
        cached = await self.cache.get(CACHE_KEY_RESOURCES)
        self.assertEqual(deserialize_pages(cached), pages)
        entry = self.cache.entry(CACHE_KEY_RESOURCES)
        self.assertEqual(entry.expires_at - entry.created_at, 3600)

    async def test_empty_collection_is_not_an_error(self) -> None:
        reader = FakeNotionReader([make_page("r1", PAGE_KIND_RESOURCE)])
        catalog = self._catalog(reader)

        self.assertEqual(await catalog.list_pages(PAGE_KIND_PROMPT), [])

    async def test_failed_live_fetch_raises(self) -> None:
        reader = FakeNotionReader([], error=RetriesExhaustedError(3, None))
        catalog = self._catalog(reader)

        with self.assertRaises(CatalogError) as ctx:
            await catalog.list_pages(PAGE_KIND_PROMPT)

        self.assertIsInstance(ctx.exception.__cause__, RetriesExhaustedError)
        self.assertIsNone(await self.cache.get(CACHE_KEY_PROMPTS))

    async def test_unreadable_cache_entry_falls_back_to_live(self) -> None:
        reader = FakeNotionReader(_pages())
        await self.cache.set(CACHE_KEY_PROMPTS, b"{not json", 60)
        catalog = self._catalog(reader)

        with self.assertLogs("notion_as_mcp.catalog.impl", level="WARNING"):
            pages = await catalog.list_pages(PAGE_KIND_PROMPT)

        self.assertEqual([page.id for page in pages], ["p1"])
        self.assertEqual(reader.query_calls, 1)

    async def test_cached_array_of_non_objects_falls_back_to_live(self) -> None:
        reader = FakeNotionReader(_pages())
        await self.cache.set(CACHE_KEY_RESOURCES, b"[1, 2]", 60)
        catalog = self._catalog(reader)

        with self.assertLogs("notion_as_mcp.catalog.impl", level="WARNING"):
            pages = await catalog.list_pages(PAGE_KIND_RESOURCE)

        self.assertEqual([page.id for page in pages], ["r1", "r2"])
        self.assertEqual(deserialize_pages(await self.cache.get(CACHE_KEY_RESOURCES)), pages)

    async def test_unknown_kind_is_rejected(self) -> None:
        catalog = self._catalog(FakeNotionReader(_pages()))

        with self.assertRaises(ValueError):
            await catalog.list_pages(PAGE_KIND_TOOL)

    async def test_page_content_errors_are_wrapped(self) -> None:
        reader = FakeNotionReader([], error=NotionAPIError(404, "object_not_found", "missing"))
        catalog = self._catalog(reader)

        with self.assertRaises(CatalogError):
            await catalog.get_page_content("nope")

    async def test_page_content_is_returned(self) -> None:
        catalog = self._catalog(FakeNotionReader(_pages()))

        content = await catalog.get_page_content("p1")

        self.assertEqual(content.page.id, "p1")
        self.assertFalse(content.has_code)


if __name__ == "__main__":
    unittest.main()
