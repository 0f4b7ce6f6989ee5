from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from notion_as_mcp.notion.models import Page, PageContent, SelectValue, StringValue


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class CountingFetcher:
    def __init__(self, *payloads: bytes, error: Optional[Exception] = None) -> None:
        self._payloads = list(payloads)
        self._error = error
        self.calls = 0

    async def __call__(self) -> bytes:
        self.calls += 1
        if self._error is not None:
            raise self._error
        if len(self._payloads) > 1:
            return self._payloads.pop(0)
        return self._payloads[0]


class FakeNotionReader:
    """Stands in for NotionClient on the read path."""

    def __init__(self, pages: List[Page], *, error: Optional[Exception] = None) -> None:
        self.pages = pages
        self.error = error
        self.query_calls = 0
        self.closed = False

    async def query_database(self) -> List[Page]:
        self.query_calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.pages)

    async def get_page_content(self, page_id: str) -> PageContent:
        if self.error is not None:
            raise self.error
        for page in self.pages:
            if page.id == page_id:
                return PageContent(page=page, blocks=(), text="")
        raise KeyError(page_id)

    async def close(self) -> None:
        self.closed = True


def make_page(page_id: str, kind: str, title: str = "") -> Page:
    return Page(
        id=page_id,
        created_time="2024-01-01T00:00:00.000Z",
        last_edited_time="2024-01-02T00:00:00.000Z",
        properties={
            "Name": StringValue(title or page_id),
            "Type": SelectValue(kind),
        },
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.005)
