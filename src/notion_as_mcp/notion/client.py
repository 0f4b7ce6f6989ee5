from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

import aiohttp

from notion_as_mcp.config.models import NotionSettings
from notion_as_mcp.errors import NotionAPIError, RetriesExhaustedError
from notion_as_mcp.notion.models import Block, Page, PageContent, parse_block, parse_page
from notion_as_mcp.notion.parser import extract_text, first_code_block

_module_logger = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429

# Failures where resending the same request can reasonably succeed.
TRANSIENT_ERRORS = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    ConnectionResetError,
    BrokenPipeError,
    asyncio.IncompleteReadError,
    asyncio.TimeoutError,
)

SleepFunc = Callable[[float], Awaitable[Any]]


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if seconds < 0:
        return None
    return seconds


class NotionClient:
    """
    Thin async client for the Notion REST API.

    Every call goes through `_request`, which owns authentication headers, the per-call
    timeout, rate-limit back-off and retries of transient network errors. The client keeps
    no state besides its configuration and HTTP session.
    """

    def __init__(
        self,
        settings: NotionSettings,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: SleepFunc = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep
        self._logger = logger or _module_logger
        self._base_url = settings.base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=settings.request_timeout_seconds)

    async def __aenter__(self) -> NotionClient:
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Notion-Version": self._settings.api_version,
            "Content-Type": "application/json",
        }

    async def query_database(self) -> List[Page]:
        """Return every page of the configured database, following cursors until exhausted."""
        path = f"/databases/{self._settings.database_id}/query"
        pages: List[Page] = []
        cursor: Optional[str] = None
        page_number = 0

        while True:
            body: Dict[str, Any] = {"page_size": self._settings.page_size}
            if cursor is not None:
                body["start_cursor"] = cursor

            data = await self._request("POST", path, payload=body)
            page_number += 1
            results = data.get("results") or []
            pages.extend(parse_page(item) for item in results)

            if not data.get("has_more"):
                break
            next_cursor = data.get("next_cursor")
            if not next_cursor:
                # has_more without a cursor would loop forever; treat it as the end.
                self._logger.warning(
                    "Notion reported more results without a cursor. path=%s pages=%d",
                    path,
                    page_number,
                )
                break
            cursor = next_cursor

        self._logger.debug("Notion database query completed. pages=%d items=%d", page_number, len(pages))
        return pages

    async def get_page(self, page_id: str) -> Page:
        data = await self._request("GET", f"/pages/{page_id}")
        return parse_page(data)

    async def get_block_children(self, block_id: str) -> List[Block]:
        path = f"/blocks/{block_id}/children"
        blocks: List[Block] = []
        cursor: Optional[str] = None

        while True:
            params = {"page_size": str(self._settings.page_size)}
            if cursor is not None:
                params["start_cursor"] = cursor
            data = await self._request("GET", path, params=params)
            blocks.extend(parse_block(item) for item in data.get("results") or [])
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                break
        return blocks

    async def get_page_content(self, page_id: str) -> PageContent:
        """Fetch one page together with its top-level blocks."""
        page = await self.get_page(page_id)
        blocks = tuple(await self.get_block_children(page_id))
        return PageContent(
            page=page,
            blocks=blocks,
            text=extract_text(blocks),
            code=first_code_block(blocks),
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        session = self._ensure_session()
        url = f"{self._base_url}{path}"
        # Serialized once so every retry resends identical bytes.
        body = json.dumps(payload).encode("utf-8") if payload is not None else None
        max_attempts = self._settings.max_retries
        backoff = self._settings.initial_backoff_seconds
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            wait_seconds = backoff
            try:
                async with session.request(
                    method,
                    url,
                    data=body,
                    params=params,
                    headers=self._headers,
                    timeout=self._timeout,
                ) as response:
                    if response.status == RATE_LIMITED_STATUS:
                        hint = _parse_retry_after(response.headers.get("Retry-After"))
                        if hint is not None:
                            wait_seconds = hint
                        wait_seconds = min(wait_seconds, self._settings.max_retry_wait_seconds)
                        last_error = NotionAPIError(RATE_LIMITED_STATUS, "rate_limited", "Rate limited")
                        self._logger.warning(
                            "Notion rate limit hit. method=%s path=%s attempt=%d wait_seconds=%.2f",
                            method,
                            path,
                            attempt,
                            wait_seconds,
                        )
                    elif response.status < 200 or response.status >= 300:
                        raise await self._api_error(response)
                    else:
                        data = await response.json(content_type=None)
                        self._logger.debug(
                            "Notion API response. method=%s path=%s status=%s",
                            method,
                            path,
                            response.status,
                        )
                        return data if isinstance(data, dict) else {}
            except TRANSIENT_ERRORS as e:
                last_error = e
                self._logger.warning(
                    "Notion request hit a transient error. method=%s path=%s attempt=%d error=%r",
                    method,
                    path,
                    attempt,
                    e,
                )

            if attempt < max_attempts:
                await self._sleep(min(wait_seconds, self._settings.max_retry_wait_seconds))
                backoff *= 2

        self._logger.error(
            "Notion request gave up after retries. method=%s path=%s attempts=%d",
            method,
            path,
            max_attempts,
        )
        raise RetriesExhaustedError(max_attempts, last_error)

    @staticmethod
    async def _api_error(response: aiohttp.ClientResponse) -> NotionAPIError:
        text = await response.text()
        code = "unknown"
        message = text.strip() or response.reason or ""
        try:
            data = json.loads(text)
        except ValueError:
            data = None
        if isinstance(data, dict):
            code = str(data.get("code") or code)
            message = str(data.get("message") or message)
        return NotionAPIError(response.status, code, message)
