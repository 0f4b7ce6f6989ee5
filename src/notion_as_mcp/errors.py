from __future__ import annotations

from typing import Optional


class NotionError(Exception):
    """Base class for upstream failures."""


class NotionAPIError(NotionError):
    """The API answered with a non-success status that is not worth retrying."""

    def __init__(self, status: int, code: str, message: str) -> None:
        super().__init__(f"Notion API error: {message} ({code}) status={status}")
        self.status = status
        self.code = code
        self.message = message


class RetriesExhaustedError(NotionError):
    """Every attempt hit a rate limit or a transient network error."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        super().__init__(f"Max retries exceeded. attempts={attempts} last_error={last_error!r}")
        self.attempts = attempts
        self.last_error = last_error


class CacheError(Exception):
    """A cache tier could not be initialized or could not complete an operation."""


class CatalogError(Exception):
    """A collection could not be served from the cache nor fetched live."""
