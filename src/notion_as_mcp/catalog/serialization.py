from __future__ import annotations

import json
from typing import Iterable, List

from notion_as_mcp.notion.models import Page, page_from_dict, page_to_dict


def serialize_pages(pages: Iterable[Page]) -> bytes:
    """
    Encode pages for the cache.

    Output is deterministic for equal input so that content digests only change when the
    pages themselves change.
    """
    payload = [page_to_dict(page) for page in pages]
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def deserialize_pages(data: bytes) -> List[Page]:
    payload = json.loads(data.decode("utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Cached page list must be a JSON array, got: {type(payload).__name__}")
    pages = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError(f"Cached page entry must be a JSON object, got: {type(item).__name__}")
        try:
            pages.append(page_from_dict(item))
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed cached page entry: {e}") from e
    return pages
