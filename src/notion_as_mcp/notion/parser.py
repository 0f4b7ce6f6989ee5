from __future__ import annotations

from typing import Iterable, Optional

from notion_as_mcp.notion.models import Block, Page, SelectValue, StringValue

TITLE_PROPERTY = "Name"
DESCRIPTION_PROPERTY = "Description"


def page_type(page: Page, type_field: str) -> str:
    """Return the select value of `type_field`, or an empty string when it is unset."""
    value = page.properties.get(type_field)
    if isinstance(value, SelectValue):
        return value.value
    return ""


def page_title(page: Page) -> str:
    value = page.properties.get(TITLE_PROPERTY)
    if isinstance(value, StringValue) and value.value.strip():
        return value.value.strip()
    return page.id


def page_description(page: Page) -> str:
    value = page.properties.get(DESCRIPTION_PROPERTY)
    if isinstance(value, StringValue):
        return value.value.strip()
    return ""


def _block_text(block: Block) -> str:
    if block.type in ("paragraph", "heading_1", "heading_2", "heading_3"):
        return block.text
    if block.type == "bulleted_list_item":
        return "- " + block.text
    if block.type == "numbered_list_item":
        return "1. " + block.text
    if block.type == "to_do":
        return "- [ ] " + block.text
    if block.type == "code":
        return f"```{block.language or ''}\n{block.text}\n```"
    if block.type == "quote":
        return "> " + block.text
    if block.type == "divider":
        return "---"
    if block.type == "callout":
        return "\U0001f4a1 " + block.text
    return ""


def extract_text(blocks: Iterable[Block]) -> str:
    return "\n".join(_block_text(block) for block in blocks).strip()


def first_code_block(blocks: Iterable[Block]) -> Optional[Block]:
    for block in blocks:
        if block.type == "code":
            return block
    return None
