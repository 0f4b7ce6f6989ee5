from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union


@dataclass(frozen=True, slots=True)
class StringValue:
    value: str
    kind: Literal["string"] = "string"


@dataclass(frozen=True, slots=True)
class NumberValue:
    value: float
    kind: Literal["number"] = "number"


@dataclass(frozen=True, slots=True)
class BoolValue:
    value: bool
    kind: Literal["bool"] = "bool"


@dataclass(frozen=True, slots=True)
class SelectValue:
    value: str
    kind: Literal["select"] = "select"


@dataclass(frozen=True, slots=True)
class ListValue:
    value: Tuple[str, ...]
    kind: Literal["list"] = "list"


PropertyValue = Union[StringValue, NumberValue, BoolValue, SelectValue, ListValue]


@dataclass(frozen=True, slots=True)
class Block:
    id: str
    type: str
    text: str = ""
    language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Page:
    """One database record. A fresh fetch always produces new instances."""

    id: str
    created_time: str
    last_edited_time: str
    properties: Dict[str, PropertyValue] = field(default_factory=dict)
    blocks: Tuple[Block, ...] = ()


@dataclass(frozen=True, slots=True)
class PageContent:
    page: Page
    blocks: Tuple[Block, ...]
    text: str
    code: Optional[Block] = None

    @property
    def has_code(self) -> bool:
        return self.code is not None


def plain_text(rich_text: Any) -> str:
    if not isinstance(rich_text, list):
        return ""
    parts = []
    for item in rich_text:
        if not isinstance(item, dict):
            continue
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        parts.append(str(text))
    return "".join(parts)


def parse_property(payload: Dict[str, Any]) -> Optional[PropertyValue]:
    """Convert one Notion property object into a typed value; unsupported types yield None."""
    prop_type = payload.get("type")
    raw = payload.get(prop_type) if isinstance(prop_type, str) else None

    if prop_type in ("title", "rich_text"):
        return StringValue(plain_text(raw))
    if prop_type in ("url", "email", "phone_number"):
        return StringValue(raw or "")
    if prop_type == "number":
        if raw is None:
            return None
        return NumberValue(float(raw))
    if prop_type == "checkbox":
        return BoolValue(bool(raw))
    if prop_type in ("select", "status"):
        if not raw:
            return None
        return SelectValue(str(raw.get("name", "")))
    if prop_type == "multi_select":
        return ListValue(tuple(str(option.get("name", "")) for option in raw or [] if isinstance(option, dict)))
    if prop_type == "date":
        start = raw.get("start") if isinstance(raw, dict) else None
        if not start:
            return None
        return StringValue(str(start))
    return None


def parse_block(payload: Dict[str, Any]) -> Block:
    block_type = str(payload.get("type", ""))
    content = payload.get(block_type)
    if not isinstance(content, dict):
        content = {}
    language = content.get("language") if block_type == "code" else None
    return Block(
        id=str(payload.get("id", "")),
        type=block_type,
        text=plain_text(content.get("rich_text")),
        language=language,
    )


def parse_page(payload: Dict[str, Any]) -> Page:
    properties: Dict[str, PropertyValue] = {}
    for name, prop_payload in (payload.get("properties") or {}).items():
        if not isinstance(prop_payload, dict):
            continue
        value = parse_property(prop_payload)
        if value is not None:
            properties[name] = value
    return Page(
        id=str(payload["id"]),
        created_time=str(payload.get("created_time", "")),
        last_edited_time=str(payload.get("last_edited_time", "")),
        properties=properties,
    )


def _encode_value(value: PropertyValue) -> dict:
    if isinstance(value, ListValue):
        return {"kind": value.kind, "value": list(value.value)}
    return {"kind": value.kind, "value": value.value}


def _decode_value(payload: dict) -> PropertyValue:
    kind = payload["kind"]
    raw = payload["value"]
    if kind == "string":
        return StringValue(str(raw))
    if kind == "number":
        return NumberValue(float(raw))
    if kind == "bool":
        return BoolValue(bool(raw))
    if kind == "select":
        return SelectValue(str(raw))
    if kind == "list":
        return ListValue(tuple(str(item) for item in raw))
    raise ValueError(f"Unknown property value kind: {kind}")


def page_to_dict(page: Page) -> dict:
    payload: Dict[str, Any] = {
        "id": page.id,
        "created_time": page.created_time,
        "last_edited_time": page.last_edited_time,
        "properties": {name: _encode_value(value) for name, value in page.properties.items()},
    }
    if page.blocks:
        payload["blocks"] = [
            {"id": block.id, "type": block.type, "text": block.text, "language": block.language}
            for block in page.blocks
        ]
    return payload


def page_from_dict(payload: dict) -> Page:
    blocks: List[Block] = []
    for block_payload in payload.get("blocks", []):
        blocks.append(
            Block(
                id=block_payload["id"],
                type=block_payload["type"],
                text=block_payload.get("text", ""),
                language=block_payload.get("language"),
            )
        )
    return Page(
        id=payload["id"],
        created_time=payload.get("created_time", ""),
        last_edited_time=payload.get("last_edited_time", ""),
        properties={name: _decode_value(value) for name, value in payload.get("properties", {}).items()},
        blocks=tuple(blocks),
    )
