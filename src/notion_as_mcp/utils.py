from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path


def format_rfc3339(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_rfc3339(value: str) -> datetime:
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


def timestamp_to_rfc3339(ts: float) -> str:
    return format_rfc3339(datetime.fromtimestamp(ts, tz=timezone.utc))


def rfc3339_to_timestamp(value: str) -> float:
    return parse_rfc3339(value).timestamp()


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + f".{os.getpid()}.tmp")
    tmp_path.write_bytes(data)
    tmp_path.replace(path)
