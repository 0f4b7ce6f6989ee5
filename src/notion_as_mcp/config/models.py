from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileRotationSettings(BaseModel):
    """Daily log rotation, applied through TimedRotatingFileHandler."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 7


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = ""
    rotation: FileRotationSettings = FileRotationSettings()


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "info"
    file: FileLoggingSettings = FileLoggingSettings()


class NotionSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    api_key: str
    database_id: str
    type_field: str = "Type"

    base_url: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"

    # Timeouts and retries
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    initial_backoff_seconds: float = Field(default=1.0, gt=0)
    max_retry_wait_seconds: float = Field(default=60.0, gt=0)

    page_size: int = Field(default=100, ge=1, le=100)

    @field_validator("api_key", "database_id")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


class CacheSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # TTL of entries promoted from the file tier into memory.
    ttl_seconds: float = Field(default=300.0, gt=0)
    # TTL of entries written by warm-up, refresh and live fetches.
    durable_ttl_seconds: float = Field(default=3600.0, gt=0)
    dir: str = "~/.cache/notion-as-mcp"

    refresh_interval_seconds: float = Field(default=300.0, gt=0)
    refresh_on_start: bool = True

    memory_max_items: int = Field(default=10000, ge=1)
    warm_timeout_seconds: float = Field(default=60.0, gt=0)
    snapshot_reuse_seconds: float = Field(default=5.0, ge=0)
    shutdown_grace_seconds: float = Field(default=10.0, gt=0)


class AppConfig(BaseModel):
    """
    Effective runtime configuration after applying all precedence rules.

    Precedence, lowest first: YAML file, `.env` file, process environment.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    logging: LoggingSettings = LoggingSettings()
    notion: NotionSettings
    cache: CacheSettings = CacheSettings()


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """Where the loader reads YAML, the .env file and environment overrides from."""

    yaml_path: str = "data/config/config.yaml"
    env_prefix: str = "APP__"
    dotenv_path: Optional[str] = "data/.env"
