"""Configuration schema and loading."""

from notion_as_mcp.config.loader import YamlConfigLoader
from notion_as_mcp.config.models import (
    AppConfig,
    CacheSettings,
    ConfigLoadRequest,
    LoggingSettings,
    NotionSettings,
)

__all__ = [
    "AppConfig",
    "CacheSettings",
    "ConfigLoadRequest",
    "LoggingSettings",
    "NotionSettings",
    "YamlConfigLoader",
]
