from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from notion_as_mcp.config.models import LoggingSettings

_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG for day-to-day use.
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.internal", "asyncio")


def resolve_level(name: str) -> int:
    level = logging.getLevelNamesMapping().get(name.strip().upper())
    if level is None:
        raise ValueError(f"Invalid logging level: {name}")
    return level


def init_logging(settings: LoggingSettings) -> None:
    """
    Initialize process-wide logging.

    Logs go to stderr so that stdout stays free for protocol traffic. When a file path
    is configured, a daily rotating file handler is attached as well. Core components
    never call this; they log through `logging.getLogger(__name__)` or an injected logger.
    """

    level = resolve_level(settings.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    file_path = settings.file.path.strip()
    if not file_path:
        return

    try:
        file_path_obj = Path(file_path).expanduser()
        file_path_obj.parent.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            filename=str(file_path_obj),
            when="midnight",
            interval=1,
            backupCount=settings.file.rotation.backup_count,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError:
        root_logger.error(
            "File logging handler failed to initialize. path=%s",
            file_path,
            exc_info=True,
        )


__all__ = ["init_logging", "resolve_level"]
