from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from notion_as_mcp.app import Application
from notion_as_mcp.catalog.snapshots import CACHE_KEYS_BY_KIND
from notion_as_mcp.config import YamlConfigLoader
from notion_as_mcp.config.models import AppConfig, ConfigLoadRequest
from notion_as_mcp.errors import CatalogError
from notion_as_mcp.logging import init_logging
from notion_as_mcp.notion.parser import page_title

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notion-as-mcp", description="Notion-backed MCP cache runner")
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: serve
    serve_parser = subparsers.add_parser("serve", help="Warm the cache and keep it refreshed")
    serve_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Run for N seconds then exit (useful for smoke testing).",
    )

    # Command: warm
    subparsers.add_parser("warm", help="Populate the cache once and exit")

    # Command: list
    list_parser = subparsers.add_parser("list", help="Print the cached pages of one kind")
    list_parser.add_argument("kind", choices=sorted(CACHE_KEYS_BY_KIND))

    # Command: clear-cache
    subparsers.add_parser("clear-cache", help="Remove every cached collection")

    return parser


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Unsupported on Windows event loops.
            return


async def _serve(app: Application, args: argparse.Namespace) -> int:
    stop_requested = asyncio.Event()
    _install_signal_handlers(stop_requested)

    await app.start()
    logger.info("Serving cached collections. keys=%s", app.refresh.active_keys())
    try:
        await asyncio.wait_for(stop_requested.wait(), timeout=args.run_seconds)
        logger.info("Shutdown requested.")
    except asyncio.TimeoutError:
        logger.info("Run time elapsed. run_seconds=%s", args.run_seconds)
    return 0


async def _warm(app: Application) -> int:
    results = await app.warm()
    failed = [key for key, ok in results.items() if not ok]
    if failed:
        logger.error("Cache warm-up failed. keys=%s", failed)
        return 1
    logger.info("Cache warm-up completed. keys=%s", sorted(results))
    return 0


async def _list(app: Application, kind: str) -> int:
    try:
        pages = await app.catalog.list_pages(kind)
    except CatalogError as e:
        logger.error("Failed to list pages. kind=%s error=%s", kind, e)
        return 1
    for page in pages:
        print(f"{page.id}\t{page_title(page)}")
    return 0


async def _clear_cache(app: Application) -> int:
    await app.cache.clear()
    logger.info("Cache cleared.")
    return 0


async def _main_async() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    config = await _load_config(args)
    init_logging(config.logging)
    logger.info("Starting notion-as-mcp. command=%s database_id=%s", args.command, config.notion.database_id)

    app = Application(config)
    try:
        if args.command == "serve":
            return await _serve(app, args)
        if args.command == "warm":
            return await _warm(app)
        if args.command == "list":
            return await _list(app, args.kind)
        if args.command == "clear-cache":
            return await _clear_cache(app)
        parser.error(f"Unknown command: {args.command}")
        return 2
    finally:
        await app.stop()


def main() -> None:
    try:
        sys.exit(asyncio.run(_main_async()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
