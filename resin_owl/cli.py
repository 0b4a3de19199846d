"""Command-line interface for resin-owl."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from . import constants
from .backends import BackendContext
from .config import ResinOwlConfig, load_config
from .core.models import PrinterStatus
from .errors import BackendError
from .logging import configure_logging
from .status_poller import StatusPoller

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=constants.APP_NAME, description="Diagnostics for resin printer engines"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )
    subparsers.add_parser("status", help="Fetch one status snapshot and print it")

    watch_parser = subparsers.add_parser(
        "watch", help="Poll status and print one line per snapshot"
    )
    watch_parser.add_argument(
        "--count",
        type=int,
        default=0,
        help="Stop after this many snapshots (default: run until interrupted)",
    )

    files_parser = subparsers.add_parser("files", help="List files on the engine")
    files_parser.add_argument("--location", default="Local")
    files_parser.add_argument("--page-size", type=int, default=20)
    files_parser.add_argument("--page", type=int, default=0)

    return parser


def format_status_line(snapshot: dict[str, Any]) -> str:
    status = PrinterStatus.from_dict(snapshot)
    label = status.display_label(transitional_cancel=status.cancel_latched)
    parts = [label]
    if status.file_name:
        parts.append(status.file_name)
    if status.layer is not None and status.layer_count:
        parts.append(f"layer {status.layer}/{status.layer_count}")
        parts.append(f"{status.progress:.0%}")
    parts.append(f"z={status.z:.3f}mm")
    return " | ".join(parts)


async def _show_status(context: BackendContext) -> int:
    snapshot = await context.client.get_status()
    print(json.dumps(snapshot, indent=2, sort_keys=True))
    print(format_status_line(snapshot))
    return 0


async def _watch(context: BackendContext, count: int) -> int:
    done = asyncio.Event()
    seen = 0

    def _on_status(snapshot: dict[str, Any]) -> None:
        nonlocal seen
        seen += 1
        print(format_status_line(snapshot), flush=True)
        if count and seen >= count:
            done.set()

    poller = StatusPoller(
        context.client,
        _on_status,
        interval_seconds=context.config.status.poll_interval_seconds,
    )
    poller.start()
    try:
        await done.wait()
    finally:
        await poller.stop()
    return 0


async def _list_files(
    context: BackendContext, location: str, page_size: int, page: int
) -> int:
    listing = await context.client.list_items(location, page_size, page)
    for directory in listing.get("dirs") or []:
        print(f"{directory.get('path', '')}/")
    for entry in listing.get("files") or []:
        file_data = entry.get("file_data") or {}
        print(f"{file_data.get('path', '')}\t{entry.get('print_time', 0)}")
    return 0


async def _run(config: ResinOwlConfig, args: argparse.Namespace) -> int:
    async with BackendContext.from_config(config) as context:
        if args.command == "status":
            return await _show_status(context)
        if args.command == "watch":
            return await _watch(context, args.count)
        if args.command == "files":
            return await _list_files(context, args.location, args.page_size, args.page)
    LOGGER.error("Unknown command: %s", args.command)
    return 1


def show_config(config: ResinOwlConfig) -> None:
    print(f"Configuration loaded from {config.path!s}\n")
    for section in config.raw.sections():
        print(f"[{section}]")
        for key, value in config.raw[section].items():
            print(f"{key} = {value}")
        print()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "show-config":
        show_config(config)
        return 0

    configure_logging(
        config.logging.level,
        log_path=config.logging.path,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
        log_network=config.logging.log_network,
    )

    try:
        return asyncio.run(_run(config, args))
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    except BackendError as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
