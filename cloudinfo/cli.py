"""Command-line interface for cloudinfo."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .config import CloudInfoConfig, load_config
from .logging import configure_logging
from .resolver import MetadataResolver, Resolution

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudinfo", description="Identify the cloud this host is running on"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="Print the host metadata as JSON")
    show_parser.add_argument(
        "--compact", action="store_true", help="Print JSON on a single line"
    )

    subparsers.add_parser("location", help="Print the host location string")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


async def _resolve(config: CloudInfoConfig) -> Resolution:
    resolver = MetadataResolver(config.metadata, dmi_path=config.dmi.path)
    return await resolver.load()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(
        config.logging.level,
        log_path=config.logging.path,
        log_network=config.logging.log_network,
    )

    if args.command == "show":
        resolution = asyncio.run(_resolve(config))
        indent = None if args.compact else 4
        print(json.dumps(resolution.info.as_dict(), indent=indent))
        if not resolution.ok:
            LOGGER.warning("Metadata is incomplete: %s", resolution.error)
            return 1
        return 0

    if args.command == "location":
        resolution = asyncio.run(_resolve(config))
        print(resolution.info.location)
        if not resolution.ok:
            LOGGER.warning("Metadata is incomplete: %s", resolution.error)
            return 1
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
