#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""
wotgraph CLI - explore a Nostr Web of Trust from the terminal.

Commands:
  wotgraph graph <root>             Build, expand and print a trust graph
  wotgraph score <distance> [paths] Evaluate the trust formula
  wotgraph profile <identity>       Show profile metadata
  wotgraph notes <identity>         Show recent notes
"""

from __future__ import annotations

import argparse
import sys

from ..core.config import get_config
from ..core.exceptions import ConfigException
from ..core.logging import configure_logging
from .commands import COMMAND_MODULES
from .output import output_error


def app() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wotgraph",
        description="Explore a Nostr Web of Trust",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  wotgraph graph npub1...                        Direct follows with trust scores
  wotgraph graph npub1... --expand-depth 2       Also expand every direct follow
  wotgraph graph <hex> --min-trust 0.5 --format text
  wotgraph score 2 3                             Trust at distance 2 with 3 paths
  wotgraph profile npub1...                      Profile metadata
  wotgraph notes npub1... --pages 2              Two pages of notes
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for module in COMMAND_MODULES:
        module.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = app()
    args = parser.parse_args(argv)

    try:
        config = get_config()
    except ConfigException as e:
        output_error(f"{e.message} ({', '.join(e.missing_vars)})")
        return 1
    configure_logging(level="DEBUG" if args.verbose else config.log_level)

    handler = getattr(args, "func", None)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
