# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Shared helpers for CLI commands."""

from __future__ import annotations

import argparse

from ..core.config import CoreSettings, get_config
from ..relay.aggregator import RelayAggregator
from ..session import WotSession


def add_relay_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--relay",
        "-r",
        action="append",
        metavar="URL",
        help="Relay URL (repeatable; default: WOTGRAPH_RELAYS)",
    )


def settings_from_args(args: argparse.Namespace) -> CoreSettings:
    """Global settings, with --relay overriding the configured relay list."""
    config = get_config()
    relays = getattr(args, "relay", None)
    if relays:
        return config.model_copy(update={"relays": ",".join(relays)})
    return config


def make_session(args: argparse.Namespace) -> WotSession:
    config = settings_from_args(args)
    aggregator = RelayAggregator(config.relay_urls, default_deadline=config.relay_deadline)
    return WotSession(config=config, aggregator=aggregator)
