# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Profile and notes commands."""

from __future__ import annotations

import argparse
import asyncio
from datetime import UTC, datetime

from ...core.exceptions import WotGraphException
from ...graph.identity import format_identity, normalize_identity
from ..output import output_error, output_result
from ..utils import add_relay_argument, make_session


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the profile and notes commands on the CLI parser."""
    profile_parser = subparsers.add_parser("profile", help="Show profile metadata for an identity")
    profile_parser.add_argument("identity", help="Identity (hex or npub)")
    profile_parser.add_argument("--format", choices=["json", "text"], default="json", help="Output format")
    add_relay_argument(profile_parser)
    profile_parser.set_defaults(func=cmd_profile)

    notes_parser = subparsers.add_parser("notes", help="Show recent notes by an identity")
    notes_parser.add_argument("identity", help="Identity (hex or npub)")
    notes_parser.add_argument("--pages", type=int, default=1, help="Pages to load (default: 1)")
    notes_parser.add_argument("--format", choices=["json", "text"], default="json", help="Output format")
    add_relay_argument(notes_parser)
    notes_parser.set_defaults(func=cmd_notes)


async def _profile(args: argparse.Namespace) -> int:
    identity = normalize_identity(args.identity)
    async with make_session(args) as session:
        profile = await session.profile(identity)
    if profile is None:
        output_error(f"No profile found for {format_identity(identity)}")
        return 1
    data = profile.to_dict()
    data["formatted"] = "\n".join(
        f"  {key}: {value}" for key, value in (("label", profile.label), *profile.to_dict().items()) if value
    )
    output_result(data, args.format)
    return 0


async def _notes(args: argparse.Namespace) -> int:
    identity = normalize_identity(args.identity)
    async with make_session(args) as session:
        pager = session.notes(identity)
        for _ in range(max(args.pages, 1)):
            await pager.load_more()
            if not pager.has_more:
                break
    notes = [n.to_dict() for n in pager.notes]
    formatted = "\n\n".join(
        f"[{datetime.fromtimestamp(n.created_at, UTC):%Y-%m-%d %H:%M}] {n.content}" for n in pager.notes
    )
    output_result({"notes": notes, "hasMore": pager.has_more, "formatted": formatted}, args.format)
    return 0


def cmd_profile(args: argparse.Namespace) -> int:
    """Print profile metadata for an identity."""
    try:
        return asyncio.run(_profile(args))
    except WotGraphException as e:
        output_error(e.message)
        return 1


def cmd_notes(args: argparse.Namespace) -> int:
    """Print notes for an identity, newest first."""
    try:
        return asyncio.run(_notes(args))
    except WotGraphException as e:
        output_error(e.message)
        return 1
