# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Graph command: build, expand and print a filtered Web of Trust."""

from __future__ import annotations

import argparse
import asyncio
import logging

from ...core.exceptions import WotGraphException
from ...graph.models import GraphFilters
from ...graph.query import SortBy, describe, export_csv, sort_nodes
from ...graph.scoring import trust_level
from ...session import WotSession
from ..output import output_error, output_result
from ..utils import add_relay_argument, make_session

logger = logging.getLogger(__name__)


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the graph command on the CLI parser."""
    graph_parser = subparsers.add_parser("graph", help="Build and print a Web of Trust graph")
    graph_parser.add_argument("root", help="Root identity (hex or npub)")
    graph_parser.add_argument(
        "--expand-depth",
        type=int,
        default=1,
        help="Expand every node closer than this distance (default: 1, only the root's follows)",
    )
    graph_parser.add_argument("--min-trust", type=float, default=0.0, help="Minimum trust score (0-1)")
    graph_parser.add_argument("--max-distance", type=int, default=3, help="Maximum distance shown")
    graph_parser.add_argument("--mutuals-only", action="store_true", help="Only show mutual follows")
    graph_parser.add_argument("--search", default="", help="Filter by label or identity substring")
    graph_parser.add_argument(
        "--sort",
        choices=[s.value for s in SortBy],
        default=SortBy.TRUST.value,
        help="Node order for text output",
    )
    graph_parser.add_argument("--format", choices=["json", "csv", "text"], default="json", help="Output format")
    add_relay_argument(graph_parser)
    graph_parser.set_defaults(func=cmd_graph)


async def _build(session: WotSession, root: str, expand_depth: int) -> None:
    graph = await session.build_initial_graph(root)
    for depth in range(1, expand_depth):
        frontier = [n.identity for n in graph.nodes if n.distance == depth]
        logger.info(f"Expanding {len(frontier)} nodes at distance {depth}")
        for identity in frontier:
            await session.expand_node(identity)
    await session.wait_background()


def _format_text(session: WotSession, filters: GraphFilters, sort_by: str) -> str:
    graph = session.graph
    view = session.view(filters)
    stats = session.stats(filters)
    lines = [
        f"Web of Trust for {graph.root.label}",
        "─" * 40,
        f"  Nodes: {stats.total_nodes}  Edges: {stats.total_edges}  Mutuals: {stats.mutual_count}",
        f"  Avg trust: {stats.avg_trust_score:.2f}  Max distance: {stats.max_distance}",
        "",
    ]
    for node in sort_nodes(graph, [n for n in view.nodes if not n.is_root], sort_by, session.scoring):
        score = graph.trust_score(node, session.scoring)
        mutual = " ⇄" if node.is_mutual else ""
        lines.append(
            f"  {score:.2f} {trust_level(score).value:<9} d={node.distance} paths={node.path_count} "
            f"{node.label}{mutual}"
        )
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> int:
    filters = GraphFilters(
        min_trust_score=args.min_trust,
        max_distance=args.max_distance,
        show_mutuals_only=args.mutuals_only,
        search_query=args.search,
    )
    async with make_session(args) as session:
        await _build(session, args.root, args.expand_depth)
        if args.format == "csv":
            print(export_csv(session.view(filters), session.scoring), end="")
        elif args.format == "text":
            output_result({"formatted": _format_text(session, filters, args.sort)}, "text")
        else:
            output_result(describe(session.view(filters), session.scoring))
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    """Build the graph for a root identity and print the filtered view."""
    try:
        return asyncio.run(_run(args))
    except WotGraphException as e:
        output_error(e.message)
        return 1
