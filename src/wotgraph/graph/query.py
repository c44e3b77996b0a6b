# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Filtered views, statistics and lookups over a graph.

Nothing here mutates the graph. Trust scores are recomputed from each
node's current distance and path count on every call.
"""

from __future__ import annotations

import csv
import io
import logging
from collections import deque
from collections.abc import Iterable
from enum import StrEnum

from .identity import format_identity
from .models import DEFAULT_FILTERS, EdgeType, Graph, GraphFilters, GraphNode, GraphStats, GraphView, TrustPath
from .scoring import ScoringConfig

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("id", "label", "distance", "pathCount", "trustScore", "isMutual")


class SortBy(StrEnum):
    TRUST = "trust"
    DISTANCE = "distance"
    NAME = "name"
    RECENT = "recent"


def _as_view(source: Graph | GraphView) -> GraphView:
    return source.view() if isinstance(source, Graph) else source


def _label(node: GraphNode) -> str:
    return node.label or format_identity(node.identity)


def _matches(node: GraphNode, text: str) -> bool:
    query = text.lower()
    return query in _label(node).lower() or query in node.identity.lower()


class GraphQueryEngine:
    """Applies GraphFilters to a graph and summarises the result.

    Filtering a view that was itself produced with the same filters returns
    the same view.
    """

    def __init__(self, scoring: ScoringConfig | None = None):
        self.scoring = scoring

    def node_passes(self, graph: Graph, node: GraphNode, filters: GraphFilters = DEFAULT_FILTERS) -> bool:
        if node.is_root:
            return True
        if graph.trust_score(node, self.scoring) < filters.min_trust_score:
            return False
        if node.distance > filters.max_distance:
            return False
        if filters.show_mutuals_only and not node.is_mutual:
            return False
        if filters.search_query and not _matches(node, filters.search_query):
            return False
        return True

    @staticmethod
    def edge_type_enabled(edge_type: EdgeType, filters: GraphFilters) -> bool:
        if edge_type == EdgeType.FOLLOW:
            return filters.show_follows
        if edge_type == EdgeType.MUTE:
            return filters.show_mutes
        return True

    def filter(self, source: Graph | GraphView, filters: GraphFilters = DEFAULT_FILTERS) -> GraphView:
        """Nodes passing the node predicate and edges between them of enabled types."""
        view = _as_view(source)
        graph = view.graph

        kept_nodes = [i for i in view.node_indices if self.node_passes(graph, graph.nodes[i], filters)]
        kept = set(kept_nodes)
        kept_edges = []
        for i in view.edge_indices:
            edge = graph.edges[i]
            if edge.source not in kept or edge.target not in kept:
                continue
            if not self.edge_type_enabled(edge.type, filters):
                continue
            kept_edges.append(i)

        logger.debug(
            "Filtered %d/%d nodes, %d/%d edges",
            len(kept_nodes),
            len(view.node_indices),
            len(kept_edges),
            len(view.edge_indices),
        )
        return GraphView(graph, kept_nodes, kept_edges)

    def stats(self, source: Graph | GraphView) -> GraphStats:
        """Counts, mean trust of non-root nodes, max distance, mutual count."""
        view = _as_view(source)
        graph = view.graph
        nodes = view.nodes
        if not nodes:
            return GraphStats()

        scores = [graph.trust_score(n, self.scoring) for n in nodes if not n.is_root]
        return GraphStats(
            total_nodes=len(nodes),
            total_edges=len(view.edge_indices),
            avg_trust_score=sum(scores) / len(scores) if scores else 0.0,
            max_distance=max(n.distance for n in nodes),
            mutual_count=sum(1 for n in nodes if n.is_mutual),
        )


def sort_nodes(
    graph: Graph,
    nodes: Iterable[GraphNode],
    by: SortBy | str = SortBy.TRUST,
    scoring: ScoringConfig | None = None,
) -> list[GraphNode]:
    """Sort for list views: trust (high first), distance, name, or recent (as given)."""
    by = SortBy(by)
    items = list(nodes)
    if by == SortBy.TRUST:
        return sorted(items, key=lambda n: graph.trust_score(n, scoring), reverse=True)
    if by == SortBy.DISTANCE:
        return sorted(items, key=lambda n: n.distance)
    if by == SortBy.NAME:
        return sorted(items, key=lambda n: _label(n).lower())
    return items


def search_nodes(nodes: Iterable[GraphNode], text: str) -> list[GraphNode]:
    """Case-insensitive substring match on label or identity."""
    if not text:
        return list(nodes)
    return [n for n in nodes if _matches(n, text)]


def get_neighbors(graph: Graph, identity: str) -> list[GraphNode]:
    """Nodes connected to ``identity`` by an edge in either direction.

    Raises:
        NotFoundError: If the identity is not in the graph.
    """
    index = graph.index_of(identity)
    seen: dict[int, None] = {}
    for edge in graph.edges:
        if edge.source == index:
            seen.setdefault(edge.target)
        elif edge.target == index:
            seen.setdefault(edge.source)
    return [graph.nodes[i] for i in seen]


def shortest_path(graph: Graph, target: str, scoring: ScoringConfig | None = None) -> TrustPath | None:
    """Breadth-first route from the root to ``target`` for trust-path display.

    Bidirectional edges are walked both ways.

    Returns:
        The path, or None if the target is not reachable

    Raises:
        NotFoundError: If the target is not in the graph.
    """
    goal = graph.index_of(target)
    adjacency: dict[int, list[int]] = {}
    for edge in graph.edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
        if edge.bidirectional:
            adjacency.setdefault(edge.target, []).append(edge.source)

    parents: dict[int, int | None] = {0: None}
    queue = deque([0])
    while queue and goal not in parents:
        current = queue.popleft()
        for nxt in adjacency.get(current, []):
            if nxt not in parents:
                parents[nxt] = current
                queue.append(nxt)

    if goal not in parents:
        return None

    route = []
    step: int | None = goal
    while step is not None:
        route.append(graph.nodes[step].identity)
        step = parents[step]
    route.reverse()
    node = graph.nodes[goal]
    return TrustPath(nodes=route, distance=len(route) - 1, score=graph.trust_score(node, scoring))


def export_json(view: Graph | GraphView, scoring: ScoringConfig | None = None) -> str:
    return _as_view(view).to_json(scoring)


def export_csv(view: Graph | GraphView, scoring: ScoringConfig | None = None) -> str:
    """One row per node: id,label,distance,pathCount,trustScore,isMutual."""
    view = _as_view(view)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for node in view.nodes:
        writer.writerow(
            [
                node.identity,
                _label(node),
                node.distance,
                node.path_count,
                f"{view.graph.trust_score(node, scoring):.4f}",
                str(node.is_mutual).lower(),
            ]
        )
    return buffer.getvalue()


def describe(view: GraphView, scoring: ScoringConfig | None = None) -> dict:
    """View plus its statistics, as a JSON-ready dict."""
    data = view.to_dict(scoring)
    data["stats"] = GraphQueryEngine(scoring).stats(view).to_dict()
    return data

