# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Path counting from the root over the current edge set.

This is independent of the incrementally tracked ``path_count`` field and
is used to check or rebuild it after bulk loads.

Bidirectional edges propagate both ways. Edges into the root are ignored,
since the root always has exactly one path (itself).

If the part of the graph reachable from the root is acyclic the count is
exact: totals are accumulated in topological order. Otherwise simple paths
(no repeated node) are enumerated depth-first up to ``max_depth`` edges, so
counting always terminates and does not depend on traversal order.
"""

from __future__ import annotations

import logging
from collections import deque

from .models import Graph

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 4


class PathCounter:
    """Counts distinct directed paths from the root to each node.

    Example:
        >>> counter = PathCounter(graph)
        >>> counter.count(alice_pk)
        2
    """

    def __init__(self, graph: Graph, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {max_depth}")
        self.graph = graph
        self.max_depth = max_depth

    def _adjacency(self) -> list[set[int]]:
        adjacency: list[set[int]] = [set() for _ in self.graph.nodes]
        for edge in self.graph.edges:
            if edge.target != 0:
                adjacency[edge.source].add(edge.target)
            if edge.bidirectional and edge.source != 0:
                adjacency[edge.target].add(edge.source)
        return adjacency

    @staticmethod
    def _reachable(adjacency: list[set[int]]) -> list[int]:
        seen = {0}
        order = [0]
        queue = deque([0])
        while queue:
            current = queue.popleft()
            for nxt in sorted(adjacency[current]):
                if nxt not in seen:
                    seen.add(nxt)
                    order.append(nxt)
                    queue.append(nxt)
        return order

    @staticmethod
    def _topological_order(adjacency: list[set[int]], reachable: list[int]) -> list[int] | None:
        """Kahn's algorithm over the reachable subgraph; None if it has a cycle."""
        members = set(reachable)
        indegree = dict.fromkeys(reachable, 0)
        for node in reachable:
            for nxt in adjacency[node]:
                if nxt in members:
                    indegree[nxt] += 1

        queue = deque(n for n in reachable if indegree[n] == 0)
        order = []
        while queue:
            current = queue.popleft()
            order.append(current)
            for nxt in adjacency[current]:
                indegree[nxt] -= 1
                if indegree[nxt] == 0:
                    queue.append(nxt)
        return order if len(order) == len(reachable) else None

    def _count_dag(self, adjacency: list[set[int]], order: list[int]) -> list[int]:
        totals = [0] * len(adjacency)
        totals[0] = 1
        for node in order:
            for nxt in adjacency[node]:
                totals[nxt] += totals[node]
        return totals

    def _count_bounded(self, adjacency: list[set[int]]) -> list[int]:
        totals = [0] * len(adjacency)
        totals[0] = 1
        on_path = {0}
        # Iterative DFS: (node, remaining neighbours, depth)
        stack = [(0, iter(sorted(adjacency[0])), 0)]
        while stack:
            node, neighbours, depth = stack[-1]
            nxt = next(neighbours, None)
            if nxt is None:
                stack.pop()
                on_path.discard(node)
                continue
            if nxt in on_path:
                continue
            totals[nxt] += 1
            if depth + 1 < self.max_depth:
                on_path.add(nxt)
                stack.append((nxt, iter(sorted(adjacency[nxt])), depth + 1))
        return totals

    def count_all(self) -> dict[str, int]:
        """Path totals for every node reachable from the root."""
        adjacency = self._adjacency()
        reachable = self._reachable(adjacency)
        order = self._topological_order(adjacency, reachable)
        if order is not None:
            totals = self._count_dag(adjacency, order)
        else:
            logger.debug("Graph has cycles, counting simple paths up to depth %d", self.max_depth)
            totals = self._count_bounded(adjacency)
        return {self.graph.nodes[i].identity: totals[i] for i in reachable if totals[i] > 0}

    def count(self, identity: str) -> int:
        """Number of paths from the root to ``identity``; 0 if unreachable."""
        return self.count_all().get(identity, 0)

    def rebuild_path_counts(self) -> int:
        """Overwrite every non-root node's path_count with the computed total.

        Unreachable nodes are set to 1 so the path_count invariant holds.

        Returns:
            Number of nodes whose path_count changed
        """
        totals = self.count_all()
        changed = 0
        for node in self.graph.nodes:
            if node.is_root:
                continue
            value = max(1, totals.get(node.identity, 0))
            if node.path_count != value:
                node.path_count = value
                changed += 1
        return changed
