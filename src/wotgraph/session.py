# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Session context: the one object that owns a Web of Trust exploration.

A WotSession holds the configuration, relay aggregator, fact cache,
optional trust oracle, the current graph and any background work.
Everything a caller does goes through it, and closing it cancels
outstanding tasks and persists the cache.

Example:
    async with WotSession() as session:
        graph = await session.build_initial_graph(my_npub)
        await session.expand_node(alice_pk)
        view = session.view(GraphFilters(min_trust_score=0.3))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from .cache.fact_cache import FactCache
from .core.config import CoreSettings, get_config
from .core.exceptions import ValidationException
from .core.logging import correlation_context
from .graph.builder import ExpansionResult, GraphBuilder, GraphExpander, apply_profiles, reconcile
from .graph.identity import normalize_identity
from .graph.layout import LayoutEngine, LayoutMode, LayoutResult
from .graph.models import DEFAULT_FILTERS, Graph, GraphFilters, GraphStats, GraphView, Profile
from .graph.paths import PathCounter
from .graph.query import GraphQueryEngine
from .graph.scoring import DEFAULT_SCORING_CONFIG, ScoringConfig
from .oracle import TrustOracle, TrustResolver
from .relay.aggregator import RelayAggregator
from .relay.fetchers import NotesPager, fetch_follows, fetch_profiles

logger = logging.getLogger(__name__)


class WotSession:
    """Owns one user's graph exploration and everything it needs."""

    def __init__(
        self,
        config: CoreSettings | None = None,
        aggregator: RelayAggregator | None = None,
        cache: FactCache | None = None,
        oracle: TrustOracle | None = None,
        scoring: ScoringConfig | None = None,
        background_profiles: bool = False,
    ):
        self.config = config or get_config()
        self.aggregator = aggregator or RelayAggregator(
            self.config.relay_urls, default_deadline=self.config.relay_deadline
        )
        self.cache = cache or FactCache.from_config()
        self.resolver = TrustResolver(oracle, self.cache) if oracle is not None else None
        self._scoring = scoring
        self.background_profiles = background_profiles

        self.graph: Graph | None = None
        self.expanded: set[str] = set()
        self.expanding: set[str] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    async def __aenter__(self) -> WotSession:
        self.cache.load()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cancel background work and persist the cache. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self.cache.save()
        logger.debug("Session closed")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def scoring(self) -> ScoringConfig:
        if self._scoring is not None:
            return self._scoring
        if self.resolver is not None:
            return self.resolver.scoring_config()
        return DEFAULT_SCORING_CONFIG

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def _require_graph(self) -> Graph:
        if self.graph is None:
            raise ValidationException("no graph has been built in this session", field="graph")
        return self.graph

    def _spawn(self, coro: Any, name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_background(self) -> None:
        """Wait for background profile loads started so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Graph construction
    # -------------------------------------------------------------------------

    async def _follows(self, identity: str) -> list[str]:
        if self.resolver is not None:
            follows = await self.resolver.follows(identity)
            if follows:
                return [normalize_identity(f) for f in follows]
        return await fetch_follows(self.aggregator, identity)

    async def _load_profiles(self, identities: Iterable[str]) -> dict[str, Profile]:
        profiles = await fetch_profiles(
            self.aggregator,
            identities,
            cache=self.cache,
            deadline=self.config.profile_deadline,
            batch_size=self.config.profile_batch_size,
        )
        if self.graph is not None:
            apply_profiles(self.graph, profiles)
        return profiles

    async def _reconcile(self, identities: list[str]) -> None:
        if self.resolver is None or not identities or self.graph is None:
            return
        facts = await self.resolver.resolve(identities)
        changed = reconcile(self.graph, facts)
        if changed:
            logger.debug(f"Oracle raised path counts for {len(changed)} nodes")

    async def build_initial_graph(self, root: str) -> Graph:
        """Fetch the root's follows and profiles and build a fresh graph.

        Replaces any graph the session already holds.

        Raises:
            ValidationException: If ``root`` is not a valid identity.
        """
        root_id = normalize_identity(root)
        with correlation_context():
            follows = await self._follows(root_id)
            profiles = await fetch_profiles(
                self.aggregator,
                [root_id, *follows],
                cache=self.cache,
                deadline=self.config.profile_deadline,
                batch_size=self.config.profile_batch_size,
            )
            self.graph = GraphBuilder(self.scoring).build(root_id, follows, profiles)
            self.expanded = {root_id}
            self.expanding = set()
            await self._reconcile([n.identity for n in self.graph.nodes if not n.is_root])
            logger.info(f"Initial graph for {root_id[:8]}: {len(self.graph.nodes)} nodes")
        return self.graph

    async def expand_node(self, identity: str) -> ExpansionResult | None:
        """Merge one node's follows into the graph.

        Returns None without doing anything if the node is already expanded
        (or being expanded) or sits at ``max_expand_distance`` or beyond.

        Raises:
            ValidationException: If no graph exists or the node is not in it.
        """
        graph = self._require_graph()
        node_id = normalize_identity(identity)
        node = graph.get(node_id)
        if node is None:
            raise ValidationException("cannot expand a node outside the graph", field="identity", value=node_id)
        if node_id in self.expanded or node_id in self.expanding:
            return None
        if node.distance >= self.config.max_expand_distance:
            logger.debug(f"Not expanding {node_id[:8]} at distance {node.distance}")
            return None

        self.expanding.add(node_id)
        try:
            with correlation_context():
                follows = await fetch_follows(self.aggregator, node_id)
                result = GraphExpander().expand(graph, node_id, follows)
                self.expanded.add(node_id)
                await self._reconcile(result.added_nodes + result.reinforced)
                if result.added_nodes:
                    if self.background_profiles:
                        self._spawn(self._load_profiles(result.added_nodes), name=f"profiles:{node_id[:8]}")
                    else:
                        await self._load_profiles(result.added_nodes)
        finally:
            self.expanding.discard(node_id)
        return result

    def apply_profiles(self, profiles: dict[str, Profile] | Iterable[Profile]) -> list[str]:
        """Relabel nodes with newly arrived profiles and cache them."""
        graph = self._require_graph()
        items = profiles.values() if isinstance(profiles, dict) else list(profiles)
        self.cache.profiles.put_batch({p.identity: p for p in items})
        return apply_profiles(graph, {p.identity: p for p in items})

    def rebuild_path_counts(self) -> int:
        graph = self._require_graph()
        return PathCounter(graph, max_depth=self.config.path_count_max_depth).rebuild_path_counts()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def view(self, filters: GraphFilters = DEFAULT_FILTERS) -> GraphView:
        return GraphQueryEngine(self.scoring).filter(self._require_graph(), filters)

    def stats(self, filters: GraphFilters | None = None) -> GraphStats:
        engine = GraphQueryEngine(self.scoring)
        graph = self._require_graph()
        return engine.stats(engine.filter(graph, filters) if filters is not None else graph)

    def layout(
        self,
        filters: GraphFilters = DEFAULT_FILTERS,
        mode: LayoutMode | str = LayoutMode.FORCE,
        width: float = 800.0,
        height: float = 600.0,
    ) -> LayoutResult:
        return LayoutEngine(width, height).layout(self.view(filters), mode)

    async def profile(self, identity: str) -> Profile | None:
        identity = normalize_identity(identity)
        profiles = await self._load_profiles([identity])
        return profiles.get(identity)

    def notes(self, identity: str) -> NotesPager:
        return NotesPager(
            self.aggregator,
            normalize_identity(identity),
            page_size=self.config.notes_page_size,
            deadline=self.config.notes_deadline,
        )
