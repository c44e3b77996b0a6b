# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""wotgraph - Nostr Web of Trust graph core.

Builds a social graph rooted at one identity, annotates every other
identity with hop distance, path count and a derived trust score, and
answers the queries a visualization needs.

Architecture:
  Relays (redundant, unreliable)
    → RelayAggregator (fan-out, dedup, deadline)
    → FactCache (profiles, trust facts; cache-first)
    → GraphBuilder / GraphExpander (arena graph, path counts)
    → GraphQueryEngine (filters, stats) → LayoutEngine (coordinates)

WotSession owns all of it for one exploration. CLI entry point: ``wotgraph``.
"""

__version__ = "0.1.0"

from .cache import FactCache
from .core import WotGraphException, get_config
from .graph import (
    DEFAULT_FILTERS,
    DEFAULT_SCORING_CONFIG,
    Graph,
    GraphBuilder,
    GraphExpander,
    GraphFilters,
    GraphQueryEngine,
    LayoutEngine,
    PathCounter,
    ScoringConfig,
    trust_score,
)
from .relay import RelayAggregator
from .session import WotSession

__all__ = [
    "__version__",
    "WotSession",
    "RelayAggregator",
    "FactCache",
    "Graph",
    "GraphBuilder",
    "GraphExpander",
    "PathCounter",
    "GraphQueryEngine",
    "LayoutEngine",
    "GraphFilters",
    "DEFAULT_FILTERS",
    "ScoringConfig",
    "DEFAULT_SCORING_CONFIG",
    "trust_score",
    "WotGraphException",
    "get_config",
]
