# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Web of Trust graph: data model, scoring, construction, queries and layout."""

from __future__ import annotations

from .builder import ExpansionResult, GraphBuilder, GraphExpander, apply_profiles, reconcile
from .identity import display_label, format_identity, hex_to_npub, normalize_identity, npub_to_hex
from .layout import ForceSettings, LayoutEngine, LayoutMode, LayoutResult
from .models import (
    DEFAULT_FILTERS,
    EdgeType,
    Graph,
    GraphEdge,
    GraphFilters,
    GraphNode,
    GraphStats,
    GraphView,
    Note,
    Profile,
    TrustFact,
    TrustPath,
)
from .paths import PathCounter
from .query import GraphQueryEngine, SortBy, export_csv, export_json, shortest_path, sort_nodes
from .scoring import DEFAULT_SCORING_CONFIG, ScoringConfig, TrustLevel, trust_level, trust_score

__all__ = [
    # Model
    "Graph",
    "GraphView",
    "GraphNode",
    "GraphEdge",
    "EdgeType",
    "Profile",
    "Note",
    "TrustFact",
    "TrustPath",
    "GraphFilters",
    "GraphStats",
    "DEFAULT_FILTERS",
    # Scoring
    "ScoringConfig",
    "DEFAULT_SCORING_CONFIG",
    "TrustLevel",
    "trust_score",
    "trust_level",
    # Construction
    "GraphBuilder",
    "GraphExpander",
    "ExpansionResult",
    "apply_profiles",
    "reconcile",
    "PathCounter",
    # Queries
    "GraphQueryEngine",
    "SortBy",
    "sort_nodes",
    "shortest_path",
    "export_json",
    "export_csv",
    # Layout
    "LayoutEngine",
    "LayoutMode",
    "LayoutResult",
    "ForceSettings",
    # Identity
    "normalize_identity",
    "hex_to_npub",
    "npub_to_hex",
    "format_identity",
    "display_label",
]
