"""Tests for GraphQueryEngine and query helpers."""

from __future__ import annotations

import csv
import io
import json

import pytest
from fakes import ALICE, BOB, CAROL, DAVE, ROOT

from wotgraph.core.exceptions import NotFoundError
from wotgraph.graph.builder import GraphBuilder, GraphExpander
from wotgraph.graph.models import DEFAULT_FILTERS, EdgeType, Graph, GraphFilters, Profile
from wotgraph.graph.query import (
    CSV_COLUMNS,
    GraphQueryEngine,
    SortBy,
    describe,
    export_csv,
    export_json,
    get_neighbors,
    search_nodes,
    shortest_path,
    sort_nodes,
)


@pytest.fixture
def graph() -> Graph:
    """root -> alice (mutual), bob; alice -> carol; bob -> carol; carol -> dave; root -mute-> dave."""
    g = GraphBuilder().build(
        ROOT,
        [ALICE, BOB],
        profiles=[Profile(identity=ALICE, name="Alice"), Profile(identity=BOB, display_name="Bobby")],
        mutuals=[ALICE],
    )
    expander = GraphExpander()
    expander.expand(g, ALICE, [CAROL])
    expander.expand(g, BOB, [CAROL])
    expander.expand(g, CAROL, [DAVE])
    g.add_edge(ROOT, DAVE, EdgeType.MUTE)
    return g


@pytest.fixture
def engine() -> GraphQueryEngine:
    return GraphQueryEngine()


# ============================================================================
# Filtering
# ============================================================================


class TestFilter:
    """Tests for node and edge predicates."""

    def test_default_filters_keep_everything_but_mutes(self, engine, graph):
        view = engine.filter(graph)
        assert view.identities() == {ROOT, ALICE, BOB, CAROL, DAVE}
        assert all(e.type != EdgeType.MUTE for e in view.edges)
        assert len(view.edges) == len(graph.edges) - 1

    def test_min_trust(self, engine, graph):
        # carol: distance 2, 2 paths -> 0.55; dave: distance 3, 1 path -> 0.25
        view = engine.filter(graph, GraphFilters(min_trust_score=0.5))
        assert view.identities() == {ROOT, ALICE, BOB, CAROL}
        view = engine.filter(graph, GraphFilters(min_trust_score=0.6))
        assert view.identities() == {ROOT, ALICE, BOB}

    def test_root_always_passes(self, engine, graph):
        view = engine.filter(graph, GraphFilters(min_trust_score=1.0, max_distance=0, search_query="zzz"))
        assert view.identities() == {ROOT}
        assert view.edges == []

    def test_max_distance(self, engine, graph):
        assert engine.filter(graph, GraphFilters(max_distance=1)).identities() == {ROOT, ALICE, BOB}

    def test_mutuals_only(self, engine, graph):
        view = engine.filter(graph, GraphFilters(show_mutuals_only=True))
        assert view.identities() == {ROOT, ALICE}
        # Mutual edges are shown even with follows hidden
        hidden = engine.filter(graph, GraphFilters(show_mutuals_only=True, show_follows=False))
        assert [e.type for e in hidden.edges] == [EdgeType.MUTUAL]

    def test_search_label_and_identity(self, engine, graph):
        assert engine.filter(graph, GraphFilters(search_query="bob")).identities() == {ROOT, BOB}
        assert engine.filter(graph, GraphFilters(search_query=CAROL[-6:].upper())).identities() == {ROOT, CAROL}

    def test_edge_toggles(self, engine, graph):
        no_follows = engine.filter(graph, GraphFilters(show_follows=False, show_mutes=True))
        assert {e.type for e in no_follows.edges} == {EdgeType.MUTUAL, EdgeType.MUTE}

    def test_edges_need_both_endpoints(self, engine, graph):
        view = engine.filter(graph, GraphFilters(max_distance=1))
        for edge in view.edges:
            assert edge.source in view.node_indices
            assert edge.target in view.node_indices

    def test_idempotent(self, engine, graph):
        filters = GraphFilters(min_trust_score=0.3, show_mutes=True, search_query="")
        once = engine.filter(graph, filters)
        twice = engine.filter(once, filters)
        assert twice.node_indices == once.node_indices
        assert twice.edge_indices == once.edge_indices

    def test_does_not_mutate_graph(self, engine, graph):
        before = graph.to_dict()
        engine.filter(graph, GraphFilters(min_trust_score=0.9))
        assert graph.to_dict() == before

    def test_score_recomputed_from_current_path_count(self, engine, graph):
        filters = GraphFilters(min_trust_score=0.3)
        assert DAVE not in engine.filter(graph, filters).identities()
        graph.node(DAVE).path_count = 5
        assert DAVE in engine.filter(graph, filters).identities()


# ============================================================================
# Statistics
# ============================================================================


class TestStats:
    def test_stats(self, engine, graph):
        stats = engine.stats(graph)
        assert stats.total_nodes == 5
        assert stats.total_edges == 6
        assert stats.max_distance == 3
        assert stats.mutual_count == 1
        # alice 1.0, bob 1.0, carol 0.55, dave 0.25
        assert stats.avg_trust_score == pytest.approx((1.0 + 1.0 + 0.55 + 0.25) / 4)

    def test_stats_of_filtered_view(self, engine, graph):
        stats = engine.stats(engine.filter(graph, GraphFilters(max_distance=1)))
        assert stats.total_nodes == 3
        assert stats.avg_trust_score == 1.0

    def test_root_only(self, engine):
        stats = engine.stats(Graph(ROOT))
        assert stats.total_nodes == 1
        assert stats.avg_trust_score == 0.0
        assert stats.to_dict()["maxDistance"] == 0


# ============================================================================
# Helpers
# ============================================================================


class TestHelpers:
    def test_sort_by_trust(self, graph):
        ordered = sort_nodes(graph, graph.nodes[1:], SortBy.TRUST)
        assert [n.identity for n in ordered][-2:] == [CAROL, DAVE]

    def test_sort_by_distance_and_name(self, graph):
        assert sort_nodes(graph, graph.nodes, "distance")[0].identity == ROOT
        names = [n.label for n in sort_nodes(graph, [graph.node(BOB), graph.node(ALICE)], "name")]
        assert names == ["Alice", "Bobby"]

    def test_sort_recent_keeps_order(self, graph):
        assert sort_nodes(graph, graph.nodes, "recent") == graph.nodes

    def test_search_nodes(self, graph):
        assert [n.identity for n in search_nodes(graph.nodes, "ALI")] == [ALICE]
        assert len(search_nodes(graph.nodes, "")) == 5

    def test_neighbors_either_direction(self, graph):
        assert {n.identity for n in get_neighbors(graph, CAROL)} == {ALICE, BOB, DAVE}
        with pytest.raises(NotFoundError):
            get_neighbors(graph, "f" * 64)

    def test_shortest_path(self, graph):
        path = shortest_path(graph, DAVE)
        # The mute edge root -> dave is still an edge
        assert path.nodes == [ROOT, DAVE]
        path = shortest_path(graph, CAROL)
        assert path.nodes == [ROOT, ALICE, CAROL]
        assert path.distance == 2
        assert path.score == pytest.approx(0.55)

    def test_shortest_path_unreachable(self):
        g = Graph(ROOT)
        g.add_node(ALICE, distance=1)
        assert shortest_path(g, ALICE) is None
        assert shortest_path(g, ROOT).nodes == [ROOT]

    def test_export_json(self, engine, graph):
        data = json.loads(export_json(engine.filter(graph, DEFAULT_FILTERS)))
        assert {n["id"] for n in data["nodes"]} == {ROOT, ALICE, BOB, CAROL, DAVE}

    def test_export_csv(self, graph):
        rows = list(csv.reader(io.StringIO(export_csv(graph))))
        assert tuple(rows[0]) == CSV_COLUMNS
        carol = next(r for r in rows if r[0] == CAROL)
        assert carol[2:] == ["2", "2", "0.5500", "false"]
        alice = next(r for r in rows if r[0] == ALICE)
        assert alice[1] == "Alice"
        assert alice[-1] == "true"

    def test_describe_includes_stats(self, engine, graph):
        data = describe(engine.filter(graph))
        assert data["stats"]["totalNodes"] == 5
