"""Tests for LayoutEngine and layout helpers."""

from __future__ import annotations

import math

import pytest
from fakes import ALICE, BOB, CAROL, ROOT, make_pk

from wotgraph.graph.builder import GraphBuilder, GraphExpander
from wotgraph.graph.layout import (
    ForceSettings,
    LayoutEngine,
    LayoutMode,
    bounding_box,
    clear_fixed_positions,
    fit_zoom,
    fix_root_position,
    initial_positions,
    radial_layout,
)
from wotgraph.graph.models import Graph, GraphNode
from wotgraph.graph.query import GraphQueryEngine


@pytest.fixture
def graph() -> Graph:
    g = GraphBuilder().build(ROOT, [ALICE, BOB])
    GraphExpander().expand(g, ALICE, [CAROL])
    return g


class TestRadialLayout:
    def test_root_pinned_at_centre(self, graph):
        nodes = radial_layout(graph.nodes, 800, 600)
        root = nodes[0]
        assert (root.x, root.y, root.fx, root.fy) == (400, 300, 400, 300)

    def test_rings_by_distance(self, graph):
        nodes = {n.identity: n for n in radial_layout(graph.nodes, 800, 800)}
        spacing = 100  # min(800, 800) / 8
        for identity in (ALICE, BOB, CAROL):
            node = nodes[identity]
            radius = math.hypot(node.x - 400, node.y - 400)
            assert radius == pytest.approx(node.distance * spacing)
            assert (node.fx, node.fy) == (node.x, node.y)

    def test_first_node_of_ring_at_top(self, graph):
        alice = radial_layout(graph.nodes, 800, 800)[1]
        assert alice.x == pytest.approx(400)
        assert alice.y == pytest.approx(300)

    def test_interleaved_rings_evenly_spaced(self):
        g = Graph(ROOT)
        for n in range(40):
            g.add_node(make_pk(0x1000 + n), distance=1 + n % 2)
        nodes = radial_layout(g.nodes, 800, 800)
        for distance in (1, 2):
            ring = [n for n in nodes if n.distance == distance]
            assert len(ring) == 20
            for slot, node in enumerate(ring):
                angle = math.atan2(node.y - 400, node.x - 400)
                expected = slot * (2 * math.pi / 20) - math.pi / 2
                assert math.cos(angle) == pytest.approx(math.cos(expected))
                assert math.sin(angle) == pytest.approx(math.sin(expected))

    def test_graph_not_mutated(self, graph):
        radial_layout(graph.nodes, 800, 600)
        assert all(n.x is None for n in graph.nodes)


class TestInitialPositions:
    def test_seeded_and_jittered(self, graph):
        import random

        first = initial_positions(graph.nodes, 800, 600, random.Random(1))
        second = initial_positions(graph.nodes, 800, 600, random.Random(1))
        assert [(n.x, n.y) for n in first] == [(n.x, n.y) for n in second]
        for node in first[1:]:
            radius = math.hypot(node.x - 400, node.y - 300)
            assert node.distance * 100 - 25 <= radius <= node.distance * 100 + 25
        assert first[0].fx is None


class TestHelpers:
    def test_clear_and_fix(self, graph):
        pinned = radial_layout(graph.nodes, 800, 600)
        cleared = clear_fixed_positions(pinned)
        assert all(n.fx is None and n.fy is None for n in cleared)
        fixed = fix_root_position(cleared, 10, 20)
        assert (fixed[0].fx, fixed[0].fy) == (10, 20)
        assert fixed[1].fx is None

    def test_bounding_box(self):
        nodes = [
            GraphNode(identity=ROOT, distance=0, is_root=True, x=0, y=0),
            GraphNode(identity=ALICE, distance=1, x=100, y=-50),
            GraphNode(identity=BOB, distance=1),
        ]
        box = bounding_box(nodes)
        assert (box.min_x, box.max_x, box.min_y, box.max_y) == (0, 100, -50, 0)
        assert (box.width, box.height) == (100, 50)

    def test_bounding_box_empty(self):
        assert bounding_box([]).width == 0

    def test_fit_zoom(self):
        nodes = [
            GraphNode(identity=ROOT, distance=0, is_root=True, x=0, y=0),
            GraphNode(identity=ALICE, distance=1, x=1000, y=500),
        ]
        zoom = fit_zoom(nodes, 600, 400, padding=50)
        assert zoom.scale == pytest.approx(0.5)
        assert zoom.translate_x == pytest.approx(300 - 500 * 0.5)
        assert zoom.translate_y == pytest.approx(200 - 250 * 0.5)

    def test_fit_zoom_capped(self):
        nodes = [
            GraphNode(identity=ROOT, distance=0, is_root=True, x=0, y=0),
            GraphNode(identity=ALICE, distance=1, x=10, y=10),
        ]
        assert fit_zoom(nodes, 800, 600).scale == 2.0

    def test_fit_zoom_degenerate(self, graph):
        assert fit_zoom(graph.nodes, 800, 600).scale == 1.0


class TestLayoutEngine:
    def test_radial_mode(self, graph):
        result = LayoutEngine(800, 600).layout(graph, LayoutMode.RADIAL)
        assert result.positions()[ROOT] == (400, 300)
        assert len(result.edges) == len(graph.edges)

    def test_force_mode_deterministic(self, graph):
        engine = LayoutEngine(800, 600, seed=7)
        first = engine.layout(graph, "force").positions()
        second = engine.layout(graph, "force").positions()
        assert first == second

    def test_force_mode_root_pinned_and_nodes_spread(self, graph):
        result = LayoutEngine(800, 600).layout(graph)
        positions = result.positions()
        assert positions[ROOT] == (400, 300)
        others = [positions[i] for i in (ALICE, BOB, CAROL)]
        assert all(math.isfinite(x) and math.isfinite(y) for x, y in others)
        assert len(set(others)) == 3
        for x, y in others:
            assert math.hypot(x - 400, y - 300) > 1

    def test_layout_of_filtered_view(self, graph):
        view = GraphQueryEngine().filter(graph)
        result = LayoutEngine().layout(view, LayoutMode.RADIAL)
        assert {n.identity for n in result.nodes} == view.identities()
        assert result.to_dict()["mode"] == "radial"

    def test_fit(self, graph):
        engine = LayoutEngine(800, 600)
        result = engine.layout(graph, LayoutMode.RADIAL)
        assert 0 < engine.fit(result).scale <= 2.0

    def test_invalid_area(self):
        with pytest.raises(ValueError):
            LayoutEngine(0, 600)


class TestForceSettings:
    def test_presets(self):
        assert ForceSettings.for_mode("force").link_distance == 80
        radial = ForceSettings.for_mode(LayoutMode.RADIAL, iterations=5)
        assert (radial.link_distance, radial.charge_strength, radial.center_strength, radial.collision_radius) == (
            60,
            -200,
            0.05,
            20,
        )
        assert radial.iterations == 5
