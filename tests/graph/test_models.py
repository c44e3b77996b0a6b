"""Tests for the arena graph model."""

from __future__ import annotations

import pytest
from fakes import ALICE, BOB, CAROL, ROOT

from wotgraph.core.exceptions import NotFoundError, ValidationException
from wotgraph.graph.identity import hex_to_npub
from wotgraph.graph.models import EdgeType, Graph, GraphNode, Profile, TrustFact
from wotgraph.graph.scoring import ScoringConfig


@pytest.fixture
def graph() -> Graph:
    g = Graph(ROOT, root_label="root")
    g.add_node(ALICE, distance=1, label="alice")
    g.add_node(BOB, distance=2, path_count=3)
    g.add_edge(ROOT, ALICE)
    g.add_edge(ALICE, BOB)
    return g


class TestGraphNode:
    def test_root_invariant(self):
        with pytest.raises(ValidationException):
            GraphNode(identity=ALICE, distance=0)
        with pytest.raises(ValidationException):
            GraphNode(identity=ROOT, distance=1, is_root=True)

    def test_path_count_positive(self):
        with pytest.raises(ValidationException):
            GraphNode(identity=ALICE, distance=1, path_count=0)


class TestGraph:
    """Tests for Graph construction and invariants."""

    def test_root_created(self):
        g = Graph(ROOT)
        assert g.root.identity == ROOT
        assert g.root.is_root
        assert g.root.distance == 0
        assert g.root.path_count == 1
        assert len(g) == 1

    def test_lookup(self, graph):
        assert ALICE in graph
        assert graph.node(ALICE).label == "alice"
        assert graph.get(CAROL) is None
        with pytest.raises(NotFoundError):
            graph.node(CAROL)

    def test_duplicate_node_rejected(self, graph):
        with pytest.raises(ValidationException):
            graph.add_node(ALICE, distance=2)

    def test_non_root_distance_zero_rejected(self, graph):
        with pytest.raises(ValidationException):
            graph.add_node(CAROL, distance=0)

    def test_edge_requires_existing_endpoints(self, graph):
        with pytest.raises(ValidationException, match="target"):
            graph.add_edge(ALICE, CAROL)
        with pytest.raises(ValidationException, match="source"):
            graph.add_edge(CAROL, ALICE)

    def test_self_edge_rejected(self, graph):
        with pytest.raises(ValidationException):
            graph.add_edge(ALICE, ALICE)

    def test_edge_added_once_per_ordered_pair(self, graph):
        assert graph.add_edge(ROOT, ALICE) is None
        assert len(graph.edges) == 2
        # The reverse direction is a different pair
        assert graph.add_edge(ALICE, ROOT) is not None

    def test_edges_store_indices(self, graph):
        edge = graph.find_edge(ALICE, BOB)
        assert (edge.source, edge.target) == (1, 2)
        assert graph.endpoints(edge) == (ALICE, BOB)

    def test_trust_score_derived(self, graph):
        assert graph.trust_score(graph.root) == 1.0
        assert graph.trust_score(graph.node(ALICE)) == 1.0
        assert graph.trust_score(graph.node(BOB)) == pytest.approx(0.6)

    def test_trust_score_follows_path_count(self, graph):
        node = graph.node(BOB)
        node.path_count = 1
        assert graph.trust_score(node) == 0.5

    def test_edge_strength_mirrors_target(self, graph):
        edge = graph.find_edge(ALICE, BOB)
        assert graph.edge_strength(edge) == graph.trust_score(graph.node(BOB))

    def test_scoring_override(self, graph):
        flat = ScoringConfig(distance_weights={1: 0.2})
        assert graph.trust_score(graph.node(ALICE), flat) == 0.2


class TestSerialization:
    def test_to_dict_keys(self, graph):
        data = graph.to_dict()
        root = data["nodes"][0]
        assert root["id"] == ROOT
        assert root["isRoot"] is True
        assert root["trustScore"] == 1.0
        bob = next(n for n in data["nodes"] if n["id"] == BOB)
        assert bob["pathCount"] == 3
        assert bob["trustScore"] == pytest.approx(0.6)
        assert data["links"][1] == {
            "source": ALICE,
            "target": BOB,
            "type": "follow",
            "strength": pytest.approx(0.6),
            "bidirectional": False,
        }

    def test_round_trip(self, graph):
        graph.find_edge(ROOT, ALICE).type = EdgeType.MUTUAL
        restored = Graph.from_dict(graph.to_dict())
        assert restored.to_dict() == graph.to_dict()

    def test_from_dict_requires_single_root(self, graph):
        data = graph.to_dict()
        data["nodes"][0]["isRoot"] = False
        with pytest.raises(ValidationException):
            Graph.from_dict(data)

    def test_from_dict_rejects_dangling_edge(self, graph):
        data = graph.to_dict()
        data["links"].append({"source": ALICE, "target": CAROL, "type": "follow"})
        with pytest.raises(ValidationException):
            Graph.from_dict(data)

    def test_from_dict_missing_distance(self):
        data = {"nodes": [{"id": ROOT, "isRoot": True}, {"id": ALICE}], "links": []}
        with pytest.raises(ValidationException) as exc_info:
            Graph.from_dict(data)
        assert exc_info.value.field == "distance"

    def test_from_dict_missing_target(self):
        data = {"nodes": [{"id": ROOT, "isRoot": True}, {"id": ALICE, "distance": 1}], "links": [{"source": ROOT}]}
        with pytest.raises(ValidationException) as exc_info:
            Graph.from_dict(data)
        assert exc_info.value.field == "target"

    def test_from_dict_missing_node_id(self):
        data = {"nodes": [{"id": ROOT, "isRoot": True}, {"distance": 1}], "links": []}
        with pytest.raises(ValidationException) as exc_info:
            Graph.from_dict(data)
        assert exc_info.value.field == "id"

    @pytest.mark.parametrize("distance", ["far", 1.5, True, [1]])
    def test_from_dict_rejects_non_integer_distance(self, distance):
        data = {"nodes": [{"id": ROOT, "isRoot": True}, {"id": ALICE, "distance": distance}], "links": []}
        with pytest.raises(ValidationException) as exc_info:
            Graph.from_dict(data)
        assert exc_info.value.field == "distance"

    def test_from_dict_rejects_non_integer_path_count(self):
        data = {"nodes": [{"id": ROOT, "isRoot": True}, {"id": ALICE, "distance": 1, "pathCount": "2"}]}
        with pytest.raises(ValidationException):
            Graph.from_dict(data)

    def test_from_dict_rejects_malformed_identity(self):
        data = {"nodes": [{"id": ROOT, "isRoot": True}, {"id": "not-a-key", "distance": 1}], "links": []}
        with pytest.raises(ValidationException) as exc_info:
            Graph.from_dict(data)
        assert exc_info.value.field == "id"
        assert exc_info.value.value == "not-a-key"

    def test_from_dict_normalizes_identities(self):
        data = {
            "nodes": [{"id": hex_to_npub(ROOT), "isRoot": True}, {"id": ALICE.upper(), "distance": 1}],
            "links": [{"source": hex_to_npub(ROOT), "target": hex_to_npub(ALICE)}],
        }
        graph = Graph.from_dict(data)
        assert graph.root_identity == ROOT
        assert ALICE in graph
        assert graph.find_edge(ROOT, ALICE) is not None

    def test_view_json(self, graph):
        assert '"pathCount": 3' in graph.view().to_json()


class TestProfile:
    def test_round_trip(self):
        profile = Profile(identity=ALICE, name="alice", picture="https://x/a.png", created_at=5)
        assert Profile.from_dict(profile.to_dict()) == profile

    def test_from_dict_rejects_bad_types(self):
        with pytest.raises(ValueError):
            Profile.from_dict({"pubkey": ALICE, "name": 42})
        with pytest.raises(ValueError):
            Profile.from_dict({"name": "no key"})


class TestTrustFact:
    def test_old_format_without_score_rejected(self):
        with pytest.raises(ValueError):
            TrustFact.from_dict({"distance": 1, "paths": 2})

    def test_unknown_paths_incomplete(self):
        fact = TrustFact.from_dict({"distance": 2, "paths": None, "score": 0.5})
        assert not fact.is_complete

    def test_round_trip(self):
        fact = TrustFact(distance=1, paths=3, score=0.9)
        assert TrustFact.from_dict(fact.to_dict()) == fact


class TestEdgeType:
    def test_from_string(self):
        assert EdgeType.from_string("MUTUAL") == EdgeType.MUTUAL
        assert EdgeType.from_string("unknown") == EdgeType.FOLLOW
