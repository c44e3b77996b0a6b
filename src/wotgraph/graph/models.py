# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Graph data model.

Nodes live in one arena (a list plus an identity -> index map) and edges
refer to nodes by arena index only. Anything that needs resolved endpoints,
a trust score or an edge strength asks the Graph, which derives them on
demand from the current distance and path count.

Nodes are never removed. Structural mutation goes through GraphBuilder and
GraphExpander (see builder.py); the methods here enforce the invariants.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.exceptions import NotFoundError, ValidationException
from .identity import display_label, normalize_identity
from .scoring import DEFAULT_SCORING_CONFIG, ScoringConfig, trust_score


class EdgeType(StrEnum):
    """Relationship carried by an edge."""

    FOLLOW = "follow"
    MUTUAL = "mutual"
    MUTE = "mute"

    @classmethod
    def from_string(cls, value: str) -> EdgeType:
        """Convert string to EdgeType, case-insensitive; unknown values are follows."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.FOLLOW


@dataclass(frozen=True)
class Profile:
    """Profile metadata for one identity (kind 0). Replaced wholesale on refresh."""

    identity: str
    name: str | None = None
    display_name: str | None = None
    picture: str | None = None
    about: str | None = None
    nip05: str | None = None
    created_at: int = 0

    @property
    def label(self) -> str:
        return display_label(self, self.identity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pubkey": self.identity,
            "name": self.name,
            "displayName": self.display_name,
            "picture": self.picture,
            "about": self.about,
            "nip05": self.nip05,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Profile:
        """Inverse of to_dict().

        Raises:
            ValueError: If the pubkey is missing or a field has the wrong type.
        """
        identity = data.get("pubkey")
        if not isinstance(identity, str) or not identity:
            raise ValueError("profile entry without pubkey")
        fields: dict[str, str | None] = {}
        for attr, key in (
            ("name", "name"),
            ("display_name", "displayName"),
            ("picture", "picture"),
            ("about", "about"),
            ("nip05", "nip05"),
        ):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"profile field {key} must be a string")
            fields[attr] = value
        created_at = data.get("createdAt", 0)
        if not isinstance(created_at, int):
            raise ValueError("profile createdAt must be an integer")
        return cls(identity=identity, created_at=created_at, **fields)


@dataclass(frozen=True)
class Note:
    """A short text post (kind 1)."""

    id: str
    identity: str
    content: str
    created_at: int
    tags: tuple[tuple[str, ...], ...] = ()
    sig: str | None = None

    @property
    def reply_to(self) -> str | None:
        """Event id this note replies to, from the last ``e`` tag."""
        refs = [t[1] for t in self.tags if len(t) > 1 and t[0] == "e"]
        return refs[-1] if refs else None

    @property
    def mentions(self) -> list[str]:
        return [t[1] for t in self.tags if len(t) > 1 and t[0] == "p"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.identity,
            "content": self.content,
            "created_at": self.created_at,
            "tags": [list(t) for t in self.tags],
            "kind": 1,
            "sig": self.sig,
        }


@dataclass
class TrustFact:
    """What the trust-scoring service reported for one identity.

    ``paths`` is None when the service could not provide path details; such
    facts are kept but retried later.
    """

    distance: int | None = None
    paths: int | None = None
    score: float | None = None

    @property
    def is_complete(self) -> bool:
        return self.paths is not None

    def to_dict(self) -> dict[str, Any]:
        return {"distance": self.distance, "paths": self.paths, "score": self.score}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TrustFact:
        """Inverse of to_dict().

        Raises:
            ValueError: On the pre-score cache format or wrong field types.
        """
        if "score" not in data:
            raise ValueError("trust entry without score field")
        distance, paths, score = data.get("distance"), data.get("paths"), data.get("score")
        if distance is not None and not isinstance(distance, int):
            raise ValueError("trust distance must be an integer")
        if paths is not None and not isinstance(paths, int):
            raise ValueError("trust paths must be an integer")
        if score is not None and not isinstance(score, (int, float)):
            raise ValueError("trust score must be a number")
        return cls(distance=distance, paths=paths, score=None if score is None else float(score))


@dataclass
class GraphNode:
    """A node in the graph arena.

    Attributes:
        identity: Hex public key
        distance: Hops from the root along the first discovered route (0 only for the root)
        path_count: Number of discovered routes from the root (>= 1)
        is_root: Exactly one node per graph
        is_mutual: Follows and is followed by the root
        label: Display label (falls back to the truncated npub)
        picture: Avatar URL
        x, y, z: Layout position
        fx, fy, fz: Pinned layout position
    """

    identity: str
    distance: int
    path_count: int = 1
    is_root: bool = False
    is_mutual: bool = False
    label: str | None = None
    picture: str | None = None
    x: float | None = None
    y: float | None = None
    z: float | None = None
    fx: float | None = None
    fy: float | None = None
    fz: float | None = None

    def __post_init__(self) -> None:
        if self.distance < 0:
            raise ValidationException("distance must be >= 0", field="distance", value=self.distance)
        if (self.distance == 0) != self.is_root:
            raise ValidationException(
                "distance 0 is reserved for the root node",
                field="distance",
                value=self.distance,
            )
        if self.path_count < 1:
            raise ValidationException("path_count must be >= 1", field="path_count", value=self.path_count)


@dataclass
class GraphEdge:
    """Directed edge between two arena indices."""

    source: int
    target: int
    type: EdgeType = EdgeType.FOLLOW
    bidirectional: bool = False


@dataclass(frozen=True)
class GraphFilters:
    """Filter state owned by the UI, read-only to the query engine."""

    min_trust_score: float = 0.0
    max_distance: int = 3
    show_follows: bool = True
    show_mutes: bool = False
    show_mutuals_only: bool = False
    search_query: str = ""


DEFAULT_FILTERS = GraphFilters()


@dataclass
class GraphStats:
    total_nodes: int = 0
    total_edges: int = 0
    avg_trust_score: float = 0.0
    max_distance: int = 0
    mutual_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "avgTrustScore": self.avg_trust_score,
            "maxDistance": self.max_distance,
            "mutualCount": self.mutual_count,
        }


@dataclass
class TrustPath:
    """A root-to-node route for trust path display."""

    nodes: list[str]
    distance: int
    score: float


def _required_identity(raw: Mapping[str, Any], key: str) -> str:
    if key not in raw:
        raise ValidationException(f"graph entry is missing {key}", field=key)
    try:
        return normalize_identity(raw[key])
    except ValidationException as e:
        raise ValidationException(e.message, field=key, value=raw[key]) from e


def _required_int(raw: Mapping[str, Any], key: str) -> int:
    if key not in raw:
        raise ValidationException(f"graph entry is missing {key}", field=key)
    return _optional_int(raw, key, 0)


def _optional_int(raw: Mapping[str, Any], key: str, default: int) -> int:
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationException(f"graph field {key} must be an integer", field=key, value=value)
    return value


class Graph:
    """Node arena plus edge list, rooted at one identity.

    Example:
        >>> graph = Graph(root_pk)
        >>> graph.add_node(alice_pk, distance=1)
        >>> graph.add_edge(root_pk, alice_pk)
        >>> graph.trust_score(graph.node(alice_pk))
        1.0
    """

    def __init__(
        self,
        root: str,
        scoring: ScoringConfig | None = None,
        root_label: str | None = None,
        root_picture: str | None = None,
    ):
        self.scoring = scoring or DEFAULT_SCORING_CONFIG
        self.nodes: list[GraphNode] = []
        self.edges: list[GraphEdge] = []
        self._index: dict[str, int] = {}
        self._edge_index: dict[tuple[int, int], int] = {}
        self._append_node(
            GraphNode(identity=root, distance=0, path_count=1, is_root=True, label=root_label, picture=root_picture)
        )

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def root(self) -> GraphNode:
        return self.nodes[0]

    @property
    def root_identity(self) -> str:
        return self.nodes[0].identity

    def __contains__(self, identity: object) -> bool:
        return identity in self._index

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self.nodes)

    def index_of(self, identity: str) -> int:
        try:
            return self._index[identity]
        except KeyError:
            raise NotFoundError("node", identity) from None

    def node(self, identity: str) -> GraphNode:
        """Node for an identity.

        Raises:
            NotFoundError: If the identity is not in the graph.
        """
        return self.nodes[self.index_of(identity)]

    def get(self, identity: str) -> GraphNode | None:
        idx = self._index.get(identity)
        return None if idx is None else self.nodes[idx]

    def has_edge(self, source: str, target: str) -> bool:
        src, tgt = self._index.get(source), self._index.get(target)
        if src is None or tgt is None:
            return False
        return (src, tgt) in self._edge_index

    def find_edge(self, source: str, target: str) -> GraphEdge | None:
        src, tgt = self._index.get(source), self._index.get(target)
        if src is None or tgt is None:
            return None
        idx = self._edge_index.get((src, tgt))
        return None if idx is None else self.edges[idx]

    def endpoints(self, edge: GraphEdge) -> tuple[str, str]:
        """Resolve an edge to (source identity, target identity)."""
        return self.nodes[edge.source].identity, self.nodes[edge.target].identity

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    def trust_score(self, node: GraphNode, scoring: ScoringConfig | None = None) -> float:
        if node.is_root:
            return 1.0
        return trust_score(node.distance, node.path_count, scoring or self.scoring)

    def edge_strength(self, edge: GraphEdge, scoring: ScoringConfig | None = None) -> float:
        """Strength of an edge mirrors its target's trust score."""
        return self.trust_score(self.nodes[edge.target], scoring)

    # -------------------------------------------------------------------------
    # Mutation (used by GraphBuilder / GraphExpander)
    # -------------------------------------------------------------------------

    def _append_node(self, node: GraphNode) -> GraphNode:
        self._index[node.identity] = len(self.nodes)
        self.nodes.append(node)
        return node

    def add_node(
        self,
        identity: str,
        distance: int,
        path_count: int = 1,
        label: str | None = None,
        picture: str | None = None,
        is_mutual: bool = False,
    ) -> GraphNode:
        """Add a non-root node.

        Raises:
            ValidationException: If the identity exists or distance < 1.
        """
        if identity in self._index:
            raise ValidationException("node already exists", field="identity", value=identity)
        if distance < 1:
            raise ValidationException("non-root nodes need distance >= 1", field="distance", value=distance)
        return self._append_node(
            GraphNode(
                identity=identity,
                distance=distance,
                path_count=path_count,
                label=label,
                picture=picture,
                is_mutual=is_mutual,
            )
        )

    def add_edge(
        self,
        source: str,
        target: str,
        edge_type: EdgeType = EdgeType.FOLLOW,
        bidirectional: bool = False,
    ) -> GraphEdge | None:
        """Add an edge between two existing nodes.

        Returns:
            The new edge, or None if this ordered pair already has one.

        Raises:
            ValidationException: If an endpoint is missing or source == target.
        """
        if source not in self._index:
            raise ValidationException("edge source is not a node in this graph", field="source", value=source)
        if target not in self._index:
            raise ValidationException("edge target is not a node in this graph", field="target", value=target)
        if source == target:
            raise ValidationException("self edges are not allowed", field="target", value=target)

        key = (self._index[source], self._index[target])
        if key in self._edge_index:
            return None
        edge = GraphEdge(source=key[0], target=key[1], type=edge_type, bidirectional=bidirectional)
        self._edge_index[key] = len(self.edges)
        self.edges.append(edge)
        return edge

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def view(self) -> GraphView:
        """Unfiltered view over the whole graph."""
        return GraphView(self, list(range(len(self.nodes))), list(range(len(self.edges))))

    def node_view(self, node: GraphNode, scoring: ScoringConfig | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": node.identity,
            "label": node.label or display_label(None, node.identity),
            "picture": node.picture,
            "distance": node.distance,
            "pathCount": node.path_count,
            "trustScore": self.trust_score(node, scoring),
            "isRoot": node.is_root,
            "isMutual": node.is_mutual,
        }
        for axis in ("x", "y", "z"):
            value = getattr(node, axis)
            if value is not None:
                data[axis] = value
        return data

    def edge_view(self, edge: GraphEdge, scoring: ScoringConfig | None = None) -> dict[str, Any]:
        source, target = self.endpoints(edge)
        return {
            "source": source,
            "target": target,
            "type": edge.type.value,
            "strength": self.edge_strength(edge, scoring),
            "bidirectional": edge.bidirectional,
        }

    def to_dict(self) -> dict[str, Any]:
        return self.view().to_dict()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], scoring: ScoringConfig | None = None) -> Graph:
        """Rebuild a graph from to_dict() output.

        Stored trustScore/strength values are ignored; they are derived.
        Identities may be hex or npub and are stored in hex form.

        Raises:
            ValidationException: If there is no single root node, a node or
                link is missing a field or has a malformed one, or an edge
                references an unknown node.
        """
        raw_nodes = list(data.get("nodes", []))
        roots = [n for n in raw_nodes if n.get("isRoot")]
        if len(roots) != 1:
            raise ValidationException("graph must have exactly one root node", field="nodes", value=len(roots))

        root = roots[0]
        graph = cls(
            _required_identity(root, "id"),
            scoring=scoring,
            root_label=root.get("label"),
            root_picture=root.get("picture"),
        )
        for raw in raw_nodes:
            if raw.get("isRoot"):
                continue
            graph.add_node(
                _required_identity(raw, "id"),
                distance=_required_int(raw, "distance"),
                path_count=_optional_int(raw, "pathCount", 1),
                label=raw.get("label"),
                picture=raw.get("picture"),
                is_mutual=bool(raw.get("isMutual", False)),
            )
        for raw in data.get("links", data.get("edges", [])):
            graph.add_edge(
                _required_identity(raw, "source"),
                _required_identity(raw, "target"),
                EdgeType.from_string(raw.get("type", "follow")),
                bool(raw.get("bidirectional", False)),
            )
        return graph


@dataclass
class GraphView:
    """A subset of a graph's arena, as produced by the query engine.

    Holds indices into ``graph``; nodes and edges are the graph's own objects.
    """

    graph: Graph
    node_indices: list[int] = field(default_factory=list)
    edge_indices: list[int] = field(default_factory=list)

    @property
    def nodes(self) -> list[GraphNode]:
        return [self.graph.nodes[i] for i in self.node_indices]

    @property
    def edges(self) -> list[GraphEdge]:
        return [self.graph.edges[i] for i in self.edge_indices]

    def identities(self) -> set[str]:
        return {self.graph.nodes[i].identity for i in self.node_indices}

    def to_dict(self, scoring: ScoringConfig | None = None) -> dict[str, Any]:
        return {
            "nodes": [self.graph.node_view(n, scoring) for n in self.nodes],
            "links": [self.graph.edge_view(e, scoring) for e in self.edges],
        }

    def to_json(self, scoring: ScoringConfig | None = None) -> str:
        return json.dumps(self.to_dict(scoring), indent=2)
