# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Graph construction and incremental expansion.

GraphBuilder creates the initial snapshot from the root's direct follows.
GraphExpander grows it one "expand node" action at a time:

- a new target is created at ``distance(expanded) + 1`` with one path;
- an existing target keeps its distance (first seen wins) and gains one
  path; an edge is only added when this exact ordered pair has none;
- the root is never given extra paths. A follow back to the root from a
  node the root follows marks that node mutual.

Trust scores are not written anywhere: they follow from the updated
distance and path count through Graph.trust_score().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..core.exceptions import ValidationException
from .identity import display_label, normalize_identity
from .models import EdgeType, Graph, Profile, TrustFact
from .scoring import ScoringConfig

logger = logging.getLogger(__name__)

Discovery = str | tuple[str, str]
ProfileSource = Mapping[str, Profile] | Iterable[Profile] | None


def _profile_map(profiles: ProfileSource) -> dict[str, Profile]:
    if profiles is None:
        return {}
    if isinstance(profiles, Mapping):
        return dict(profiles)
    return {p.identity: p for p in profiles}


def _targets_from(source: str, discovered: Iterable[Discovery]) -> list[str]:
    """Normalize discoveries to target identities, in order.

    A discovery is either a target identity or a ``(source, target)`` pair
    whose source must be ``source``.

    Raises:
        ValidationException: On a malformed identity or a pair that starts
            somewhere else.
    """
    targets: list[str] = []
    for item in discovered:
        if isinstance(item, tuple):
            if len(item) != 2:
                raise ValidationException("edge must be a (source, target) pair", field="edge", value=item)
            edge_source = normalize_identity(item[0])
            if edge_source != source:
                raise ValidationException(
                    f"edge source must be {source}",
                    field="source",
                    value=edge_source,
                )
            targets.append(normalize_identity(item[1]))
        else:
            targets.append(normalize_identity(item))
    return targets


@dataclass
class ExpansionResult:
    """What one expand() call changed.

    Attributes:
        expanded: The node whose follows were merged
        added_nodes: Identities created at distance(expanded) + 1
        reinforced: Existing identities whose path count went up
        added_edges: Number of new edges
        became_mutual: True if the expanded node was marked mutual
    """

    expanded: str
    added_nodes: list[str] = field(default_factory=list)
    reinforced: list[str] = field(default_factory=list)
    added_edges: int = 0
    became_mutual: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.added_nodes or self.reinforced or self.added_edges or self.became_mutual)


class GraphBuilder:
    """Builds the initial graph from the root's first-hop discoveries."""

    def __init__(self, scoring: ScoringConfig | None = None):
        self.scoring = scoring

    def build(
        self,
        root: str,
        discovered: Iterable[Discovery],
        profiles: ProfileSource = None,
        mutuals: Iterable[str] | None = None,
    ) -> Graph:
        """Create the root plus one node per discovered first-hop identity.

        Args:
            root: Root identity (hex or npub)
            discovered: First-hop targets, or (root, target) pairs. A target
                listed more than once gets one path per listing and one edge.
            profiles: Known profiles, keyed by identity or as a sequence
            mutuals: Identities known to follow the root back

        Returns:
            A new Graph

        Raises:
            ValidationException: On malformed identities or pairs that do not
                start at the root.
        """
        root_id = normalize_identity(root)
        targets = _targets_from(root_id, discovered)
        profile_map = _profile_map(profiles)
        mutual_ids = {normalize_identity(m) for m in mutuals or ()}

        root_profile = profile_map.get(root_id)
        graph = Graph(
            root_id,
            scoring=self.scoring,
            root_label=display_label(root_profile, root_id),
            root_picture=root_profile.picture if root_profile else None,
        )

        for target in targets:
            if target == root_id:
                logger.debug("Skipping self-follow of root %s", root_id[:8])
                continue
            existing = graph.get(target)
            if existing is not None:
                existing.path_count += 1
                continue

            profile = profile_map.get(target)
            is_mutual = target in mutual_ids
            graph.add_node(
                target,
                distance=1,
                label=display_label(profile, target),
                picture=profile.picture if profile else None,
                is_mutual=is_mutual,
            )
            graph.add_edge(
                root_id,
                target,
                EdgeType.MUTUAL if is_mutual else EdgeType.FOLLOW,
                bidirectional=is_mutual,
            )

        logger.debug("Built graph for %s: %d nodes, %d edges", root_id[:8], len(graph.nodes), len(graph.edges))
        return graph


class GraphExpander:
    """Merges one node's newly discovered follows into an existing graph."""

    def expand(
        self,
        graph: Graph,
        expanded: str,
        discovered: Iterable[Discovery],
        profiles: ProfileSource = None,
    ) -> ExpansionResult:
        """Merge the follows of ``expanded`` into ``graph`` in place.

        Targets repeated within one batch count once. The caller must not
        feed the same batch twice; each call adds one path per existing
        target.

        Raises:
            ValidationException: If ``expanded`` is not in the graph, or on
                malformed discoveries.
        """
        expanded_id = normalize_identity(expanded)
        source = graph.get(expanded_id)
        if source is None:
            raise ValidationException("expanded node is not in the graph", field="expanded", value=expanded_id)

        targets = list(dict.fromkeys(_targets_from(expanded_id, discovered)))
        profile_map = _profile_map(profiles)
        result = ExpansionResult(expanded=expanded_id)
        root_id = graph.root_identity

        for target in targets:
            if target == expanded_id:
                continue

            if target == root_id:
                self._link_back_to_root(graph, expanded_id, result)
                continue

            node = graph.get(target)
            if node is None:
                profile = profile_map.get(target)
                graph.add_node(
                    target,
                    distance=source.distance + 1,
                    label=display_label(profile, target),
                    picture=profile.picture if profile else None,
                )
                result.added_nodes.append(target)
            else:
                node.path_count += 1
                result.reinforced.append(target)

            if graph.add_edge(expanded_id, target) is not None:
                result.added_edges += 1

        logger.info(
            "Expanded %s: +%d nodes, +%d edges, %d reinforced",
            expanded_id[:8],
            len(result.added_nodes),
            result.added_edges,
            len(result.reinforced),
        )
        return result

    def _link_back_to_root(self, graph: Graph, expanded_id: str, result: ExpansionResult) -> None:
        forward = graph.find_edge(graph.root_identity, expanded_id)
        if forward is not None:
            forward.type = EdgeType.MUTUAL
            forward.bidirectional = True
            node = graph.node(expanded_id)
            if not node.is_mutual:
                node.is_mutual = True
                result.became_mutual = True
            return
        if graph.add_edge(expanded_id, graph.root_identity) is not None:
            result.added_edges += 1


def apply_profiles(graph: Graph, profiles: ProfileSource) -> list[str]:
    """Relabel nodes whose profiles arrived.

    Returns:
        Identities whose label or picture changed
    """
    updated = []
    for identity, profile in _profile_map(profiles).items():
        node = graph.get(identity)
        if node is None:
            continue
        label = display_label(profile, identity)
        if node.label != label or node.picture != profile.picture:
            node.label = label
            node.picture = profile.picture
            updated.append(identity)
    return updated


def reconcile(graph: Graph, facts: Mapping[str, TrustFact]) -> list[str]:
    """Fold trust-service facts into locally discovered nodes.

    The local graph keeps its distance. A reported path count only ever
    raises the local one; facts with unknown paths change nothing.

    Returns:
        Identities whose path count changed
    """
    updated = []
    for identity, fact in facts.items():
        node = graph.get(identity)
        if node is None or node.is_root or fact.paths is None:
            continue
        if fact.paths > node.path_count:
            node.path_count = fact.paths
            updated.append(identity)
    return updated
