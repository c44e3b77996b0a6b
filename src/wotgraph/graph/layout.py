# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""2D coordinates for a filtered graph.

Two modes:

- ``radial``: concentric rings by distance, root at the centre, every
  position pinned (fx/fy).
- ``force``: seeded initial ring placement followed by a force simulation
  (link springs, charge repulsion, centring, collision). The root is pinned
  at the centre.

Layout never touches the graph itself; it returns positioned copies of the
view's nodes. Rendering is left to the consumer.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from .models import Graph, GraphNode, GraphView

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 120
VELOCITY_DECAY = 0.4
ALPHA_MIN = 0.001
MAX_ZOOM = 2.0


class LayoutMode(StrEnum):
    FORCE = "force"
    RADIAL = "radial"


@dataclass(frozen=True)
class ForceSettings:
    link_distance: float = 80.0
    charge_strength: float = -300.0
    center_strength: float = 0.03
    collision_radius: float = 25.0
    iterations: int = DEFAULT_ITERATIONS
    seed: int | None = 0

    @classmethod
    def for_mode(cls, mode: LayoutMode | str, **overrides: Any) -> ForceSettings:
        """Presets: ``force`` 80/-300/0.03/25, ``radial`` 60/-200/0.05/20."""
        if LayoutMode(mode) == LayoutMode.RADIAL:
            base = cls(link_distance=60.0, charge_strength=-200.0, center_strength=0.05, collision_radius=20.0)
        else:
            base = cls()
        return replace(base, **overrides)


@dataclass
class BoundingBox:
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass
class ZoomTransform:
    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0


@dataclass
class LayoutResult:
    """Positioned node copies plus the edges (as identity pairs) they belong to."""

    mode: LayoutMode
    width: float
    height: float
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)

    def positions(self) -> dict[str, tuple[float, float]]:
        return {n.identity: (n.x or 0.0, n.y or 0.0) for n in self.nodes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "width": self.width,
            "height": self.height,
            "nodes": [
                {"id": n.identity, "x": n.x, "y": n.y, "fx": n.fx, "fy": n.fy, "distance": n.distance}
                for n in self.nodes
            ],
            "links": [{"source": s, "target": t} for s, t in self.edges],
        }


def _ring_slots(nodes: Sequence[GraphNode]) -> list[tuple[int, int]]:
    """(position within ring, ring size) per node; a ring is all nodes at one distance."""
    groups: dict[int, list[int]] = {}
    for i, node in enumerate(nodes):
        groups.setdefault(node.distance, []).append(i)
    slots = [(0, 1)] * len(nodes)
    for ring in groups.values():
        for slot, i in enumerate(ring):
            slots[i] = (slot, len(ring))
    return slots


def _copy_nodes(source: Graph | GraphView) -> tuple[list[GraphNode], list[tuple[str, str]]]:
    view = source.view() if isinstance(source, Graph) else source
    nodes = [replace(n) for n in view.nodes]
    edges = [view.graph.endpoints(e) for e in view.edges]
    return nodes, edges


def radial_layout(nodes: Sequence[GraphNode], width: float, height: float) -> list[GraphNode]:
    """Concentric rings, spacing ``min(width, height) / 8``, starting at the top."""
    cx, cy = width / 2, height / 2
    spacing = min(width, height) / 8
    placed = []
    slots = _ring_slots(nodes)
    for node, (slot, size) in zip(nodes, slots, strict=True):
        if node.is_root:
            placed.append(replace(node, x=cx, y=cy, fx=cx, fy=cy))
            continue
        angle = slot * (2 * math.pi / size) - math.pi / 2
        radius = node.distance * spacing
        x = cx + radius * math.cos(angle)
        y = cy + radius * math.sin(angle)
        placed.append(replace(node, x=x, y=y, fx=x, fy=y))
    return placed


def initial_positions(
    nodes: Sequence[GraphNode],
    width: float,
    height: float,
    rng: random.Random | None = None,
) -> list[GraphNode]:
    """Jittered rings (radius ``100*d +/- 25``, angle +/- 0.15 rad) to seed a simulation."""
    rng = rng or random.Random()
    cx, cy = width / 2, height / 2
    placed = []
    slots = _ring_slots(nodes)
    for node, (slot, size) in zip(nodes, slots, strict=True):
        if node.is_root:
            placed.append(replace(node, x=cx, y=cy))
            continue
        angle = slot / size * 2 * math.pi + (rng.random() - 0.5) * 0.3
        radius = node.distance * 100 + (rng.random() - 0.5) * 50
        placed.append(replace(node, x=cx + radius * math.cos(angle), y=cy + radius * math.sin(angle)))
    return placed


def clear_fixed_positions(nodes: Iterable[GraphNode]) -> list[GraphNode]:
    return [replace(n, fx=None, fy=None) for n in nodes]


def fix_root_position(nodes: Iterable[GraphNode], cx: float, cy: float) -> list[GraphNode]:
    return [replace(n, x=cx, y=cy, fx=cx, fy=cy) if n.is_root else n for n in nodes]


def bounding_box(nodes: Iterable[GraphNode]) -> BoundingBox:
    """Extent of positioned nodes; all zeros when nothing is positioned."""
    nodes = list(nodes)
    xs = [n.x for n in nodes if n.x is not None]
    ys = [n.y for n in nodes if n.y is not None]
    if not xs or not ys:
        return BoundingBox()
    return BoundingBox(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))


def fit_zoom(nodes: Iterable[GraphNode], width: float, height: float, padding: float = 50) -> ZoomTransform:
    """Scale (at most 2x) and translation that fit every node in the container."""
    box = bounding_box(nodes)
    if box.width == 0 or box.height == 0:
        return ZoomTransform()
    scale = min((width - padding * 2) / box.width, (height - padding * 2) / box.height, MAX_ZOOM)
    center_x = (box.min_x + box.max_x) / 2
    center_y = (box.min_y + box.max_y) / 2
    return ZoomTransform(
        scale=scale,
        translate_x=width / 2 - center_x * scale,
        translate_y=height / 2 - center_y * scale,
    )


def force_layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[tuple[str, str]],
    width: float,
    height: float,
    settings: ForceSettings | None = None,
) -> list[GraphNode]:
    """Run a fixed number of simulation ticks and return positioned copies.

    Nodes without a position are seeded with initial_positions(); nodes with
    fx/fy stay where they are pinned. Same seed and input, same output.
    """
    settings = settings or ForceSettings()
    rng = random.Random(settings.seed)
    if any(n.x is None or n.y is None for n in nodes):
        placed = initial_positions(nodes, width, height, rng)
        nodes = [p if n.x is None or n.y is None else n for n, p in zip(nodes, placed, strict=True)]

    count = len(nodes)
    if count == 0:
        return []
    cx, cy = width / 2, height / 2
    xs = [float(n.x) for n in nodes]
    ys = [float(n.y) for n in nodes]
    vxs = [0.0] * count
    vys = [0.0] * count
    pinned = [(n.fx, n.fy) if n.fx is not None and n.fy is not None else None for n in nodes]

    index = {n.identity: i for i, n in enumerate(nodes)}
    links = [(index[s], index[t]) for s, t in edges if s in index and t in index and s != t]
    degree = [0] * count
    for s, t in links:
        degree[s] += 1
        degree[t] += 1

    alpha = 1.0
    alpha_decay = 1 - ALPHA_MIN ** (1 / max(settings.iterations, 1))
    diameter = settings.collision_radius * 2

    for _ in range(settings.iterations):
        # Link springs
        for s, t in links:
            dx = xs[t] + vxs[t] - xs[s] - vxs[s] or rng.uniform(-1e-6, 1e-6)
            dy = ys[t] + vys[t] - ys[s] - vys[s] or rng.uniform(-1e-6, 1e-6)
            dist = math.hypot(dx, dy)
            strength = 1 / min(degree[s], degree[t])
            pull = (dist - settings.link_distance) / dist * alpha * strength
            dx, dy = dx * pull, dy * pull
            bias = degree[s] / (degree[s] + degree[t])
            vxs[t] -= dx * bias
            vys[t] -= dy * bias
            vxs[s] += dx * (1 - bias)
            vys[s] += dy * (1 - bias)

        # Charge and collision, pairwise
        for i in range(count):
            for j in range(i + 1, count):
                dx = xs[j] - xs[i] or rng.uniform(-1e-6, 1e-6)
                dy = ys[j] - ys[i] or rng.uniform(-1e-6, 1e-6)
                dist_sq = max(dx * dx + dy * dy, 1.0)
                push = settings.charge_strength * alpha / dist_sq
                vxs[i] += dx * push
                vys[i] += dy * push
                vxs[j] -= dx * push
                vys[j] -= dy * push

                dist = math.sqrt(dist_sq)
                if dist < diameter:
                    overlap = (diameter - dist) / dist * 0.5
                    vxs[i] -= dx * overlap * 0.5
                    vys[i] -= dy * overlap * 0.5
                    vxs[j] += dx * overlap * 0.5
                    vys[j] += dy * overlap * 0.5

        # Centring
        for i in range(count):
            vxs[i] += (cx - xs[i]) * settings.center_strength * alpha
            vys[i] += (cy - ys[i]) * settings.center_strength * alpha

        for i in range(count):
            if pinned[i] is not None:
                xs[i], ys[i] = pinned[i]
                vxs[i] = vys[i] = 0.0
                continue
            vxs[i] *= 1 - VELOCITY_DECAY
            vys[i] *= 1 - VELOCITY_DECAY
            xs[i] += vxs[i]
            ys[i] += vys[i]

        alpha += (0 - alpha) * alpha_decay
        if alpha < ALPHA_MIN:
            break

    return [replace(n, x=xs[i], y=ys[i]) for i, n in enumerate(nodes)]


class LayoutEngine:
    """Assigns coordinates to a graph or filtered view.

    Example:
        >>> engine = LayoutEngine(width=800, height=600)
        >>> result = engine.layout(view, LayoutMode.RADIAL)
        >>> result.positions()[root_pk]
        (400.0, 300.0)
    """

    def __init__(self, width: float = 800.0, height: float = 600.0, seed: int | None = 0):
        if width <= 0 or height <= 0:
            raise ValueError(f"layout area must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.seed = seed

    def layout(
        self,
        source: Graph | GraphView,
        mode: LayoutMode | str = LayoutMode.FORCE,
        settings: ForceSettings | None = None,
    ) -> LayoutResult:
        mode = LayoutMode(mode)
        nodes, edges = _copy_nodes(source)
        if mode == LayoutMode.RADIAL:
            positioned = radial_layout(nodes, self.width, self.height)
        else:
            settings = settings or ForceSettings.for_mode(mode, seed=self.seed)
            nodes = clear_fixed_positions(nodes)
            nodes = fix_root_position(nodes, self.width / 2, self.height / 2)
            positioned = force_layout(nodes, edges, self.width, self.height, settings)
        logger.debug("Laid out %d nodes (%s)", len(positioned), mode.value)
        return LayoutResult(mode=mode, width=self.width, height=self.height, nodes=positioned, edges=edges)

    def fit(self, result: LayoutResult, padding: float = 50) -> ZoomTransform:
        return fit_zoom(result.nodes, self.width, self.height, padding)
