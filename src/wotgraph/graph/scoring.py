# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Trust scoring from graph position.

    score = distance_weight(distance) * (1 + path_bonus(path_count))

clamped to [0, 1], with the root fixed at 1.0. Scores are never stored on
nodes; every caller (builder, expander, query engine, layout) recomputes them
through trust_score() from the node's current distance and path count, so
they cannot drift apart.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.exceptions import ValidationException

# Trust level thresholds
TRUST_THRESHOLD_HIGH = 0.7
TRUST_THRESHOLD_MEDIUM = 0.3


class TrustLevel(StrEnum):
    """Coarse trust buckets used by list views and the CLI."""

    TRUSTED = "trusted"
    NEUTRAL = "neutral"
    UNTRUSTED = "untrusted"


@dataclass(frozen=True)
class ScoringConfig:
    """Parameters of the trust formula.

    Supplied by the trust-scoring SDK when one is connected, otherwise
    DEFAULT_SCORING_CONFIG. Immutable for the duration of a query.

    Attributes:
        distance_weights: Hop distance -> weight. Distances past the highest
            key use the highest key's weight.
        mutual_bonus: Bonus for mutual follows, carried for SDK parity; the
            score formula itself does not apply it.
        path_bonus_per_path: Bonus per path beyond the first.
        max_path_bonus: Cap on the total path bonus.
    """

    distance_weights: Mapping[int, float] = field(
        default_factory=lambda: {0: 1.0, 1: 1.0, 2: 0.5, 3: 0.25, 4: 0.1}
    )
    mutual_bonus: float = 0.5
    path_bonus_per_path: float = 0.1
    max_path_bonus: float = 0.5

    def __post_init__(self) -> None:
        if not self.distance_weights:
            raise ValidationException("distance_weights must not be empty", field="distance_weights")

        weights: dict[int, float] = {}
        for key, weight in self.distance_weights.items():
            try:
                hop = int(key)
                value = float(weight)
            except (TypeError, ValueError):
                raise ValidationException(
                    "distance_weights must map integers to numbers",
                    field="distance_weights",
                    value=f"{key!r}: {weight!r}",
                ) from None
            if hop < 0 or value < 0:
                raise ValidationException(
                    "distance weights must be non-negative",
                    field="distance_weights",
                    value=f"{hop}: {value}",
                )
            weights[hop] = value
        object.__setattr__(self, "distance_weights", dict(sorted(weights.items())))

        for name in ("mutual_bonus", "path_bonus_per_path", "max_path_bonus"):
            if getattr(self, name) < 0:
                raise ValidationException(f"{name} must be non-negative", field=name, value=getattr(self, name))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScoringConfig:
        """Build from either SDK (camelCase) or local (snake_case) keys."""
        defaults = cls()
        weights = data.get("distanceWeights", data.get("distance_weights", defaults.distance_weights))
        return cls(
            distance_weights=weights,
            mutual_bonus=data.get("mutualBonus", data.get("mutual_bonus", defaults.mutual_bonus)),
            path_bonus_per_path=data.get(
                "pathBonus", data.get("path_bonus_per_path", defaults.path_bonus_per_path)
            ),
            max_path_bonus=data.get("maxPathBonus", data.get("max_path_bonus", defaults.max_path_bonus)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "distanceWeights": {str(k): v for k, v in self.distance_weights.items()},
            "mutualBonus": self.mutual_bonus,
            "pathBonus": self.path_bonus_per_path,
            "maxPathBonus": self.max_path_bonus,
        }


DEFAULT_SCORING_CONFIG = ScoringConfig()


def distance_weight(distance: int, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> float:
    """Weight for a hop distance.

    ``distance <= 0`` returns the weight for 0 (1.0 when unset). Beyond the
    highest configured key the highest key's weight is the floor. A gap in
    the configured keys takes the weight of the nearest lower key.
    """
    weights = config.distance_weights
    if distance <= 0:
        return weights.get(0, 1.0)
    if distance in weights:
        return weights[distance]
    lower = [hop for hop in weights if hop < distance]
    if lower:
        return weights[max(lower)]
    # Only keys above this distance are configured
    return weights[min(weights)]


def path_bonus(path_count: int, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> float:
    """``(path_count - 1) * bonus_per_path`` capped at max_path_bonus; 0 for a single path."""
    if path_count <= 1:
        return 0.0
    return min((path_count - 1) * config.path_bonus_per_path, config.max_path_bonus)


def trust_score(distance: int, path_count: int = 1, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> float:
    """Trust score in [0, 1]; the root (distance 0) is always 1.0."""
    if distance == 0:
        return 1.0
    score = distance_weight(distance, config) * (1 + path_bonus(path_count, config))
    return max(0.0, min(1.0, score))


def trust_level(score: float) -> TrustLevel:
    """Bucket a score into trusted / neutral / untrusted."""
    if score >= TRUST_THRESHOLD_HIGH:
        return TrustLevel.TRUSTED
    if score >= TRUST_THRESHOLD_MEDIUM:
        return TrustLevel.NEUTRAL
    return TrustLevel.UNTRUSTED
