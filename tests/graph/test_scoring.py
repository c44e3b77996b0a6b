"""Tests for trust scoring."""

from __future__ import annotations

import pytest

from wotgraph.core.exceptions import ValidationException
from wotgraph.graph.scoring import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfig,
    TrustLevel,
    distance_weight,
    path_bonus,
    trust_level,
    trust_score,
)


@pytest.fixture
def config() -> ScoringConfig:
    """Weights used in the worked examples."""
    return ScoringConfig(distance_weights={1: 1.0, 2: 0.5, 3: 0.25}, path_bonus_per_path=0.1, max_path_bonus=0.5)


class TestDistanceWeight:
    def test_exact_key(self, config):
        assert distance_weight(2, config) == 0.5

    def test_beyond_highest_key_uses_floor(self, config):
        assert distance_weight(7, config) == 0.25

    def test_zero_or_negative_uses_weight_for_zero(self):
        cfg = ScoringConfig(distance_weights={0: 0.9, 1: 0.8})
        assert distance_weight(0, cfg) == 0.9
        assert distance_weight(-3, cfg) == 0.9

    def test_zero_defaults_to_full_weight_when_unset(self, config):
        assert distance_weight(0, config) == 1.0

    def test_gap_uses_nearest_lower_key(self):
        cfg = ScoringConfig(distance_weights={1: 1.0, 4: 0.1})
        assert distance_weight(2, cfg) == 1.0
        assert distance_weight(3, cfg) == 1.0

    def test_defaults(self):
        assert [distance_weight(d) for d in range(1, 6)] == [1.0, 0.5, 0.25, 0.1, 0.1]


class TestPathBonus:
    def test_single_path_no_bonus(self, config):
        assert path_bonus(1, config) == 0.0
        assert path_bonus(0, config) == 0.0

    def test_per_path(self, config):
        assert path_bonus(3, config) == pytest.approx(0.2)

    def test_capped(self, config):
        assert path_bonus(100, config) == 0.5


class TestTrustScore:
    """Worked examples and properties of trust_score()."""

    def test_first_hop(self, config):
        assert trust_score(1, 1, config) == 1.0

    def test_first_hop_second_path_clamped(self, config):
        assert trust_score(1, 2, config) == 1.0

    def test_distance_two_three_paths(self, config):
        assert trust_score(2, 3, config) == pytest.approx(0.6)

    def test_root_always_one(self, config):
        for paths in (0, 1, 5, 1000):
            assert trust_score(0, paths, config) == 1.0

    @pytest.mark.parametrize("distance", [1, 2, 3, 4, 9])
    def test_bounded_and_monotonic_in_paths(self, distance):
        scores = [trust_score(distance, p) for p in range(1, 12)]
        assert all(0.0 <= s <= 1.0 for s in scores)
        assert scores == sorted(scores)
        # Saturates at the bonus cap
        assert trust_score(distance, 1000) == scores[-1]

    def test_clamped_to_one(self):
        cfg = ScoringConfig(distance_weights={1: 2.0})
        assert trust_score(1, 1, cfg) == 1.0


class TestScoringConfig:
    def test_default_values(self):
        assert dict(DEFAULT_SCORING_CONFIG.distance_weights) == {0: 1.0, 1: 1.0, 2: 0.5, 3: 0.25, 4: 0.1}
        assert DEFAULT_SCORING_CONFIG.mutual_bonus == 0.5

    def test_string_keys_normalized(self):
        cfg = ScoringConfig(distance_weights={"2": "0.5", "1": 1})
        assert dict(cfg.distance_weights) == {1: 1.0, 2: 0.5}

    def test_rejects_empty_weights(self):
        with pytest.raises(ValidationException):
            ScoringConfig(distance_weights={})

    def test_rejects_negative(self):
        with pytest.raises(ValidationException):
            ScoringConfig(path_bonus_per_path=-0.1)
        with pytest.raises(ValidationException):
            ScoringConfig(distance_weights={1: -1})

    def test_rejects_non_numeric(self):
        with pytest.raises(ValidationException):
            ScoringConfig(distance_weights={"one": 1.0})

    def test_from_dict_camel_case(self):
        cfg = ScoringConfig.from_dict(
            {"distanceWeights": {"1": 0.9}, "mutualBonus": 0.2, "pathBonus": 0.05, "maxPathBonus": 0.3}
        )
        assert dict(cfg.distance_weights) == {1: 0.9}
        assert cfg.path_bonus_per_path == 0.05
        assert cfg.max_path_bonus == 0.3

    def test_to_dict_round_trip(self):
        assert ScoringConfig.from_dict(DEFAULT_SCORING_CONFIG.to_dict()) == DEFAULT_SCORING_CONFIG


class TestTrustLevel:
    @pytest.mark.parametrize(
        ("score", "level"),
        [(1.0, TrustLevel.TRUSTED), (0.7, TrustLevel.TRUSTED), (0.5, TrustLevel.NEUTRAL), (0.3, TrustLevel.NEUTRAL), (0.1, TrustLevel.UNTRUSTED)],
    )
    def test_buckets(self, score, level):
        assert trust_level(score) == level
