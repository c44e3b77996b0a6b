# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Score command: evaluate the trust formula offline."""

from __future__ import annotations

import argparse

from ...core.exceptions import ValidationException
from ...graph.scoring import DEFAULT_SCORING_CONFIG, distance_weight, path_bonus, trust_level, trust_score
from ..output import output_error, output_result


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the score command on the CLI parser."""
    score_parser = subparsers.add_parser("score", help="Compute a trust score from distance and path count")
    score_parser.add_argument("distance", type=int, help="Hops from the root")
    score_parser.add_argument("paths", type=int, nargs="?", default=1, help="Number of paths (default: 1)")
    score_parser.add_argument("--format", choices=["json", "text"], default="json", help="Output format")
    score_parser.set_defaults(func=cmd_score)


def cmd_score(args: argparse.Namespace) -> int:
    """Print the trust score and level for a (distance, paths) pair."""
    try:
        if args.distance < 0:
            raise ValidationException("distance must be >= 0", field="distance", value=args.distance)
        if args.paths < 1:
            raise ValidationException("paths must be >= 1", field="paths", value=args.paths)
    except ValidationException as e:
        output_error(e.message)
        return 1

    config = DEFAULT_SCORING_CONFIG
    score = trust_score(args.distance, args.paths, config)
    level = trust_level(score)
    result = {
        "distance": args.distance,
        "paths": args.paths,
        "distanceWeight": distance_weight(args.distance, config),
        "pathBonus": path_bonus(args.paths, config),
        "trustScore": score,
        "trustLevel": level.value,
        "formatted": f"{score:.2f} ({level.value})",
    }
    output_result(result, args.format)
    return 0
