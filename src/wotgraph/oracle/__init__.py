# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Interface to an external trust-scoring service.

The service itself is not part of wotgraph. Anything implementing
TrustOracle can be plugged into a session; TrustResolver adds the fact
cache in front of it and degrades gracefully when detail lookups fail.

Reconciliation with the local graph: the local graph keeps the distance it
discovered first. A path count reported by the service raises the local
one; it never lowers it. Unknown path counts (``paths is None``) are kept
in the cache and retried on the next lookup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..cache.fact_cache import FactCache
from ..graph.models import TrustFact
from ..graph.scoring import DEFAULT_SCORING_CONFIG, ScoringConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OracleResult:
    """batch_check() answer for one identity."""

    distance: int | None
    score: float | None


@dataclass(frozen=True)
class OracleDetails:
    """get_details() answer for one identity.

    Attributes:
        hops: Distance from the service's root
        paths: Number of paths, None when the service could not count them
        bridges: Intermediate identities on the paths
        mutual: Whether the identity follows the root back
    """

    hops: int | None
    paths: int | None = None
    bridges: list[str] = field(default_factory=list)
    mutual: bool | None = None


@runtime_checkable
class TrustOracle(Protocol):
    async def batch_check(self, identities: list[str]) -> dict[str, OracleResult]: ...

    async def get_details(self, identity: str) -> OracleDetails | None: ...

    def get_scoring_config(self) -> ScoringConfig: ...


@runtime_checkable
class FollowsOracle(Protocol):
    """Optional oracle capability: the root's follow list."""

    async def get_follows(self, identity: str) -> list[str]: ...


class TrustResolver:
    """Cache-first trust lookups against a TrustOracle.

    Example:
        >>> resolver = TrustResolver(oracle, cache)
        >>> facts = await resolver.resolve([alice_pk, bob_pk])
        >>> facts[alice_pk].paths
        3
    """

    def __init__(self, oracle: TrustOracle, cache: FactCache, max_concurrent_details: int = 8):
        self.oracle = oracle
        self.cache = cache
        self._detail_slots = asyncio.Semaphore(max_concurrent_details)

    def scoring_config(self) -> ScoringConfig:
        """The service's scoring config, or the local default if it fails."""
        try:
            return self.oracle.get_scoring_config()
        except Exception as e:
            logger.warning(f"Oracle scoring config unavailable, using defaults: {e}")
            return DEFAULT_SCORING_CONFIG

    async def follows(self, identity: str) -> list[str]:
        """Follow list from the service; empty if unsupported or failing."""
        if not isinstance(self.oracle, FollowsOracle):
            return []
        try:
            return list(await self.oracle.get_follows(identity))
        except Exception as e:
            logger.warning(f"Oracle get_follows failed for {identity[:8]}: {e}")
            return []

    async def _details(self, identity: str, known: TrustFact) -> TrustFact:
        async with self._detail_slots:
            try:
                details = await self.oracle.get_details(identity)
            except Exception as e:
                logger.debug(f"get_details failed for {identity[:8]}: {e}")
                details = None
        if details is None or details.paths is None:
            return TrustFact(distance=known.distance, paths=None, score=known.score)
        distance = details.hops if details.hops is not None else known.distance
        return TrustFact(distance=distance, paths=details.paths, score=known.score)

    async def resolve(self, identities: Iterable[str]) -> dict[str, TrustFact]:
        """Trust facts for ``identities``.

        Complete cached facts are used as-is. The rest go through one
        batch_check plus a get_details per identity the service knows.
        Identities the service does not know are absent from the result.
        """
        wanted = list(dict.fromkeys(identities))
        facts = self.cache.trust.get_batch(wanted)
        pending = self.cache.trust.keys_needing_fetch(wanted)
        if not pending:
            return facts

        try:
            checked = await self.oracle.batch_check(pending)
        except Exception as e:
            logger.warning(f"Oracle batch_check failed: {e}")
            return facts

        known = {
            identity: TrustFact(distance=result.distance, paths=None, score=result.score)
            for identity, result in checked.items()
            if identity in pending and result.distance is not None
        }
        detailed = await asyncio.gather(*(self._details(i, fact) for i, fact in known.items()))
        resolved = dict(zip(known, detailed, strict=True))

        self.cache.trust.put_batch(resolved)
        incomplete = sum(1 for f in resolved.values() if f.paths is None)
        if incomplete:
            logger.info(f"{incomplete} trust facts without path details, will retry")
        return {**facts, **resolved}


__all__ = [
    "OracleResult",
    "OracleDetails",
    "TrustOracle",
    "FollowsOracle",
    "TrustResolver",
]
