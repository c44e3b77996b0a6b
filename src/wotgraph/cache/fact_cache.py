# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Namespaced, bounded fact cache with read-time TTL.

Each namespace (``profiles``, ``trust``) is an LRU-bounded mapping from
identity to CacheEntry. Lookups treat three things as "absent":

- no entry;
- an entry older than the TTL (left in place, not deleted);
- an entry whose stored value cannot be decoded.

``get_batch`` never fails: it returns the subset it found.

Example:
    >>> cache = FactCache()
    >>> cache.profiles.put("pkA", profile)
    >>> cache.profiles.get("pkA") is profile
    True
    >>> cache.profiles.get_batch(["pkA", "pkB"])
    {'pkA': profile}
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..core.config import get_config
from ..core.lru_cache import LRUDict
from ..graph.models import Profile, TrustFact
from .storage import CacheStorage, JsonFileCacheStorage, MemoryCacheStorage

logger = logging.getLogger(__name__)

V = TypeVar("V")

PROFILES = "profiles"
TRUST = "trust"

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and when it was stored.

    ``raw`` holds the persisted form of an entry loaded from storage until
    the first read decodes it into ``value``.
    """

    key: str
    stored_at: float
    value: V | None = None
    raw: Any = None

    @property
    def decoded(self) -> bool:
        return self.raw is None


class CacheNamespace(Generic[V]):
    """One fact type's slice of the cache."""

    def __init__(
        self,
        name: str,
        decode: Callable[[Any], V],
        encode: Callable[[V], Any],
        ttl_seconds: float | None,
        max_size: int | None,
        clock: Clock,
        needs_refresh: Callable[[V], bool] | None = None,
    ):
        self.name = name
        self._decode = decode
        self._encode = encode
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._needs_refresh = needs_refresh
        self._entries: LRUDict[str, CacheEntry[V]] = LRUDict(max_size=max_size)
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def _is_stale(self, entry: CacheEntry[V]) -> bool:
        if self.ttl_seconds is None:
            return False
        return self._clock() - entry.stored_at > self.ttl_seconds

    def _resolve(self, key: str) -> V | None:
        entry = self._entries.peek(key)
        if entry is None or self._is_stale(entry):
            return None
        if not entry.decoded:
            try:
                entry.value = self._decode(entry.raw)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.debug(f"Dropping undecodable {self.name} cache entry {key[:8]}: {e}")
                self._entries.pop(key, None)
                return None
            entry.raw = None
        # Touch for LRU recency
        self._entries[key] = entry
        return entry.value

    def get(self, key: str) -> V | None:
        """Cached value, or None if absent, stale, or undecodable."""
        value = self._resolve(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    def get_batch(self, keys: Iterable[str]) -> dict[str, V]:
        """The subset of ``keys`` that is cached and fresh."""
        found: dict[str, V] = {}
        for key in keys:
            value = self.get(key)
            if value is not None:
                found[key] = value
        return found

    def put(self, key: str, value: V) -> None:
        """Store (or replace) a value, stamped with the current time."""
        self._entries[key] = CacheEntry(key=key, stored_at=self._clock(), value=value)

    def put_batch(self, entries: Mapping[str, V] | Iterable[tuple[str, V]]) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        for key, value in items:
            self.put(key, value)

    def keys_needing_fetch(self, keys: Iterable[str]) -> list[str]:
        """Keys that are absent, stale, or cached with incomplete data."""
        needed = []
        for key in dict.fromkeys(keys):
            value = self._resolve(key)
            if value is None or (self._needs_refresh is not None and self._needs_refresh(value)):
                needed.append(key)
        return needed

    def clear_expired(self) -> int:
        """Delete stale entries. Returns how many were removed."""
        stale = [key for key, entry in self._entries.items() if entry is not None and self._is_stale(entry)]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def dump(self) -> dict[str, dict[str, Any]]:
        """Persisted form of every entry, stale ones included."""
        data: dict[str, dict[str, Any]] = {}
        for key, entry in self._entries.items():
            if entry is None:
                continue
            raw = entry.raw if not entry.decoded else self._encode(entry.value)
            data[key] = {"value": raw, "storedAt": entry.stored_at}
        return data

    def restore(self, data: Mapping[str, Any]) -> int:
        """Add persisted entries; decoding is deferred to first read.

        Returns:
            Number of entries accepted
        """
        accepted = 0
        for key, item in data.items():
            if not isinstance(item, dict) or "value" not in item:
                continue
            stored_at = item.get("storedAt")
            if not isinstance(stored_at, (int, float)):
                continue
            self._entries[key] = CacheEntry(key=key, stored_at=float(stored_at), raw=item["value"])
            accepted += 1
        return accepted

    def stats(self) -> dict[str, Any]:
        lru = self._entries.stats()
        lookups = self._hits + self._misses
        return {
            "size": lru["size"],
            "max_size": lru["max_size"],
            "evictions": lru["evictions"],
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }


def _trust_needs_refresh(fact: TrustFact) -> bool:
    return fact.paths is None


class FactCache:
    """Profiles and trust facts seen during a session.

    Attributes:
        profiles: identity -> Profile
        trust: identity -> TrustFact (entries with unknown paths are returned
            by ``get`` but still reported by ``keys_needing_fetch``)
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        max_size: int | None = None,
        storage: CacheStorage | None = None,
        clock: Clock = time.time,
    ):
        config = get_config()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.cache_ttl_seconds
        max_size = max_size if max_size is not None else config.cache_max_size
        self.storage = storage

        self.profiles: CacheNamespace[Profile] = CacheNamespace(
            PROFILES,
            decode=Profile.from_dict,
            encode=Profile.to_dict,
            ttl_seconds=self.ttl_seconds,
            max_size=max_size,
            clock=clock,
        )
        self.trust: CacheNamespace[TrustFact] = CacheNamespace(
            TRUST,
            decode=TrustFact.from_dict,
            encode=TrustFact.to_dict,
            ttl_seconds=self.ttl_seconds,
            max_size=max_size,
            clock=clock,
            needs_refresh=_trust_needs_refresh,
        )

    @classmethod
    def from_config(cls) -> FactCache:
        """Cache persisted to ``cache_path`` if configured, else memory-only."""
        config = get_config()
        storage: CacheStorage = (
            JsonFileCacheStorage(config.cache_path) if config.cache_path else MemoryCacheStorage()
        )
        return cls(storage=storage)

    @property
    def namespaces(self) -> dict[str, CacheNamespace[Any]]:
        return {PROFILES: self.profiles, TRUST: self.trust}

    def namespace(self, name: str) -> CacheNamespace[Any]:
        try:
            return self.namespaces[name]
        except KeyError:
            raise ValueError(f"Unknown cache namespace: {name}") from None

    def load(self) -> int:
        """Pull entries from storage into memory. Returns the number loaded."""
        if self.storage is None:
            return 0
        snapshot = self.storage.read()
        loaded = 0
        for name, ns in self.namespaces.items():
            loaded += ns.restore(snapshot.get(name, {}))
        logger.debug(f"Loaded {loaded} cache entries")
        return loaded

    def save(self) -> None:
        """Write every namespace to storage (no-op without storage)."""
        if self.storage is None:
            return
        self.storage.write({name: ns.dump() for name, ns in self.namespaces.items()})
        logger.debug("Saved fact cache")

    def clear_expired(self) -> int:
        return sum(ns.clear_expired() for ns in self.namespaces.values())

    def clear(self, namespace: str | None = None) -> None:
        """Clear one namespace, or everything (including storage) when None."""
        if namespace is not None:
            self.namespace(namespace).clear()
            return
        for ns in self.namespaces.values():
            ns.clear()
        if self.storage is not None:
            self.storage.clear()

    def stats(self) -> dict[str, Any]:
        return {name: ns.stats() for name, ns in self.namespaces.items()}
