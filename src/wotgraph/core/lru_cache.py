# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Bounded in-memory mapping with least-recently-used eviction.

Backs every FactCache namespace so a long session that keeps expanding the
graph cannot grow its caches without limit.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Iterator
from typing import Any, TypeVar

DEFAULT_CACHE_MAX_SIZE = 5000

K = TypeVar("K")
V = TypeVar("V")


def get_cache_max_size() -> int:
    """Get the configured cache max size from config."""
    from .config import get_config

    try:
        return get_config().cache_max_size
    except ValueError:
        # Invalid WOTGRAPH_CACHE_MAX_SIZE
        return DEFAULT_CACHE_MAX_SIZE


class LRUDict(dict[K, V]):
    """
    A dictionary with LRU (Least Recently Used) eviction policy.

    When the mapping exceeds max_size, the least recently written or read
    items are evicted. ``get`` and ``peek`` do not touch recency; item access
    (``cache[key]``) does.

    Example:
        cache = LRUDict(max_size=100)
        cache["pk1"] = profile
        cache["pk1"]  # pk1 becomes most recent
    """

    def __init__(self, max_size: int | None = None) -> None:
        """
        Initialize LRU mapping.

        Args:
            max_size: Maximum number of items. If None, uses
                      WOTGRAPH_CACHE_MAX_SIZE or DEFAULT_CACHE_MAX_SIZE.
        """
        super().__init__()
        self._max_size = max_size if max_size is not None else get_cache_max_size()
        if self._max_size <= 0:
            raise ValueError(f"max_size must be positive, got {self._max_size}")
        self._order: OrderedDict[K, None] = OrderedDict()
        self._lock = threading.RLock()
        self._evictions = 0

    @property
    def max_size(self) -> int:
        """Maximum number of items."""
        return self._max_size

    def __setitem__(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._order:
                self._order.move_to_end(key)
            else:
                self._order[key] = None
            super().__setitem__(key, value)
            self._evict_if_needed()

    def __getitem__(self, key: K) -> V:
        with self._lock:
            value = super().__getitem__(key)
            self._order.move_to_end(key)
            return value

    def __delitem__(self, key: K) -> None:
        with self._lock:
            super().__delitem__(key)
            self._order.pop(key, None)

    def peek(self, key: K, default: V | None = None) -> V | None:
        """Get item without updating access order."""
        with self._lock:
            return super().get(key, default)

    def pop(self, key: K, *args: Any) -> V:
        with self._lock:
            self._order.pop(key, None)
            return super().pop(key, *args)

    def clear(self) -> None:
        with self._lock:
            super().clear()
            self._order.clear()

    def _evict_if_needed(self) -> None:
        while len(self._order) > self._max_size:
            oldest_key, _ = self._order.popitem(last=False)
            super().pop(oldest_key, None)
            self._evictions += 1

    def __iter__(self) -> Iterator[K]:
        """Iterate over keys oldest to newest."""
        with self._lock:
            return iter(list(self._order.keys()))

    def keys(self) -> Any:
        with self._lock:
            return list(self._order.keys())

    def items(self) -> Any:
        with self._lock:
            return [(k, super(LRUDict, self).get(k)) for k in self._order.keys()]

    def stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        with self._lock:
            return {
                "size": len(self),
                "max_size": self._max_size,
                "evictions": self._evictions,
                "utilization": len(self) / self._max_size,
            }
