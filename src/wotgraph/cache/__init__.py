# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Fact cache: session-scoped profiles and trust facts with optional persistence."""

from __future__ import annotations

from .fact_cache import PROFILES, TRUST, CacheEntry, CacheNamespace, FactCache
from .storage import CACHE_FORMAT_VERSION, CacheStorage, JsonFileCacheStorage, MemoryCacheStorage

__all__ = [
    "FactCache",
    "CacheNamespace",
    "CacheEntry",
    "PROFILES",
    "TRUST",
    "CacheStorage",
    "MemoryCacheStorage",
    "JsonFileCacheStorage",
    "CACHE_FORMAT_VERSION",
]
