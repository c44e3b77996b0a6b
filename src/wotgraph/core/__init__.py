# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Ambient services shared by every wotgraph component: config, logging,
exceptions and bounded caches."""

from __future__ import annotations

from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    NotFoundError,
    ValidationException,
    WotGraphException,
)
from .logging import configure_logging, correlation_context, get_correlation_id
from .lru_cache import LRUDict

__all__ = [
    "CoreSettings",
    "get_config",
    "clear_config_cache",
    "WotGraphException",
    "ValidationException",
    "ConfigException",
    "NotFoundError",
    "configure_logging",
    "correlation_context",
    "get_correlation_id",
    "LRUDict",
]
