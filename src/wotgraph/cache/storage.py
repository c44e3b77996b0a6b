# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Persistent backing stores for the fact cache.

A store reads and writes one snapshot shaped as::

    {
        "version": 2,
        "namespaces": {
            "profiles": {"<pubkey>": {"value": {...}, "storedAt": 1730000000.0}},
            "trust": {...}
        }
    }

Stores only move JSON-compatible data; decoding values is the cache's job.
An unreadable snapshot is treated as empty.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 2

# Namespaces whose entries changed shape in a format bump and must be dropped
# when an older snapshot is loaded.
RESET_ON_UPGRADE = ("trust",)

Snapshot = dict[str, dict[str, dict[str, Any]]]


@runtime_checkable
class CacheStorage(Protocol):
    """Client-side key-value persistence, namespaced by fact type."""

    def read(self) -> Snapshot: ...

    def write(self, snapshot: Snapshot) -> None: ...

    def clear(self) -> None: ...


def _upgrade(document: Any, source: str) -> Snapshot:
    """Validate a raw document and apply format-version rules."""
    if not isinstance(document, dict):
        logger.warning(f"Ignoring cache snapshot from {source}: not an object")
        return {}
    namespaces = document.get("namespaces")
    if not isinstance(namespaces, dict):
        return {}

    snapshot: Snapshot = {
        name: entries for name, entries in namespaces.items() if isinstance(name, str) and isinstance(entries, dict)
    }
    version = document.get("version")
    if not isinstance(version, int) or version < CACHE_FORMAT_VERSION:
        for name in RESET_ON_UPGRADE:
            if snapshot.pop(name, None) is not None:
                logger.info(f"Cleared {name} cache from format version {version} (now {CACHE_FORMAT_VERSION})")
    return snapshot


class MemoryCacheStorage:
    """In-process storage; snapshots are deep-copied in and out."""

    def __init__(self, document: dict[str, Any] | None = None):
        self._document = copy.deepcopy(document) if document is not None else None

    def read(self) -> Snapshot:
        if self._document is None:
            return {}
        return _upgrade(copy.deepcopy(self._document), "memory")

    def write(self, snapshot: Snapshot) -> None:
        self._document = {"version": CACHE_FORMAT_VERSION, "namespaces": copy.deepcopy(snapshot)}

    def clear(self) -> None:
        self._document = None

    @property
    def document(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._document)


class JsonFileCacheStorage:
    """One JSON file holding every namespace. Writes replace the file atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def read(self) -> Snapshot:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Cannot read cache file {self.path}: {e}")
            return {}
        except UnicodeDecodeError as e:
            logger.warning(f"Corrupt cache file {self.path}: {e}")
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt cache file {self.path}: {e}")
            return {}
        return _upgrade(document, str(self.path))

    def write(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {"version": CACHE_FORMAT_VERSION, "namespaces": snapshot}
        fd, tmp_name = tempfile.mkstemp(prefix=".wotgraph-cache-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
