# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Relay access: wire messages, transports, fan-out aggregation and fact fetchers."""

from __future__ import annotations

from .aggregator import AggregationResult, EndpointOutcome, RelayAggregator
from .fetchers import (
    NotesPager,
    fetch_follows,
    fetch_notes,
    fetch_profiles,
    note_from_event,
    profile_from_event,
    stream_profiles,
)
from .messages import Kind, RelayEvent, RelayFilter, RelayQuery
from .transport import AiohttpTransport, RelayConnection, RelayTransport, TransportClosed

__all__ = [
    "RelayAggregator",
    "AggregationResult",
    "EndpointOutcome",
    "Kind",
    "RelayEvent",
    "RelayFilter",
    "RelayQuery",
    "RelayTransport",
    "RelayConnection",
    "AiohttpTransport",
    "TransportClosed",
    "fetch_follows",
    "fetch_profiles",
    "fetch_notes",
    "stream_profiles",
    "profile_from_event",
    "note_from_event",
    "NotesPager",
]
