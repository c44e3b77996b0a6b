# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Relay wire messages (NIP-01 JSON arrays).

Client to relay:
    ["REQ", <sub_id>, <filter>, ...]
    ["CLOSE", <sub_id>]

Relay to client:
    ["EVENT", <sub_id>, <event>]
    ["EOSE", <sub_id>]
    ["CLOSED", <sub_id>, <reason>]
    ["NOTICE", <message>]

Parsing never raises: anything malformed comes back as None and the caller
drops it.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Any

_HEX_ID = re.compile(r"^[0-9a-f]{64}$")


class Kind(IntEnum):
    """Event kinds consumed by wotgraph."""

    PROFILE = 0
    NOTE = 1
    FOLLOWS = 3


class MessageType(StrEnum):
    REQ = "REQ"
    CLOSE = "CLOSE"
    EVENT = "EVENT"
    EOSE = "EOSE"
    CLOSED = "CLOSED"
    NOTICE = "NOTICE"


@dataclass(frozen=True)
class RelayFilter:
    """One subscription filter.

    Attributes:
        kinds: Event kinds to return
        authors: Author identities (hex)
        ids: Event ids
        p_tags: Identities referenced by ``p`` tags (``#p``)
        limit: Maximum number of stored events per relay
        until: Only events with created_at <= until (pagination cursor)
        since: Only events with created_at >= since
    """

    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    ids: tuple[str, ...] = ()
    p_tags: tuple[str, ...] = ()
    limit: int | None = None
    until: int | None = None
    since: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.kinds:
            data["kinds"] = list(self.kinds)
        if self.authors:
            data["authors"] = list(self.authors)
        if self.ids:
            data["ids"] = list(self.ids)
        if self.p_tags:
            data["#p"] = list(self.p_tags)
        if self.limit is not None:
            data["limit"] = self.limit
        if self.until is not None:
            data["until"] = self.until
        if self.since is not None:
            data["since"] = self.since
        return data


@dataclass(frozen=True)
class RelayQuery:
    """A logical query: one or more filters sent in a single REQ."""

    filters: tuple[RelayFilter, ...]

    @property
    def kinds(self) -> frozenset[int]:
        return frozenset(k for f in self.filters for k in f.kinds)

    @classmethod
    def for_authors(
        cls,
        kind: int,
        authors: list[str] | tuple[str, ...],
        batch_size: int = 100,
        limit: int | None = None,
        until: int | None = None,
    ) -> RelayQuery:
        """One filter per ``batch_size`` authors, all in the same REQ."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        authors = tuple(authors)
        chunks = [authors[i : i + batch_size] for i in range(0, len(authors), batch_size)] or [()]
        return cls(
            filters=tuple(RelayFilter(kinds=(kind,), authors=chunk, limit=limit, until=until) for chunk in chunks)
        )


@dataclass(frozen=True)
class RelayEvent:
    """A signed relay event. Signatures are carried, not verified."""

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...] = ()
    content: str = ""
    sig: str | None = None

    def tag_values(self, name: str) -> list[str]:
        """Second element of every tag named ``name``."""
        return [t[1] for t in self.tags if len(t) > 1 and t[0] == name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(t) for t in self.tags],
            "content": self.content,
            "sig": self.sig,
        }


@dataclass
class RelayMessage:
    """A decoded relay-to-client message."""

    type: MessageType
    subscription_id: str | None = None
    event: RelayEvent | None = None
    text: str | None = None


def encode_request(subscription_id: str, query: RelayQuery) -> str:
    return json.dumps([MessageType.REQ.value, subscription_id, *(f.to_dict() for f in query.filters)])


def encode_close(subscription_id: str) -> str:
    return json.dumps([MessageType.CLOSE.value, subscription_id])


def parse_event(raw: Any) -> RelayEvent | None:
    """Validate an event object; None if any required field is missing or mistyped."""
    if not isinstance(raw, dict):
        return None
    event_id = raw.get("id")
    pubkey = raw.get("pubkey")
    kind = raw.get("kind")
    created_at = raw.get("created_at", 0)
    if not isinstance(event_id, str) or not event_id:
        return None
    if not isinstance(pubkey, str) or not _HEX_ID.match(pubkey):
        return None
    if not isinstance(kind, int) or isinstance(kind, bool):
        return None
    if not isinstance(created_at, int) or isinstance(created_at, bool):
        return None

    content = raw.get("content", "")
    if not isinstance(content, str):
        return None

    tags: list[tuple[str, ...]] = []
    raw_tags = raw.get("tags", [])
    if not isinstance(raw_tags, list):
        return None
    for tag in raw_tags:
        if isinstance(tag, list) and all(isinstance(part, str) for part in tag):
            tags.append(tuple(tag))

    sig = raw.get("sig")
    return RelayEvent(
        id=event_id,
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=tuple(tags),
        content=content,
        sig=sig if isinstance(sig, str) else None,
    )


def parse_message(data: str | bytes) -> RelayMessage | None:
    """Decode one relay frame; None for anything unparseable or unknown."""
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        return None
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], str):
        return None

    try:
        msg_type = MessageType(payload[0])
    except ValueError:
        return None

    if msg_type == MessageType.NOTICE:
        text = payload[1] if len(payload) > 1 and isinstance(payload[1], str) else None
        return RelayMessage(type=msg_type, text=text)

    if len(payload) < 2 or not isinstance(payload[1], str):
        return None
    sub_id = payload[1]

    if msg_type == MessageType.EVENT:
        event = parse_event(payload[2]) if len(payload) > 2 else None
        if event is None:
            return None
        return RelayMessage(type=msg_type, subscription_id=sub_id, event=event)
    if msg_type == MessageType.CLOSED:
        reason = payload[2] if len(payload) > 2 and isinstance(payload[2], str) else None
        return RelayMessage(type=msg_type, subscription_id=sub_id, text=reason)
    if msg_type == MessageType.EOSE:
        return RelayMessage(type=msg_type, subscription_id=sub_id)
    # REQ / CLOSE are client messages
    return None


def is_hex_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_HEX_ID.match(value))
