# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Turn aggregated relay events into domain facts.

The aggregator knows nothing about follows, profiles or notes; these
helpers build the right query, run it, and interpret the events. Profile
lookups are cache-first and write what they fetch back to the cache.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Iterable

from ..cache.fact_cache import FactCache
from ..core.config import get_config
from ..graph.models import Note, Profile
from .aggregator import RelayAggregator
from .messages import Kind, RelayEvent, RelayQuery, is_hex_id

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    ("name", ("name",)),
    ("display_name", ("display_name", "displayName")),
    ("picture", ("picture",)),
    ("about", ("about",)),
    ("nip05", ("nip05",)),
)


def profile_from_event(event: RelayEvent) -> Profile | None:
    """Parse a kind-0 event; None if the content is not a JSON object.

    Individual fields of the wrong type are dropped, not the whole profile.
    """
    if event.kind != Kind.PROFILE:
        return None
    try:
        content = json.loads(event.content)
    except json.JSONDecodeError:
        logger.debug(f"Unparseable profile content in event {event.id[:8]}")
        return None
    if not isinstance(content, dict):
        return None

    fields: dict[str, str | None] = {}
    for attr, keys in _PROFILE_FIELDS:
        value = None
        for key in keys:
            candidate = content.get(key)
            if isinstance(candidate, str) and candidate:
                value = candidate
                break
        fields[attr] = value
    return Profile(identity=event.pubkey, created_at=event.created_at, **fields)


def note_from_event(event: RelayEvent) -> Note:
    return Note(
        id=event.id,
        identity=event.pubkey,
        content=event.content,
        created_at=event.created_at,
        tags=event.tags,
        sig=event.sig,
    )


def _valid_identities(identities: Iterable[str]) -> list[str]:
    return [i for i in dict.fromkeys(identities) if is_hex_id(i)]


async def fetch_follows(aggregator: RelayAggregator, identity: str, deadline: float | None = None) -> list[str]:
    """Identities followed by ``identity`` according to any relay.

    Every kind-3 event returned for the author contributes its ``p`` tags;
    the result is their union in first-seen order, without malformed ids and
    without the author itself.
    """
    query = RelayQuery.for_authors(Kind.FOLLOWS, [identity], limit=1)
    result = await aggregator.query(query, deadline=deadline)

    follows: dict[str, None] = {}
    for event in result.events:
        if event.pubkey != identity:
            continue
        for target in event.tag_values("p"):
            target = target.lower()
            if target != identity and is_hex_id(target):
                follows.setdefault(target)
    logger.debug(f"Fetched {len(follows)} follows for {identity[:8]}")
    return list(follows)


def _newest_profiles(events: Iterable[RelayEvent], wanted: set[str]) -> dict[str, Profile]:
    profiles: dict[str, Profile] = {}
    for event in events:
        if event.pubkey not in wanted:
            continue
        profile = profile_from_event(event)
        if profile is None:
            continue
        current = profiles.get(event.pubkey)
        if current is None or profile.created_at > current.created_at:
            profiles[event.pubkey] = profile
    return profiles


async def fetch_profiles(
    aggregator: RelayAggregator,
    identities: Iterable[str],
    cache: FactCache | None = None,
    deadline: float | None = None,
    batch_size: int | None = None,
) -> dict[str, Profile]:
    """Profiles for ``identities``, from the cache first and relays for the rest.

    Fetched profiles are written to the cache. Identities nobody has a
    profile for are absent from the result.
    """
    config = get_config()
    wanted = _valid_identities(identities)
    found: dict[str, Profile] = {}
    missing = wanted
    if cache is not None:
        found = cache.profiles.get_batch(wanted)
        missing = cache.profiles.keys_needing_fetch(wanted)
    if not missing:
        return found

    query = RelayQuery.for_authors(Kind.PROFILE, missing, batch_size=batch_size or config.profile_batch_size)
    result = await aggregator.query(
        query, deadline=deadline if deadline is not None else config.profile_deadline
    )
    fetched = _newest_profiles(result.events, set(missing))
    if cache is not None and fetched:
        cache.profiles.put_batch(fetched)

    logger.debug(f"Profiles: {len(found)} cached, {len(fetched)}/{len(missing)} fetched")
    return {**found, **fetched}


async def stream_profiles(
    aggregator: RelayAggregator,
    identities: Iterable[str],
    deadline: float | None = None,
    batch_size: int | None = None,
) -> AsyncIterator[Profile]:
    """Yield profiles as relays deliver them.

    A profile is yielded again only when a newer version arrives.
    """
    config = get_config()
    wanted = _valid_identities(identities)
    if not wanted:
        return
    query = RelayQuery.for_authors(Kind.PROFILE, wanted, batch_size=batch_size or config.profile_batch_size)
    wanted_set = set(wanted)
    newest: dict[str, int] = {}
    async for event in aggregator.stream(
        query, deadline=deadline if deadline is not None else config.profile_deadline
    ):
        if event.pubkey not in wanted_set:
            continue
        profile = profile_from_event(event)
        if profile is None or newest.get(profile.identity, -1) >= profile.created_at:
            continue
        newest[profile.identity] = profile.created_at
        yield profile


async def fetch_notes(
    aggregator: RelayAggregator,
    identity: str,
    limit: int | None = None,
    until: int | None = None,
    deadline: float | None = None,
) -> list[Note]:
    """Notes by ``identity``, newest first."""
    config = get_config()
    query = RelayQuery.for_authors(Kind.NOTE, [identity], limit=limit or config.notes_page_size, until=until)
    result = await aggregator.query(query, deadline=deadline if deadline is not None else config.notes_deadline)
    notes = [note_from_event(e) for e in result.events if e.pubkey == identity]
    notes.sort(key=lambda n: n.created_at, reverse=True)
    return notes


class NotesPager:
    """Pages backwards through one identity's notes.

    Example:
        >>> pager = NotesPager(aggregator, pk)
        >>> first = await pager.load_more()
        >>> older = await pager.load_more()  # until = oldest.created_at - 1
    """

    def __init__(
        self,
        aggregator: RelayAggregator,
        identity: str,
        page_size: int | None = None,
        deadline: float | None = None,
    ):
        self.aggregator = aggregator
        self.identity = identity
        self.page_size = page_size or get_config().notes_page_size
        self.deadline = deadline
        self.notes: list[Note] = []
        self.has_more = True
        self._seen: set[str] = set()

    @property
    def cursor(self) -> int | None:
        """``until`` for the next page; None before the first page."""
        if not self.notes:
            return None
        return self.notes[-1].created_at - 1

    async def load_more(self) -> list[Note]:
        """Fetch the next page. Returns only notes not seen before."""
        if not self.has_more:
            return []
        page = await fetch_notes(
            self.aggregator,
            self.identity,
            limit=self.page_size,
            until=self.cursor,
            deadline=self.deadline,
        )
        fresh = [n for n in page if n.id not in self._seen]
        self._seen.update(n.id for n in fresh)
        self.notes.extend(fresh)
        self.notes.sort(key=lambda n: n.created_at, reverse=True)
        self.has_more = len(fresh) >= self.page_size
        return fresh

    def reset(self) -> None:
        self.notes.clear()
        self._seen.clear()
        self.has_more = True
