# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Fan-out queries across redundant relays.

One logical query is sent to every configured relay at once, one task per
relay. Events are deduplicated by id into a single accumulator. The query
resolves when every relay has finished (EOSE, CLOSED, error) or when the
deadline elapses, whichever comes first; relays still running at that
point are cancelled and their connections closed.

Relay failures are never raised to the caller. A query where every relay
failed returns an empty result, the same as a query with no matching data.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from ..core.config import get_config
from ..core.logging import correlation_context
from .messages import MessageType, RelayEvent, RelayQuery, encode_close, encode_request, parse_message
from .transport import AiohttpTransport, RelayTransport, TransportClosed

logger = logging.getLogger(__name__)

EventCallback = Callable[[RelayEvent], None]


class EndpointOutcome(StrEnum):
    """How one relay's part of a query ended."""

    EOSE = "eose"
    CLOSED = "closed"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass
class AggregationResult:
    """Deduplicated events from all relays plus per-relay outcomes.

    Attributes:
        events: Unique events in arrival order
        outcomes: Relay URL -> how that relay finished
        elapsed: Seconds from start to resolution
        timed_out: True if the deadline was reached before every relay finished
    """

    events: list[RelayEvent] = field(default_factory=list)
    outcomes: dict[str, EndpointOutcome] = field(default_factory=dict)
    elapsed: float = 0.0
    timed_out: bool = False

    @property
    def successful_relays(self) -> list[str]:
        return [url for url, outcome in self.outcomes.items() if outcome == EndpointOutcome.EOSE]

    def by_kind(self, kind: int) -> list[RelayEvent]:
        return [e for e in self.events if e.kind == kind]


class _Accumulator:
    """Dedup store shared by the relay tasks of one query (single event loop)."""

    def __init__(self, kinds: frozenset[int], on_event: EventCallback | None):
        self.kinds = kinds
        self.on_event = on_event
        self.events: list[RelayEvent] = []
        self.seen: set[str] = set()

    def add(self, event: RelayEvent) -> bool:
        if self.kinds and event.kind not in self.kinds:
            return False
        if event.id in self.seen:
            return False
        self.seen.add(event.id)
        self.events.append(event)
        if self.on_event is not None:
            try:
                self.on_event(event)
            except Exception as e:
                logger.warning(f"Event callback error: {e}")
        return True


class RelayAggregator:
    """Runs one query against every relay and merges the answers.

    Example:
        >>> aggregator = RelayAggregator(["wss://relay.damus.io", "wss://nos.lol"])
        >>> result = await aggregator.query(RelayQuery.for_authors(Kind.FOLLOWS, [pk], limit=1))
        >>> len(result.events)
        1
    """

    def __init__(
        self,
        relays: Sequence[str] | None = None,
        transport: RelayTransport | None = None,
        default_deadline: float | None = None,
    ):
        config = get_config()
        self.relays = list(dict.fromkeys(relays if relays is not None else config.relay_urls))
        self.transport = transport or AiohttpTransport()
        self.default_deadline = default_deadline if default_deadline is not None else config.relay_deadline

    @staticmethod
    def new_subscription_id() -> str:
        return f"wot-{secrets.token_hex(4)}"

    async def _run_endpoint(self, url: str, sub_id: str, query: RelayQuery, acc: _Accumulator) -> EndpointOutcome:
        try:
            conn = await self.transport.connect(url)
        except (TransportClosed, OSError) as e:
            logger.debug(f"Relay {url} unreachable: {e}")
            return EndpointOutcome.ERROR

        try:
            await conn.send(encode_request(sub_id, query))
            while True:
                message = parse_message(await conn.receive())
                if message is None:
                    continue
                if message.type == MessageType.NOTICE:
                    logger.debug(f"Relay {url} notice: {message.text}")
                    continue
                if message.subscription_id != sub_id:
                    continue
                if message.type == MessageType.EVENT and message.event is not None:
                    acc.add(message.event)
                elif message.type == MessageType.EOSE:
                    return EndpointOutcome.EOSE
                elif message.type == MessageType.CLOSED:
                    logger.debug(f"Relay {url} closed subscription: {message.text}")
                    return EndpointOutcome.CLOSED
        except (TransportClosed, OSError) as e:
            logger.debug(f"Relay {url} failed: {e}")
            return EndpointOutcome.ERROR
        except Exception as e:
            logger.warning(f"Unexpected error from relay {url}: {e}")
            return EndpointOutcome.ERROR
        finally:
            await self._close(conn, sub_id)

    @staticmethod
    async def _close(conn, sub_id: str) -> None:
        try:
            await conn.send(encode_close(sub_id))
        except (TransportClosed, OSError):
            pass
        except Exception as e:
            logger.debug(f"CLOSE not sent: {e}")
        try:
            await conn.close()
        except Exception as e:
            logger.debug(f"Error closing relay connection: {e}")

    async def query(
        self,
        query: RelayQuery,
        deadline: float | None = None,
        on_event: EventCallback | None = None,
    ) -> AggregationResult:
        """Send ``query`` to every relay and collect the union of their events.

        Args:
            query: Filters to send in one REQ
            deadline: Seconds before outstanding relays are abandoned
                (default: ``relay_deadline_ms`` from config)
            on_event: Called once per new unique event, as it arrives

        Returns:
            AggregationResult; empty if every relay failed
        """
        deadline = self.default_deadline if deadline is None else deadline
        acc = _Accumulator(query.kinds, on_event)
        result = AggregationResult()
        started = time.monotonic()

        if not self.relays:
            return result

        with correlation_context():
            sub_id = self.new_subscription_id()
            tasks = {
                asyncio.create_task(self._run_endpoint(url, sub_id, query, acc), name=f"relay:{url}"): url
                for url in self.relays
            }
            try:
                done, pending = await asyncio.wait(tasks, timeout=deadline)
                for task in pending:
                    task.cancel()
                    result.outcomes[tasks[task]] = EndpointOutcome.TIMEOUT
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)
                    result.timed_out = True
                for task in done:
                    result.outcomes[tasks[task]] = task.result()
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()

            result.events = acc.events
            result.elapsed = time.monotonic() - started
            logger.info(
                f"Relay query {sub_id}: {len(result.events)} events from "
                f"{len(result.successful_relays)}/{len(self.relays)} relays in {result.elapsed:.2f}s"
                + (" (deadline reached)" if result.timed_out else "")
            )
        # Keep per-relay outcomes in configured order
        result.outcomes = {url: result.outcomes[url] for url in self.relays}
        return result

    async def stream(self, query: RelayQuery, deadline: float | None = None) -> AsyncIterator[RelayEvent]:
        """Yield each new unique event as soon as any relay delivers it.

        Ends when the underlying query resolves. Closing the iterator early
        cancels the query.
        """
        queue: asyncio.Queue[RelayEvent | None] = asyncio.Queue()
        runner = asyncio.create_task(self.query(query, deadline, on_event=queue.put_nowait))
        runner.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            # Surface unexpected failures of the query itself
            runner.result()
        finally:
            if not runner.done():
                runner.cancel()
                await asyncio.gather(runner, return_exceptions=True)
