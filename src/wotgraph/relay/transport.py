# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Message transports for relay connections.

The aggregator only needs "open a connection to URL, send text frames,
receive text frames, close". AiohttpTransport provides that over
WebSockets; tests substitute in-memory fakes implementing the same
protocols.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

import aiohttp
from aiohttp import WSMsgType

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0
HEARTBEAT_SECONDS = 30


class TransportClosed(ConnectionError):
    """The remote end closed the connection or it failed."""


@runtime_checkable
class RelayConnection(Protocol):
    """An open, message-oriented connection to one relay."""

    async def send(self, data: str) -> None: ...

    async def receive(self) -> str:
        """Next text frame.

        Raises:
            TransportClosed: When the connection is closed or errored.
        """
        ...

    async def close(self) -> None: ...


@runtime_checkable
class RelayTransport(Protocol):
    async def connect(self, url: str) -> RelayConnection: ...


class AiohttpConnection:
    """WebSocket connection owning its own ClientSession."""

    def __init__(self, session: aiohttp.ClientSession, ws: aiohttp.ClientWebSocketResponse, url: str):
        self._session = session
        self._ws = ws
        self.url = url

    async def send(self, data: str) -> None:
        try:
            await self._ws.send_str(data)
        except (ConnectionResetError, aiohttp.ClientError) as e:
            raise TransportClosed(f"{self.url}: send failed: {e}") from e

    async def receive(self) -> str:
        while True:
            msg = await self._ws.receive()
            if msg.type == WSMsgType.TEXT:
                return msg.data
            if msg.type == WSMsgType.BINARY:
                return msg.data.decode("utf-8", errors="replace")
            if msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                raise TransportClosed(f"{self.url}: connection closed")
            if msg.type == WSMsgType.ERROR:
                raise TransportClosed(f"{self.url}: {self._ws.exception()}")
            # PING/PONG are handled by aiohttp's heartbeat

    async def close(self) -> None:
        try:
            if not self._ws.closed:
                await self._ws.close()
        finally:
            await self._session.close()


class AiohttpTransport:
    """Opens one WebSocket (and one ClientSession) per relay connection."""

    def __init__(self, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT, heartbeat: float = HEARTBEAT_SECONDS):
        self.connect_timeout = connect_timeout
        self.heartbeat = heartbeat

    async def connect(self, url: str) -> AiohttpConnection:
        """Open a WebSocket to ``url``.

        Raises:
            TransportClosed: If the connection cannot be established.
        """
        session = aiohttp.ClientSession()
        try:
            async with asyncio.timeout(self.connect_timeout):
                ws = await session.ws_connect(url, heartbeat=self.heartbeat)
        except (aiohttp.ClientError, OSError, TimeoutError) as e:
            await session.close()
            raise TransportClosed(f"{url}: connect failed: {e}") from e
        except BaseException:
            await session.close()
            raise
        logger.debug("Connected to relay %s", url)
        return AiohttpConnection(session, ws, url)
