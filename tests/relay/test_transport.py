"""Tests for the aiohttp WebSocket transport (aiohttp mocked out)."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from aiohttp import WSMsgType

from wotgraph.relay.transport import AiohttpConnection, AiohttpTransport, TransportClosed


def ws_message(msg_type: WSMsgType, data=None) -> SimpleNamespace:
    return SimpleNamespace(type=msg_type, data=data)


@pytest.fixture
def ws() -> MagicMock:
    socket = MagicMock()
    socket.closed = False
    socket.send_str = AsyncMock()
    socket.receive = AsyncMock()
    socket.close = AsyncMock()
    socket.exception = MagicMock(return_value=RuntimeError("boom"))
    return socket


@pytest.fixture
def session() -> MagicMock:
    s = MagicMock()
    s.close = AsyncMock()
    return s


class TestAiohttpConnection:
    async def test_receive_text(self, ws, session):
        ws.receive.return_value = ws_message(WSMsgType.TEXT, '["EOSE", "s"]')
        conn = AiohttpConnection(session, ws, "wss://r.example")
        assert await conn.receive() == '["EOSE", "s"]'

    async def test_receive_binary_decoded(self, ws, session):
        ws.receive.return_value = ws_message(WSMsgType.BINARY, b'["EOSE", "s"]')
        conn = AiohttpConnection(session, ws, "wss://r.example")
        assert await conn.receive() == '["EOSE", "s"]'

    async def test_skips_control_frames(self, ws, session):
        ws.receive.side_effect = [ws_message(WSMsgType.PONG), ws_message(WSMsgType.TEXT, "x")]
        conn = AiohttpConnection(session, ws, "wss://r.example")
        assert await conn.receive() == "x"

    @pytest.mark.parametrize("msg_type", [WSMsgType.CLOSE, WSMsgType.CLOSED, WSMsgType.ERROR])
    async def test_close_and_error_raise(self, ws, session, msg_type):
        ws.receive.return_value = ws_message(msg_type)
        conn = AiohttpConnection(session, ws, "wss://r.example")
        with pytest.raises(TransportClosed):
            await conn.receive()

    async def test_send_failure_raises(self, ws, session):
        ws.send_str.side_effect = ConnectionResetError("reset")
        conn = AiohttpConnection(session, ws, "wss://r.example")
        with pytest.raises(TransportClosed):
            await conn.send("[]")

    async def test_close_closes_session(self, ws, session):
        conn = AiohttpConnection(session, ws, "wss://r.example")
        await conn.close()
        ws.close.assert_awaited_once()
        session.close.assert_awaited_once()

    async def test_close_already_closed_socket(self, ws, session):
        ws.closed = True
        conn = AiohttpConnection(session, ws, "wss://r.example")
        await conn.close()
        ws.close.assert_not_awaited()
        session.close.assert_awaited_once()


class TestAiohttpTransport:
    async def test_connect(self, ws, session):
        session.ws_connect = AsyncMock(return_value=ws)
        with patch("wotgraph.relay.transport.aiohttp.ClientSession", return_value=session):
            conn = await AiohttpTransport(heartbeat=15).connect("wss://r.example")
        session.ws_connect.assert_awaited_once_with("wss://r.example", heartbeat=15)
        assert isinstance(conn, AiohttpConnection)

    async def test_connect_failure(self, session):
        session.ws_connect = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with patch("wotgraph.relay.transport.aiohttp.ClientSession", return_value=session):
            with pytest.raises(TransportClosed):
                await AiohttpTransport().connect("wss://r.example")
        session.close.assert_awaited_once()

    async def test_connect_timeout(self, session):
        async def never(*args, **kwargs):
            await asyncio.sleep(10)

        session.ws_connect = never
        with patch("wotgraph.relay.transport.aiohttp.ClientSession", return_value=session):
            with pytest.raises(TransportClosed):
                await AiohttpTransport(connect_timeout=0.05).connect("wss://r.example")
        session.close.assert_awaited_once()
