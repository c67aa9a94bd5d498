"""Tests for channel wire helpers, the loop clock and the aiohttp transport."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from telety.channel.aiohttp_transport import AiohttpTransport, connect_websocket
from telety.channel.base import FrameKind, LoopClock, encode_message, parse_frame
from telety.domain.models import ChannelFocus, MessageDeleted, RawFrame
from telety.errors import ChannelError


class TestWireFormat:
    """Test encoding and decoding of {type, data} messages."""

    def test_encode_message(self) -> None:
        """Outbound messages are JSON objects with type and data."""
        assert json.loads(encode_message("channel:focus", "chan")) == {
            "type": "channel:focus",
            "data": "chan",
        }

    def test_parse_typed_message(self) -> None:
        """Known types decode into their typed model."""
        message = parse_frame('{"type": "message:delete", "data": {"message": "m9"}}')
        assert isinstance(message, MessageDeleted)
        assert message.data.message == "m9"

    def test_parse_focus(self) -> None:
        assert parse_frame('{"type": "channel:focus", "data": "chan"}') == ChannelFocus(data="chan")

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '"a string"', ""])
    def test_parse_unparsable_as_raw(self, text: str) -> None:
        """Anything that is not a JSON object is carried as raw text."""
        assert parse_frame(text) == RawFrame(data=text)

    def test_parse_unknown_type(self) -> None:
        """Unknown types are dropped."""
        assert parse_frame('{"type": "presence", "data": {}}') is None

    def test_parse_malformed_payload(self) -> None:
        """A known type with a bad payload is dropped rather than raising."""
        assert parse_frame('{"type": "message", "data": "oops"}') is None


class TestLoopClock:
    """Test the event-loop backed clock."""

    @pytest.mark.asyncio
    async def test_call_later_and_cancel(self) -> None:
        """Timers fire after the delay unless cancelled."""
        clock = LoopClock()
        fired: list[str] = []
        clock.call_later(0.01, lambda: fired.append("kept"))
        handle = clock.call_later(0.01, lambda: fired.append("cancelled"))
        handle.cancel()
        await clock.sleep(0.05)
        assert fired == ["kept"]


def _ws_message(kind: aiohttp.WSMsgType, data: object = None) -> MagicMock:
    msg = MagicMock()
    msg.type = kind
    msg.data = data
    return msg


class TestAiohttpTransport:
    """Test frame mapping over a mocked aiohttp WebSocket."""

    @pytest.fixture
    def ws(self) -> AsyncMock:
        ws = AsyncMock(spec=aiohttp.ClientWebSocketResponse)
        ws.closed = False
        return ws

    @pytest.fixture
    def session(self) -> AsyncMock:
        session = AsyncMock(spec=aiohttp.ClientSession)
        session.closed = False
        return session

    @pytest.mark.asyncio
    async def test_text_frame(self, session, ws) -> None:
        ws.receive.return_value = _ws_message(aiohttp.WSMsgType.TEXT, '{"type": "raw"}')
        frame = await AiohttpTransport(session, ws).recv()
        assert frame.kind is FrameKind.TEXT
        assert frame.data == '{"type": "raw"}'

    @pytest.mark.asyncio
    async def test_ping_is_answered_and_reported(self, session, ws) -> None:
        """PING frames are ponged by the transport and surfaced for liveness."""
        ws.receive.return_value = _ws_message(aiohttp.WSMsgType.PING, b"beat")
        frame = await AiohttpTransport(session, ws).recv()
        assert frame.kind is FrameKind.PING
        ws.pong.assert_awaited_once_with(b"beat")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind",
        [aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR],
    )
    async def test_close_frames(self, session, ws, kind) -> None:
        ws.receive.return_value = _ws_message(kind)
        frame = await AiohttpTransport(session, ws).recv()
        assert frame.kind is FrameKind.CLOSED

    @pytest.mark.asyncio
    async def test_send_failure_wrapped(self, session, ws) -> None:
        ws.send_str.side_effect = ConnectionResetError("reset")
        with pytest.raises(ChannelError):
            await AiohttpTransport(session, ws).send("{}")

    @pytest.mark.asyncio
    async def test_close_releases_socket_and_session(self, session, ws) -> None:
        await AiohttpTransport(session, ws).close()
        ws.close.assert_awaited_once()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_disables_autoping(self) -> None:
        """The handshake keeps PING frames visible to the caller."""
        session = MagicMock()
        session.ws_connect = AsyncMock(return_value=MagicMock())
        session.close = AsyncMock()
        with patch("telety.channel.aiohttp_transport.aiohttp.ClientSession", return_value=session):
            transport = await connect_websocket("wss://x/client", {"authorization": "Bearer t"})
        assert isinstance(transport, AiohttpTransport)
        kwargs = session.ws_connect.await_args.kwargs
        assert kwargs["autoping"] is False
        assert kwargs["ssl"] is True

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        """Handshake failures become ChannelError and release the session."""
        session = MagicMock()
        session.ws_connect = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        session.close = AsyncMock()
        with patch("telety.channel.aiohttp_transport.aiohttp.ClientSession", return_value=session):
            with pytest.raises(ChannelError):
                await connect_websocket("wss://x/client", {})
        session.close.assert_awaited_once()
