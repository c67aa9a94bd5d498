"""aiohttp WebSocket transport for the push channel.

Automatic ping handling is disabled so every protocol-level PING reaches
the client as a liveness signal; the transport answers it with a PONG
itself.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import aiohttp

from telety.channel.base import ChannelTransport, Frame, FrameKind
from telety.errors import ChannelError

logger = logging.getLogger(__name__)

_CLOSED_TYPES = (
    aiohttp.WSMsgType.CLOSE,
    aiohttp.WSMsgType.CLOSING,
    aiohttp.WSMsgType.CLOSED,
    aiohttp.WSMsgType.ERROR,
)


class AiohttpTransport(ChannelTransport):
    """Wraps one ``ClientWebSocketResponse`` and the session that owns it."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
    ) -> None:
        self._session = session
        self._ws = ws

    async def recv(self) -> Frame:
        msg = await self._ws.receive()
        if msg.type == aiohttp.WSMsgType.TEXT:
            return Frame(FrameKind.TEXT, msg.data)
        if msg.type == aiohttp.WSMsgType.BINARY:
            return Frame(FrameKind.TEXT, msg.data.decode("utf-8", errors="replace"))
        if msg.type == aiohttp.WSMsgType.PING:
            await self._ws.pong(msg.data)
            return Frame(FrameKind.PING)
        if msg.type == aiohttp.WSMsgType.PONG:
            return Frame(FrameKind.PONG)
        if msg.type == aiohttp.WSMsgType.ERROR:
            logger.debug("WebSocket error: %s", self._ws.exception())
        return Frame(FrameKind.CLOSED)

    async def send(self, text: str) -> None:
        try:
            await self._ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise ChannelError(f"Failed to send frame: {e}") from e

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()
        if not self._session.closed:
            await self._session.close()


async def connect_websocket(
    url: str,
    headers: Mapping[str, str],
    *,
    verify_tls: bool = True,
    close_timeout: float = 2.0,
) -> AiohttpTransport:
    """Open a WebSocket to ``url`` with the given request headers.

    Raises:
        ChannelError: If the handshake fails.
    """
    session = aiohttp.ClientSession(headers=dict(headers))
    try:
        ws = await session.ws_connect(
            url,
            autoping=False,
            ssl=verify_tls,
            timeout=aiohttp.ClientWSTimeout(ws_close=close_timeout),
        )
    except (aiohttp.ClientError, OSError) as e:
        await session.close()
        raise ChannelError(f"Failed to connect to {url}: {e}") from e
    logger.info("WebSocket connected to %s", url)
    return AiohttpTransport(session, ws)
