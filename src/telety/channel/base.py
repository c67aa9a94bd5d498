"""Transport and clock seams for the push channel.

``ChannelClient`` never talks to a socket library directly. It drives a
``ChannelTransport`` produced by a connector coroutine and schedules its
liveness deadline and reconnect backoff through a ``Clock``, so both can
be replaced in tests.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import ValidationError

from telety.domain.models import RawFrame, channel_message_adapter

logger = logging.getLogger(__name__)


class FrameKind(str, enum.Enum):
    TEXT = "text"
    PING = "ping"
    PONG = "pong"
    CLOSED = "closed"


@dataclass(frozen=True)
class Frame:
    """One inbound signal from the transport."""

    kind: FrameKind
    data: str = ""


class ChannelTransport(ABC):
    """A single open duplex connection.

    A new transport is created for every (re)connection; the client owns
    it until ``close`` is called.
    """

    @abstractmethod
    async def recv(self) -> Frame:
        """Wait for the next inbound frame.

        Returns a ``FrameKind.CLOSED`` frame once the remote end has gone.
        Protocol pings are answered by the transport and still reported.
        """
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        """Send one text frame.

        Raises:
            ChannelError: If the frame cannot be written.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        ...


Connector = Callable[[str, Mapping[str, str]], Awaitable[ChannelTransport]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(ABC):
    """Time source for deadlines and backoff."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...

    @abstractmethod
    async def sleep(self, delay: float) -> None: ...


class LoopClock(Clock):
    """Clock backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)


def encode_message(message_type: str, data: Any = "") -> str:
    """Serialize an outbound ``{type, data}`` wire message."""
    return json.dumps({"type": message_type, "data": data})


def parse_frame(text: str) -> Any:
    """Decode a text frame into a typed channel message.

    Frames that are not JSON objects come back as ``RawFrame`` carrying the
    original text. Objects with an unknown or malformed type are logged and
    dropped (None).
    """
    try:
        payload = json.loads(text)
    except ValueError:
        return RawFrame(data=text)
    if not isinstance(payload, dict):
        return RawFrame(data=text)
    try:
        return channel_message_adapter.validate_python(payload)
    except ValidationError as e:
        logger.warning(
            "Dropping channel message of type %r: %s",
            payload.get("type"),
            e.errors()[0]["msg"] if e.errors() else e,
        )
        return None
