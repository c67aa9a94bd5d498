"""Push channel for telety.

Public API:
    ChannelClient -- reconnecting duplex channel with typed dispatch
    ChannelTransport -- abstract single connection
    Clock / LoopClock -- time source for deadlines and backoff
    AiohttpTransport -- aiohttp WebSocket transport (lazy import)
"""

from telety.channel.base import ChannelTransport, Clock, Frame, FrameKind, LoopClock
from telety.channel.client import ChannelClient

__all__ = [
    "AiohttpTransport",
    "ChannelClient",
    "ChannelTransport",
    "Clock",
    "Frame",
    "FrameKind",
    "LoopClock",
    "connect_websocket",
]


def __getattr__(name: str) -> object:
    """Lazy import for the aiohttp transport."""
    if name in ("AiohttpTransport", "connect_websocket"):
        from telety.channel import aiohttp_transport
        return getattr(aiohttp_transport, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
