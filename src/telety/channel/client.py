"""Push-channel client with liveness detection and reconnect.

The client keeps one logical channel "eventually connected": a single
supervisor task opens a transport, serves it until it closes or its
heartbeat deadline expires, waits a fixed backoff and opens the next one.
Subscriptions and ready-callbacks belong to the client, so they apply to
every connection it opens.

States::

    CONNECTING --open--> OPEN --closed | expired | error--> CLOSED --backoff--> CONNECTING
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from telety.channel.base import (
    ChannelTransport,
    Clock,
    Connector,
    FrameKind,
    LoopClock,
    TimerHandle,
    encode_message,
    parse_frame,
)
from telety.domain.models import ConnectionState, MessageType

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]
ReadyCallback = Callable[[], Awaitable[None] | None]


class _Subscription:
    """A handler plus the queue that serializes its invocations.

    The read loop only enqueues, so a slow handler never blocks the
    transport, and each handler still sees messages in arrival order.
    """

    def __init__(self, message_type: MessageType, handler: Handler) -> None:
        self.message_type = message_type
        self.handler = handler
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    def deliver(self, message: Any) -> None:
        self._queue.put_nowait(message)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._work())

    async def _work(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                result = self.handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", self.message_type.value)
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        await self._queue.join()

    def stop(self) -> None:
        if self._worker is not None:
            self._worker.cancel()
            self._worker = None


class ChannelClient:
    """Long-lived duplex channel with typed message dispatch.

    Example usage::

        client = ChannelClient(url, connect_websocket, headers=headers)
        client.ready(lambda: client.send(MessageType.CHFOCUS, channel_id))
        client.subscribe(MessageType.MSG, on_message)
        client.connect()
        ...
        await client.shutdown()

    Reconnects are unconditional and indefinite; only ``shutdown`` stops
    them.
    """

    def __init__(
        self,
        url: str,
        connector: Connector,
        *,
        headers: Mapping[str, str] | None = None,
        heartbeat_interval: float = 30.0,
        heartbeat_grace: float = 2.0,
        reconnect_delay: float = 2.0,
        clock: Clock | None = None,
    ) -> None:
        self.url = url
        self._connector = connector
        self._headers = dict(headers or {})
        self._liveness_timeout = heartbeat_interval + heartbeat_grace
        self._reconnect_delay = reconnect_delay
        self._clock = clock or LoopClock()

        self._subs: dict[MessageType, list[_Subscription]] = {}
        self._ready: list[ReadyCallback] = []
        self._callbacks: set[asyncio.Task[Any]] = set()

        self._state = ConnectionState.CLOSED
        self._transport: ChannelTransport | None = None
        self._deadline: TimerHandle | None = None
        self._supervisor: asyncio.Task[None] | None = None
        self._reader: asyncio.Task[None] | None = None
        self._shutdown = False
        self._connections = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connections(self) -> int:
        """Number of successful opens so far."""
        return self._connections

    @property
    def liveness_timeout(self) -> float:
        return self._liveness_timeout

    @property
    def has_deadline(self) -> bool:
        return self._deadline is not None

    # -- registration -----------------------------------------------------

    def subscribe(self, message_type: MessageType | str, handler: Handler) -> ChannelClient:
        """Register ``handler`` for one message type.

        Raises:
            ValueError: If ``message_type`` is not a known message type.
        """
        kind = MessageType(message_type)
        self._subs.setdefault(kind, []).append(_Subscription(kind, handler))
        return self

    def ready(self, callback: ReadyCallback) -> ChannelClient:
        """Register a callback fired on every successful (re)connection."""
        self._ready.append(callback)
        return self

    # -- lifecycle --------------------------------------------------------

    def connect(self) -> ChannelClient:
        """Start the supervisor task. Calling it again is a no-op."""
        if self._shutdown:
            raise RuntimeError("Channel client has been shut down")
        if self._supervisor is None:
            self._supervisor = asyncio.create_task(self._supervise())
        return self

    async def shutdown(self) -> None:
        """Force-close the connection and stop reconnecting. Idempotent."""
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("Channel shutdown requested")
        self._disarm()
        if self._supervisor is not None:
            self._supervisor.cancel()
            try:
                await self._supervisor
            except asyncio.CancelledError:
                pass
            self._supervisor = None
        for subs in self._subs.values():
            for sub in subs:
                sub.stop()
        for task in list(self._callbacks):
            task.cancel()
        self._state = ConnectionState.CLOSED

    async def send(self, message_type: MessageType | str, data: Any = "") -> bool:
        """Send a ``{type, data}`` message on the open connection.

        Nothing is buffered: when the channel is not open the message is
        dropped and False is returned.
        """
        kind = MessageType(message_type)
        transport = self._transport
        if self._state is not ConnectionState.OPEN or transport is None:
            logger.debug("Channel not open, dropping %s", kind.value)
            return False
        try:
            await transport.send(encode_message(kind.value, data))
        except Exception as e:
            logger.warning("Failed to send %s: %s", kind.value, e)
            return False
        return True

    async def drain(self) -> None:
        """Wait until every delivered message has been handled."""
        for subs in self._subs.values():
            for sub in subs:
                await sub.join()

    # -- state machine ----------------------------------------------------

    async def _supervise(self) -> None:
        while not self._shutdown:
            self._set_state(ConnectionState.CONNECTING)
            try:
                transport = await self._connector(self.url, self._headers)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Channel connect to %s failed: %s", self.url, e)
            else:
                await self._serve(transport)
            if self._shutdown:
                break
            self._set_state(ConnectionState.CLOSED)
            logger.info("Reconnecting in %.1fs", self._reconnect_delay)
            await self._clock.sleep(self._reconnect_delay)

    async def _serve(self, transport: ChannelTransport) -> None:
        self._transport = transport
        self._connections += 1
        self._set_state(ConnectionState.OPEN)
        self._arm()
        self._fire_ready()
        try:
            self._reader = asyncio.create_task(self._read_loop(transport))
            await asyncio.wait({self._reader})
        finally:
            self._disarm()
            self._set_state(ConnectionState.CLOSED)
            if self._reader is not None and not self._reader.done():
                self._reader.cancel()
            self._reader = None
            self._transport = None
            try:
                await transport.close()
            except Exception as e:
                logger.debug("Error closing transport: %s", e)

    async def _read_loop(self, transport: ChannelTransport) -> None:
        while True:
            try:
                frame = await transport.recv()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Channel transport error: %s", e)
                return
            if frame.kind is FrameKind.CLOSED:
                logger.info("Channel closed by remote")
                return
            self._arm()
            if frame.kind is FrameKind.TEXT:
                self._dispatch(frame.data)

    def _dispatch(self, text: str) -> None:
        message = parse_frame(text)
        if message is None:
            return
        subs = self._subs.get(MessageType(message.type), [])
        if not subs:
            logger.debug("No subscribers for %s", message.type)
        for sub in subs:
            sub.deliver(message)

    def _fire_ready(self) -> None:
        for callback in self._ready:
            try:
                result = callback()
            except Exception:
                logger.exception("Ready callback failed")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._callbacks.add(task)
                task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task[Any]) -> None:
        self._callbacks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Ready callback failed: %s", task.exception())

    def _arm(self) -> None:
        """Reset the liveness deadline."""
        self._disarm()
        self._deadline = self._clock.call_later(self._liveness_timeout, self._expire)

    def _disarm(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

    def _expire(self) -> None:
        self._deadline = None
        logger.warning(
            "No heartbeat for %.1fs, terminating channel connection", self._liveness_timeout
        )
        if self._reader is not None:
            self._reader.cancel()

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug("Channel %s -> %s", self._state.value, state.value)
            self._state = state
