"""Shared test fixtures for the telety test suite.

Provides in-memory stand-ins for the terminal-facing and network-facing
edges of the system: a scripted line surface, a queue-backed channel
transport, a manually advanced clock and a process runner whose children
exit on command.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from telety.api.base import ChannelApi
from telety.channel.base import ChannelTransport, Clock, Frame, FrameKind
from telety.domain.models import AuthResult, Message, WebhookResponse
from telety.errors import ChannelError
from telety.execution.process import ExecutionRecord
from telety.prompt.history import HistoryStore
from telety.prompt.surface import LineSurface
from telety.terminal import TerminalOwnership
from telety.ui import ConsoleWriter


# ---------------------------------------------------------------------------
# Prompt Fixtures
# ---------------------------------------------------------------------------


class FakeSurface(LineSurface):
    """Line surface fed from a queue of lines or exceptions to raise."""

    def __init__(self, lines: asyncio.Queue[Any] | None = None) -> None:
        self.lines: asyncio.Queue[Any] = lines if lines is not None else asyncio.Queue()
        self.messages: list[Any] = []
        self.redraws: list[str] = []
        self.recall: Callable[[int], Any] | None = None
        self.refreshes = 0
        self.closed = False

    def feed(self, *items: Any) -> None:
        for item in items:
            self.lines.put_nowait(item)

    async def read_line(self, message: Any) -> str:
        self.messages.append(message)
        item = await self.lines.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def redraw(self, text: str) -> None:
        self.redraws.append(text)

    def bind_recall(self, handler: Callable[[int], Any]) -> None:
        self.recall = handler

    def refresh(self) -> None:
        self.refreshes += 1

    def close(self) -> None:
        self.closed = True


class SurfaceFactory:
    """Creates fake surfaces that all read from one shared script."""

    def __init__(self) -> None:
        self.lines: asyncio.Queue[Any] = asyncio.Queue()
        self.created: list[FakeSurface] = []

    def __call__(self) -> FakeSurface:
        surface = FakeSurface(self.lines)
        self.created.append(surface)
        return surface

    def feed(self, *items: Any) -> None:
        for item in items:
            self.lines.put_nowait(item)

    @property
    def current(self) -> FakeSurface:
        return self.created[-1]


@pytest.fixture
def history() -> HistoryStore:
    return HistoryStore()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def surfaces() -> SurfaceFactory:
    return SurfaceFactory()


@pytest.fixture
def terminal() -> TerminalOwnership:
    return TerminalOwnership()


# ---------------------------------------------------------------------------
# Channel Fixtures
# ---------------------------------------------------------------------------


class FakeTransport(ChannelTransport):
    """Transport whose inbound frames are pushed by the test."""

    def __init__(self) -> None:
        self.inbound: asyncio.Queue[Frame] = asyncio.Queue()
        self.sent: list[str] = []
        self.closes = 0

    @property
    def closed(self) -> bool:
        return self.closes > 0

    async def recv(self) -> Frame:
        return await self.inbound.get()

    async def send(self, text: str) -> None:
        if self.closed:
            raise ChannelError("transport is closed")
        self.sent.append(text)

    async def close(self) -> None:
        self.closes += 1

    def push(self, text: str) -> None:
        self.inbound.put_nowait(Frame(FrameKind.TEXT, text))

    def ping(self) -> None:
        self.inbound.put_nowait(Frame(FrameKind.PING))

    def drop(self) -> None:
        self.inbound.put_nowait(Frame(FrameKind.CLOSED))


class FakeConnector:
    """Connector that hands out a fresh ``FakeTransport`` per call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.transports: list[FakeTransport] = []
        self.failures = 0

    async def __call__(self, url: str, headers: Mapping[str, str]) -> FakeTransport:
        self.calls.append((url, dict(headers)))
        if self.failures:
            self.failures -= 1
            raise ChannelError(f"Failed to connect to {url}")
        transport = FakeTransport()
        self.transports.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.transports[-1]


class _ManualTimer:
    def __init__(self, when: float, callback: Callable[[], Any]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock(Clock):
    """Clock that only moves when the test calls ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self._timers: list[_ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _ManualTimer:
        timer = _ManualTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        future = asyncio.get_running_loop().create_future()
        self.call_later(delay, lambda: future.done() or future.set_result(None))
        await future

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (t for t in self._timers if not t.cancelled and t.when <= self.now),
            key=lambda t: t.when,
        )
        for timer in due:
            self._timers.remove(timer)
            if not timer.cancelled:
                timer.callback()

    @property
    def pending(self) -> list[_ManualTimer]:
        return [t for t in self._timers if not t.cancelled]


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


# ---------------------------------------------------------------------------
# Execution Fixtures
# ---------------------------------------------------------------------------


class FakeProcess:
    """Stands in for ``asyncio.subprocess.Process``."""

    def __init__(self, pid: int = 4242) -> None:
        self.pid = pid
        self.returncode: int | None = None
        self.signals: list[int] = []
        self._exited = asyncio.Event()

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def exit(self, code: int = 0) -> None:
        self.returncode = code
        self._exited.set()

    def send_signal(self, sig: int) -> None:
        if self.returncode is not None:
            raise ProcessLookupError(self.pid)
        self.signals.append(sig)
        self.exit(-int(sig))


class FakeRunner:
    """Process runner whose children exit with ``auto_exit`` immediately,
    or stay running until the test exits them when it is None."""

    def __init__(self) -> None:
        self.commands: list[str] = []
        self.processes: list[FakeProcess] = []
        self.auto_exit: int | None = 0
        self.fail = False
        self.observers: list[Callable[[str], Any]] = []

    async def spawn(self, command: str) -> ExecutionRecord:
        self.commands.append(command)
        for observer in self.observers:
            observer(command)
        if self.fail:
            return ExecutionRecord(command, error=OSError("No such file or directory"))
        process = FakeProcess(pid=4242 + len(self.processes))
        self.processes.append(process)
        if self.auto_exit is not None:
            process.exit(self.auto_exit)
        return ExecutionRecord(command, process)  # type: ignore[arg-type]

    @property
    def current(self) -> FakeProcess:
        return self.processes[-1]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


# ---------------------------------------------------------------------------
# Mock Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_ui() -> MagicMock:
    """A ConsoleWriter that records calls instead of printing."""
    return MagicMock(spec=ConsoleWriter)


@pytest.fixture
def mock_api() -> AsyncMock:
    """A ChannelApi acknowledging every webhook post as message 42."""
    api = AsyncMock(spec=ChannelApi)
    api.notify.return_value = WebhookResponse(id="42", channel="chan")
    api.list_messages.return_value = []
    api.get_message.return_value = Message(id="m1", input="uptime", meta="remote")
    return api


@pytest.fixture
def auth_result() -> AuthResult:
    return AuthResult(token="bearer-token", endpoint="https://api.telety.io")


@pytest.fixture
def settle() -> Callable[..., Any]:
    """Let pending tasks run for a few event loop iterations."""

    async def _settle(rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle

