"""Multi-line prompt with history recall.

``LinePrompt`` turns the physical lines typed on a surface into one
logical submission. A line ending in the continuation marker (``\\``)
keeps the read open; the next line without it finalizes the submission.
Up/Down recall previously submitted inputs from the shared history store.

State machine::

    Idle -> Reading (chunks accumulating) -> Resolved(chunks) | Cancelled -> Idle
"""

from __future__ import annotations

import asyncio
import getpass
import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

from telety.constants import EOT, REG
from telety.domain.models import HistoryEntry, Submission
from telety.errors import PromptBusyError
from telety.prompt.history import HistoryStore
from telety.prompt.surface import LineSurface
from telety.terminal import TerminalOwnership

logger = logging.getLogger(__name__)

Chunk = str


class LinePrompt:
    """One open prompt bound to a line-editing surface.

    Example usage::

        prompt = LinePrompt(history, PromptToolkitSurface(), exclusions=[REG.COMMENT])
        chunks = await prompt.read()   # None when cancelled with Ctrl-C
        prompt.close()

    Only one read may be outstanding at a time; a concurrent ``read()``
    raises ``PromptBusyError``.
    """

    def __init__(
        self,
        history: HistoryStore,
        surface: LineSurface,
        *,
        message: Callable[[], Any] | None = None,
        continuation: Any = "> ",
        exclusions: Iterable[re.Pattern[str]] = (),
        terminal: TerminalOwnership | None = None,
    ) -> None:
        self._history = history
        self._surface = surface
        self._message = message or (lambda: "> ")
        self._continuation = continuation
        self._exclusions = list(exclusions)
        self._terminal = terminal or TerminalOwnership()
        # session state
        self._chunks: list[Chunk] = []
        self._cursor = len(history)
        self._pending: asyncio.Future[list[Chunk] | None] | None = None
        self._pump: asyncio.Task[None] | None = None
        self._closed = False
        self._surface.bind_recall(self.recall)

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def chunks(self) -> list[Chunk]:
        return list(self._chunks)

    def is_active(self) -> bool:
        """Whether a read is outstanding."""
        return self._pending is not None and not self._pending.done()

    async def read(self) -> list[Chunk] | None:
        """Read one logical submission.

        Returns:
            The ordered chunk sequence, or None if the read was cancelled.

        Raises:
            PromptBusyError: If another read is still outstanding.
        """
        if self._pending is not None:
            raise PromptBusyError("A prompt read is already outstanding")
        if self._closed:
            raise RuntimeError("Prompt is closed")

        self._pending = asyncio.get_running_loop().create_future()
        self._chunks = []
        self._cursor = len(self._history)
        try:
            with self._terminal.claim("prompt"):
                self._pump = asyncio.create_task(self._pump_lines())
                return await self._pending
        finally:
            self._pending = None
            self._chunks = []
            if self._pump is not None and not self._pump.done():
                self._pump.cancel()
            self._pump = None

    def submit_line(self, raw: str) -> None:
        """Accept one physical line from the surface."""
        if not self.is_active():
            logger.debug("Ignoring line with no read outstanding")
            return
        chunk = REG.TRAILSPC.sub("", raw)
        if not chunk:
            return
        self._chunks.append(chunk)
        if not REG.LF.search(chunk):
            chunks, self._chunks = self._chunks, []
            self._finish(chunks)

    def recall(self, direction: int) -> str | None:
        """Move through history by one step and redraw the edit buffer.

        Disabled while a multi-line entry is in progress.
        """
        if self._chunks:
            return None
        step = -1 if direction < 0 else 1
        self._cursor = min(max(self._cursor + step, 0), len(self._history))
        line = self._history.at(self._cursor)
        self._surface.redraw(line)
        return line

    def cancel(self) -> None:
        """Resolve the outstanding read with None (no submission)."""
        self._chunks = []
        if self.is_active():
            self._pending.set_result(None)

    def add_history(self, text: str) -> HistoryEntry:
        """Append an input that was not typed here (preloaded or remote).

        A cursor resting on the blank end position stays there, so the
        next Up recalls the new entry.
        """
        at_end = self._cursor >= len(self._history)
        entry = self._history.append(HistoryEntry(input=text))
        if at_end:
            self._cursor = len(self._history)
        return entry

    def refresh(self) -> None:
        if not self._closed:
            self._surface.refresh()

    def close(self) -> None:
        """Detach from the surface. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.cancel()
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
        self._surface.close()

    async def _pump_lines(self) -> None:
        while self.is_active():
            message = self._continuation if self._chunks else self._message()
            try:
                line = await self._surface.read_line(message)
            except KeyboardInterrupt:
                logger.debug("Prompt interrupted")
                self.cancel()
                return
            except EOFError:
                logger.debug("End of transmission at prompt")
                self._chunks = []
                self._resolve([EOT])
                return
            except Exception as e:
                if self.is_active():
                    self._pending.set_exception(e)
                return
            self.submit_line(line)

    def _finish(self, chunks: list[Chunk]) -> None:
        self._record(chunks)
        self._resolve(chunks)

    def _resolve(self, chunks: list[Chunk]) -> None:
        if self.is_active():
            self._pending.set_result(chunks)

    def _record(self, chunks: list[Chunk]) -> None:
        command = Submission.from_chunks(chunks).command
        if any(ex.search(command) for ex in self._exclusions):
            return
        self._history.append(HistoryEntry(input=command))


class SecurePrompt:
    """One-shot masked question with echo fully suppressed.

    Used for credential entry; nothing read here is recorded in history.
    """

    async def question(self, text: str) -> str:
        return await asyncio.to_thread(getpass.getpass, text)
