"""Line-editing surfaces wrapped by ``LinePrompt``.

A surface reads one physical line at a time and lets the prompt replace
the edit buffer when the user navigates history. The production surface
is backed by a prompt_toolkit ``PromptSession``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.document import Document
from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.output import Output

logger = logging.getLogger(__name__)

RecallHandler = Callable[[int], Any]


class LineSurface(ABC):
    """Abstract line-editing surface.

    ``read_line`` raises ``KeyboardInterrupt`` when the user interrupts
    the line (Ctrl-C) and ``EOFError`` on end of transmission (Ctrl-D).
    """

    @abstractmethod
    async def read_line(self, message: Any) -> str:
        """Show ``message`` and read one physical line."""
        ...

    @abstractmethod
    def redraw(self, text: str) -> None:
        """Replace the current edit buffer with ``text``."""
        ...

    @abstractmethod
    def bind_recall(self, handler: RecallHandler) -> None:
        """Route Up (-1) and Down (+1) keypresses to ``handler``."""
        ...

    def refresh(self) -> None:
        """Repaint the prompt after asynchronous output."""

    def close(self) -> None:
        """Detach key handlers and release the surface."""


class PromptToolkitSurface(LineSurface):
    """Surface backed by a prompt_toolkit ``PromptSession``.

    prompt_toolkit's own history is left empty; Up/Down are rebound so
    recall goes through the shared history store instead. SIGINT is left
    to the session: in raw mode Ctrl-C reaches the prompt as a key press.
    """

    def __init__(self, input: Input | None = None, output: Output | None = None) -> None:
        self._recall: RecallHandler | None = None
        bindings = KeyBindings()

        @bindings.add("up")
        def _recall_up(event: Any) -> None:
            if self._recall is not None:
                self._recall(-1)

        @bindings.add("down")
        def _recall_down(event: Any) -> None:
            if self._recall is not None:
                self._recall(1)

        self._session: PromptSession[str] = PromptSession(
            key_bindings=bindings, input=input, output=output
        )

    async def read_line(self, message: Any) -> str:
        return await self._session.prompt_async(message, handle_sigint=False)

    def redraw(self, text: str) -> None:
        self._session.default_buffer.document = Document(text, cursor_position=len(text))

    def bind_recall(self, handler: RecallHandler) -> None:
        self._recall = handler

    def refresh(self) -> None:
        app = self._session.app
        if app.is_running:
            app.invalidate()

    def close(self) -> None:
        self._recall = None
