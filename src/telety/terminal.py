"""Single-owner token for the controlling terminal.

The standard streams belong either to the line-editing surface or to a
spawned child process, never both. Consumers claim the terminal before
touching stdin/stdout and release it when done.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from telety.errors import TerminalBusyError

logger = logging.getLogger(__name__)


class TerminalOwnership:
    """Tracks which consumer currently owns the terminal.

    Example usage::

        terminal = TerminalOwnership()
        with terminal.claim("prompt"):
            line = await surface.read_line(text)
    """

    def __init__(self) -> None:
        self._owner: str | None = None

    @property
    def owner(self) -> str | None:
        return self._owner

    @property
    def is_free(self) -> bool:
        return self._owner is None

    @contextmanager
    def claim(self, owner: str) -> Iterator[None]:
        """Own the terminal for the duration of the block.

        Raises:
            TerminalBusyError: If another consumer already owns it.
        """
        if self._owner is not None:
            raise TerminalBusyError(
                f"Terminal is owned by {self._owner!r}, cannot hand it to {owner!r}"
            )
        self._owner = owner
        logger.debug("Terminal claimed by %s", owner)
        try:
            yield
        finally:
            self._owner = None
            logger.debug("Terminal released by %s", owner)
