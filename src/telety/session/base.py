"""Session coordinator shared by the host and join modes.

A session owns the process-scoped history, the terminal ownership token,
the execution bridge and the prompt loop::

    open prompt -> read submission -> bridge.run -> (re)open prompt

The prompt is closed before a child takes the terminal and a fresh one is
opened for the next submission. ``teardown`` either interrupts the
attached child or ends the session.
"""

from __future__ import annotations

import asyncio
import logging
import re
import signal
from abc import ABC, abstractmethod
from collections.abc import Callable

from prompt_toolkit.patch_stdout import patch_stdout

from telety.api.base import ChannelApi
from telety.config.settings import PromptConfig
from telety.execution.bridge import ExecutionBridge
from telety.execution.process import ProcessRunner
from telety.prompt.history import HistoryStore
from telety.prompt.line import LinePrompt
from telety.prompt.surface import LineSurface, PromptToolkitSurface
from telety.terminal import TerminalOwnership
from telety.ui import DIM, ConsoleWriter, prompt_message

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[], LineSurface]


class Session(ABC):
    """Base interactive session.

    Subclasses decide what the bridge may do (``bridge_api``,
    ``comment_pattern``), what the prompt leaves out of history
    (``exclusions``) and how the session starts (``start``).
    """

    mode: str = ""

    def __init__(
        self,
        config: PromptConfig | None = None,
        *,
        history: HistoryStore | None = None,
        ui: ConsoleWriter | None = None,
        runner: ProcessRunner | None = None,
        terminal: TerminalOwnership | None = None,
        surface_factory: SurfaceFactory = PromptToolkitSurface,
        api: ChannelApi | None = None,
        drain_timeout: float = 5.0,
    ) -> None:
        self.config = config or PromptConfig()
        self.history = history if history is not None else HistoryStore()
        self.ui = ui or ConsoleWriter()
        self.terminal = terminal or TerminalOwnership()
        self.api = api
        self._surface_factory = surface_factory
        self._drain_timeout = drain_timeout
        self.bridge = ExecutionBridge(
            self.history,
            runner or ProcessRunner(),
            self.terminal,
            self.ui,
            on_quit=self.teardown,
            detach=self.detach,
            api=self.bridge_api,
            quit_tokens=self.config.quit_tokens,
            comment_pattern=self.comment_pattern,
        )
        self._prompt: LinePrompt | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()
        self._exit_code = 0

    # -- hooks -------------------------------------------------------------

    @property
    def bridge_api(self) -> ChannelApi | None:
        """API the bridge posts executed inputs and comments to."""
        return None

    @property
    def comment_pattern(self) -> re.Pattern[str] | None:
        return None

    @property
    def exclusions(self) -> list[re.Pattern[str]]:
        return []

    @abstractmethod
    async def start(self) -> None:
        """Prepare the session and eventually call ``begin``."""
        ...

    async def close(self) -> None:
        """Release session resources after the loop has stopped."""

    # -- state -------------------------------------------------------------

    @property
    def prompt(self) -> LinePrompt | None:
        """The currently open prompt, if any."""
        return self._prompt

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._stopped.is_set()

    @property
    def exit_code(self) -> int:
        return self._exit_code

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    # -- prompt loop -------------------------------------------------------

    def begin(self) -> bool:
        """Start the prompt loop. Only the first call has an effect."""
        if self._loop_task is not None or self._stopped.is_set():
            return False
        self._loop_task = asyncio.create_task(self._prompt_loop())
        self._loop_task.add_done_callback(self._loop_done)
        return True

    def open_prompt(self) -> LinePrompt:
        self.detach()
        self._prompt = LinePrompt(
            self.history,
            self._surface_factory(),
            message=lambda: prompt_message(self.config.text, self.bridge.last_outcome),
            continuation=[(DIM, "> ")],
            exclusions=self.exclusions,
            terminal=self.terminal,
        )
        return self._prompt

    def detach(self) -> None:
        """Close the open prompt so a child can inherit the terminal."""
        if self._prompt is not None:
            self._prompt.close()
        self._prompt = None

    def refresh(self) -> None:
        if self._prompt is not None:
            self._prompt.refresh()

    async def _prompt_loop(self) -> None:
        while not self._stopped.is_set():
            prompt = self.open_prompt()
            chunks = await prompt.read()
            if self._stopped.is_set():
                break
            await self.bridge.run(chunks)

    def _loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error("Prompt loop failed: %s", task.exception())
            self._stopped.set()

    # -- lifecycle ---------------------------------------------------------

    def teardown(self, code: int = 0) -> None:
        """Interrupt the attached child, or end the session with ``code``."""
        if self.bridge.terminate(code):
            logger.info("Interrupted the running command")
            return
        if self._stopped.is_set():
            return
        self.ui.disconnected()
        self._exit_code = code
        self._stopped.set()
        self.detach()

    async def run(self) -> int:
        """Run the session until teardown and return the exit code."""
        loop = asyncio.get_running_loop()
        self._install_signal_handler(loop)
        try:
            with patch_stdout():
                await self.start()
                await self._stopped.wait()
            if self._loop_task is not None and self._loop_task.done():
                # surfaces prompt loop failures
                self._loop_task.result()
        finally:
            self._remove_signal_handler(loop)
            await self._shutdown()
        return self._exit_code

    async def _shutdown(self) -> None:
        self.detach()
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        await self.bridge.drain(self._drain_timeout)
        await self.close()

    def _install_signal_handler(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            loop.add_signal_handler(signal.SIGINT, self.teardown, 0)
        except (NotImplementedError, RuntimeError):
            logger.debug("SIGINT handler not supported on this platform")

    def _remove_signal_handler(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
