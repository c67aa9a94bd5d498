"""Classify and run one logical prompt submission.

In priority order a submission is:

1. a quit directive (exact quit token) -> session teardown
2. an annotation (``# comment``) -> comment posted for the latest entry
3. an executable -> spawned with the terminal handed to the child

Executed inputs are posted to the channel webhook in the background. The
webhook's message id is written back onto the history entry whenever the
response arrives; only the process exit is awaited.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

from telety.api.base import ChannelApi
from telety.constants import QUIT_TOKENS, REG
from telety.domain.models import ExecutionOutcome, HistoryEntry, Submission, WebhookType
from telety.errors import AnnotationError, ApiError
from telety.execution.process import ExecutionRecord, ProcessRunner
from telety.prompt.history import HistoryStore
from telety.terminal import TerminalOwnership
from telety.ui import ConsoleWriter

logger = logging.getLogger(__name__)


class Disposition(str, enum.Enum):
    """What the bridge did with a submission."""

    EMPTY = "empty"
    QUIT = "quit"
    ANNOTATION = "annotation"
    EXECUTED = "executed"


class ExecutionBridge:
    """Runs submissions against the local shell.

    Args:
        history: Shared history store; the prompt has already recorded
            the submission when the bridge sees it.
        runner: Spawns child processes.
        terminal: Terminal ownership token shared with the prompt.
        ui: Console writer for warnings.
        on_quit: Called with the exit code for quit directives.
        detach: Releases the prompt before a child takes the terminal.
        api: Channel API for webhook notifications; None disables both
            notifications and annotations.
        quit_tokens: Inputs that end the session.
        comment_pattern: Prefix pattern marking an annotation.
    """

    def __init__(
        self,
        history: HistoryStore,
        runner: ProcessRunner,
        terminal: TerminalOwnership,
        ui: ConsoleWriter,
        on_quit: Callable[[int], Any],
        detach: Callable[[], None] | None = None,
        api: ChannelApi | None = None,
        quit_tokens: Iterable[str] = QUIT_TOKENS,
        comment_pattern: re.Pattern[str] | None = REG.COMMENT,
    ) -> None:
        self._history = history
        self._runner = runner
        self._terminal = terminal
        self._ui = ui
        self._on_quit = on_quit
        self._detach = detach or (lambda: None)
        self._api = api
        self._quit_tokens = frozenset(quit_tokens)
        self._comment = comment_pattern if api is not None else None
        self._active: ExecutionRecord | None = None
        self._last_outcome: ExecutionOutcome | None = None
        self._notifications: set[asyncio.Task[None]] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active(self) -> ExecutionRecord | None:
        """The record of the process currently attached to the terminal."""
        return self._active

    @property
    def last_outcome(self) -> ExecutionOutcome | None:
        return self._last_outcome

    def classify(self, submission: Submission) -> Disposition:
        if not submission:
            return Disposition.EMPTY
        command = submission.command
        if command in self._quit_tokens:
            return Disposition.QUIT
        if self._comment is not None and self._comment.match(command):
            return Disposition.ANNOTATION
        return Disposition.EXECUTED

    async def run(self, chunks: list[str] | None) -> Disposition:
        """Classify and act on one submission (None means cancelled)."""
        submission = Submission.from_chunks(chunks or [])
        disposition = self.classify(submission)
        if disposition is Disposition.QUIT:
            self._on_quit(0)
        elif disposition is Disposition.ANNOTATION:
            try:
                await self.annotate(submission.command)
            except AnnotationError as e:
                self._ui.warn(e)
        elif disposition is Disposition.EXECUTED:
            await self.execute(submission)
        return disposition

    async def annotate(self, command: str) -> None:
        """Post a comment for the most recent history entry.

        Raises:
            AnnotationError: If there is no channel or nothing to comment
                on yet.
        """
        if self._api is None or self._comment is None:
            raise AnnotationError("Comments need a channel to post to")
        comment = self._comment.sub("", command, count=1)
        last = self._history.last()
        if last is None:
            raise AnnotationError("Input must be submitted before a comment can be added")
        if last.id is None and self._notifications:
            # the webhook may still be acknowledging the entry
            await asyncio.wait(set(self._notifications))
        if last.id is None:
            raise AnnotationError("The most recent input has not been acknowledged by the channel")
        try:
            await self._api.notify(WebhookType.COMMENT, {"id": last.id, "comment": comment})
        except ApiError as e:
            self._ui.warn(e)

    async def execute(self, submission: Submission) -> ExecutionOutcome:
        """Spawn the submission with the terminal handed to the child."""
        entry = self._history.last()
        if entry is not None and entry.input != submission.command:
            entry = None

        self._detach()
        self._idle.clear()
        try:
            with self._terminal.claim("process"):
                record = await self._runner.spawn(submission.command)
                self._active = record
                if self._api is not None:
                    task = asyncio.create_task(self._notify(self._api, submission.raw, entry))
                    self._notifications.add(task)
                    task.add_done_callback(self._notifications.discard)
                outcome = await record.wait()
                self._last_outcome = outcome
        finally:
            self._active = None
            self._idle.set()
        return outcome

    async def wait_idle(self) -> None:
        """Wait until no execution is in flight.

        Returns only while the bridge is idle, so the caller may touch the
        terminal before its next await.
        """
        while not self._idle.is_set():
            await self._idle.wait()

    def terminate(self, code: int) -> bool:
        """Signal the attached process. False when nothing was signalled."""
        record = self._active
        if record is None or record.terminated:
            return False
        return record.terminate(code)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding webhook notifications."""
        if self._notifications:
            await asyncio.wait(set(self._notifications), timeout=timeout)

    async def _notify(self, api: ChannelApi, raw: str, entry: HistoryEntry | None) -> None:
        try:
            ack = await api.notify(WebhookType.MESSAGE, {"input": raw})
        except ApiError as e:
            logger.warning("Webhook notification failed: %s", e)
            self._ui.warn(e)
            return
        if entry is not None:
            entry.acknowledge(ack.id)
            logger.debug("History entry acknowledged as %s (channel %s)", ack.id, ack.channel)
