"""Child processes spawned from the prompt.

Commands run through the shell with the parent's standard streams
inherited, so the child owns the terminal until it exits.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from telety.domain.models import ExecutionOutcome

logger = logging.getLogger(__name__)


class ExecutionRecord:
    """Tracks one spawned command until it exits.

    ``outcome`` stays None while the process runs. A record created
    without a process (spawn failure) is settled as failed immediately.
    """

    def __init__(
        self,
        command: str,
        process: asyncio.subprocess.Process | None = None,
        error: Exception | None = None,
    ) -> None:
        self.command = command
        self.process = process
        self.error = error
        self.outcome: ExecutionOutcome | None = None
        self.terminated = False
        if process is None:
            self._settle(ExecutionOutcome.FAILED)

    @property
    def is_running(self) -> bool:
        return self.outcome is None

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    async def wait(self) -> ExecutionOutcome:
        """Wait for the process to exit and settle the outcome."""
        if self.process is None:
            return ExecutionOutcome.FAILED
        if self.outcome is None:
            returncode = await self.process.wait()
            if self.outcome is None:
                self._settle(
                    ExecutionOutcome.SUCCEEDED if returncode == 0 else ExecutionOutcome.FAILED
                )
                logger.debug("pid=%s exited with %s: %s", self.pid, returncode, self.command)
        return self.outcome or ExecutionOutcome.FAILED

    def terminate(self, code: int) -> bool:
        """Send ``code`` to the process as a signal number.

        Code 0 is the null signal, which only probes the process, so
        SIGTERM is sent in its place.

        Returns:
            True if a signal was delivered.
        """
        if self.process is None or self.outcome is not None:
            return False
        sig = code or signal.SIGTERM
        try:
            self.process.send_signal(sig)
        except ProcessLookupError:
            return False
        self.terminated = True
        logger.info("Sent signal %d to pid=%s", sig, self.pid)
        return True

    def _settle(self, outcome: ExecutionOutcome) -> None:
        self.outcome = outcome


class ProcessRunner:
    """Spawns shell commands with inherited standard streams."""

    async def spawn(self, command: str) -> ExecutionRecord:
        try:
            process = await asyncio.create_subprocess_shell(command)
        except OSError as e:
            logger.warning("Failed to spawn %r: %s", command, e)
            return ExecutionRecord(command, error=e)
        logger.debug("Spawned pid=%d: %s", process.pid, command)
        return ExecutionRecord(command, process)
