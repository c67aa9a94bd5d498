"""Console output for telety.

Everything user-facing (warnings, status lines, rendered channel messages,
the prompt decoration) is written through ``ConsoleWriter`` using
prompt_toolkit formatted text, so it renders correctly above an active
prompt when stdout is patched.
"""

from __future__ import annotations

import shutil

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from telety.constants import TELETY
from telety.domain.models import ExecutionOutcome, Message, message_id_hash

DIM = "#888888"
RED = "ansired"
GREEN = "ansigreen"
YELLOW = "ansiyellow"
CYAN = "ansicyan bold"


def control_label(token: str) -> str:
    """Printable form of a control token (``^D`` for EOT)."""
    if len(token) == 1 and ord(token) < 32:
        return "^" + chr(ord(token) + 64)
    return token


def prompt_message(text: str, outcome: ExecutionOutcome | None = None) -> FormattedText:
    """Prompt decoration: label, last outcome mark, then the marker."""
    parts: list[tuple[str, str]] = [(YELLOW, text or TELETY)]
    if outcome is ExecutionOutcome.SUCCEEDED:
        parts.append((GREEN, " ✔"))
    elif outcome is ExecutionOutcome.FAILED:
        parts.append((RED, " ✘"))
    parts.append((DIM, "> "))
    return FormattedText(parts)


class ConsoleWriter:
    """Writes styled lines to the terminal."""

    def output(self, *fragments: tuple[str, str] | str) -> None:
        parts: list[tuple[str, str]] = []
        for i, fragment in enumerate(fragments):
            if i:
                parts.append(("", " "))
            parts.append(("", fragment) if isinstance(fragment, str) else fragment)
        print_formatted_text(FormattedText(parts))

    def warn(self, message: object) -> None:
        self.output((RED, f"{TELETY}.warn:"), (DIM, str(message)))

    def status(self, scope: str, *status: tuple[str, str] | str) -> None:
        self.output((DIM, f"{TELETY}.{scope}"), *status)

    def separator(self) -> None:
        columns = shutil.get_terminal_size().columns
        self.output((DIM, "-" * columns))

    def controls(self, rows: list[tuple[str, str]]) -> None:
        """Print the control keys grid under a section header."""
        width = max((len(key) for key, _ in rows), default=0)
        self.output((DIM, f"{TELETY}.controls"))
        for key, description in rows:
            self.output((DIM, "  " + key.ljust(width)), (DIM, description))
        self.output()

    def message(self, message: Message) -> None:
        """Render a channel message below a separator."""
        self.output()
        self.separator()
        self.output((DIM, f"# {message_id_hash(message)}"))
        self.output(message.input)
        if message.meta:
            self.output((DIM, f"> {message.meta}"))

    def disconnected(self) -> None:
        self.output()
        self.output((DIM, f"{TELETY}.disconnected"))
