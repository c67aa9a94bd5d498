"""Process-scoped history of submitted prompt inputs.

One store is created per process run and passed by reference to every
prompt opened during that run, so recall survives prompt open/close
cycles. Nothing is persisted across restarts.
"""

from __future__ import annotations

from collections.abc import Iterator

from telety.domain.models import HistoryEntry


class HistoryStore:
    """Append-only ordered log of history entries.

    Only the active session appends; there is no locking.
    """

    def __init__(self, entries: list[HistoryEntry] | None = None) -> None:
        self._entries: list[HistoryEntry] = list(entries or [])

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        self._entries.append(entry)
        return entry

    def last(self) -> HistoryEntry | None:
        """The most recently appended entry, or None when empty."""
        return self._entries[-1] if self._entries else None

    def at(self, index: int) -> str:
        """Input recorded at a 0-based position, or "" when out of bounds."""
        if 0 <= index < len(self._entries):
            return self._entries[index].input
        return ""

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)
