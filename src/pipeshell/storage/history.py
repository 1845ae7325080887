"""In-memory command history."""

from __future__ import annotations

import logging
import re
from collections import deque

from pipeshell.storage.models import Pipeline

logger = logging.getLogger(__name__)

HISTORY_MAXITEMS = 100
HISTORY_COMMAND = "history"
CLEAR_FLAG = "-c"

_INDEX_RE = re.compile(r"^[+-]?\d+$")


def parse_index(text: str) -> int | None:
    """Convert a history offset argument to an int, or None if it is not a number."""
    if not _INDEX_RE.match(text):
        return None
    return int(text)


def should_record(pipeline: Pipeline) -> bool:
    """Return whether a parsed line belongs in history.

    Inspecting or recalling history (``history``, ``history -c``,
    ``history N``) is not recorded. Anything else is, including pipelines
    that merely contain a ``history`` stage.
    """
    if not pipeline.is_simple:
        return True
    command = pipeline.commands[0]
    if command.program != HISTORY_COMMAND:
        return True
    if len(command.arguments) == 1:
        return False
    argument = command.arguments[1]
    return not (argument == CLEAR_FLAG or parse_index(argument) is not None)


class HistoryStore:
    """Bounded FIFO log of raw input lines. Index 0 is always the oldest entry."""

    def __init__(self, max_items: int = HISTORY_MAXITEMS) -> None:
        if max_items < 1:
            raise ValueError(f"History capacity must be positive, got {max_items}")
        self.max_items = max_items
        self._entries: deque[str] = deque(maxlen=max_items)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, line: str) -> None:
        """Append a line, evicting the oldest entry when full."""
        if len(self._entries) == self.max_items:
            logger.debug("History full, evicting: %s", self._entries[0])
        self._entries.append(line)

    def list_entries(self) -> list[tuple[int, str]]:
        """Return ``(index, text)`` pairs, oldest first."""
        return list(enumerate(self._entries))

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("History cleared")

    def get(self, index: int) -> str | None:
        """Return the entry at a positional index, or None if there is none."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None
