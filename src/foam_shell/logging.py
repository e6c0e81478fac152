"""Shell logging and audit trail.

The logger records structured entries for interpreter and filesystem
events — a ``dmesg``-style buffer of what happened and which subsystem
reported it.  Nothing is printed: callers (the ``log`` builtin, the REPL,
tests) decide what to show.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source).
- **Logger** — an append-only buffer with filtering and clearing.

Sources used in this package:

- ``"fs"``    — filesystem mutations (DEBUG) and rollbacks (WARNING).
- ``"shell"`` — parse errors, unknown commands, handler failures,
  nesting-depth trips and cancellations.
"""

from dataclasses import dataclass
from enum import IntEnum

# Oldest entries are dropped past this size.
DEFAULT_CAPACITY = 10_000


class LogLevel(IntEnum):
    """Severity levels for log entries.

    Using IntEnum means levels compare with ``<`` / ``>`` naturally,
    which makes minimum-level filtering trivial.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The subsystem that generated the event (e.g. "shell").

    """

    level: LogLevel
    message: str
    source: str

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering.

    The logger collects ``LogEntry`` records and provides simple
    querying by level and/or source.  One logger is usually shared by a
    filesystem and every executor running against it.
    """

    def __init__(self, *, capacity: int = DEFAULT_CAPACITY) -> None:
        """Create an empty logger holding at most *capacity* entries."""
        self._entries: list[LogEntry] = []
        self._capacity = capacity

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Subsystem that generated the event.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source))
        if len(self._entries) > self._capacity:
            del self._entries[: len(self._entries) - self._capacity]

    def debug(self, message: str, *, source: str) -> None:
        """Append a DEBUG entry."""
        self.log(LogLevel.DEBUG, message, source=source)

    def info(self, message: str, *, source: str) -> None:
        """Append an INFO entry."""
        self.log(LogLevel.INFO, message, source=source)

    def warning(self, message: str, *, source: str) -> None:
        """Append a WARNING entry."""
        self.log(LogLevel.WARNING, message, source=source)

    def error(self, message: str, *, source: str) -> None:
        """Append an ERROR entry."""
        self.log(LogLevel.ERROR, message, source=source)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result if result is not self._entries else list(result)

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of buffered entries."""
        return len(self._entries)
