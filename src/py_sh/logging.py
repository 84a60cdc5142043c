"""Shell logging — an in-memory audit trail of what the shell did.

Most of what goes wrong in a shell is reported on stderr and forgotten.
The log keeps the part a user never sees: a unit file that failed to
load and why, a pipeline that stopped at stage 2, a save that never
reached storage.  ``dmesg`` prints it.

- **LogLevel** — severities, ordered so ``>=`` means "at least this bad".
- **LogSource** — the components that write to the log.
- **LogEntry** — one immutable record with a millisecond timestamp.
- **Logger** — a bounded ring buffer: once full, the oldest entries
  drop off, as in a kernel's ``dmesg`` buffer.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum

DEFAULT_CAPACITY = 1000


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @classmethod
    def parse(cls, name: str) -> "LogLevel":
        """Look a level up by name, ignoring case (``warning`` → WARNING).

        Raises:
            ValueError: If *name* is not a level.

        """
        try:
            return cls[name.upper()]
        except KeyError:
            msg = f"unknown level '{name}'"
            raise ValueError(msg) from None


class LogSource(StrEnum):
    """Components that write to the shell log."""

    BOOT = "boot"
    FS = "fs"
    LOADER = "loader"
    SHELL = "shell"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: How serious the event is.
        message: What happened, in one line.
        source: The component that reported it.
        timestamp: Milliseconds since the epoch.

    """

    level: LogLevel
    message: str
    source: str
    timestamp: int = field(default_factory=_now_ms, compare=False)

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Ring buffer of log entries with level and source filtering."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Create an empty logger that keeps at most *capacity* entries."""
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Return the most entries the buffer keeps."""
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[LogEntry]:
        """Return every kept entry, oldest first."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record an event, dropping the oldest entry if the buffer is full.

        Args:
            level: Severity of the event.
            message: One-line description.
            source: Component reporting it (usually a ``LogSource``).

        """
        self._entries.append(LogEntry(level=level, message=message, source=source))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return the entries at or above *min_level* from *source*.

        Either criterion may be omitted.
        """
        return [
            entry
            for entry in self._entries
            if (min_level is None or entry.level >= min_level)
            and (source is None or entry.source == source)
        ]

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of kept entries."""
        return len(self._entries)
