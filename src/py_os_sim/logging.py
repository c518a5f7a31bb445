"""Simulation event log.

Both engines can record what they did, tick by tick, into an in-memory
audit trail.  A UI collaborator reads it back to narrate a run ("t=3:
P2 preempted P1") without having to diff snapshots.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, tick).
- **Logger** — an append-only log with filtering and clearing.

Design choices:
    - **IntEnum for levels** so they compare naturally with ``<``.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **Virtual time, not wall-clock** — ``tick`` is whatever clock the
      emitting engine keeps, so two identical runs produce identical logs.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """How much a simulation event matters to someone replaying the run.

    DEBUG marks routine queue traffic (arrivals, preemptions) and INFO the
    events a timeline is narrated from (dispatches, completions,
    allocations).  WARNING flags a request the allocator had to refuse;
    ERROR is left for callers recording their own failures in the same log.
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
        source: The engine that generated the event ("scheduler", "memory").
        tick: Virtual time (or operation number) when the event happened.

    """

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[LEVEL] t=tick source: message``."""
        return f"[{self.level.name}] t={self.tick} {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering.

    One logger may be shared by several engines; entries keep their
    ``source`` so they can be told apart later.
    """

    def __init__(self, *, min_level: LogLevel = LogLevel.DEBUG) -> None:
        """Create an empty logger.

        Args:
            min_level: Entries below this level are discarded on arrival.

        """
        self._min_level = min_level
        self._entries: list[LogEntry] = []

    @property
    def min_level(self) -> LogLevel:
        """Return the lowest level that is recorded."""
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of the recorded events, oldest first."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        tick: int = 0,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Engine that generated the event.
            tick: Virtual time of the event.

        """
        if level < self._min_level:
            return
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Select the events of one engine, one severity band, or both.

        A shared logger holds scheduler and allocator events side by side;
        ``filter(source="memory")`` replays just the allocator's story.

        Args:
            min_level: Drop events below this level.
            source: Keep only events from this engine ("scheduler", "memory").

        Returns:
            Matching events in the order they were recorded.

        """
        return [
            entry
            for entry in self._entries
            if (min_level is None or entry.level >= min_level)
            and (source is None or entry.source == source)
        ]

    def clear(self) -> None:
        """Forget every recorded event, e.g. before replaying a run."""
        self._entries.clear()
