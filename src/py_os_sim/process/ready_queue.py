"""Ready queues — the order in which READY processes wait for the CPU.

Each dispatch policy needs a different ordering guarantee, so the queue
is chosen by the policy rather than re-sorted by the engine every tick:

- **FifoReadyQueue** — plain arrival-into-queue order (Round Robin).
- **KeyedReadyQueue** — a binary heap ordered by a policy-supplied key,
  with insertion order as the final tiebreak (FCFS, SJF, SRTF, Priority).

A key is only read when a process is pushed.  That is safe because a
process's key fields (arrival, burst, priority, remaining time) never
change while it sits in the queue: remaining time only drops while the
process is RUNNING, and SRTF re-pushes the incumbent each tick.
"""

from __future__ import annotations

import heapq
from collections import deque
from itertools import count
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from py_os_sim.process.pcb import Process


class ReadyQueue(Protocol):
    """Interface shared by every ready queue."""

    def push(self, process: Process) -> None:
        """Add a process to the queue."""
        ...  # pragma: no cover

    def pop(self) -> Process | None:
        """Remove and return the next process, or None if empty."""
        ...  # pragma: no cover

    def peek(self) -> Process | None:
        """Return the next process without removing it, or None."""
        ...  # pragma: no cover

    def __len__(self) -> int:
        """Return the number of waiting processes."""
        ...  # pragma: no cover

    def __iter__(self) -> Iterator[Process]:
        """Iterate over waiting processes in dispatch order."""
        ...  # pragma: no cover


class FifoReadyQueue:
    """First in, first out — whoever entered the queue first leaves first."""

    def __init__(self) -> None:
        """Create an empty FIFO queue."""
        self._items: deque[Process] = deque()

    def push(self, process: Process) -> None:
        """Append *process* to the back."""
        self._items.append(process)

    def pop(self) -> Process | None:
        """Pop the front of the queue."""
        if not self._items:
            return None
        return self._items.popleft()

    def peek(self) -> Process | None:
        """Return the front of the queue."""
        return self._items[0] if self._items else None

    def __len__(self) -> int:
        """Return the number of waiting processes."""
        return len(self._items)

    def __iter__(self) -> Iterator[Process]:
        """Iterate front to back."""
        return iter(list(self._items))


class KeyedReadyQueue:
    """Smallest key first; equal keys leave in insertion order.

    Entries are ``(key, sequence, process)`` triples on a heap.  The
    sequence number comes from a monotonic counter so two processes never
    compare directly and ties resolve FIFO.
    """

    def __init__(self, key: Callable[[Process], tuple[int, ...]]) -> None:
        """Create an empty keyed queue.

        Args:
            key: Maps a process to its sort key (smaller = sooner).

        """
        self._key = key
        self._heap: list[tuple[tuple[int, ...], int, Process]] = []
        self._sequence = count()

    def push(self, process: Process) -> None:
        """Insert *process* according to its key."""
        heapq.heappush(self._heap, (self._key(process), next(self._sequence), process))

    def pop(self) -> Process | None:
        """Remove and return the process with the smallest key."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[2]

    def peek(self) -> Process | None:
        """Return the process with the smallest key."""
        return self._heap[0][2] if self._heap else None

    def __len__(self) -> int:
        """Return the number of waiting processes."""
        return len(self._heap)

    def __iter__(self) -> Iterator[Process]:
        """Iterate in dispatch order (smallest key first)."""
        return iter([entry[2] for entry in sorted(self._heap, key=lambda e: (e[0], e[1]))])
