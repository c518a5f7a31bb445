"""Process and Process Control Block (PCB).

A process here is a unit of simulated CPU demand: it arrives at some
virtual tick, needs ``burst_time`` ticks of CPU, and carries a priority
(lower value = more important).  The PCB also holds the bookkeeping the
scheduling engine fills in as the run progresses.

Processes follow a strict state machine — each transition method
(admit, dispatch, preempt, complete) enforces that the process is in the
correct source state before moving it.

State machine::

    NEW → READY ⇄ RUNNING → COMPLETED
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

NOT_SET = -1


class ProcessState(StrEnum):
    """Lifecycle states of a simulated process.

    - NEW: created by the caller, not yet arrived.
    - READY: arrived and waiting in the ready queue for CPU time.
    - RUNNING: holds the (single) CPU this tick.
    - WAITING: blocked on an event.  Part of the classic five-state
      model; the scheduling engine itself never blocks a process.
    - COMPLETED: all burst ticks consumed.
    """

    NEW = "new"
    READY = "ready"
    RUNNING = "running"
    WAITING = "waiting"
    COMPLETED = "completed"


def _require_int(field: str, value: object) -> int:
    """Return *value* if it is a real int, else raise ValueError."""
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{field} must be an integer, got {value!r}"
        raise ValueError(msg)
    return value


class Process:
    """A simulated process (the Process Control Block).

    Timing fields start unset (``-1``) and are filled in by the engine:
    ``start_time`` on first dispatch, ``finish_time`` on completion.  Once
    finished, ``turnaround_time = finish_time - arrival_time`` and
    ``waiting_time = turnaround_time - burst_time``.
    """

    def __init__(
        self,
        *,
        pid: str,
        name: str,
        arrival_time: int,
        burst_time: int,
        priority: int = 0,
    ) -> None:
        """Create a new process in the NEW state.

        Args:
            pid: Caller-supplied unique identifier.
            name: Human-readable label (e.g. "P1").
            arrival_time: Tick at which the process becomes READY (>= 0).
            burst_time: Total CPU ticks needed (> 0).
            priority: Scheduling priority (lower = more important).

        Raises:
            ValueError: If any field is missing or out of range.

        """
        if not pid:
            msg = "Process id must be a non-empty string"
            raise ValueError(msg)
        arrival_time = _require_int("arrival_time", arrival_time)
        burst_time = _require_int("burst_time", burst_time)
        priority = _require_int("priority", priority)
        if arrival_time < 0:
            msg = f"Process {pid}: arrival_time must be >= 0, got {arrival_time}"
            raise ValueError(msg)
        if burst_time <= 0:
            msg = f"Process {pid}: burst_time must be > 0, got {burst_time}"
            raise ValueError(msg)

        self._pid = pid
        self._name = name
        self._arrival_time = arrival_time
        self._burst_time = burst_time
        self._priority = priority
        self.reset()

    def reset(self) -> None:
        """Return the process to its freshly constructed state."""
        self._state: ProcessState = ProcessState.NEW
        self._remaining_time: int = self._burst_time
        self._start_time: int = NOT_SET
        self._finish_time: int = NOT_SET
        self._waiting_time: int = 0
        self._turnaround_time: int = 0
        self._execution_history: list[tuple[int, int]] = []

    # -- Identity and input fields -----------------------------------------

    @property
    def pid(self) -> str:
        """Return the process identifier."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name."""
        return self._name

    @property
    def arrival_time(self) -> int:
        """Return the tick at which the process arrives."""
        return self._arrival_time

    @property
    def burst_time(self) -> int:
        """Return the total CPU ticks the process needs."""
        return self._burst_time

    @property
    def priority(self) -> int:
        """Return the scheduling priority (lower = more important)."""
        return self._priority

    # -- Execution bookkeeping ---------------------------------------------

    @property
    def state(self) -> ProcessState:
        """Return the current process state."""
        return self._state

    @property
    def remaining_time(self) -> int:
        """Return the CPU ticks still needed."""
        return self._remaining_time

    @property
    def start_time(self) -> int:
        """Return the tick of first execution, or -1."""
        return self._start_time

    @property
    def finish_time(self) -> int:
        """Return the tick at which the process completed, or -1."""
        return self._finish_time

    @property
    def waiting_time(self) -> int:
        """Return the waiting time.

        While the process is live this is the number of ticks it has
        spent READY; once completed it is ``turnaround - burst``.
        """
        return self._waiting_time

    @property
    def turnaround_time(self) -> int:
        """Return the turnaround time (0 until completed)."""
        return self._turnaround_time

    @property
    def execution_history(self) -> tuple[tuple[int, int], ...]:
        """Return the ``(start, end)`` execution intervals, end exclusive."""
        return tuple(self._execution_history)

    @property
    def is_completed(self) -> bool:
        """Return True once the process has finished."""
        return self._state is ProcessState.COMPLETED

    def run_tick(self, now: int) -> None:
        """Consume one tick of CPU at time *now*.

        Raises:
            RuntimeError: If the process is not running or has no time left.

        """
        if self._state is not ProcessState.RUNNING:
            msg = f"Cannot run: process {self._pid} is {self._state}, expected running"
            raise RuntimeError(msg)
        if self._remaining_time <= 0:
            msg = f"Cannot run: process {self._pid} has no remaining time"
            raise RuntimeError(msg)
        if self._start_time == NOT_SET:
            self._start_time = now
        self._remaining_time -= 1
        if self._execution_history and self._execution_history[-1][1] == now:
            start, _ = self._execution_history[-1]
            self._execution_history[-1] = (start, now + 1)
        else:
            self._execution_history.append((now, now + 1))

    def age(self) -> None:
        """Count one more tick spent waiting in the ready queue."""
        if self._state is ProcessState.READY:
            self._waiting_time += 1

    def calculate_turnaround_time(self) -> int:
        """Update and return the turnaround time once finished."""
        if self._finish_time != NOT_SET:
            self._turnaround_time = self._finish_time - self._arrival_time
        return self._turnaround_time

    def calculate_waiting_time(self) -> int:
        """Update and return the waiting time once finished."""
        if self._finish_time != NOT_SET:
            self._waiting_time = self._turnaround_time - self._burst_time
        return self._waiting_time

    # -- State transitions -------------------------------------------------

    def _transition(self, action: str, expected: ProcessState, target: ProcessState) -> None:
        """Enforce a state transition.

        Raises:
            RuntimeError: If the process is not in the expected state.

        """
        if self._state is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {expected}"
            raise RuntimeError(msg)
        self._state = target

    def admit(self) -> None:
        """Transition NEW → READY. The process has arrived."""
        self._transition("admit", ProcessState.NEW, ProcessState.READY)

    def dispatch(self) -> None:
        """Transition READY → RUNNING. Give the process the CPU."""
        self._transition("dispatch", ProcessState.READY, ProcessState.RUNNING)

    def preempt(self) -> None:
        """Transition RUNNING → READY. Hand the CPU back to the scheduler."""
        self._transition("preempt", ProcessState.RUNNING, ProcessState.READY)

    def complete(self, finish_time: int) -> None:
        """Transition RUNNING → COMPLETED and compute the timing fields.

        Raises:
            RuntimeError: If the process is not running or still has work.

        """
        if self._remaining_time > 0:
            msg = f"Cannot complete: process {self._pid} has {self._remaining_time} ticks left"
            raise RuntimeError(msg)
        self._transition("complete", ProcessState.RUNNING, ProcessState.COMPLETED)
        self._finish_time = finish_time
        self.calculate_turnaround_time()
        self.calculate_waiting_time()

    # -- Copies ------------------------------------------------------------

    def clone(self) -> Process:
        """Return an independent copy, bookkeeping included."""
        copy = Process(
            pid=self._pid,
            name=self._name,
            arrival_time=self._arrival_time,
            burst_time=self._burst_time,
            priority=self._priority,
        )
        copy._state = self._state
        copy._remaining_time = self._remaining_time
        copy._start_time = self._start_time
        copy._finish_time = self._finish_time
        copy._waiting_time = self._waiting_time
        copy._turnaround_time = self._turnaround_time
        copy._execution_history = list(self._execution_history)
        return copy

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view of the process."""
        return {
            "id": self._pid,
            "name": self._name,
            "arrivalTime": self._arrival_time,
            "burstTime": self._burst_time,
            "priority": self._priority,
            "state": str(self._state),
            "remainingTime": self._remaining_time,
            "startTime": self._start_time,
            "finishTime": self._finish_time,
            "waitingTime": self._waiting_time,
            "turnaroundTime": self._turnaround_time,
            "executionHistory": [
                {"startTime": start, "endTime": end} for start, end in self._execution_history
            ],
        }

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Process(pid={self._pid!r}, name={self._name!r}, state={self._state})"
