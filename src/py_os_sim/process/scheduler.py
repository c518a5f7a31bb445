"""CPU scheduling engine — a steppable, tick-by-tick dispatch simulation.

The engine owns the clock, the ready queue, and the single CPU slot, and
delegates the *selection* decision to a pluggable DispatchPolicy.  Five
policies ship out of the box:

- **FCFSPolicy** (First Come, First Served): earliest arrival runs to
  completion.  Simple, but a long job stalls everyone behind it (convoy
  effect).
- **SJFPolicy** (Shortest Job First): non-preemptive; the shortest burst
  among ready processes goes next.  Optimal average waiting time when
  every job is known up front.
- **SRTFPolicy** (Shortest Remaining Time First): the preemptive SJF.
  Every tick the incumbent goes back into the queue and the process with
  the least work left wins.
- **PriorityPolicy**: non-preemptive; lowest priority value runs first.
  Susceptible to starvation of low-priority processes.
- **RoundRobinPolicy**: FIFO with a time quantum.  A process that uses up
  its quantum is sent to the back of the queue.

Design: Strategy pattern
    The SchedulingEngine is the *context*; DispatchPolicy is the
    *strategy*.  An engine cannot exist without a concrete policy, so
    there is no "unimplemented selection" to call by mistake.

One tick of ``step()``::

    admit arrivals → policy.select_next → run 1 tick → age READY → time += 1
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from py_os_sim.logging import LogLevel
from py_os_sim.process.pcb import Process, ProcessState
from py_os_sim.process.ready_queue import FifoReadyQueue, KeyedReadyQueue, ReadyQueue

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from py_os_sim.logging import Logger

DEFAULT_QUANTUM = 2
IDLE_NAME = "Idle"
_SOURCE = "scheduler"


class SimulationTimeoutError(RuntimeError):
    """Raise when a run exceeds the caller's step cap."""


class SchedulingAlgorithm(StrEnum):
    """Tags for the built-in dispatch policies."""

    FCFS = "fcfs"
    SJF = "sjf"
    SRTF = "srtf"
    PRIORITY = "priority"
    ROUND_ROBIN = "round_robin"


# ---------------------------------------------------------------------------
# Snapshot types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelineEntry:
    """What the CPU did during one tick.

    ``process_id`` is None for an idle tick.
    """

    time: int
    process_id: str | None
    process_name: str

    @property
    def is_idle(self) -> bool:
        """Return True if no process ran this tick."""
        return self.process_id is None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view."""
        return {"time": self.time, "processId": self.process_id, "processName": self.process_name}


@dataclass(frozen=True)
class SchedulingStats:
    """Aggregate results over completed processes."""

    average_turnaround_time: float = 0.0
    average_waiting_time: float = 0.0
    throughput: float = 0.0

    def to_dict(self) -> dict[str, float]:
        """Return a JSON-ready view."""
        return {
            "averageTurnaroundTime": self.average_turnaround_time,
            "averageWaitingTime": self.average_waiting_time,
            "throughput": self.throughput,
        }


@dataclass(frozen=True)
class SimulationResult:
    """An immutable snapshot of a scheduling run.

    ``processes`` are clones — mutating them never reaches the engine.
    """

    timeline: tuple[TimelineEntry, ...]
    processes: tuple[Process, ...]
    stats: SchedulingStats

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view."""
        return {
            "timeline": [entry.to_dict() for entry in self.timeline],
            "processes": [process.to_dict() for process in self.processes],
            "stats": self.stats.to_dict(),
        }


# ---------------------------------------------------------------------------
# Dispatch policies
# ---------------------------------------------------------------------------


class DispatchPolicy(Protocol):
    """Interface that every dispatch algorithm must satisfy.

    - new_queue: build a ready queue with this policy's ordering.
    - reset: forget any per-run state before a fresh run.
    - select_next: decide who holds the CPU this tick.  May keep the
      incumbent, preempt it back into the queue, and/or dispatch one
      process from the queue.  Returns the process that will run.
    - on_tick: called after each executed tick with whoever still runs.
    """

    name: str
    description: str
    preemptive: bool

    def new_queue(self) -> ReadyQueue:
        """Return an empty ready queue ordered for this policy."""
        ...  # pragma: no cover

    def reset(self) -> None:
        """Clear per-run state."""
        ...  # pragma: no cover

    def select_next(self, running: Process | None, ready: ReadyQueue, now: int) -> Process | None:
        """Return the process that runs at tick *now*, or None to idle."""
        ...  # pragma: no cover

    def on_tick(self, running: Process | None) -> None:
        """Observe that *running* just executed for one tick."""
        ...  # pragma: no cover


def _dispatch_front(ready: ReadyQueue) -> Process | None:
    """Pop the head of *ready* and move it to RUNNING."""
    process = ready.pop()
    if process is not None:
        process.dispatch()
    return process


class _NonPreemptivePolicy:
    """Shared behaviour: the incumbent keeps the CPU until it completes."""

    name: str
    description: str
    preemptive = False
    sort_key: Callable[[Process], tuple[int, ...]]

    def new_queue(self) -> ReadyQueue:
        """Return a queue keyed by the subclass's ``sort_key``."""
        return KeyedReadyQueue(self.sort_key)

    def reset(self) -> None:
        """Nothing to reset."""

    def select_next(self, running: Process | None, ready: ReadyQueue, now: int) -> Process | None:
        """Keep the incumbent; otherwise dispatch the head of the queue."""
        if running is not None:
            return running
        return _dispatch_front(ready)

    def on_tick(self, running: Process | None) -> None:
        """Nothing to track."""


class FCFSPolicy(_NonPreemptivePolicy):
    """First Come, First Served — earliest arrival runs first.

    Ties on arrival fall back to the order processes entered the queue,
    which for simultaneous arrivals is the caller's input order.
    """

    name = "First-Come, First-Served (FCFS)"
    description = "Processes are executed in the order they arrive"

    @staticmethod
    def sort_key(process: Process) -> tuple[int, ...]:
        """Order by arrival time."""
        return (process.arrival_time,)


class SJFPolicy(_NonPreemptivePolicy):
    """Shortest Job First — smallest burst among the ready processes."""

    name = "Shortest Job First (SJF)"
    description = "Non-preemptive scheduling based on burst time"

    @staticmethod
    def sort_key(process: Process) -> tuple[int, ...]:
        """Order by burst time, then arrival."""
        return (process.burst_time, process.arrival_time)


class PriorityPolicy(_NonPreemptivePolicy):
    """Priority scheduling — lowest priority value runs first.

    Non-preemptive: a high-priority arrival waits for the incumbent to
    finish.  Ties go to the earlier arrival.
    """

    name = "Priority Scheduling"
    description = "Non-preemptive scheduling based on priority (lower value = higher priority)"

    @staticmethod
    def sort_key(process: Process) -> tuple[int, ...]:
        """Order by priority value, then arrival."""
        return (process.priority, process.arrival_time)


class SRTFPolicy:
    """Shortest Remaining Time First — preemptive SJF.

    Every tick the incumbent is preempted back into the queue and the
    process with the least remaining work is (re)dispatched.  When the
    incumbent still has the least work it simply wins again.
    """

    name = "Shortest Remaining Time First (SRTF)"
    description = "Preemptive version of SJF"
    preemptive = True

    def new_queue(self) -> ReadyQueue:
        """Return a queue keyed by remaining time, then arrival."""
        return KeyedReadyQueue(lambda p: (p.remaining_time, p.arrival_time))

    def reset(self) -> None:
        """Nothing to reset."""

    def select_next(self, running: Process | None, ready: ReadyQueue, now: int) -> Process | None:
        """Re-queue the incumbent, then dispatch the shortest remaining."""
        if running is not None:
            running.preempt()
            ready.push(running)
        return _dispatch_front(ready)

    def on_tick(self, running: Process | None) -> None:
        """Nothing to track."""


class RoundRobinPolicy:
    """Round Robin — each process gets a fixed time quantum.

    FIFO ordering, plus forced preemption once the incumbent has run for
    ``quantum`` consecutive ticks.  The preempted process goes to the back
    of the queue, behind anything that arrived meanwhile.
    """

    preemptive = True

    def __init__(self, *, quantum: int = DEFAULT_QUANTUM) -> None:
        """Create a Round Robin policy with the given time quantum.

        Args:
            quantum: Ticks a process may run before forced preemption.

        Raises:
            ValueError: If *quantum* is not a positive integer.

        """
        if isinstance(quantum, bool) or not isinstance(quantum, int) or quantum < 1:
            msg = f"quantum must be a positive integer, got {quantum!r}"
            raise ValueError(msg)
        self._quantum = quantum
        self._elapsed = 0
        self.name = "Round Robin"
        self.description = f"Time-sharing algorithm with time quantum of {quantum}"

    @property
    def quantum(self) -> int:
        """Return the time quantum (ticks per slice)."""
        return self._quantum

    @property
    def elapsed(self) -> int:
        """Return how many ticks the incumbent has used of its quantum."""
        return self._elapsed

    def new_queue(self) -> ReadyQueue:
        """Return a plain FIFO queue."""
        return FifoReadyQueue()

    def reset(self) -> None:
        """Forget the quantum counter."""
        self._elapsed = 0

    def select_next(self, running: Process | None, ready: ReadyQueue, now: int) -> Process | None:
        """Keep the incumbent while its quantum lasts, else rotate."""
        if running is not None and self._elapsed < self._quantum:
            return running
        if running is not None:
            running.preempt()
            ready.push(running)
        process = _dispatch_front(ready)
        if process is not None:
            self._elapsed = 0
        return process

    def on_tick(self, running: Process | None) -> None:
        """Count one more tick of the current slice."""
        if running is not None:
            self._elapsed += 1


_POLICY_FACTORIES: dict[SchedulingAlgorithm, Callable[[int], DispatchPolicy]] = {
    SchedulingAlgorithm.FCFS: lambda _q: FCFSPolicy(),
    SchedulingAlgorithm.SJF: lambda _q: SJFPolicy(),
    SchedulingAlgorithm.SRTF: lambda _q: SRTFPolicy(),
    SchedulingAlgorithm.PRIORITY: lambda _q: PriorityPolicy(),
    SchedulingAlgorithm.ROUND_ROBIN: lambda q: RoundRobinPolicy(quantum=q),
}


def create_policy(
    algorithm: SchedulingAlgorithm | str, *, quantum: int = DEFAULT_QUANTUM
) -> DispatchPolicy:
    """Build a fresh policy for *algorithm*.

    Raises:
        ValueError: If the tag is unknown or the quantum is invalid.

    """
    return _POLICY_FACTORIES[SchedulingAlgorithm(algorithm)](quantum)


def available_algorithms(*, quantum: int = DEFAULT_QUANTUM) -> list[DispatchPolicy]:
    """Return one fresh policy per built-in algorithm, in menu order."""
    return [create_policy(tag, quantum=quantum) for tag in SchedulingAlgorithm]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class SchedulingEngine:
    """Single-CPU scheduling simulation driven one tick at a time.

    The engine works on clones of the caller's processes and hands out
    clones in every snapshot, so neither side can mutate the other's
    objects.
    """

    def __init__(self, *, policy: DispatchPolicy, logger: Logger | None = None) -> None:
        """Create an engine with the given dispatch policy.

        Args:
            policy: The algorithm that picks who runs each tick.
            logger: Optional event log for admissions, dispatches, etc.

        """
        self._policy = policy
        self._logger = logger
        self._inputs: list[Process] = []
        self._reset_state()

    def _reset_state(self) -> None:
        self._policy.reset()
        self._processes: list[Process] = [p.clone() for p in self._inputs]
        for process in self._processes:
            process.reset()
        self._ready: ReadyQueue = self._policy.new_queue()
        self._running: Process | None = None
        self._timeline: list[TimelineEntry] = []
        self._current_time = 0
        self._context_switches = 0
        self._finished = not self._processes

    # -- Queries -------------------------------------------------------------

    @property
    def policy(self) -> DispatchPolicy:
        """Return the dispatch policy."""
        return self._policy

    @property
    def current_time(self) -> int:
        """Return the current virtual tick."""
        return self._current_time

    @property
    def is_finished(self) -> bool:
        """Return True once every process has completed."""
        return self._finished

    @property
    def running(self) -> Process | None:
        """Return a copy of the running process, or None."""
        return self._running.clone() if self._running is not None else None

    @property
    def ready_count(self) -> int:
        """Return the number of processes in the ready queue."""
        return len(self._ready)

    @property
    def ready_processes(self) -> list[Process]:
        """Return copies of the ready queue in dispatch order."""
        return [p.clone() for p in self._ready]

    @property
    def processes(self) -> list[Process]:
        """Return copies of every process in input order."""
        return [p.clone() for p in self._processes]

    @property
    def completed_processes(self) -> list[Process]:
        """Return copies of completed processes in completion order."""
        done = [p for p in self._processes if p.is_completed]
        return [p.clone() for p in sorted(done, key=lambda p: p.finish_time)]

    @property
    def timeline(self) -> tuple[TimelineEntry, ...]:
        """Return the per-tick dispatch record so far."""
        return tuple(self._timeline)

    @property
    def context_switches(self) -> int:
        """Return how many times a different process took the CPU."""
        return self._context_switches

    def idle_until_arrivals(self) -> bool:
        """Return True if the CPU can do nothing until a future arrival.

        That is: nothing running, nothing ready, and every unfinished
        process arrives after the current tick.
        """
        if self._running is not None or len(self._ready) > 0:
            return False
        return all(
            p.is_completed or p.arrival_time > self._current_time for p in self._processes
        )

    # -- Driving the simulation ----------------------------------------------

    def initialize(self, processes: Iterable[Process]) -> None:
        """Load a fresh workload and reset the clock to 0.

        Args:
            processes: The workload.  Cloned; the originals are untouched.

        Raises:
            ValueError: If two processes share a pid.

        """
        inputs = [p.clone() for p in processes]
        seen: set[str] = set()
        for process in inputs:
            if process.pid in seen:
                msg = f"Duplicate process id {process.pid!r}"
                raise ValueError(msg)
            seen.add(process.pid)
        self._inputs = inputs
        self._reset_state()

    def step(self) -> bool:
        """Advance the simulation by one tick.

        Returns:
            True if a tick was simulated, False if already finished.

        """
        if self._finished:
            return False
        self._admit_arrivals()
        self._dispatch()
        self._execute()
        for process in self._processes:
            process.age()
        self._current_time += 1
        self._finished = all(p.is_completed for p in self._processes)
        return True

    def run_full_simulation(self, *, max_steps: int | None = None) -> SimulationResult:
        """Re-initialise and run until every process completes.

        Args:
            max_steps: Optional cap on ticks, guarding against runaway input.

        Raises:
            SimulationTimeoutError: If the cap is hit before completion.

        """
        self._reset_state()
        steps = 0
        while not self._finished:
            if max_steps is not None and steps >= max_steps:
                msg = f"Simulation did not finish within {max_steps} steps"
                raise SimulationTimeoutError(msg)
            self.step()
            steps += 1
        return self.snapshot()

    def calculate_stats(self) -> SchedulingStats:
        """Return averages over completed processes (zeros if none)."""
        done = [p for p in self._processes if p.is_completed]
        if not done or self._current_time == 0:
            return SchedulingStats()
        return SchedulingStats(
            average_turnaround_time=sum(p.turnaround_time for p in done) / len(done),
            average_waiting_time=sum(p.waiting_time for p in done) / len(done),
            throughput=len(done) / self._current_time,
        )

    def snapshot(self) -> SimulationResult:
        """Return an immutable copy of the run so far."""
        return SimulationResult(
            timeline=tuple(self._timeline),
            processes=tuple(p.clone() for p in self._processes),
            stats=self.calculate_stats(),
        )

    # -- Tick phases ---------------------------------------------------------

    def _admit_arrivals(self) -> None:
        for process in self._processes:
            if process.state is ProcessState.NEW and process.arrival_time <= self._current_time:
                process.admit()
                self._ready.push(process)
                self._log(LogLevel.DEBUG, f"{process.name} arrived")

    def _dispatch(self) -> None:
        previous = self._running
        self._running = self._policy.select_next(previous, self._ready, self._current_time)
        if self._running is previous:
            return
        if previous is not None:
            self._log(LogLevel.DEBUG, f"{previous.name} preempted")
        if self._running is not None:
            self._context_switches += 1
            self._log(LogLevel.INFO, f"{self._running.name} dispatched")

    def _execute(self) -> None:
        process = self._running
        if process is None:
            self._timeline.append(TimelineEntry(self._current_time, None, IDLE_NAME))
            self._policy.on_tick(None)
            return
        self._timeline.append(TimelineEntry(self._current_time, process.pid, process.name))
        process.run_tick(self._current_time)
        if process.remaining_time == 0:
            process.complete(self._current_time + 1)
            self._running = None
            self._log(
                LogLevel.INFO,
                f"{process.name} completed (turnaround={process.turnaround_time}, "
                f"waiting={process.waiting_time})",
            )
        self._policy.on_tick(self._running)

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger is not None:
            self._logger.log(level, message, source=_SOURCE, tick=self._current_time)


def create_scheduler(
    algorithm: SchedulingAlgorithm | str,
    *,
    quantum: int = DEFAULT_QUANTUM,
    logger: Logger | None = None,
) -> SchedulingEngine:
    """Build an engine with a fresh policy for *algorithm*."""
    return SchedulingEngine(policy=create_policy(algorithm, quantum=quantum), logger=logger)
