"""Process subsystem — PCB, ready queues, and the scheduling engine.

Re-exports public symbols so callers can write::

    from py_os_sim.process import Process, SchedulingEngine, FCFSPolicy
"""

from py_os_sim.process.pcb import Process, ProcessState
from py_os_sim.process.ready_queue import FifoReadyQueue, KeyedReadyQueue, ReadyQueue
from py_os_sim.process.scheduler import (
    DEFAULT_QUANTUM,
    DispatchPolicy,
    FCFSPolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SchedulingAlgorithm,
    SchedulingEngine,
    SchedulingStats,
    SimulationResult,
    SimulationTimeoutError,
    SJFPolicy,
    SRTFPolicy,
    TimelineEntry,
    available_algorithms,
    create_policy,
    create_scheduler,
)

__all__ = [
    "DEFAULT_QUANTUM",
    "DispatchPolicy",
    "FCFSPolicy",
    "FifoReadyQueue",
    "KeyedReadyQueue",
    "PriorityPolicy",
    "Process",
    "ProcessState",
    "ReadyQueue",
    "RoundRobinPolicy",
    "SJFPolicy",
    "SRTFPolicy",
    "SchedulingAlgorithm",
    "SchedulingEngine",
    "SchedulingStats",
    "SimulationResult",
    "SimulationTimeoutError",
    "TimelineEntry",
    "available_algorithms",
    "create_policy",
    "create_scheduler",
]
