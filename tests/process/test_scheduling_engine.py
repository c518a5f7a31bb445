"""Tests for the tick-driven scheduling engine.

Covers the end-to-end scenarios for each policy, the per-tick phases
(admission, dispatch, execution, aging), statistics, completion, and
the rule that callers only ever see copies of engine state.
"""

import pytest

from py_os_sim.process import (
    FCFSPolicy,
    Process,
    ProcessState,
    SchedulingEngine,
    SchedulingStats,
    SimulationTimeoutError,
    create_scheduler,
)

FCFS_AVG_WAITING = 2.0
FCFS_AVG_TURNAROUND = 6.0
TWO_OVER_EIGHT = 0.25
SRTF_P1_FINISH = 12
SRTF_P2_FINISH = 5
RR_P1_FINISH = 8
RR_P2_FINISH = 7
RR_CONTEXT_SWITCHES = 5
LATE_ARRIVAL = 3
STEP_CAP = 3


def _proc(
    pid: str, *, arrival: int, burst: int, priority: int = 0, name: str | None = None
) -> Process:
    return Process(
        pid=pid,
        name=name or pid.upper(),
        arrival_time=arrival,
        burst_time=burst,
        priority=priority,
    )


def _run(algorithm: str, processes: list[Process], **kwargs: int) -> SchedulingEngine:
    engine = create_scheduler(algorithm, **kwargs)
    engine.initialize(processes)
    engine.run_full_simulation()
    return engine


def _pids(engine: SchedulingEngine) -> list[str | None]:
    return [entry.process_id for entry in engine.timeline]


def _by_pid(engine: SchedulingEngine) -> dict[str, Process]:
    return {p.pid: p for p in engine.processes}


class TestEndToEndScenarios:
    """The reference runs for each dispatch policy."""

    def test_fcfs_runs_in_arrival_order(self) -> None:
        """P1 runs 0-4 uninterrupted, then P2 runs 5-7."""
        engine = _run(
            "fcfs", [_proc("p1", arrival=0, burst=5), _proc("p2", arrival=1, burst=3)]
        )
        assert _pids(engine) == ["p1"] * 5 + ["p2"] * 3
        stats = engine.calculate_stats()
        assert stats.average_waiting_time == pytest.approx(FCFS_AVG_WAITING)
        assert stats.average_turnaround_time == pytest.approx(FCFS_AVG_TURNAROUND)
        assert stats.throughput == pytest.approx(TWO_OVER_EIGHT)

    def test_srtf_preempts_for_shorter_job(self) -> None:
        """P2 takes over at tick 1, finishes at 5; P1 resumes to finish at 12."""
        engine = _run(
            "srtf", [_proc("p1", arrival=0, burst=8), _proc("p2", arrival=1, burst=4)]
        )
        assert _pids(engine) == ["p1"] + ["p2"] * 4 + ["p1"] * 7
        procs = _by_pid(engine)
        assert procs["p2"].finish_time == SRTF_P2_FINISH
        assert procs["p1"].finish_time == SRTF_P1_FINISH
        assert procs["p1"].execution_history == ((0, 1), (5, 12))

    def test_round_robin_quantum_two(self) -> None:
        """Dispatch order P1(0-2), P2(2-4), P1(4-6), P2(6-7), P1(7-8)."""
        engine = _run(
            "round_robin",
            [_proc("p1", arrival=0, burst=5), _proc("p2", arrival=0, burst=3)],
            quantum=2,
        )
        assert _pids(engine) == ["p1", "p1", "p2", "p2", "p1", "p1", "p2", "p1"]
        procs = _by_pid(engine)
        assert procs["p1"].finish_time == RR_P1_FINISH
        assert procs["p2"].finish_time == RR_P2_FINISH
        assert procs["p1"].execution_history == ((0, 2), (4, 6), (7, 8))
        assert engine.context_switches == RR_CONTEXT_SWITCHES

    def test_round_robin_large_quantum_behaves_like_fcfs(self) -> None:
        """A quantum longer than every burst never preempts."""
        processes = [_proc("p1", arrival=0, burst=3), _proc("p2", arrival=0, burst=2)]
        rr = _run("round_robin", processes, quantum=10)
        fcfs = _run("fcfs", processes)
        assert _pids(rr) == _pids(fcfs)

    def test_sjf_picks_shortest_after_each_completion(self) -> None:
        """Non-preemptive: P1 finishes first, then shortest bursts."""
        engine = _run(
            "sjf",
            [
                _proc("p1", arrival=0, burst=6),
                _proc("p2", arrival=1, burst=8),
                _proc("p3", arrival=2, burst=2),
                _proc("p4", arrival=3, burst=3),
            ],
        )
        assert _pids(engine) == ["p1"] * 6 + ["p3"] * 2 + ["p4"] * 3 + ["p2"] * 8

    def test_priority_waits_for_incumbent(self) -> None:
        """A higher-priority arrival waits, then wins over lower priority."""
        engine = _run(
            "priority",
            [
                _proc("p1", arrival=0, burst=3, priority=3),
                _proc("p2", arrival=1, burst=2, priority=1),
                _proc("p3", arrival=1, burst=2, priority=2),
            ],
        )
        assert _pids(engine) == ["p1"] * 3 + ["p2"] * 2 + ["p3"] * 2


class TestTickPhases:
    """Verify admission, execution, idling, and aging within a tick."""

    def test_idle_ticks_before_first_arrival(self) -> None:
        """The CPU idles until the first process arrives."""
        engine = _run("fcfs", [_proc("p1", arrival=LATE_ARRIVAL, burst=2)])
        timeline = engine.timeline
        assert [e.process_id for e in timeline] == [None] * LATE_ARRIVAL + ["p1", "p1"]
        assert all(e.process_name == "Idle" for e in timeline[:LATE_ARRIVAL])
        assert timeline[0].is_idle
        assert [e.time for e in timeline] == list(range(len(timeline)))

    def test_timeline_records_names(self) -> None:
        """Each busy tick names the running process."""
        engine = _run("fcfs", [_proc("p1", arrival=0, burst=1, name="shell")])
        assert engine.timeline[0].process_name == "shell"

    def test_waiting_counter_grows_while_ready(self) -> None:
        """A READY process accrues one waiting tick per simulated tick."""
        engine = create_scheduler("fcfs")
        engine.initialize([_proc("p1", arrival=0, burst=5), _proc("p2", arrival=1, burst=3)])
        for _ in range(3):
            engine.step()
        expected_waiting = 2
        assert _by_pid(engine)["p2"].waiting_time == expected_waiting
        expected_time = 3
        assert engine.current_time == expected_time

    def test_ready_queue_and_running_slot(self) -> None:
        """After the first tick one process runs and the other waits."""
        engine = create_scheduler("round_robin")
        engine.initialize([_proc("p1", arrival=0, burst=5), _proc("p2", arrival=0, burst=3)])
        engine.step()
        running = engine.running
        assert running is not None
        assert running.pid == "p1"
        assert engine.ready_count == 1
        assert [p.pid for p in engine.ready_processes] == ["p2"]
        assert engine.ready_processes[0].state is ProcessState.READY

    def test_each_process_runs_exactly_its_burst(self) -> None:
        """Busy ticks per process equal its burst time."""
        processes = [
            _proc("a", arrival=0, burst=4),
            _proc("b", arrival=2, burst=1),
            _proc("c", arrival=3, burst=6),
        ]
        for algorithm in ("fcfs", "sjf", "srtf", "priority", "round_robin"):
            engine = _run(algorithm, processes)
            for process in processes:
                assert _pids(engine).count(process.pid) == process.burst_time


class TestCompletion:
    """Verify when a run is considered finished."""

    def test_finished_when_all_completed(self) -> None:
        """is_finished flips exactly when the last process completes."""
        engine = create_scheduler("fcfs")
        engine.initialize([_proc("p1", arrival=0, burst=2)])
        assert engine.step()
        assert not engine.is_finished
        assert engine.step()
        assert engine.is_finished
        assert [p.pid for p in engine.completed_processes] == ["p1"]

    def test_step_after_finish_is_noop(self) -> None:
        """Stepping a finished engine changes nothing."""
        engine = _run("fcfs", [_proc("p1", arrival=0, burst=1)])
        assert not engine.step()
        assert len(engine.timeline) == 1

    def test_idle_gap_does_not_end_run(self) -> None:
        """A future arrival keeps the run going through an idle gap."""
        engine = create_scheduler("fcfs")
        engine.initialize([_proc("p1", arrival=0, burst=1), _proc("p2", arrival=4, burst=1)])
        engine.step()
        assert engine.idle_until_arrivals()
        assert not engine.is_finished
        engine.run_full_simulation()
        assert _pids(engine) == ["p1", None, None, None, "p2"]

    def test_idle_shortcut_agrees_on_reference_scenarios(self) -> None:
        """Without idle gaps the shortcut and the strict rule coincide."""
        scenarios = [
            ("fcfs", [_proc("p1", arrival=0, burst=5), _proc("p2", arrival=1, burst=3)]),
            ("srtf", [_proc("p1", arrival=0, burst=8), _proc("p2", arrival=1, burst=4)]),
            ("round_robin", [_proc("p1", arrival=0, burst=5), _proc("p2", arrival=0, burst=3)]),
        ]
        for algorithm, processes in scenarios:
            engine = create_scheduler(algorithm)
            engine.initialize(processes)
            while engine.step():
                shortcut = engine.idle_until_arrivals()
                assert shortcut == engine.is_finished

    def test_empty_workload_is_finished(self) -> None:
        """No processes means nothing to do and zeroed statistics."""
        engine = create_scheduler("srtf")
        engine.initialize([])
        assert engine.is_finished
        result = engine.run_full_simulation()
        assert result.timeline == ()
        assert result.stats == SchedulingStats()

    def test_step_cap_raises(self) -> None:
        """Exceeding max_steps raises instead of looping on."""
        engine = create_scheduler("fcfs")
        engine.initialize([_proc("p1", arrival=0, burst=5)])
        with pytest.raises(SimulationTimeoutError, match=str(STEP_CAP)):
            engine.run_full_simulation(max_steps=STEP_CAP)

    def test_stats_zero_before_any_completion(self) -> None:
        """Statistics stay zero until something completes."""
        engine = create_scheduler("fcfs")
        engine.initialize([_proc("p1", arrival=0, burst=5)])
        engine.step()
        assert engine.calculate_stats() == SchedulingStats()


class TestIsolationAndDeterminism:
    """Verify the engine never shares objects with its caller."""

    def test_inputs_are_not_mutated(self) -> None:
        """The caller's processes stay NEW after a full run."""
        originals = [_proc("p1", arrival=0, burst=3)]
        _run("fcfs", originals)
        assert originals[0].state is ProcessState.NEW
        assert originals[0].remaining_time == originals[0].burst_time

    def test_result_is_a_copy(self) -> None:
        """Mutating a returned process does not reach the engine."""
        engine = create_scheduler("fcfs")
        engine.initialize([_proc("p1", arrival=0, burst=2)])
        result = engine.run_full_simulation()
        result.processes[0].reset()
        assert engine.processes[0].is_completed

    def test_repeated_runs_are_identical(self) -> None:
        """run_full_simulation re-initialises, so reruns match exactly."""
        engine = create_scheduler("round_robin", quantum=3)
        engine.initialize(
            [
                _proc("p1", arrival=0, burst=7),
                _proc("p2", arrival=1, burst=4),
                _proc("p3", arrival=5, burst=2),
            ]
        )
        first = engine.run_full_simulation()
        second = engine.run_full_simulation()
        assert first.timeline == second.timeline
        assert first.stats == second.stats

    def test_duplicate_pids_rejected(self) -> None:
        """Two processes with one id is invalid input."""
        engine = SchedulingEngine(policy=FCFSPolicy())
        with pytest.raises(ValueError, match="Duplicate"):
            engine.initialize([_proc("p1", arrival=0, burst=1), _proc("p1", arrival=1, burst=1)])

    def test_snapshot_serialises(self) -> None:
        """The result converts to the collaborator's JSON shape."""
        engine = _run("fcfs", [_proc("p1", arrival=0, burst=1)])
        data = engine.snapshot().to_dict()
        assert data["timeline"] == [{"time": 0, "processId": "p1", "processName": "P1"}]
        assert data["processes"][0]["finishTime"] == 1
        assert set(data["stats"]) == {"averageTurnaroundTime", "averageWaitingTime", "throughput"}
