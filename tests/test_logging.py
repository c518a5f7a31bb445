"""Tests for the simulation event log.

The logger records structured entries for engine events so a front end
can narrate a run.  Entries are stamped with virtual time, never
wall-clock time.
"""

from py_os_sim.logging import LogEntry, Logger, LogLevel
from py_os_sim.memory import create_allocator
from py_os_sim.process import Process, create_scheduler

P1_COMPLETION_TICK = 4
P2_DISPATCH_TICK = 5
EXPECTED_COMPLETIONS = 2


def _fcfs_workload() -> list[Process]:
    return [
        Process(pid="p1", name="P1", arrival_time=0, burst_time=5),
        Process(pid="p2", name="P2", arrival_time=1, burst_time=3),
    ]


class TestLogLevel:
    """Verify log level ordering."""

    def test_levels_are_ordered(self) -> None:
        """DEBUG < INFO < WARNING < ERROR."""
        assert LogLevel.DEBUG < LogLevel.INFO
        assert LogLevel.INFO < LogLevel.WARNING
        assert LogLevel.WARNING < LogLevel.ERROR


class TestLogEntry:
    """Verify log entry structure."""

    def test_entry_str(self) -> None:
        """String form should include level, tick, source, and message."""
        entry = LogEntry(level=LogLevel.WARNING, message="no room", source="memory", tick=7)
        assert str(entry) == "[WARNING] t=7 memory: no room"

    def test_tick_defaults_to_zero(self) -> None:
        """Entries without a tick are stamped at time 0."""
        entry = LogEntry(level=LogLevel.INFO, message="hello", source="test")
        assert entry.tick == 0


class TestLogger:
    """Verify the logger."""

    def test_log_stores_entries(self) -> None:
        """Logged entries should be retrievable."""
        logger = Logger()
        logger.log(LogLevel.INFO, "started", source="scheduler")
        assert len(logger.entries) == 1
        assert logger.entries[0].message == "started"

    def test_entries_are_ordered(self) -> None:
        """Entries should be in chronological order."""
        logger = Logger()
        logger.log(LogLevel.INFO, "first", source="test")
        logger.log(LogLevel.INFO, "second", source="test")
        assert [e.message for e in logger.entries] == ["first", "second"]

    def test_min_level_discards_quiet_entries(self) -> None:
        """Entries below the logger's minimum level are dropped."""
        logger = Logger(min_level=LogLevel.INFO)
        logger.log(LogLevel.DEBUG, "chatter", source="test")
        logger.log(LogLevel.INFO, "news", source="test")
        assert [e.message for e in logger.entries] == ["news"]

    def test_filter_by_level(self) -> None:
        """Filtering should return only entries at or above the level."""
        logger = Logger()
        logger.log(LogLevel.DEBUG, "debug msg", source="test")
        logger.log(LogLevel.INFO, "info msg", source="test")
        logger.log(LogLevel.ERROR, "error msg", source="test")
        warnings_and_above = logger.filter(min_level=LogLevel.WARNING)
        assert len(warnings_and_above) == 1
        assert warnings_and_above[0].level is LogLevel.ERROR

    def test_filter_by_source(self) -> None:
        """Filtering by source should return matching entries."""
        logger = Logger()
        logger.log(LogLevel.INFO, "tick", source="scheduler")
        logger.log(LogLevel.INFO, "split", source="memory")
        memory_logs = logger.filter(source="memory")
        assert [e.message for e in memory_logs] == ["split"]

    def test_entries_is_a_copy(self) -> None:
        """Mutating the returned list must not touch the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "kept", source="test")
        logger.entries.clear()
        assert len(logger.entries) == 1

    def test_clear(self) -> None:
        """Clearing should remove all entries."""
        logger = Logger()
        logger.log(LogLevel.INFO, "test", source="test")
        logger.clear()
        assert logger.entries == []


class TestSchedulerLogging:
    """Verify that the scheduling engine logs its decisions."""

    def test_dispatches_and_completions_are_logged(self) -> None:
        """Each dispatch and completion produces an INFO entry at its tick."""
        logger = Logger(min_level=LogLevel.INFO)
        engine = create_scheduler("fcfs", logger=logger)
        engine.initialize(_fcfs_workload())
        engine.run_full_simulation()
        messages = [(e.tick, e.message) for e in logger.entries]
        assert messages[0] == (0, "P1 dispatched")
        assert (P2_DISPATCH_TICK, "P2 dispatched") in messages
        completed = [e for e in logger.entries if "completed" in e.message]
        assert len(completed) == EXPECTED_COMPLETIONS
        assert completed[0].tick == P1_COMPLETION_TICK

    def test_arrivals_are_debug_entries(self) -> None:
        """Admissions are logged at DEBUG level."""
        logger = Logger()
        engine = create_scheduler("fcfs", logger=logger)
        engine.initialize(_fcfs_workload())
        engine.step()
        engine.step()
        arrivals = [e for e in logger.filter(source="scheduler") if "arrived" in e.message]
        assert [e.level for e in arrivals] == [LogLevel.DEBUG, LogLevel.DEBUG]
        assert [e.tick for e in arrivals] == [0, 1]

    def test_srtf_preemption_is_logged(self) -> None:
        """A real preemption names the process that lost the CPU."""
        logger = Logger()
        engine = create_scheduler("srtf", logger=logger)
        engine.initialize(
            [
                Process(pid="p1", name="P1", arrival_time=0, burst_time=8),
                Process(pid="p2", name="P2", arrival_time=1, burst_time=4),
            ]
        )
        engine.run_full_simulation()
        preemptions = [e for e in logger.entries if "preempted" in e.message]
        assert [(e.tick, e.message) for e in preemptions] == [(1, "P1 preempted")]


class TestAllocatorLogging:
    """Verify that the allocation engine logs its actions."""

    def test_failed_allocation_is_a_warning(self) -> None:
        """Running out of room is logged as a WARNING from 'memory'."""
        logger = Logger()
        engine = create_allocator("first_fit", total_size=10, logger=logger)
        assert not engine.allocate(engine.new_request("p1", 20))
        warnings = logger.filter(min_level=LogLevel.WARNING)
        assert len(warnings) == 1
        assert warnings[0].source == "memory"
        assert warnings[0].tick == 1

    def test_allocate_and_free_are_info(self) -> None:
        """Successful operations are logged at INFO."""
        logger = Logger()
        engine = create_allocator("best_fit", total_size=100, logger=logger)
        engine.allocate(engine.new_request("p1", 20))
        engine.deallocate("p1")
        assert [e.level for e in logger.entries] == [LogLevel.INFO, LogLevel.INFO]
        assert "0-19" in logger.entries[0].message


class TestSharedLogger:
    """One logger can collect events from both engines."""

    def test_filter_separates_engines_and_levels(self) -> None:
        """Source and level criteria combine to pick one engine's notable events."""
        logger = Logger()
        scheduler = create_scheduler("fcfs", logger=logger)
        scheduler.initialize(_fcfs_workload())
        scheduler.run_full_simulation()
        allocator = create_allocator("first_fit", total_size=10, logger=logger)
        allocator.allocate(allocator.new_request("p1", 20))
        assert {e.source for e in logger.entries} == {"scheduler", "memory"}
        memory_warnings = logger.filter(min_level=LogLevel.WARNING, source="memory")
        assert [e.level for e in memory_warnings] == [LogLevel.WARNING]
        assert logger.filter(min_level=LogLevel.WARNING, source="scheduler") == []
        memory_warnings.clear()
        assert len(logger.filter(source="memory")) == 1
