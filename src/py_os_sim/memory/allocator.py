"""Contiguous memory allocator — variable-size blocks with placement policies.

The engine keeps an address-ordered list of blocks that always
partitions ``[0, total_size)``.  Allocation carves a request out of one
FREE block; deallocation frees a process's blocks and immediately
coalesces neighbouring free space.

Placement policies (Strategy pattern, like the scheduler):
    - **First-Fit** — lowest-addressed block that is big enough.  Fast,
      and tends to leave small slivers near the start of memory.
    - **Best-Fit** — the smallest block that is big enough.  Leaves the
      smallest leftover, which often becomes unusable slivers.
    - **Worst-Fit** — the largest block.  Leaves the biggest leftover,
      hoping it stays useful.

Splitting::

    [ FREE 50 ]  --allocate 20-->  [ ALLOC 20 ][ FREE 30 ]

Merging (after every deallocation)::

    [ FREE 20 ][ FREE 30 ][ ALLOC 50 ]  -->  [ FREE 50 ][ ALLOC 50 ]
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import StrEnum
from itertools import count
from typing import TYPE_CHECKING, Any, Protocol

from py_os_sim.logging import LogLevel
from py_os_sim.memory.blocks import BlockState, MemoryBlock, MemoryRequest
from py_os_sim.memory.stats import EXTERNAL_FRAGMENTATION_THRESHOLD, MemoryMetrics, summarize

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from py_os_sim.logging import Logger

_SOURCE = "memory"


class PlacementAlgorithm(StrEnum):
    """Tags for the built-in placement policies."""

    FIRST_FIT = "first_fit"
    BEST_FIT = "best_fit"
    WORST_FIT = "worst_fit"


class HistoryAction(StrEnum):
    """Kinds of recorded allocator actions."""

    ALLOCATE = "allocate"
    DEALLOCATE = "deallocate"


@dataclass(frozen=True)
class HistoryEntry:
    """One successful allocate or deallocate.

    ``time`` is the allocator's operation number, not wall-clock time.
    """

    action: HistoryAction
    process_id: str
    time: int
    request_id: str | None = None
    size: int | None = None
    block_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view."""
        return {
            "action": str(self.action),
            "processId": self.process_id,
            "time": self.time,
            "requestId": self.request_id,
            "size": self.size,
            "blockId": self.block_id,
        }


@dataclass(frozen=True)
class MemoryState:
    """An immutable snapshot of the allocator (all members are copies)."""

    blocks: tuple[MemoryBlock, ...]
    requests: tuple[MemoryRequest, ...]
    history: tuple[HistoryEntry, ...]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view."""
        return {
            "blocks": [block.to_dict() for block in self.blocks],
            "requests": [request.to_dict() for request in self.requests],
            "history": [entry.to_dict() for entry in self.history],
        }


# ---------------------------------------------------------------------------
# Placement Policy Protocol (Strategy pattern)
# ---------------------------------------------------------------------------


class PlacementPolicy(Protocol):
    """Interface for placement algorithms.

    ``choose_block`` receives the engine's blocks in address order and
    returns one FREE block of at least *size* units, or None.
    """

    name: str
    description: str

    def choose_block(self, blocks: Sequence[MemoryBlock], size: int) -> MemoryBlock | None:
        """Pick the block that will hold a request of *size* units."""
        ...  # pragma: no cover


class FirstFitPolicy:
    """Take the first block, in address order, that is big enough."""

    name = "First Fit"
    description = "Allocate the first free block that is large enough"

    def choose_block(self, blocks: Sequence[MemoryBlock], size: int) -> MemoryBlock | None:
        """Scan from the lowest address and stop at the first fit."""
        return next((b for b in blocks if b.can_fit(size)), None)


class BestFitPolicy:
    """Take the smallest block that is big enough.

    Tiebreak: the lowest-addressed of equally small blocks.
    """

    name = "Best Fit"
    description = "Allocate the smallest free block that is large enough"

    def choose_block(self, blocks: Sequence[MemoryBlock], size: int) -> MemoryBlock | None:
        """Return the tightest fit."""
        return min((b for b in blocks if b.can_fit(size)), key=lambda b: b.size, default=None)


class WorstFitPolicy:
    """Take the largest block.

    Tiebreak: the lowest-addressed of equally large blocks.
    """

    name = "Worst Fit"
    description = "Allocate the largest free block"

    def choose_block(self, blocks: Sequence[MemoryBlock], size: int) -> MemoryBlock | None:
        """Return the roomiest fit."""
        return max((b for b in blocks if b.can_fit(size)), key=lambda b: b.size, default=None)


_PLACEMENT_FACTORIES: dict[PlacementAlgorithm, Callable[[], PlacementPolicy]] = {
    PlacementAlgorithm.FIRST_FIT: FirstFitPolicy,
    PlacementAlgorithm.BEST_FIT: BestFitPolicy,
    PlacementAlgorithm.WORST_FIT: WorstFitPolicy,
}


def create_placement(algorithm: PlacementAlgorithm | str) -> PlacementPolicy:
    """Build a placement policy for *algorithm*.

    Raises:
        ValueError: If the tag is unknown.

    """
    return _PLACEMENT_FACTORIES[PlacementAlgorithm(algorithm)]()


def available_placements() -> list[PlacementPolicy]:
    """Return one policy per built-in placement algorithm, in menu order."""
    return [create_placement(tag) for tag in PlacementAlgorithm]


def _sequential_ids() -> Callable[[str], str]:
    """Return an id factory yielding ``prefix_1``, ``prefix_2``, ... per prefix."""
    counters: defaultdict[str, Iterator[int]] = defaultdict(lambda: count(start=1))
    return lambda prefix: f"{prefix}_{next(counters[prefix])}"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AllocationEngine:
    """Manage one contiguous address space with a placement policy.

    The engine exclusively owns its blocks and requests.  Everything it
    hands out (``blocks``, ``requests``, ``get_memory_state()``) is a copy.
    """

    def __init__(
        self,
        *,
        policy: PlacementPolicy,
        logger: Logger | None = None,
        id_factory: Callable[[str], str] | None = None,
    ) -> None:
        """Create an engine with the given placement policy.

        Call :meth:`initialize` before allocating.

        Args:
            policy: The algorithm that picks a block for each request.
            logger: Optional event log.
            id_factory: Maps a prefix ("mb", "mr") to a fresh id.  Defaults
                to a per-run counter so runs are reproducible.

        """
        self._policy = policy
        self._logger = logger
        self._custom_ids = id_factory
        self._next_id = id_factory or _sequential_ids()
        self._total_size = 0
        self._blocks: list[MemoryBlock] = []
        self._requests: list[MemoryRequest] = []
        self._history: list[HistoryEntry] = []
        self._operations = 0

    # -- Queries -------------------------------------------------------------

    @property
    def policy(self) -> PlacementPolicy:
        """Return the placement policy."""
        return self._policy

    @property
    def total_size(self) -> int:
        """Return the size of the managed address space."""
        return self._total_size

    @property
    def operations(self) -> int:
        """Return how many allocate/deallocate calls have been made."""
        return self._operations

    @property
    def blocks(self) -> list[MemoryBlock]:
        """Return copies of the blocks in address order."""
        return [b.clone() for b in self._blocks]

    @property
    def requests(self) -> list[MemoryRequest]:
        """Return copies of every recorded request."""
        return [r.clone() for r in self._requests]

    @property
    def history(self) -> list[HistoryEntry]:
        """Return the action history in order."""
        return list(self._history)

    def blocks_for(self, process_id: str) -> list[MemoryBlock]:
        """Return copies of the blocks owned by *process_id*."""
        return [b.clone() for b in self._blocks if b.owner == process_id]

    def get_memory_state(self) -> MemoryState:
        """Return an independent snapshot of blocks, requests, and history."""
        return MemoryState(
            blocks=tuple(b.clone() for b in self._blocks),
            requests=tuple(r.clone() for r in self._requests),
            history=tuple(self._history),
        )

    def metrics(self, *, threshold: int = EXTERNAL_FRAGMENTATION_THRESHOLD) -> MemoryMetrics:
        """Return fragmentation and utilization for the current layout."""
        return summarize(self._blocks, threshold=threshold)

    # -- Setup ---------------------------------------------------------------

    def initialize(
        self, total_size: int, initial_blocks: Iterable[MemoryBlock] | None = None
    ) -> None:
        """Reset to a fresh address space of *total_size* units.

        Args:
            total_size: Size of the address space (> 0).
            initial_blocks: Optional starting layout.  Cloned, and must
                partition ``[0, total_size)`` exactly.  Without it, one
                FREE block spans all of memory.

        Raises:
            ValueError: If the size or layout is invalid.

        """
        if isinstance(total_size, bool) or not isinstance(total_size, int) or total_size <= 0:
            msg = f"total_size must be a positive integer, got {total_size!r}"
            raise ValueError(msg)
        if self._custom_ids is None:
            self._next_id = _sequential_ids()
        self._total_size = total_size
        self._requests = []
        self._history = []
        self._operations = 0
        self._blocks = []
        if initial_blocks is None:
            self._blocks.append(
                MemoryBlock(block_id=self._fresh_block_id(), start=0, size=total_size)
            )
        else:
            self._blocks = sorted((b.clone() for b in initial_blocks), key=lambda b: b.start)
            self._check_layout()

    def new_request(self, process_id: str, size: int) -> MemoryRequest:
        """Build a request with an id no recorded request uses yet."""
        taken = {r.request_id for r in self._requests}
        request_id = self._next_id("mr")
        while request_id in taken:
            request_id = self._next_id("mr")
        return MemoryRequest(request_id=request_id, process_id=process_id, size=size)

    # -- Allocation ----------------------------------------------------------

    def allocate(self, request: MemoryRequest) -> bool:
        """Place *request* in a FREE block chosen by the policy.

        An exact fit is allocated in place; a larger block is split into
        an ALLOCATED prefix of exactly ``request.size`` units and a FREE
        remainder.  The caller's request object is not modified; a copy
        bound to the new block is recorded instead.

        Returns:
            True on success, False if no FREE block is large enough (in
            which case nothing changes).

        Raises:
            ValueError: If a request with the same id is already recorded.

        """
        if any(r.request_id == request.request_id for r in self._requests):
            msg = f"Request id {request.request_id!r} is already recorded"
            raise ValueError(msg)
        self._operations += 1
        self._sort_blocks()
        block = None
        if any(b.can_fit(request.size) for b in self._blocks):
            block = self._policy.choose_block(self._blocks, request.size)
        if block is None:
            self._log(
                LogLevel.WARNING,
                f"No free block can hold {request.size} units for {request.process_id}",
            )
            return False

        index = self._blocks.index(block)
        if block.size == request.size:
            target = block
            target.allocate(request.process_id, request.size)
        else:
            target = MemoryBlock(
                block_id=self._fresh_block_id(),
                start=block.start,
                size=request.size,
            )
            target.allocate(request.process_id, request.size)
            remainder = MemoryBlock(
                block_id=self._fresh_block_id(target.block_id),
                start=block.start + request.size,
                size=block.size - request.size,
            )
            self._blocks[index : index + 1] = [target, remainder]

        recorded = request.clone()
        recorded.mark_allocated(target.block_id)
        self._requests.append(recorded)
        self._history.append(
            HistoryEntry(
                action=HistoryAction.ALLOCATE,
                process_id=request.process_id,
                time=self._operations,
                request_id=request.request_id,
                size=request.size,
                block_id=target.block_id,
            )
        )
        self._log(
            LogLevel.INFO,
            f"Allocated {request.size} units at {target.start}-{target.end} "
            f"for {request.process_id}",
        )
        return True

    def deallocate(self, process_id: str) -> bool:
        """Free every block owned by *process_id*, then merge free space.

        Returns:
            True if at least one block was freed.

        """
        self._operations += 1
        freed = 0
        for block in self._blocks:
            if block.state is BlockState.ALLOCATED and block.owner == process_id:
                block.free()
                freed += 1
        for request in self._requests:
            if request.process_id == process_id and request.allocated:
                request.mark_deallocated()
        self.merge_adjacent_free_blocks()
        if freed:
            self._history.append(
                HistoryEntry(
                    action=HistoryAction.DEALLOCATE,
                    process_id=process_id,
                    time=self._operations,
                )
            )
            self._log(LogLevel.INFO, f"Freed {freed} block(s) of {process_id}")
        return freed > 0

    def merge_adjacent_free_blocks(self) -> bool:
        """Coalesce every run of contiguous FREE blocks into one block.

        After a merge the scan stays at the same position, so a run of
        three or more free blocks collapses completely.

        Returns:
            True if at least one pair of blocks was merged.

        """
        self._sort_blocks()
        merged_any = False
        i = 0
        while i < len(self._blocks) - 1:
            current, following = self._blocks[i], self._blocks[i + 1]
            if current.is_free and following.is_free and current.is_adjacent_to(following):
                merged = MemoryBlock(
                    block_id=self._fresh_block_id(),
                    start=current.start,
                    size=current.size + following.size,
                )
                self._blocks[i : i + 2] = [merged]
                merged_any = True
            else:
                i += 1
        return merged_any

    # -- Helpers -------------------------------------------------------------

    def _fresh_block_id(self, *reserved: str) -> str:
        """Return a block id that no current block (or *reserved*) uses.

        Caller layouts may already carry ids the factory would issue, so
        issued ids that clash are skipped.
        """
        taken = {b.block_id for b in self._blocks}.union(reserved)
        block_id = self._next_id("mb")
        while block_id in taken:
            block_id = self._next_id("mb")
        return block_id

    def _sort_blocks(self) -> None:
        self._blocks.sort(key=lambda b: b.start)

    def _check_layout(self) -> None:
        """Raise ValueError unless the blocks tile ``[0, total_size)`` with unique ids."""
        ids = [b.block_id for b in self._blocks]
        if len(set(ids)) != len(ids):
            msg = f"Block ids must be unique, got {ids}"
            raise ValueError(msg)
        expected_start = 0
        for block in self._blocks:
            if block.start != expected_start:
                msg = (
                    f"Block {block.block_id} starts at {block.start}, "
                    f"expected {expected_start} (gap or overlap)"
                )
                raise ValueError(msg)
            expected_start = block.end + 1
        if expected_start != self._total_size:
            msg = f"Blocks cover {expected_start} units, expected {self._total_size}"
            raise ValueError(msg)

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger is not None:
            self._logger.log(level, message, source=_SOURCE, tick=self._operations)


def create_allocator(
    algorithm: PlacementAlgorithm | str,
    *,
    total_size: int | None = None,
    logger: Logger | None = None,
    id_factory: Callable[[str], str] | None = None,
) -> AllocationEngine:
    """Build an allocator for *algorithm*, initialised if *total_size* is given."""
    engine = AllocationEngine(
        policy=create_placement(algorithm), logger=logger, id_factory=id_factory
    )
    if total_size is not None:
        engine.initialize(total_size)
    return engine
