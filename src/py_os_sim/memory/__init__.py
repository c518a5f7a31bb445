"""Memory subsystem — contiguous blocks, placement policies, and metrics.

Re-exports public symbols so callers can write::

    from py_os_sim.memory import AllocationEngine, BestFitPolicy
"""

from py_os_sim.memory.allocator import (
    AllocationEngine,
    BestFitPolicy,
    FirstFitPolicy,
    HistoryAction,
    HistoryEntry,
    MemoryState,
    PlacementAlgorithm,
    PlacementPolicy,
    WorstFitPolicy,
    available_placements,
    create_allocator,
    create_placement,
)
from py_os_sim.memory.blocks import BlockState, MemoryBlock, MemoryRequest
from py_os_sim.memory.stats import (
    EXTERNAL_FRAGMENTATION_THRESHOLD,
    MemoryMetrics,
    external_fragmentation,
    internal_fragmentation,
    largest_free_block,
    memory_utilization,
    summarize,
)

__all__ = [
    "EXTERNAL_FRAGMENTATION_THRESHOLD",
    "AllocationEngine",
    "BestFitPolicy",
    "BlockState",
    "FirstFitPolicy",
    "HistoryAction",
    "HistoryEntry",
    "MemoryBlock",
    "MemoryMetrics",
    "MemoryRequest",
    "MemoryState",
    "PlacementAlgorithm",
    "PlacementPolicy",
    "WorstFitPolicy",
    "available_placements",
    "create_allocator",
    "create_placement",
    "external_fragmentation",
    "internal_fragmentation",
    "largest_free_block",
    "memory_utilization",
    "summarize",
]
