"""Fragmentation and utilization metrics over a block list.

Every function here is pure: it reads a sequence of blocks and returns
a number.  None of them care which engine produced the blocks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from py_os_sim.memory.blocks import MemoryBlock

# Free blocks smaller than this count as external fragmentation.
EXTERNAL_FRAGMENTATION_THRESHOLD = 10


@dataclass(frozen=True)
class MemoryMetrics:
    """Summary numbers for one memory layout."""

    total_size: int
    allocated: int
    free: int
    internal_fragmentation: int
    external_fragmentation: int
    utilization: float
    largest_free_block: int

    def to_dict(self) -> dict[str, float]:
        """Return a JSON-ready view."""
        return {
            "totalSize": self.total_size,
            "allocated": self.allocated,
            "free": self.free,
            "internalFragmentation": self.internal_fragmentation,
            "externalFragmentation": self.external_fragmentation,
            "utilization": self.utilization,
            "largestFreeBlock": self.largest_free_block,
        }


def internal_fragmentation(blocks: Sequence[MemoryBlock]) -> int:
    """Return the units wasted inside allocated blocks."""
    return sum(b.internal_fragmentation for b in blocks if not b.is_free)


def external_fragmentation(
    blocks: Sequence[MemoryBlock], *, threshold: int = EXTERNAL_FRAGMENTATION_THRESHOLD
) -> int:
    """Return the total size of free blocks smaller than *threshold*.

    An approximation: it counts slivers, not space that is provably
    unusable for some future request.
    """
    return sum(b.size for b in blocks if b.is_free and b.size < threshold)


def allocated_size(blocks: Sequence[MemoryBlock]) -> int:
    """Return the units held by allocated blocks."""
    return sum(b.size for b in blocks if not b.is_free)


def free_size(blocks: Sequence[MemoryBlock]) -> int:
    """Return the units held by free blocks."""
    return sum(b.size for b in blocks if b.is_free)


def memory_utilization(blocks: Sequence[MemoryBlock]) -> float:
    """Return allocated units as a percentage of all units (0 if empty)."""
    total = sum(b.size for b in blocks)
    if total == 0:
        return 0.0
    return allocated_size(blocks) / total * 100


def largest_free_block(blocks: Sequence[MemoryBlock]) -> int:
    """Return the size of the biggest free block, or 0."""
    return max((b.size for b in blocks if b.is_free), default=0)


def summarize(
    blocks: Sequence[MemoryBlock], *, threshold: int = EXTERNAL_FRAGMENTATION_THRESHOLD
) -> MemoryMetrics:
    """Compute every metric for *blocks* at once."""
    return MemoryMetrics(
        total_size=sum(b.size for b in blocks),
        allocated=allocated_size(blocks),
        free=free_size(blocks),
        internal_fragmentation=internal_fragmentation(blocks),
        external_fragmentation=external_fragmentation(blocks, threshold=threshold),
        utilization=memory_utilization(blocks),
        largest_free_block=largest_free_block(blocks),
    )
