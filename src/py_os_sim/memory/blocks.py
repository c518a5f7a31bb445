"""Memory blocks and allocation requests.

Contiguous allocation treats memory as one address range carved into
variable-size **blocks**.  Each block is either FREE or ALLOCATED to a
single process.  A **request** is a process asking for ``size`` units;
once satisfied it remembers which block it landed in.

Why variable-size blocks?
    Unlike fixed-size frames, a block can be split to fit a request
    exactly, and neighbouring free blocks can be merged back together.
    The price is **external fragmentation** — lots of free space spread
    over blocks too small to use.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class BlockState(StrEnum):
    """Whether a block is available."""

    FREE = "free"
    ALLOCATED = "allocated"


class MemoryBlock:
    """A contiguous address range ``[start, end]`` (end inclusive).

    ``start`` and ``size`` are fixed at construction; splitting or
    merging produces new blocks rather than resizing existing ones.
    """

    def __init__(
        self,
        *,
        block_id: str,
        start: int,
        size: int,
        state: BlockState = BlockState.FREE,
        owner: str | None = None,
    ) -> None:
        """Create a block.

        Args:
            block_id: Unique identifier.
            start: First address (>= 0).
            size: Number of units (> 0).
            state: FREE or ALLOCATED.
            owner: Owning process id; only meaningful when ALLOCATED.

        Raises:
            ValueError: If *start* or *size* is out of range.

        """
        if isinstance(start, bool) or not isinstance(start, int) or start < 0:
            msg = f"Block start must be a non-negative integer, got {start!r}"
            raise ValueError(msg)
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            msg = f"Block size must be a positive integer, got {size!r}"
            raise ValueError(msg)
        self._block_id = block_id
        self._start = start
        self._size = size
        self._state = state
        self._owner = owner if state is BlockState.ALLOCATED else None
        self._internal_fragmentation = 0

    @property
    def block_id(self) -> str:
        """Return the block identifier."""
        return self._block_id

    @property
    def start(self) -> int:
        """Return the first address."""
        return self._start

    @property
    def size(self) -> int:
        """Return the number of units."""
        return self._size

    @property
    def end(self) -> int:
        """Return the last address (inclusive)."""
        return self._start + self._size - 1

    @property
    def state(self) -> BlockState:
        """Return FREE or ALLOCATED."""
        return self._state

    @property
    def is_free(self) -> bool:
        """Return True if the block is FREE."""
        return self._state is BlockState.FREE

    @property
    def owner(self) -> str | None:
        """Return the owning process id, or None."""
        return self._owner

    @property
    def internal_fragmentation(self) -> int:
        """Return the units allocated but not requested."""
        return self._internal_fragmentation

    def can_fit(self, size: int) -> bool:
        """Return True if the block is FREE and at least *size* units."""
        return self.is_free and self._size >= size

    def allocate(self, owner: str, requested_size: int) -> None:
        """Hand the whole block to *owner*, who asked for *requested_size*.

        Raises:
            RuntimeError: If the block is already allocated.
            ValueError: If *requested_size* exceeds the block.

        """
        if not self.is_free:
            msg = f"Block {self._block_id} is already allocated to {self._owner}"
            raise RuntimeError(msg)
        if requested_size > self._size:
            msg = f"Cannot place {requested_size} units in block {self._block_id} of {self._size}"
            raise ValueError(msg)
        self._state = BlockState.ALLOCATED
        self._owner = owner
        self._internal_fragmentation = self._size - requested_size

    def free(self) -> None:
        """Return the block to the FREE state."""
        self._state = BlockState.FREE
        self._owner = None
        self._internal_fragmentation = 0

    def is_adjacent_to(self, other: MemoryBlock) -> bool:
        """Return True if *other* begins right after this block ends."""
        return self.end + 1 == other.start

    def clone(self) -> MemoryBlock:
        """Return an independent copy."""
        copy = MemoryBlock(
            block_id=self._block_id,
            start=self._start,
            size=self._size,
            state=self._state,
            owner=self._owner,
        )
        copy._internal_fragmentation = self._internal_fragmentation
        return copy

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view."""
        return {
            "id": self._block_id,
            "startAddress": self._start,
            "endAddress": self.end,
            "size": self._size,
            "state": str(self._state),
            "processId": self._owner,
            "internalFragmentation": self._internal_fragmentation,
        }

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"MemoryBlock(id={self._block_id!r}, start={self._start}, "
            f"size={self._size}, state={self._state}, owner={self._owner!r})"
        )


class MemoryRequest:
    """A process asking for a contiguous run of *size* units."""

    def __init__(self, *, request_id: str, process_id: str, size: int) -> None:
        """Create an unsatisfied request.

        Raises:
            ValueError: If *size* is not a positive integer.

        """
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            msg = f"Request {request_id}: size must be a positive integer, got {size!r}"
            raise ValueError(msg)
        self._request_id = request_id
        self._process_id = process_id
        self._size = size
        self._allocated = False
        self._block_id: str | None = None

    @property
    def request_id(self) -> str:
        """Return the request identifier."""
        return self._request_id

    @property
    def process_id(self) -> str:
        """Return the requesting process id."""
        return self._process_id

    @property
    def size(self) -> int:
        """Return the requested number of units."""
        return self._size

    @property
    def allocated(self) -> bool:
        """Return True while the request holds a block."""
        return self._allocated

    @property
    def block_id(self) -> str | None:
        """Return the id of the block holding the request, or None."""
        return self._block_id

    def mark_allocated(self, block_id: str) -> None:
        """Record that the request now lives in *block_id*."""
        self._allocated = True
        self._block_id = block_id

    def mark_deallocated(self) -> None:
        """Record that the request's block was released."""
        self._allocated = False
        self._block_id = None

    def clone(self) -> MemoryRequest:
        """Return an independent copy."""
        copy = MemoryRequest(
            request_id=self._request_id, process_id=self._process_id, size=self._size
        )
        copy._allocated = self._allocated
        copy._block_id = self._block_id
        return copy

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready view."""
        return {
            "id": self._request_id,
            "processId": self._process_id,
            "size": self._size,
            "allocated": self._allocated,
            "blockId": self._block_id,
        }

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"MemoryRequest(id={self._request_id!r}, process={self._process_id!r}, "
            f"size={self._size}, allocated={self._allocated})"
        )
