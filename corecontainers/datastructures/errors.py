from __future__ import annotations
from typing import Optional


class ContainerError(Exception):
    """Base class for every error raised by the containers and their helpers."""


class AllocationError(ContainerError, MemoryError):
    """Storage could not be provided (size overflow or interpreter out of memory)."""

    def __init__(self, message: str, requested: Optional[int] = None) -> None:
        super().__init__(message)
        self.requested = requested


class OutOfRangeError(ContainerError, IndexError):
    """Checked element access outside ``[0, size)``.

    Carries the offending index and the container size for diagnostics.
    """

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"range check failed: pos {index} not in [0, size() {size})")
        self.index = index
        self.size = size


class LengthError(ContainerError, ValueError):
    """A capacity request beyond what the allocator can ever address."""


class CursorError(ContainerError, ValueError):
    """A cursor was used outside its contract (singular, end, stale or foreign)."""
