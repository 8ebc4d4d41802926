from __future__ import annotations
import ctypes
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from .errors import AllocationError

logger = logging.getLogger(__name__)

# Byte width of one object slot (a PyObject* in the raw block).
SLOT_SIZE = ctypes.sizeof(ctypes.py_object)


class Allocator:
    """Raw storage provider for the containers.

    Implementation notes
    --------------------
    • A block is a ctypes array of `py_object` (not Python's built-in list).
    • Fresh slots are NULL: reading one raises instead of yielding a value,
      so nothing above this layer may assume initialised storage.
    • Placing a value (`construct`) and dropping it (`destroy`) are separate
      steps the owning container performs explicitly.
    • The allocator holds no state; every instance of one concrete type is
      interchangeable with every other.
    """

    __slots__ = ()

    def max_size(self) -> int:
        """Largest slot count whose byte size is still addressable."""
        return sys.maxsize // SLOT_SIZE

    def allocate(self, n: int):
        """Return a new block of `n` uninitialised slots.

        Raises:
            AllocationError: if `n` is negative, its byte size would overflow,
                or the interpreter cannot provide the memory.
        """
        if n < 0 or n > self.max_size():
            raise AllocationError(f"cannot allocate {n} slots of {SLOT_SIZE} bytes", n)
        try:
            return (n * ctypes.py_object)()
        except (MemoryError, OverflowError) as exc:
            raise AllocationError(f"out of memory allocating {n} slots", n) from exc

    def deallocate(self, block, n: int) -> None:
        """Release a block obtained from `allocate(n)`.

        The memory itself is reclaimed once the last reference to the block is
        gone; callers must have destroyed every constructed slot beforehand.
        """

    def construct(self, block, index: int, value: Any) -> None:
        """Place `value` into the uninitialised slot `index` of `block`."""
        block[index] = value

    def destroy(self, block, index: int) -> None:
        """Drop the value held in slot `index`, leaving the slot uninitialised."""
        # Assigning None releases the old reference; zeroing the raw pointer
        # makes later reads of the slot fail again.
        block[index] = None
        ctypes.memset(ctypes.addressof(block) + index * SLOT_SIZE, 0, SLOT_SIZE)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"{type(self).__name__}()"


@dataclass
class AllocatorStats:
    """Counters kept by :class:`TrackingAllocator`."""
    allocations: int = 0
    deallocations: int = 0
    constructions: int = 0
    destructions: int = 0
    slots_allocated: int = 0
    slots_released: int = 0


class TrackingAllocator(Allocator):
    """An :class:`Allocator` that records what the containers do with it.

    Used to verify that every `allocate` is paired with one `deallocate` of
    the same count and that every constructed slot is destroyed. It can also
    be armed to fail a later `construct` call, which drives the unwind paths
    of relocation and node creation.
    """

    __slots__ = ("stats", "_outstanding", "_fail_countdown")

    def __init__(self) -> None:
        self.stats = AllocatorStats()
        self._outstanding: Dict[int, Tuple[Any, int]] = {}
        self._fail_countdown: Optional[int] = None

    def fail_construct_after(self, successes: int) -> None:
        """Let `successes` more constructions succeed, then fail the next one."""
        if successes < 0:
            raise ValueError("successes must be >= 0")
        self._fail_countdown = successes

    def disarm(self) -> None:
        self._fail_countdown = None

    @property
    def outstanding_blocks(self) -> int:
        return len(self._outstanding)

    @property
    def live_objects(self) -> int:
        return self.stats.constructions - self.stats.destructions

    def allocate(self, n: int):
        block = super().allocate(n)
        self._outstanding[id(block)] = (block, n)
        self.stats.allocations += 1
        self.stats.slots_allocated += n
        return block

    def deallocate(self, block, n: int) -> None:
        entry = self._outstanding.pop(id(block), None)
        if entry is None or entry[0] is not block:
            raise AllocationError("deallocate of a block this allocator does not own", n)
        expected = entry[1]
        if expected != n:
            self._outstanding[id(block)] = entry
            raise AllocationError(f"deallocate count {n} does not match allocate count {expected}", n)
        self.stats.deallocations += 1
        self.stats.slots_released += n
        super().deallocate(block, n)

    def construct(self, block, index: int, value: Any) -> None:
        if self._fail_countdown is not None:
            if self._fail_countdown == 0:
                self._fail_countdown = None
                logger.debug(f"Injected construction failure at slot {index}")
                raise RuntimeError(f"construction failed at slot {index}")
            self._fail_countdown -= 1
        super().construct(block, index, value)
        self.stats.constructions += 1

    def destroy(self, block, index: int) -> None:
        super().destroy(block, index)
        self.stats.destructions += 1


def construct_range(alloc: Allocator, block, start: int, values: Iterable[Any]) -> int:
    """Construct `values` into consecutive raw slots of `block` from `start`.

    Returns the number of slots constructed. If producing or constructing any
    value fails, every slot constructed by this call is destroyed again before
    the error propagates.
    """
    i = start
    try:
        for v in values:
            alloc.construct(block, i, v)
            i += 1
    except BaseException:
        logger.debug(f"Construction failed at slot {i}; unwinding {i - start} constructed slot(s)")
        for j in range(start, i):
            alloc.destroy(block, j)
        raise
    return i - start
