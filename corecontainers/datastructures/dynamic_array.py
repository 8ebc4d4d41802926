from __future__ import annotations
import logging
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar, Union

from .allocator import Allocator, construct_range
from .errors import CursorError, LengthError, OutOfRangeError
from .iterators import RandomAccessCursor

logger = logging.getLogger(__name__)

T = TypeVar("T")

Position = Union[int, RandomAccessCursor[Any]]

_MISSING = object()


class DynamicArray(Generic[T]):
    """A growable contiguous sequence on top of an explicit :class:`Allocator`.

    Implementation notes
    --------------------
    • Storage is one allocator block; slots ``[0, size)`` hold live elements,
      ``[size, capacity)`` are allocated but never constructed.
    • Capacity doubles when an insertion would overflow it and never drops
      below 2, not even for an empty array.
    • Relocation is all-or-nothing: the new block is fully built before the
      old elements are destroyed and the old block released.
    • `at()` is the checked accessor; ``arr[i]`` reads the raw slot.
    • `value_type` (optional) is the element constructor used for
      value-initialised slots and for `emplace` arguments.
    """

    __slots__ = ("_alloc", "_data", "_size", "_capacity", "_value_type")

    # Capacity floor, also the capacity of a default-constructed array.
    _MIN_CAPACITY = 2
    _GROWTH_FACTOR = 2

    def __init__(
        self,
        it: Optional[Iterable[T]] = None,
        *,
        value_type: Optional[Callable[..., T]] = None,
        allocator: Optional[Allocator] = None,
    ) -> None:
        self._alloc = allocator if allocator is not None else Allocator()
        self._value_type = value_type
        self._capacity = self._MIN_CAPACITY
        self._data = self._alloc.allocate(self._capacity)
        self._size = 0

        # Range / literal-list construction is a range insert at the front.
        if it is not None:
            self.insert_range(0, it)

    # ---------------------------- alternate constructors ----------------------------

    @classmethod
    def _from_parts(cls, alloc: Allocator, data, size: int, capacity: int, value_type) -> "DynamicArray[T]":
        out = cls.__new__(cls)
        out._alloc = alloc
        out._data = data
        out._size = size
        out._capacity = capacity
        out._value_type = value_type
        return out

    @classmethod
    def sized(
        cls,
        count: int,
        value: Any = _MISSING,
        *,
        value_type: Optional[Callable[..., T]] = None,
        allocator: Optional[Allocator] = None,
    ) -> "DynamicArray[T]":
        """Create an array of `count` value-initialised elements.

        Each slot receives `value` when given, else a fresh ``value_type()``,
        else None. Capacity is twice the count (at least 2).
        """
        if count < 0:
            raise ValueError("count must be >= 0")
        alloc = allocator if allocator is not None else Allocator()
        capacity = max(cls._MIN_CAPACITY, 2 * count)
        if value is not _MISSING:
            values: Iterable[Any] = (value for _ in range(count))
        elif value_type is not None:
            values = (value_type() for _ in range(count))
        else:
            values = (None for _ in range(count))
        block = cls._build_block(alloc, capacity, values)
        return cls._from_parts(alloc, block, count, capacity, value_type)

    @classmethod
    def move_from(cls, other: "DynamicArray[T]") -> "DynamicArray[T]":
        """Take over `other`'s storage, leaving `other` empty with capacity 2."""
        fresh = other._alloc.allocate(cls._MIN_CAPACITY)
        moved = cls._from_parts(other._alloc, other._data, other._size, other._capacity, other._value_type)
        other._data = fresh
        other._size = 0
        other._capacity = cls._MIN_CAPACITY
        return moved

    def copy(self) -> "DynamicArray[T]":
        """Return an independent array holding the same elements in order."""
        capacity = max(self._MIN_CAPACITY, 2 * self._size)
        block = self._build_block(self._alloc, capacity, self._live_values())
        return self._from_parts(self._alloc, block, self._size, capacity, self._value_type)

    def __copy__(self) -> "DynamicArray[T]":
        return self.copy()

    # ------------------------------- internals -------------------------------

    @staticmethod
    def _build_block(alloc: Allocator, capacity: int, values: Iterable[Any]):
        """Allocate `capacity` slots and construct `values` at the front.

        On failure the partially built block is unwound and released, and the
        error propagates.
        """
        block = alloc.allocate(capacity)
        try:
            construct_range(alloc, block, 0, values)
        except BaseException:
            alloc.deallocate(block, capacity)
            raise
        return block

    def _live_values(self) -> Iterator[T]:
        data = self._data
        for i in range(self._size):
            yield data[i]

    def _release(self, block, size: int, capacity: int) -> None:
        """Destroy the live slots of `block`, then hand it back to the allocator."""
        for i in range(size):
            self._alloc.destroy(block, i)
        self._alloc.deallocate(block, capacity)

    def _reallocate(self, new_capacity: int) -> None:
        """Move the live elements into a new block of `new_capacity` slots."""
        if new_capacity < self._size:
            raise ValueError("new capacity must be >= size")

        self._commit_block(self._build_block(self._alloc, new_capacity, self._live_values()), new_capacity)

    def _commit_block(self, new_data, new_capacity: int) -> None:
        """Release the current block and adopt the fully built `new_data`."""
        old_capacity = self._capacity
        self._release(self._data, self._size, old_capacity)
        self._data = new_data
        self._capacity = new_capacity
        logger.debug(f"DynamicArray storage reallocated: {old_capacity} -> {new_capacity} slots ({self._size} live)")

    def _grown_capacity(self, required: int) -> int:
        """Capacity needed for `required` elements: the current one, or the next doubling."""
        if required <= self._capacity:
            return self._capacity
        new_capacity = max(self._capacity, self._MIN_CAPACITY)
        while new_capacity < required:
            new_capacity *= self._GROWTH_FACTOR
        limit = self.max_size()
        if new_capacity > limit:
            if required > limit:
                raise LengthError(f"{required}: size is too big for DynamicArray")
            new_capacity = limit
        return new_capacity

    def _make_value(self, args: Tuple[Any, ...], kwargs: dict) -> T:
        if self._value_type is not None:
            return self._value_type(*args, **kwargs)
        if len(args) != 1 or kwargs:
            raise TypeError("emplace without a value_type takes exactly one positional argument")
        return args[0]

    def _index_of(self, pos: Position) -> int:
        """Resolve a cursor (or plain index) to a slot index in ``[0, size]``."""
        if isinstance(pos, RandomAccessCursor):
            # Raises CursorError for singular cursors and foreign/stale blocks.
            idx = pos - self.cbegin()
        else:
            idx = pos
        if idx < 0 or idx > self._size:
            raise OutOfRangeError(idx, self._size)
        return idx

    def _cursor(self, idx: int) -> RandomAccessCursor[T]:
        return RandomAccessCursor(self._data, idx)

    def _insert_values(self, idx: int, values: List[T]) -> RandomAccessCursor[T]:
        """Open a gap of ``len(values)`` slots at `idx` and fill it.

        The raw slots ``[size, size + count)`` are constructed first, each from
        either the element it shifts in or a new value; only then is the
        overlapping region moved backwards and the remaining gap assigned.
        A failure during construction therefore leaves the elements untouched.

        When the array must grow, the new block is built in its final order
        (prefix, new values, suffix) and only adopted once complete, so a
        failed insert leaves the capacity unchanged as well.
        """
        count = len(values)
        if count == 0:
            return self._cursor(idx)
        old_size = self._size
        new_capacity = self._grown_capacity(old_size + count)

        data = self._data
        if new_capacity != self._capacity:
            ordered = [data[i] for i in range(idx)] + values + [data[i] for i in range(idx, old_size)]
            self._commit_block(self._build_block(self._alloc, new_capacity, ordered), new_capacity)
            self._size = old_size + count
            return self._cursor(idx)


        split = idx + count
        tail = (data[dst - count] if dst >= split else values[dst - idx] for dst in range(old_size, old_size + count))
        construct_range(self._alloc, data, old_size, tail)

        for dst in range(old_size - 1, split - 1, -1):
            data[dst] = data[dst - count]
        for k in range(idx, min(split, old_size)):
            data[k] = values[k - idx]

        self._size = old_size + count
        return self._cursor(idx)

    # --------------------------------- cursors ---------------------------------

    def begin(self) -> RandomAccessCursor[T]:
        return RandomAccessCursor(self._data, 0)

    def end(self) -> RandomAccessCursor[T]:
        return RandomAccessCursor(self._data, self._size)

    def cbegin(self) -> RandomAccessCursor[T]:
        return RandomAccessCursor(self._data, 0, const=True)

    def cend(self) -> RandomAccessCursor[T]:
        return RandomAccessCursor(self._data, self._size, const=True)

    def data(self) -> RandomAccessCursor[T]:
        """Cursor to the first slot of the underlying block."""
        return self.begin()

    # ------------------------------ element access ------------------------------

    def at(self, pos: int) -> T:
        """Return the element at `pos`.

        Raises:
            OutOfRangeError: if `pos` is not in ``[0, size)``.
        """
        if pos < 0 or pos >= self._size:
            raise OutOfRangeError(pos, self._size)
        return self._data[pos]  # type: ignore[return-value]

    def __getitem__(self, pos: int) -> T:
        """Unchecked access to slot `pos`; use :meth:`at` for a bounds check."""
        return self._data[pos]  # type: ignore[return-value]

    def __setitem__(self, pos: int, value: T) -> None:
        """Unchecked assignment to the live slot `pos`."""
        self._data[pos] = value

    def front(self) -> T:
        return self[0]

    def back(self) -> T:
        return self[self._size - 1]

    # --------------------------------- capacity ---------------------------------

    def size(self) -> int:
        return self._size

    def empty(self) -> bool:
        return self._size == 0

    def capacity(self) -> int:
        return self._capacity

    def max_size(self) -> int:
        return self._alloc.max_size()

    def get_allocator(self) -> Allocator:
        return self._alloc

    def reserve(self, new_capacity: int) -> None:
        """Grow storage to exactly `new_capacity` slots if that is more than now.

        Raises:
            LengthError: if `new_capacity` exceeds :meth:`max_size`.
        """
        if new_capacity <= self._capacity:
            return
        if new_capacity > self.max_size():
            raise LengthError(f"{new_capacity}: size is too big for DynamicArray")
        self._reallocate(new_capacity)

    def shrink_to_fit(self) -> None:
        """Reallocate down to `size` slots (2 at minimum)."""
        target = max(self._size, self._MIN_CAPACITY)
        if target == self._capacity:
            return
        self._reallocate(target)

    # --------------------------------- modifiers ---------------------------------

    def push_back(self, value: T) -> None:
        """Append `value` to the end. Amortized O(1)."""
        self._insert_values(self._size, [value])

    def emplace_back(self, *args: Any, **kwargs: Any) -> T:
        """Build an element from the arguments and append it; returns the element."""
        value = self._make_value(args, kwargs)
        self.push_back(value)
        return value

    def pop_back(self) -> None:
        """Destroy the last element. No-op on an empty array."""
        if self._size == 0:
            return
        self._alloc.destroy(self._data, self._size - 1)
        self._size -= 1

    def insert(self, pos: Position, value: T) -> RandomAccessCursor[T]:
        """Insert `value` before `pos`; returns a cursor to it."""
        return self._insert_values(self._index_of(pos), [value])

    def insert_n(self, pos: Position, count: int, value: T) -> RandomAccessCursor[T]:
        """Insert `count` copies of `value` before `pos`."""
        if count < 0:
            raise ValueError("count must be >= 0")
        return self._insert_values(self._index_of(pos), [value] * count)

    def insert_range(self, pos: Position, it: Iterable[T]) -> RandomAccessCursor[T]:
        """Insert every item of `it`, in order, before `pos`.

        The items are gathered before the array is touched, so `it` may walk
        over this very array.
        """
        idx = self._index_of(pos)
        return self._insert_values(idx, list(it))

    def emplace(self, pos: Position, *args: Any, **kwargs: Any) -> RandomAccessCursor[T]:
        """Build an element from the arguments and insert it before `pos`.

        The element is created in a temporary first and then placed, so a
        failing constructor leaves the array unchanged.
        """
        idx = self._index_of(pos)
        value = self._make_value(args, kwargs)
        return self._insert_values(idx, [value])

    def erase(self, pos: Position, last: Optional[Position] = None) -> RandomAccessCursor[T]:
        """Remove the element at `pos`, or the range ``[pos, last)``.

        Returns a cursor to the element that now occupies the first erased
        position.
        """
        first = self._index_of(pos)
        if last is None:
            if first == self._size:
                raise OutOfRangeError(first, self._size)
            stop = first + 1
        else:
            stop = self._index_of(last)
            if stop < first:
                raise CursorError("erase range end precedes its start")

        count = stop - first
        if count == 0:
            return self._cursor(first)

        data = self._data
        for dst in range(first, self._size - count):
            data[dst] = data[dst + count]
        for i in range(self._size - count, self._size):
            self._alloc.destroy(data, i)
        self._size -= count
        return self._cursor(first)

    def clear(self) -> None:
        """Destroy every element and fall back to a fresh 2-slot block."""
        new_data = self._alloc.allocate(self._MIN_CAPACITY)
        self._release(self._data, self._size, self._capacity)
        self._data = new_data
        self._size = 0
        self._capacity = self._MIN_CAPACITY

    def assign(self, it: Iterable[T]) -> None:
        """Replace the contents with the items of `it` (all-or-nothing)."""
        values = list(it)
        capacity = self._MIN_CAPACITY
        while capacity < len(values):
            capacity *= self._GROWTH_FACTOR
        block = self._build_block(self._alloc, capacity, values)
        self._release(self._data, self._size, self._capacity)
        self._data = block
        self._size = len(values)
        self._capacity = capacity

    def swap(self, other: "DynamicArray[T]") -> None:
        self._alloc, other._alloc = other._alloc, self._alloc
        self._data, other._data = other._data, self._data
        self._size, other._size = other._size, self._size
        self._capacity, other._capacity = other._capacity, self._capacity
        self._value_type, other._value_type = other._value_type, self._value_type

    # ------------------------------ python protocol ------------------------------

    def __len__(self) -> int:
        """Number of stored elements. O(1)."""
        return self._size

    def __iter__(self) -> Iterator[T]:
        """Yield items from left to right."""
        for i in range(self._size):
            yield self._data[i]  # type: ignore[misc]

    def __contains__(self, value: object) -> bool:
        """Return True if `value` is present (linear scan)."""
        for i in range(self._size):
            if self._data[i] == value:
                return True
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DynamicArray):
            return NotImplemented
        if self._size != other._size:
            return False
        return all(self._data[i] == other._data[i] for i in range(self._size))

    __hash__ = None  # type: ignore[assignment]

    def to_py(self) -> List[T]:
        """Convert to a plain Python `list`."""
        return [self._data[i] for i in range(self._size)]

    def __bool__(self) -> bool:  # pragma: no cover - trivial
        return self._size != 0

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"DynamicArray({self.to_py()!r})"
