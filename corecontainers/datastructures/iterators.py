from __future__ import annotations
from typing import TYPE_CHECKING, Any, Generic, Iterator, Optional, Tuple, TypeVar, Union

from .errors import CursorError

if TYPE_CHECKING:  # pragma: no cover
    from .hash_map import HashMap
    from .linked_list import ChainNode

T = TypeVar("T")
K = TypeVar("K")
V = TypeVar("V")


class RandomAccessCursor(Generic[T]):
    """A cursor over one slot of a contiguous block.

    The position is the pair ``(block, offset)``. The cursor never checks the
    offset against the owning container's size; it only refuses positions that
    cannot be read at all (no block, outside the block, or a slot whose value
    has been destroyed), so misuse fails fast instead of returning garbage.
    """

    __slots__ = ("_block", "_offset", "_const")

    def __init__(self, block=None, offset: int = 0, const: bool = False) -> None:
        self._block = block
        self._offset = offset
        self._const = const

    # ------------------------------- internals -------------------------------

    def _slot(self, delta: int = 0) -> int:
        if self._block is None:
            raise CursorError("dereference of a singular cursor")
        idx = self._offset + delta
        if idx < 0 or idx >= len(self._block):
            raise CursorError(f"cursor position {idx} is outside its block")
        return idx

    def _read(self, delta: int = 0) -> T:
        idx = self._slot(delta)
        try:
            return self._block[idx]  # type: ignore[index]
        except ValueError as exc:  # NULL slot: never constructed or destroyed
            raise CursorError(f"no live element at cursor position {idx}") from exc

    def _moved(self, delta: int) -> "RandomAccessCursor[T]":
        return RandomAccessCursor(self._block, self._offset + delta, self._const)

    def _same_block(self, other: "RandomAccessCursor[Any]") -> None:
        if self._block is not other._block:
            raise CursorError("cursors belong to different blocks")

    # --------------------------------- API -----------------------------------

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def is_singular(self) -> bool:
        return self._block is None

    def get(self) -> T:
        """Return the element at the cursor."""
        return self._read()

    def set(self, value: T) -> None:
        """Assign `value` to the (live) element at the cursor."""
        if self._const:
            raise CursorError("assignment through a read-only cursor")
        self._read()
        self._block[self._offset] = value  # type: ignore[index]

    def __getitem__(self, n: int) -> T:
        return self._read(n)

    def increment(self) -> "RandomAccessCursor[T]":
        self._offset += 1
        return self

    def post_increment(self) -> "RandomAccessCursor[T]":
        prev = self._moved(0)
        self._offset += 1
        return prev

    def decrement(self) -> "RandomAccessCursor[T]":
        self._offset -= 1
        return self

    def post_decrement(self) -> "RandomAccessCursor[T]":
        prev = self._moved(0)
        self._offset -= 1
        return prev

    def __add__(self, n: int) -> "RandomAccessCursor[T]":
        if not isinstance(n, int):
            return NotImplemented
        return self._moved(n)

    __radd__ = __add__

    def __sub__(self, other: Union[int, "RandomAccessCursor[Any]"]):
        if isinstance(other, RandomAccessCursor):
            self._same_block(other)
            return self._offset - other._offset
        if isinstance(other, int):
            return self._moved(-other)
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RandomAccessCursor):
            return NotImplemented
        return self._block is other._block and self._offset == other._offset

    def __lt__(self, other: "RandomAccessCursor[Any]") -> bool:
        return (self - other) < 0

    def __le__(self, other: "RandomAccessCursor[Any]") -> bool:
        return (self - other) <= 0

    def __gt__(self, other: "RandomAccessCursor[Any]") -> bool:
        return (self - other) > 0

    def __ge__(self, other: "RandomAccessCursor[Any]") -> bool:
        return (self - other) >= 0

    def __hash__(self) -> int:
        return hash((id(self._block), self._offset))

    def __copy__(self) -> "RandomAccessCursor[T]":
        return self._moved(0)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        if self._block is None:
            return "RandomAccessCursor(<singular>)"
        return f"RandomAccessCursor(block=0x{id(self._block):x}, offset={self._offset})"


class ForwardCursor(Generic[K, V]):
    """A forward-only cursor over the nodes of a :class:`HashMap`.

    Holds the current chain node and the map that owns it. Past the last node
    the cursor turns into the end marker ``(None, None)``; every end marker
    compares equal to every other, whichever map produced it.
    """

    __slots__ = ("_node", "_map")

    def __init__(self, node: Optional["ChainNode[K, V]"] = None, owner: Optional["HashMap[K, V]"] = None) -> None:
        self._node = node
        self._map = owner if node is not None else None

    def _live(self) -> "ChainNode[K, V]":
        if self._node is None:
            raise CursorError("dereference of an end or singular cursor")
        return self._node

    @property
    def node(self) -> Optional["ChainNode[K, V]"]:
        return self._node

    @property
    def is_end(self) -> bool:
        return self._node is None

    def get(self) -> Tuple[K, V]:
        """Return the ``(key, value)`` pair at the cursor."""
        node = self._live()
        return (node.key, node.value)

    @property
    def key(self) -> K:
        return self._live().key

    @property
    def value(self) -> V:
        return self._live().value

    @value.setter
    def value(self, new_value: V) -> None:
        self._live().value = new_value

    def increment(self) -> "ForwardCursor[K, V]":
        """Advance to the next node (same chain first, then later buckets)."""
        node = self._live()
        if node.next is not None:
            self._node = node.next
            return self
        owner = self._map
        if owner is None:
            raise CursorError("cursor is not attached to a map")
        self._node = owner._first_node_after(owner._bucket_index(node.key))
        if self._node is None:
            self._map = None
        return self

    def post_increment(self) -> "ForwardCursor[K, V]":
        prev = ForwardCursor(self._node, self._map)
        self.increment()
        return prev

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ForwardCursor):
            return NotImplemented
        return self._node is other._node

    def __hash__(self) -> int:
        return id(self._node)

    def __copy__(self) -> "ForwardCursor[K, V]":
        return ForwardCursor(self._node, self._map)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        if self._node is None:
            return "ForwardCursor(<end>)"
        return f"ForwardCursor({self._node.key!r}: {self._node.value!r})"


Cursor = Union[RandomAccessCursor[Any], ForwardCursor[Any, Any]]


def walk(first: Cursor, last: Cursor) -> Iterator[Any]:
    """Yield each element in the half-open cursor range ``[first, last)``.

    `first` is copied, so the caller's cursor is left where it was.
    """
    cur = first.__copy__()
    while cur != last:
        yield cur.get()
        cur.increment()
