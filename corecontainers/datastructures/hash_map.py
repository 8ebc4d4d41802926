from __future__ import annotations
import logging
import math
import operator
from typing import Any, Callable, Generic, Iterable, Iterator, Optional, Tuple, TypeVar, Union, overload

from .allocator import Allocator, construct_range
from .iterators import ForwardCursor
from .linked_list import ChainNode, chain_length, detach, find_node, iter_nodes, unlink

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class HashMap(Generic[K, V]):
    """A separate-chaining hash table on top of an explicit :class:`Allocator`.

    Implementation notes
    --------------------
    • The bucket index is one allocator block of chain heads (None = empty).
    • Each node lives in its own one-slot allocator block and is linked in
      as the new head of its bucket, so a chain runs newest-first.
    • Keys are unique: every insert scans the target chain with `key_equal`.
    • Before an insert would push ``size / bucket_count`` past
      `max_load_factor`, the table rehashes to at least twice as many buckets.
      Rehash relinks the existing nodes; it never copies keys or values.
    • Iteration and lookups hand out :class:`ForwardCursor` objects.
    """

    __slots__ = ("_alloc", "_buckets", "_bucket_count", "_size", "_max_load", "_hash", "_equal")

    _DEFAULT_BUCKETS = 11
    _DEFAULT_MAX_LOAD = 1.0

    def __init__(
        self,
        it: Optional[Union[Iterable[Tuple[K, V]], Any]] = None,
        bucket_count: int = _DEFAULT_BUCKETS,
        hash_function: Optional[Callable[[K], int]] = None,
        key_equal: Optional[Callable[[K, K], bool]] = None,
        max_load_factor: float = _DEFAULT_MAX_LOAD,
        allocator: Optional[Allocator] = None,
    ) -> None:
        if bucket_count < 1:
            raise ValueError("bucket_count must be >= 1")
        if not max_load_factor > 0:
            raise ValueError("max_load_factor must be > 0")
        self._alloc = allocator if allocator is not None else Allocator()
        self._hash: Callable[[K], int] = hash_function if hash_function is not None else hash
        self._equal: Callable[[K, K], bool] = key_equal if key_equal is not None else operator.eq
        self._max_load = float(max_load_factor)
        self._bucket_count = bucket_count
        self._buckets = self._new_bucket_array(bucket_count)
        self._size = 0

        if it is not None:
            self.update(it)

    # ---------------------------- alternate constructors ----------------------------

    @classmethod
    def _from_parts(cls, source: "HashMap[K, V]", buckets, bucket_count: int, size: int) -> "HashMap[K, V]":
        out = cls.__new__(cls)
        out._alloc = source._alloc
        out._hash = source._hash
        out._equal = source._equal
        out._max_load = source._max_load
        out._buckets = buckets
        out._bucket_count = bucket_count
        out._size = size
        return out

    @classmethod
    def move_from(cls, other: "HashMap[K, V]") -> "HashMap[K, V]":
        """Take over `other`'s buckets and nodes; `other` is left empty with default buckets."""
        fresh = other._new_bucket_array(cls._DEFAULT_BUCKETS)
        moved = cls._from_parts(other, other._buckets, other._bucket_count, other._size)
        other._buckets = fresh
        other._bucket_count = cls._DEFAULT_BUCKETS
        other._size = 0
        return moved

    def copy(self) -> "HashMap[K, V]":
        """Return an independent map with the same entries and bucket count."""
        out = self._from_parts(self, self._new_bucket_array(self._bucket_count), self._bucket_count, 0)
        try:
            for node in self._nodes():
                out._link(out._new_node(node.key, node.value))
        except BaseException:
            out.clear()
            out._release_bucket_array(out._buckets, out._bucket_count)
            raise
        return out

    def __copy__(self) -> "HashMap[K, V]":
        return self.copy()

    # -----------------------------
    # Internal helpers
    # -----------------------------
    def _new_bucket_array(self, count: int):
        block = self._alloc.allocate(count)
        try:
            construct_range(self._alloc, block, 0, (None for _ in range(count)))
        except BaseException:
            self._alloc.deallocate(block, count)
            raise
        return block

    def _release_bucket_array(self, block, count: int) -> None:
        for i in range(count):
            self._alloc.destroy(block, i)
        self._alloc.deallocate(block, count)

    def _bucket_index(self, key: K) -> int:
        """Compute the bucket index for a key."""
        return self._hash(key) % self._bucket_count

    def _first_node_after(self, idx: int) -> Optional[ChainNode[K, V]]:
        """Head of the first non-empty bucket after bucket `idx`, if any."""
        buckets = self._buckets
        for i in range(idx + 1, self._bucket_count):
            head = buckets[i]
            if head is not None:
                return head
        return None

    def _nodes(self) -> Iterator[ChainNode[K, V]]:
        for i in range(self._bucket_count):
            yield from iter_nodes(self._buckets[i])

    def _new_node(self, *args: Any) -> ChainNode[K, V]:
        """Allocate a node cell and build the node from ``(key, value)`` or ``((key, value),)``."""
        cell = self._alloc.allocate(1)
        try:
            if len(args) == 1:
                key, value = args[0]
            else:
                key, value = args
            self._alloc.construct(cell, 0, ChainNode(key, value))
        except BaseException:
            self._alloc.deallocate(cell, 1)
            raise
        node: ChainNode[K, V] = cell[0]
        node.cell = cell
        return node

    def _free_node(self, node: ChainNode[K, V]) -> None:
        cell = node.cell
        node.cell = None
        node.next = None
        self._alloc.destroy(cell, 0)
        self._alloc.deallocate(cell, 1)

    def _link(self, node: ChainNode[K, V]) -> None:
        """Make `node` the new head of its bucket."""
        idx = self._bucket_index(node.key)
        node.next = self._buckets[idx]
        self._buckets[idx] = node
        self._size += 1

    def _grow_if_needed(self) -> None:
        """Rehash before an insert that would exceed the max load factor."""
        if self._size + 1 > self._bucket_count * self._max_load:
            target = max(self._bucket_count * 2, math.ceil((self._size + 1) / self._max_load))
            self.rehash(target)

    # -----------------------------
    # Lookup
    # -----------------------------
    def find(self, key: K) -> ForwardCursor[K, V]:
        """Cursor to the entry for `key`, or :meth:`end` if there is none."""
        node = find_node(self._buckets[self._bucket_index(key)], key, self._equal)
        return ForwardCursor(node, self) if node is not None else self.end()

    def contains(self, key: K) -> bool:
        return find_node(self._buckets[self._bucket_index(key)], key, self._equal) is not None

    def count(self, key: K) -> int:
        return 1 if self.contains(key) else 0

    def at(self, key: K) -> V:
        """Return the value for `key`.

        Raises:
            KeyError: if the key is not present.
        """
        node = find_node(self._buckets[self._bucket_index(key)], key, self._equal)
        if node is None:
            raise KeyError(key)
        return node.value

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Retrieve value for key or return default."""
        node = find_node(self._buckets[self._bucket_index(key)], key, self._equal)
        return default if node is None else node.value

    # -----------------------------
    # Insertion
    # -----------------------------
    def insert(self, key: K, value: V) -> Tuple[ForwardCursor[K, V], bool]:
        """Insert ``(key, value)`` unless the key is already present.

        Returns ``(cursor, inserted)``. On a duplicate the cursor points at the
        existing entry, `inserted` is False and nothing changes.
        """
        existing = find_node(self._buckets[self._bucket_index(key)], key, self._equal)
        if existing is not None:
            return ForwardCursor(existing, self), False

        self._grow_if_needed()
        node = self._new_node(key, value)
        self._link(node)
        return ForwardCursor(node, self), True

    def emplace(self, *args: Any) -> Tuple[ForwardCursor[K, V], bool]:
        """Build a node from ``(key, value)`` (or one pair) and insert it.

        The node is built before the duplicate check, so a duplicate key costs
        one throwaway node which is destroyed and freed again.
        """
        node = self._new_node(*args)
        try:
            existing = find_node(self._buckets[self._bucket_index(node.key)], node.key, self._equal)
            if existing is not None:
                self._free_node(node)
                return ForwardCursor(existing, self), False
            self._grow_if_needed()
        except BaseException:
            if node.cell is not None:
                self._free_node(node)
            raise
        self._link(node)
        return ForwardCursor(node, self), True

    def insert_or_assign(self, key: K, value: V) -> Tuple[ForwardCursor[K, V], bool]:
        """Insert, or overwrite the value of an existing key."""
        existing = find_node(self._buckets[self._bucket_index(key)], key, self._equal)
        if existing is not None:
            existing.value = value
            return ForwardCursor(existing, self), False
        return self.insert(key, value)

    def get_or_insert(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the value for `key`, inserting `default` first if it is absent."""
        cursor, _ = self.insert(key, default)  # type: ignore[arg-type]
        return cursor.value

    def update(self, it: Union[Iterable[Tuple[K, V]], Any]) -> None:
        """Insert-or-assign every pair of a mapping or an iterable of pairs."""
        pairs = it.items() if hasattr(it, "items") else it
        for k, v in pairs:
            self.insert_or_assign(k, v)

    # -----------------------------
    # Removal
    # -----------------------------
    @overload
    def erase(self, target: ForwardCursor[K, V]) -> ForwardCursor[K, V]: ...
    @overload
    def erase(self, target: K) -> int: ...

    def erase(self, target):
        """Erase by cursor (returns the cursor to the next entry) or by key
        (returns the number of entries removed, 0 or 1)."""
        if isinstance(target, ForwardCursor):
            return self._erase_at(target)
        return self._erase_key(target)

    def _erase_at(self, pos: ForwardCursor[K, V]) -> ForwardCursor[K, V]:
        node = pos.node
        if node is None:
            return self.end()
        idx = self._bucket_index(node.key)
        # Step past the node while its links are still intact.
        following = ForwardCursor(node, self).increment()
        head, found = unlink(self._buckets[idx], node)
        if not found:
            return self.end()
        self._buckets[idx] = head
        self._free_node(node)
        self._size -= 1
        return following

    def _erase_key(self, key: K) -> int:
        idx = self._bucket_index(key)
        head, removed = detach(self._buckets[idx], key, self._equal)
        if removed is None:
            return 0
        self._buckets[idx] = head
        self._free_node(removed)
        self._size -= 1
        return 1

    def clear(self) -> None:
        """Destroy every node; the bucket count is kept."""
        buckets = self._buckets
        for i in range(self._bucket_count):
            for node in iter_nodes(buckets[i]):
                self._free_node(node)
            buckets[i] = None
        self._size = 0

    def swap(self, other: "HashMap[K, V]") -> None:
        for attr in self.__slots__:
            mine, theirs = getattr(self, attr), getattr(other, attr)
            setattr(self, attr, theirs)
            setattr(other, attr, mine)

    # -----------------------------
    # Buckets and load factor
    # -----------------------------
    def rehash(self, count: int) -> None:
        """Rebuild the bucket index with `count` buckets.

        No-op unless `count` is larger than the current bucket count and large
        enough to hold the current size under the max load factor.
        """
        if count <= self._bucket_count:
            return
        if count < math.ceil(self._size / self._max_load):
            return

        # Hash every key before touching any link; a raising hash leaves the map as it was.
        placement = [(node, self._hash(node.key) % count) for node in self._nodes()]

        new_buckets = self._new_bucket_array(count)
        old_buckets, old_count = self._buckets, self._bucket_count
        for node, idx in placement:
            node.next = new_buckets[idx]
            new_buckets[idx] = node
        for i in range(old_count):
            old_buckets[i] = None

        self._buckets = new_buckets
        self._bucket_count = count
        self._release_bucket_array(old_buckets, old_count)
        logger.debug(f"HashMap rehashed: {old_count} -> {count} buckets ({self._size} entries)")

    def reserve(self, count: int) -> None:
        """Make room for `count` entries without exceeding the max load factor."""
        self.rehash(math.ceil(count / self._max_load))

    def load_factor(self) -> float:
        return self._size / self._bucket_count

    def max_load_factor(self, value: Optional[float] = None) -> float:
        """Return the max load factor; when `value` is given, set it first."""
        if value is not None:
            if not value > 0:
                raise ValueError("max_load_factor must be > 0")
            self._max_load = float(value)
        return self._max_load

    def bucket_count(self) -> int:
        return self._bucket_count

    def bucket(self, key: K) -> int:
        return self._bucket_index(key)

    def bucket_size(self, index: int) -> int:
        if index < 0 or index >= self._bucket_count:
            raise IndexError("bucket index out of range")
        return chain_length(self._buckets[index])

    def size(self) -> int:
        return self._size

    def empty(self) -> bool:
        return self._size == 0

    def hash_function(self) -> Callable[[K], int]:
        return self._hash

    def key_eq(self) -> Callable[[K, K], bool]:
        return self._equal

    def get_allocator(self) -> Allocator:
        return self._alloc

    # -----------------------------
    # Iteration helpers
    # -----------------------------
    def begin(self) -> ForwardCursor[K, V]:
        return ForwardCursor(self._first_node_after(-1), self)

    def end(self) -> ForwardCursor[K, V]:
        return ForwardCursor()

    cbegin = begin
    cend = end

    def items(self) -> Iterator[Tuple[K, V]]:
        for node in self._nodes():
            yield (node.key, node.value)

    def keys(self) -> Iterator[K]:
        for k, _ in self.items():
            yield k

    def values(self) -> Iterator[V]:
        for _, v in self.items():
            yield v

    def to_py(self) -> dict[K, V]:
        """Convert to a native *dict*."""
        return dict(self.items())

    # -----------------------------
    # Standard magic methods
    # -----------------------------
    def __len__(self) -> int:  # pragma: no cover - trivial
        return self._size

    def __iter__(self) -> Iterator[K]:  # pragma: no cover - simple
        return self.keys()

    def __contains__(self, key: object) -> bool:
        return self.contains(key)  # type: ignore[arg-type]

    def __getitem__(self, key: K) -> V:
        return self.at(key)

    def __setitem__(self, key: K, value: V) -> None:
        self.insert_or_assign(key, value)

    def __delitem__(self, key: K) -> None:
        if self._erase_key(key) == 0:
            raise KeyError(key)

    def __bool__(self) -> bool:  # pragma: no cover - trivial
        return self._size != 0

    def __repr__(self) -> str:  # pragma: no cover - trivial
        pairs = ", ".join(f"{k!r}: {v!r}" for k, v in self.items())
        return f"HashMap({{{pairs}}})"
