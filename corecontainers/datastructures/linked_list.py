from __future__ import annotations
from typing import Any, Callable, Generic, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class ChainNode(Generic[K, V]):
    """One (key, value) entry of a bucket chain.

    A node owns its successor: dropping a node from its chain drops the only
    reference the map holds to it, while `next` keeps the rest of the chain
    reachable. `cell` is the one-slot allocator block the node lives in.
    """

    __slots__ = ("key", "value", "next", "cell")

    def __init__(self, key: K, value: V, next: Optional["ChainNode[K, V]"] = None) -> None:
        self.key = key
        self.value = value
        self.next = next
        self.cell: Any = None

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"ChainNode({self.key!r}, {self.value!r})"


def find_node(head: Optional[ChainNode[K, V]], key: K, key_equal: Callable[[K, K], bool]) -> Optional[ChainNode[K, V]]:
    """Return the node whose key equals `key`, or None if the chain has none."""
    n = head
    while n:
        if key_equal(n.key, key):
            return n
        n = n.next
    return None


def detach(
    head: Optional[ChainNode[K, V]], key: K, key_equal: Callable[[K, K], bool]
) -> Tuple[Optional[ChainNode[K, V]], Optional[ChainNode[K, V]]]:
    """Unlink the node matching `key` from the chain starting at `head`.

    Returns ``(new_head, removed)``; `removed` is None when no node matched,
    in which case the chain is untouched. The removed node keeps its `next`
    link so a caller can still step past it.
    """
    prev: Optional[ChainNode[K, V]] = None
    cur = head
    while cur:
        if key_equal(cur.key, key):
            if prev:
                prev.next = cur.next
                return head, cur
            return cur.next, cur
        prev, cur = cur, cur.next
    return head, None


def unlink(head: Optional[ChainNode[K, V]], target: ChainNode[K, V]) -> Tuple[Optional[ChainNode[K, V]], bool]:
    """Unlink the node `target` itself (by identity); returns ``(new_head, found)``."""
    prev: Optional[ChainNode[K, V]] = None
    cur = head
    while cur:
        if cur is target:
            if prev:
                prev.next = cur.next
                return head, True
            return cur.next, True
        prev, cur = cur, cur.next
    return head, False


def iter_nodes(head: Optional[ChainNode[K, V]]) -> Iterator[ChainNode[K, V]]:
    """Yield the nodes of a chain in link order.

    The successor is read before each node is handed out, so the caller may
    relink or release the yielded node.
    """
    n = head
    while n:
        following = n.next
        yield n
        n = following


def chain_length(head: Optional[ChainNode[Any, Any]]) -> int:
    count = 0
    for _ in iter_nodes(head):
        count += 1
    return count
