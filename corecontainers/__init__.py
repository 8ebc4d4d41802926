"""
corecontainers: a dynamic array and a chained hash map built from first principles.

Both containers take their storage from an explicit allocator
(allocate / construct / destroy / deallocate) and hand out cursors for
traversal:
- DynamicArray: contiguous, index-addressable, doubling growth
- HashMap: separate chaining, load-factor driven rehash

Usage examples:
    from corecontainers import DynamicArray, HashMap
    arr = DynamicArray([5, 4, 3, 2, 1])
    arr.insert(arr.cbegin() + 2, 20)
    m = HashMap()
    m.insert("a", 1)
"""

import logging

from .datastructures import (
    AllocationError,
    Allocator,
    AllocatorStats,
    ContainerError,
    CursorError,
    DynamicArray,
    ForwardCursor,
    HashMap,
    LengthError,
    OutOfRangeError,
    RandomAccessCursor,
    TrackingAllocator,
    walk,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Allocator",
    "AllocatorStats",
    "TrackingAllocator",
    "DynamicArray",
    "HashMap",
    "RandomAccessCursor",
    "ForwardCursor",
    "walk",
    "ContainerError",
    "AllocationError",
    "OutOfRangeError",
    "LengthError",
    "CursorError",
]
