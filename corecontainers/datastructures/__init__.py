from .allocator import Allocator, AllocatorStats, TrackingAllocator
from .dynamic_array import DynamicArray
from .errors import AllocationError, ContainerError, CursorError, LengthError, OutOfRangeError
from .hash_map import HashMap
from .iterators import ForwardCursor, RandomAccessCursor, walk

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
