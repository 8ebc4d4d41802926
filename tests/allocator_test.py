import pytest

from corecontainers.datastructures import AllocationError, Allocator, TrackingAllocator


def test_allocate_returns_uninitialised_slots():
    a = Allocator()
    block = a.allocate(3)
    assert len(block) == 3
    # Nothing has been constructed yet, so reading a slot must fail.
    with pytest.raises(ValueError):
        block[0]


def test_construct_then_destroy_returns_slot_to_raw_state():
    a = Allocator()
    block = a.allocate(2)
    a.construct(block, 0, "x")
    a.construct(block, 1, ["y"])
    assert block[0] == "x"
    assert block[1] == ["y"]

    a.destroy(block, 0)
    with pytest.raises(ValueError):
        block[0]
    assert block[1] == ["y"]
    a.destroy(block, 1)
    a.deallocate(block, 2)


def test_allocate_rejects_sizes_past_max_size():
    a = Allocator()
    with pytest.raises(AllocationError) as info:
        a.allocate(a.max_size() + 1)
    assert info.value.requested == a.max_size() + 1
    assert isinstance(info.value, MemoryError)

    with pytest.raises(AllocationError):
        a.allocate(-1)


def test_allocators_of_one_type_are_interchangeable():
    assert Allocator() == Allocator()
    assert not (Allocator() != Allocator())
    assert hash(Allocator()) == hash(Allocator())
    assert TrackingAllocator() == TrackingAllocator()
    assert Allocator() != TrackingAllocator()


def test_tracking_allocator_pairs_allocate_and_deallocate():
    a = TrackingAllocator()
    b1 = a.allocate(4)
    b2 = a.allocate(1)
    assert a.outstanding_blocks == 2

    with pytest.raises(AllocationError):
        a.deallocate(b1, 3)  # wrong count
    assert a.outstanding_blocks == 2

    a.deallocate(b1, 4)
    a.deallocate(b2, 1)
    assert a.outstanding_blocks == 0
    assert a.stats.allocations == 2
    assert a.stats.deallocations == 2
    assert a.stats.slots_allocated == a.stats.slots_released == 5

    with pytest.raises(AllocationError):
        a.deallocate(b2, 1)  # already released


def test_tracking_allocator_counts_live_objects():
    a = TrackingAllocator()
    block = a.allocate(3)
    for i in range(3):
        a.construct(block, i, i)
    assert a.live_objects == 3
    a.destroy(block, 2)
    assert a.live_objects == 2


def test_tracking_allocator_injected_failure_fires_once():
    a = TrackingAllocator()
    block = a.allocate(3)
    a.fail_construct_after(1)
    a.construct(block, 0, "ok")
    with pytest.raises(RuntimeError):
        a.construct(block, 1, "boom")
    with pytest.raises(ValueError):
        block[1]
    a.construct(block, 1, "fine again")
    assert block[1] == "fine again"
    assert a.stats.constructions == 2


def test_fail_construct_after_rejects_negative_counts():
    with pytest.raises(ValueError):
        TrackingAllocator().fail_construct_after(-1)
