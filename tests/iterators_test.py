import copy

import pytest

from corecontainers.datastructures import (
    CursorError,
    DynamicArray,
    ForwardCursor,
    HashMap,
    RandomAccessCursor,
    walk,
)


# ----------------------------
# Random-access cursor
# ----------------------------

def test_singular_random_access_cursor():
    c = RandomAccessCursor()
    assert c.is_singular
    assert c == RandomAccessCursor()
    with pytest.raises(CursorError):
        c.get()


def test_arithmetic_and_offset_dereference():
    arr = DynamicArray([10, 20, 30, 40])
    first = arr.begin()
    assert (first + 3) - first == 3
    assert first - (first + 3) == -3
    assert (2 + first).get() == 30
    assert first[1] == 20
    assert (first + 3)[-1] == 30
    assert ((first + 3) - 2).get() == 20


def test_compound_assignment_produces_new_value():
    arr = DynamicArray([1, 2, 3])
    c = arr.begin()
    alias = c
    c += 2
    assert c.get() == 3
    assert alias.get() == 1
    c -= 1
    assert c.get() == 2


def test_pre_and_post_step():
    arr = DynamicArray([1, 2, 3])
    c = arr.begin()
    assert c.increment().get() == 2
    old = c.post_increment()
    assert old.get() == 2
    assert c.get() == 3
    assert c.decrement().get() == 2
    old = c.post_decrement()
    assert old.get() == 2
    assert c.get() == 1


def test_ordering_follows_buffer_position():
    arr = DynamicArray([1, 2, 3])
    a, b = arr.begin(), arr.begin() + 2
    assert a < b and a <= b
    assert b > a and b >= a
    assert a <= copy.copy(a) and a >= copy.copy(a)
    assert a != b
    assert a == arr.cbegin()


def test_cursors_from_different_arrays_do_not_mix():
    a = DynamicArray([1])
    b = DynamicArray([1])
    assert a.begin() != b.begin()
    with pytest.raises(CursorError):
        a.begin() - b.begin()
    with pytest.raises(CursorError):
        a.begin() < b.begin()


def test_dereference_outside_block_is_rejected():
    arr = DynamicArray([1, 2])
    with pytest.raises(CursorError):
        (arr.begin() - 1).get()
    with pytest.raises(CursorError):
        arr.begin()[arr.capacity()]


# ----------------------------
# Forward cursor
# ----------------------------

def test_end_markers_compare_equal_across_maps():
    assert HashMap().end() == HashMap().end()
    assert ForwardCursor() == HashMap().end()
    assert HashMap().begin() == HashMap().end()


def test_forward_cursor_dereference_of_end_fails():
    with pytest.raises(CursorError):
        ForwardCursor().get()
    m = HashMap()
    with pytest.raises(CursorError):
        m.end().key
    with pytest.raises(CursorError):
        m.end().increment()


def test_forward_cursor_visits_every_entry_once():
    m = HashMap(bucket_count=7)
    for i in range(30):
        m.insert(i, i * i)
    seen = list(walk(m.begin(), m.end()))
    assert len(seen) == 30
    assert sorted(seen) == [(i, i * i) for i in range(30)]


def test_forward_cursor_crosses_empty_buckets():
    m = HashMap(bucket_count=11, hash_function=lambda k: k)
    m.insert(1, "a")
    m.insert(12, "b")  # same bucket as 1
    m.insert(9, "c")
    c = m.begin()
    assert c.get() == (12, "b")  # newest first within a bucket
    c.increment()
    assert c.get() == (1, "a")
    old = c.post_increment()
    assert old.key == 1
    assert c.get() == (9, "c")
    c.increment()
    assert c == m.end()
    assert c.is_end


def test_forward_cursor_value_is_assignable():
    m = HashMap()
    m.insert("k", 1)
    c = m.find("k")
    c.value = 2
    assert m.at("k") == 2
    assert hash(c) == hash(m.find("k"))
