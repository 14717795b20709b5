import logging

import pytest

from ring_errors import CapacityExceeded, DuplicateNode, EmptyNodeSet, NotFound, UnknownNode
from simulate_failure import random_keys
from slot_ring import SlotHashRing

POSITIONS = {"0-vn0": 3, "1-vn0": 11, "2-vn0": 7, "3-vn0": 2, "4-vn0": 3, "5-vn0": 5}


def fixed_hash(key):
    if isinstance(key, bytes):
        key = key.decode()
    if key in POSITIONS:
        return POSITIONS[key]
    return int(key.split("-")[1])


def brute_force_owner(slots, index):
    for offset in range(len(slots)):
        owner = slots[(index + offset) % len(slots)]
        if owner is not None:
            return owner[0]


@pytest.fixture
def small_ring():
    ring = SlotHashRing(8, hash_fn=fixed_hash)
    for node in [0, 1, 2]:
        ring.add_node(node, 1)
    return ring


@pytest.fixture
def keys():
    return list(random_keys(2000, seed=99))


def test_collision_probes_forward(small_ring, caplog):
    assert small_ring.slots == [None, None, None, (0, 0), (1, 0), None, None, (2, 0)]
    assert small_ring.collisions == 1

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="slot_ring"):
        small_ring.add_node(4, 1)
    assert small_ring.slots[5] == (4, 0)
    assert small_ring.collisions == 3
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 2


def test_probe_wraps_around():
    ring = SlotHashRing(4, hash_fn=lambda key: 3)
    ring.add_node(0, 1)
    ring.add_node(1, 1)
    assert ring.slots == [(1, 0), None, None, (0, 0)]


def test_finalize_fills_gaps_with_successor(small_ring):
    small_ring.finalize()
    assert [small_ring.owner_at(i) for i in range(8)] == [0, 0, 0, 0, 1, 2, 2, 2]


def test_finalize_wraps_when_last_slot_empty():
    ring = SlotHashRing(8, hash_fn=fixed_hash)
    ring.add_node(3, 1)
    ring.add_node(5, 1)
    ring.finalize()
    assert [ring.owner_at(i) for i in range(8)] == [3, 3, 3, 5, 5, 5, 3, 3]


def test_lookup_unfinalized_probes(small_ring):
    assert small_ring.get_node("k-5") == 2
    assert small_ring.get_node("k-0") == 0
    assert not small_ring.is_finalized


def test_lookup_finalized_reads_one_slot(small_ring):
    small_ring.finalize()
    assert small_ring.is_finalized
    assert small_ring.get_node("k-5") == 2
    assert small_ring.get_node("k-4") == 1
    assert small_ring.get_node("k-13") == 2


@pytest.mark.parametrize("removed", [0, 1, 2])
def test_finalize_matches_brute_force(removed):
    ring = SlotHashRing.build(range(3), weight=4, slots_per_weight=2)
    ring.remove_node(removed)
    ring.finalize()
    for index in range(ring.size):
        assert ring.owner_at(index) == brute_force_owner(ring.slots, index)


def test_finalized_and_probing_lookups_agree(keys):
    probing = SlotHashRing.build(range(12), weight=40)
    finalized = SlotHashRing.build(range(12), weight=40)
    finalized.finalize()
    assert all(probing.get_node(k) == finalized.get_node(k) for k in keys)


def test_build_sizes_array():
    ring = SlotHashRing.build(range(12), weight=160, slots_per_weight=4)
    assert ring.size == 12 * 160 * 4
    assert ring.occupied == 12 * 160
    assert ring.load_factor == 0.25
    assert sum(1 for s in ring.slots if s is not None) == 12 * 160


def test_build_errors():
    with pytest.raises(EmptyNodeSet):
        SlotHashRing.build([], weight=4)
    with pytest.raises(ValueError):
        SlotHashRing.build([0], weight=4, slots_per_weight=0)


def test_capacity_exceeded_places_nothing():
    ring = SlotHashRing(4)
    ring.add_node(0, 3)
    with pytest.raises(CapacityExceeded):
        ring.add_node(1, 2)
    assert sum(1 for s in ring.slots if s is not None) == 3
    assert ring.nodes == [0]


def test_empty_ring_errors():
    ring = SlotHashRing(8)
    with pytest.raises(NotFound):
        ring.get_node("a")
    with pytest.raises(EmptyNodeSet):
        ring.finalize()


def test_remove_leaves_gaps_and_invalidates(small_ring):
    small_ring.finalize()
    small_ring.remove_node(1)
    assert not small_ring.is_finalized
    assert small_ring.slots[4] is None
    assert small_ring.get_node("k-4") == 2
    small_ring.finalize()
    assert small_ring.owner_at(4) == 2


def test_add_invalidates_finalize(small_ring):
    small_ring.finalize()
    small_ring.add_node(3, 1)
    assert not small_ring.is_finalized
    assert small_ring.get_node("k-1") == 3


def test_unknown_and_duplicate_nodes(small_ring):
    with pytest.raises(UnknownNode):
        small_ring.remove_node(7)
    with pytest.raises(DuplicateNode):
        small_ring.add_node(0, 1)


def test_remove_moves_only_removed_nodes_keys(keys):
    ring = SlotHashRing.build(range(12), weight=160)
    ring.finalize()
    before = {k: ring.get_node(k) for k in keys}
    ring.remove_node(5)
    ring.finalize()
    for key in keys:
        if before[key] != 5:
            assert ring.get_node(key) == before[key]
        else:
            assert ring.get_node(key) != 5


def test_add_moves_keys_only_to_new_node(keys):
    ring = SlotHashRing.build(range(12), weight=160)
    ring.finalize()
    before = {k: ring.get_node(k) for k in keys}
    ring.add_node(12, 160)
    ring.finalize()
    moved = [k for k in keys if ring.get_node(k) != before[k]]
    assert moved
    assert all(ring.get_node(k) == 12 for k in moved)


def test_clear(small_ring):
    small_ring.finalize()
    small_ring.clear()
    assert small_ring.slots == [None] * 8
    assert small_ring.nodes == []
    assert not small_ring.is_finalized
    small_ring.add_node(2, 1)
    assert small_ring.get_node("k-0") == 2
