# placement.py

from config import DEFAULT_HASH, DEFAULT_VARIANT, RING_VARIANTS, SLOTS_PER_WEIGHT, WEIGHT
from hash_functions import get_hash_function, murmur32
from hashing_ring import ConsistentHashRing
from ring_errors import EmptyNodeSet
from slot_ring import SlotHashRing


def build_ring(nodes, weight=WEIGHT, variant=DEFAULT_VARIANT, hash_name=DEFAULT_HASH,
               slots_per_weight=SLOTS_PER_WEIGHT):
    nodes = list(nodes)
    if not nodes:
        raise EmptyNodeSet("Cannot build a ring without nodes")
    hash_fn = get_hash_function(hash_name)

    if variant == "sorted":
        return ConsistentHashRing(nodes, vnodes=weight, hash_fn=hash_fn)
    if variant == "slot":
        ring = SlotHashRing.build(nodes, weight, slots_per_weight, hash_fn=hash_fn)
        ring.finalize()
        return ring
    raise ValueError(f"Unknown ring variant: {variant} (choose from {RING_VARIANTS})")


def lookup(ring, key):
    return ring.get_node(key)


def fail_or_remove(ring, node):
    """Take a node out of service: soft-fail on a sorted ring, hard removal on a slot ring."""
    if isinstance(ring, ConsistentHashRing):
        ring.fail_node(node)
    else:
        ring.remove_node(node)


def add_node(ring, node, weight=WEIGHT):
    ring.add_node(node, weight)


def finalize(ring):
    ring.finalize()


def modulo_place(key, node_count, hash_fn=murmur32):
    if node_count < 1:
        raise EmptyNodeSet("Cannot place a key on zero nodes")
    return hash_fn(key) % node_count
