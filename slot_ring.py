# slot_ring.py

import logging

from config import SLOTS_PER_WEIGHT, WEIGHT
from hash_functions import murmur32
from hashing_ring import vnode_key
from ring_errors import CapacityExceeded, DuplicateNode, EmptyNodeSet, NotFound, UnknownNode

logger = logging.getLogger(__name__)


class SlotHashRing:
    """Fixed-size slot array populated by virtual-node tokens.

    Tokens are placed by linear probing from ``hash % size``. Removal clears
    slots and leaves gaps; ``finalize`` resolves every slot to the owner of the
    nearest occupied slot at or after it, so lookups read a single slot until
    the next membership change.
    """

    def __init__(self, size, hash_fn=murmur32):
        if size < 1:
            raise ValueError(f"Slot array size must be at least 1, got {size}")
        self.size = size
        self.hash_fn = hash_fn
        self.slots = [None] * size
        self.weights = {}
        self.collisions = 0
        self._resolved = None

    @classmethod
    def build(cls, nodes, weight=WEIGHT, slots_per_weight=SLOTS_PER_WEIGHT, hash_fn=murmur32):
        nodes = list(nodes)
        if not nodes:
            raise EmptyNodeSet("Cannot build a slot ring without nodes")
        if slots_per_weight < 1:
            raise ValueError(f"slots_per_weight must be at least 1, got {slots_per_weight}")
        ring = cls(len(nodes) * weight * slots_per_weight, hash_fn=hash_fn)
        for node in nodes:
            ring.add_node(node, weight)
        return ring

    @property
    def nodes(self):
        return list(self.weights)

    @property
    def occupied(self):
        return sum(self.weights.values())

    @property
    def load_factor(self):
        return self.occupied / self.size

    @property
    def is_finalized(self):
        return self._resolved is not None

    def add_node(self, node, weight=WEIGHT):
        if node in self.weights:
            raise DuplicateNode(f"Node {node} is already in the ring")
        if weight < 1:
            raise ValueError(f"Weight must be at least 1, got {weight}")
        if self.occupied + weight > self.size:
            raise CapacityExceeded(
                f"Cannot place {weight} tokens for node {node}: "
                f"{self.occupied}/{self.size} slots already used"
            )

        self._resolved = None
        for i in range(weight):
            index = self.hash_fn(vnode_key(node, i)) % self.size
            while self.slots[index] is not None:
                self.collisions += 1
                logger.warning(
                    "Slot %d taken by %s, probing for token %s",
                    index, vnode_key(*self.slots[index]), vnode_key(node, i),
                )
                index = (index + 1) % self.size
            self.slots[index] = (node, i)
        self.weights[node] = weight

    def remove_node(self, node):
        if node not in self.weights:
            raise UnknownNode(f"Node {node} is not in the ring")
        self._resolved = None
        for index, owner in enumerate(self.slots):
            if owner is not None and owner[0] == node:
                self.slots[index] = None
        del self.weights[node]

    def finalize(self):
        anchor = next((i for i, owner in enumerate(self.slots) if owner is not None), None)
        if anchor is None:
            raise EmptyNodeSet("Cannot finalize a slot ring without nodes")

        # Walk backwards; slots past the last token wrap to the anchor.
        resolved = [None] * self.size
        current = self.slots[anchor][0]
        for index in range(self.size - 1, -1, -1):
            owner = self.slots[index]
            if owner is not None:
                current = owner[0]
            resolved[index] = current
        self._resolved = resolved

    def owner_at(self, index):
        if self._resolved is not None:
            return self._resolved[index]
        for offset in range(self.size):
            owner = self.slots[(index + offset) % self.size]
            if owner is not None:
                return owner[0]
        raise NotFound("Ring has no nodes")

    def get_node(self, key):
        return self.owner_at(self.hash_fn(key) % self.size)

    def clear(self):
        self.slots = [None] * self.size
        self.weights = {}
        self.collisions = 0
        self._resolved = None
