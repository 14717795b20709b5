# hashing_ring.py

import bisect
from collections import namedtuple

from config import WEIGHT
from hash_functions import murmur32
from ring_errors import AllNodesFailed, DuplicateNode, NotFound, UnknownNode


Token = namedtuple("Token", ["hash", "node", "replica"])


def vnode_key(node, replica):
    return f"{node}-vn{replica}"


class ConsistentHashRing:
    """Sorted-token ring with a soft-fail overlay.

    Tokens stay in the ring when their node fails; lookups skip them until
    the node is recovered or removed.
    """

    def __init__(self, nodes=None, vnodes=WEIGHT, hash_fn=murmur32):
        self.vnodes = vnodes
        self.hash_fn = hash_fn
        self.tokens = []
        self.sorted_keys = []
        self.weights = {}
        self.failed = []

        for node in nodes or []:
            self.add_node(node)

    def _hash(self, key):
        return self.hash_fn(key)

    @property
    def nodes(self):
        return list(self.weights)

    def add_node(self, node, weight=None):
        if node in self.weights:
            raise DuplicateNode(f"Node {node} is already in the ring")
        weight = self.vnodes if weight is None else weight
        if weight < 1:
            raise ValueError(f"Weight must be at least 1, got {weight}")

        for i in range(weight):
            self.tokens.append(Token(self._hash(vnode_key(node, i)), node, i))
        self.tokens.sort()
        self.sorted_keys = [t.hash for t in self.tokens]
        self.weights[node] = weight

    def remove_node(self, node):
        if node not in self.weights:
            raise UnknownNode(f"Node {node} is not in the ring")
        self.tokens = [t for t in self.tokens if t.node != node]
        self.sorted_keys = [t.hash for t in self.tokens]
        del self.weights[node]
        self.recover_node(node)

    def fail_node(self, node):
        if node not in self.weights:
            raise UnknownNode(f"Node {node} is not in the ring")
        if not self.is_failed(node):
            bisect.insort(self.failed, node)

    def recover_node(self, node):
        idx = bisect.bisect_left(self.failed, node)
        if idx < len(self.failed) and self.failed[idx] == node:
            del self.failed[idx]

    def is_failed(self, node):
        idx = bisect.bisect_left(self.failed, node)
        return idx < len(self.failed) and self.failed[idx] == node

    def calc_candidates(self, key):
        """Yield live tokens clockwise from the first token at or after hash(key)."""
        if not self.tokens:
            return
        h = self._hash(key)
        start = bisect.bisect_left(self.sorted_keys, h)
        total = len(self.tokens)
        for offset in range(total):
            token = self.tokens[(start + offset) % total]
            if not self.is_failed(token.node):
                yield token

    def get_node(self, key):
        if not self.tokens:
            raise NotFound("Ring has no nodes")
        for token in self.calc_candidates(key):
            return token.node
        raise AllNodesFailed(f"All {len(self.weights)} nodes are failed")

    def get_replicas(self, key, count=2):
        replicas = []
        for token in self.calc_candidates(key):
            if token.node not in replicas:
                replicas.append(token.node)
                if len(replicas) == count:
                    break
        return replicas

    def token_set(self):
        return set(self.tokens)

    def finalize(self):
        # Lookups are always consistent; nothing to compact.
        pass
