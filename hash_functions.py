# hash_functions.py

import hashlib
import struct

import mmh3

from config import HASH_SEED


def to_bytes(key):
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    return str(key).encode()


def murmur32(key, seed=HASH_SEED):
    """MurmurHash3 x86 32-bit, unsigned."""
    return mmh3.hash(to_bytes(key), seed, signed=False)


def sha256_32(key):
    """SHA-256 truncated to 32 bits.

    The first four digest bytes are read big-endian. Any fixed slice of the
    digest is equally uniform; this one is kept for reproducible placements.
    """
    digest = hashlib.sha256(to_bytes(key)).digest()
    return struct.unpack_from(">I", digest)[0]


HASH_FUNCTIONS = {
    "murmur3": murmur32,
    "sha256": sha256_32,
}


def get_hash_function(name):
    try:
        return HASH_FUNCTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown hash function: {name} (choose from {sorted(HASH_FUNCTIONS)})")
