# ring_errors.py


class RingError(Exception):
    """Base class for ring placement errors"""
    pass


class EmptyNodeSet(RingError):
    """Raised when a ring is built or finalized without any nodes"""
    pass


class NotFound(RingError):
    """Raised when a lookup cannot resolve a key to any node"""
    pass


class AllNodesFailed(NotFound):
    """Raised when every node owning tokens is marked failed"""
    pass


class CapacityExceeded(RingError):
    """Raised when a slot array cannot hold the requested tokens"""
    pass


class DuplicateNode(RingError):
    pass


class UnknownNode(RingError):
    pass
