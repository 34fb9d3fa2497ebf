"""Shared pieces of the client cache tiers."""

import time


class _Absent:
    """Marker for a cache miss, distinct from a cached ``None``."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


def now_ms() -> int:
    """Wall-clock epoch milliseconds; cache expiries must survive restarts."""
    return int(time.time() * 1000)
