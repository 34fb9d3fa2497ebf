"""
Client cache tiers.

- MemoryCache: process-memory entries, lost on restart
- DurableCache: JSON entries on the device storage, lazily expired
- SWRCoordinator: stale-while-revalidate reads across both tiers
"""

from .base import ABSENT, now_ms
from .durable_cache import DurableCache
from .memory_cache import MemoryCache
from .swr import SWRCoordinator, SWRResult

__all__ = ["ABSENT", "now_ms", "DurableCache", "MemoryCache", "SWRCoordinator", "SWRResult"]
