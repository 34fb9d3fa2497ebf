"""
Transport search caching package.

Holds the per-category TTL cache that shields the external flight fare API
and the mock providers from repeated identical searches.
"""

from shared.cache_keys import make_cache_key, normalize_place

from .category_cache import (
    CategoryCache,
    CategoryPartition,
    DEFAULT_CATEGORY_TTLS,
    MODE_CATEGORIES,
)

__all__ = [
    "CategoryCache",
    "CategoryPartition",
    "DEFAULT_CATEGORY_TTLS",
    "MODE_CATEGORIES",
    "make_cache_key",
    "normalize_place",
]
