"""
Search fingerprints shared by the service cache and the client caches.
"""

from typing import Optional


def normalize_place(value: str) -> str:
    """Normalize a source/destination for cache fingerprinting."""
    return value.strip().casefold()


def make_cache_key(mode: str, source: str, destination: str, date: Optional[str] = None) -> str:
    """Build the deterministic search fingerprint.

    Format: ``{mode}_{source}_{destination}_{date or 'no-date'}`` with source
    and destination trimmed and case-folded.
    """
    date_part = date.strip() if date and date.strip() else "no-date"
    return f"{mode}_{normalize_place(source)}_{normalize_place(destination)}_{date_part}"


def route_prefix(mode: str, source: str, destination: str) -> str:
    """Prefix shared by every cached date of a route."""
    return f"{mode}_{normalize_place(source)}_{normalize_place(destination)}_"
