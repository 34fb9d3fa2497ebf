"""
TripBuddy device library.

Offline-first client for the Transport Service:
- cache: memory and durable tiers behind a stale-while-revalidate reader
- trips: local trip records, device identity and the sync reconciler
- remote: the RemoteResult chokepoint for every server call
- flights: cached, rate-limited flight search
"""

from .client import TripBuddyClient
from .config import ClientConfig
from .remote import FailureReason, RemoteResult, call_remote
from .trips import DeviceIdentity, SyncReconciler, SyncState, TripRecord, TripRecordStore

__all__ = [
    "TripBuddyClient",
    "ClientConfig",
    "FailureReason",
    "RemoteResult",
    "call_remote",
    "DeviceIdentity",
    "SyncReconciler",
    "SyncState",
    "TripRecord",
    "TripRecordStore",
]
