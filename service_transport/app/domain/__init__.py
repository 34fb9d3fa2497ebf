"""
Domain layer for the Transport Service: request models, the remote trip
repository, mock providers and the search service.
"""

from .models import DeleteTripRequest, RemoteTrip, SearchRequest, TransportMode, TripKind, TripRequest
from .search import TransportSearchService
from .trips import TripRepository

__all__ = [
    "DeleteTripRequest",
    "RemoteTrip",
    "SearchRequest",
    "TransportMode",
    "TripKind",
    "TripRequest",
    "TransportSearchService",
    "TripRepository",
]
