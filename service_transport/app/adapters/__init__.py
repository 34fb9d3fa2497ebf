"""
Adapters package for the Transport Service.

Contains wrappers for the service's external collaborators:

- FlightFareClient: the rate-limited RapidAPI flight fare search
- DocumentStore: key-value persistence for trips and search history

Adapters translate collaborator failures into shared errors (or, for the
flight API, into empty results) and stay side-effect free outside of
explicit calls.
"""

from .document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    RedisDocumentStore,
    create_document_store,
)
from .flight_fare_client import FlightFareClient

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "create_document_store",
    "FlightFareClient",
]
