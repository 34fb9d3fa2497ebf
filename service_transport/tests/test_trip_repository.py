"""
Unit tests for the remote trip repository.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from service_transport.app.adapters.document_store import InMemoryDocumentStore
from service_transport.app.domain.models import TripKind
from service_transport.app.domain.trips import TripRepository, trip_key
from shared.errors import NotFoundOrUnauthorizedError, ValidationError
from shared.metrics import MetricsCollector
from shared.test_helpers import TestDataFactory


class TestTripRepository:
    """Test cases for TripRepository."""

    @pytest.fixture
    def store(self):
        """Create an in-memory document store."""
        return InMemoryDocumentStore()

    @pytest.fixture
    def metrics(self):
        """Create a metrics collector."""
        return MetricsCollector("transport")

    @pytest.fixture
    def repository(self, store, metrics):
        """Create TripRepository instance."""
        return TripRepository(store, metrics=metrics)

    @pytest.mark.asyncio
    async def test_sync_inserts_once(self, repository, store, metrics):
        """Test that syncing the same (userId, id) twice stores one record."""
        trip_data = TestDataFactory.create_trip_data()

        first, created_first = await repository.sync_trip("u1", trip_data)
        second, created_second = await repository.sync_trip("u1", trip_data)

        assert created_first is True
        assert created_second is False
        assert second.to_dict() == first.to_dict()
        assert len(store) == 1
        assert first.synced_at is not None
        assert metrics.registry.get_sample_value("trip_sync_total", {"result": "duplicate"}) == 1

    @pytest.mark.asyncio
    async def test_concurrent_syncs_store_once(self, repository, store):
        """Test that racing syncs of one trip create a single document."""
        trip_data = TestDataFactory.create_trip_data()

        outcomes = await asyncio.gather(*[repository.sync_trip("u1", trip_data) for _ in range(5)])

        assert sum(1 for _, created in outcomes if created) == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_same_id_different_users_are_distinct(self, repository, store):
        """Test that identity includes the user id."""
        trip_data = TestDataFactory.create_trip_data()

        await repository.sync_trip("u1", trip_data)
        _, created = await repository.sync_trip("u2", trip_data)

        assert created is True
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_sync_requires_trip_id(self, repository):
        """Test that sync rejects trips without an id."""
        with pytest.raises(ValidationError):
            await repository.sync_trip("u1", {"payload": {"a": 1}})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id,trip_data", [
        ("", {"id": "t1"}),
        (None, {"id": "t1"}),
        ("u1", None),
        ("u1", {}),
        ("bad:user", {"id": "t1"}),
    ])
    async def test_add_validation(self, repository, user_id, trip_data):
        """Test missing user or trip data."""
        with pytest.raises(ValidationError):
            await repository.add_trip(user_id, trip_data)

    @pytest.mark.asyncio
    async def test_add_generates_id_and_is_idempotent(self, repository, store):
        """Test add without an id, then re-add with the stored id."""
        trip = await repository.add_trip("u1", {"flight": {"price": 85.5}})

        assert trip.id.startswith("trip-")
        assert trip.kind is TripKind.SAVED
        assert trip.payload == {"flight": {"price": 85.5}}

        again = await repository.add_trip("u1", {"id": trip.id, "flight": {"price": 99}})
        assert again.payload == {"flight": {"price": 85.5}}
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_nested_payload_is_unwrapped(self, repository):
        """Test that client records keep their payload as-is."""
        trip_data = TestDataFactory.create_trip_data()
        trip = await repository.add_trip("u1", trip_data)

        assert trip.payload == trip_data["payload"]
        assert trip.created_at == trip_data["createdAt"]

    @pytest.mark.asyncio
    async def test_list_newest_first_and_scoped_to_user(self, repository):
        """Test history ordering and ownership."""
        await repository.sync_trip("u1", TestDataFactory.create_trip_data("t-old", "2025-09-01T00:00:00.000Z"))
        await repository.sync_trip("u1", TestDataFactory.create_trip_data("t-new", "2025-09-07T00:00:00.000Z"))
        await repository.sync_trip("u2", TestDataFactory.create_trip_data("t-other", "2025-09-08T00:00:00.000Z"))
        search = await repository.record_search("u1", {"source": "DEL", "destination": "BOM", "mode": "flights"})

        trips = await repository.list_trips("u1")

        assert [trip.id for trip in trips] == [search.id, "t-new", "t-old"]
        assert trips[0].kind is TripKind.SEARCH

    @pytest.mark.asyncio
    async def test_user_prefix_does_not_leak(self, repository):
        """Test that user 'u1' does not see user 'u10'."""
        await repository.sync_trip("u10", TestDataFactory.create_trip_data("t1"))
        assert await repository.list_trips("u1") == []

    @pytest.mark.asyncio
    async def test_delete_own_trip(self, repository, store):
        """Test deleting an owned trip."""
        await repository.sync_trip("u1", TestDataFactory.create_trip_data("t1"))

        await repository.delete_trip("t1", "u1")

        assert await store.get(trip_key("u1", "t1")) is None

    @pytest.mark.asyncio
    async def test_delete_missing_or_foreign_trip(self, repository):
        """Test that missing and foreign trips are indistinguishable."""
        await repository.sync_trip("u1", TestDataFactory.create_trip_data("t1"))

        with pytest.raises(NotFoundOrUnauthorizedError) as foreign:
            await repository.delete_trip("t1", "u2")
        with pytest.raises(NotFoundOrUnauthorizedError) as missing:
            await repository.delete_trip("nope", "u1")

        assert foreign.value.message == "Trip not found or unauthorized"
        assert missing.value.message == foreign.value.message

    @pytest.mark.asyncio
    async def test_list_ignores_documents_of_other_users(self):
        """Test that documents returned for a wildcard-like user id are dropped."""
        store = AsyncMock()
        store.list.return_value = [
            {"id": "t1", "userId": "alice", "kind": "saved", "payload": {}, "createdAt": "2025-09-07T00:00:00.000Z"},
            {"id": "t2", "userId": "bob", "kind": "saved", "payload": {}, "createdAt": "2025-09-08T00:00:00.000Z"},
        ]
        repository = TripRepository(store)

        assert await repository.list_trips("*") == []
        assert [trip.id for trip in await repository.list_trips("alice")] == ["t1"]
