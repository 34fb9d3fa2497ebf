"""
Unit tests for device key-value storage.
"""

import pytest

from tripbuddy_client.storage import KeyValueStorage


class TestKeyValueStorage:
    """Test cases for KeyValueStorage."""

    @pytest.fixture
    async def storage(self, tmp_path):
        """Create KeyValueStorage on a temporary database."""
        storage = KeyValueStorage(tmp_path / "device" / "tripbuddy.db")
        yield storage
        await storage.close()

    @pytest.mark.asyncio
    async def test_set_get_remove(self, storage):
        """Test basic item lifecycle."""
        assert await storage.get_item("user_id") is None

        await storage.set_item("user_id", "user_1")
        await storage.set_item("user_id", "user_2")
        assert await storage.get_item("user_id") == "user_2"

        await storage.remove_item("user_id")
        assert await storage.get_item("user_id") is None

    @pytest.mark.asyncio
    async def test_keys_by_prefix(self, storage):
        """Test prefix scans."""
        await storage.set_item("cache:b", "1")
        await storage.set_item("cache:a", "1")
        await storage.set_item("user_trips", "[]")

        assert await storage.keys("cache:") == ["cache:a", "cache:b"]
        assert len(await storage.keys()) == 3

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        """Test that data persists across connections."""
        path = tmp_path / "tripbuddy.db"
        first = KeyValueStorage(path)
        await first.set_item("user_id", "user_1")
        await first.close()

        second = KeyValueStorage(path)
        try:
            assert await second.get_item("user_id") == "user_1"
        finally:
            await second.close()
