"""
Unit tests for session preferences over in-memory and Redis key-value stores.
"""
from unittest.mock import AsyncMock

import pytest

from services.preferences import KeyValueStore, RedisKeyValueStore, SessionPreferences

pytestmark = pytest.mark.unit


class TestSessionPreferences:
    @pytest.mark.asyncio
    async def test_selected_store_round_trip_and_clear(self, preferences):
        assert await preferences.selected_store() == (None, None)
        await preferences.save_selected_store("RS", "rs_sr")
        assert await preferences.selected_store() == ("RS", "rs_sr")
        await preferences.clear_selected_store()
        assert await preferences.selected_store() == (None, None)

    @pytest.mark.asyncio
    async def test_visual_search_token_with_expiry(self, preferences):
        await preferences.save_visual_search_token("tok", 1700000300.5)
        assert await preferences.visual_search_token() == ("tok", 1700000300.5)

    @pytest.mark.asyncio
    async def test_malformed_expiry_is_ignored(self, preferences, kv_store):
        await kv_store.set(SessionPreferences.VISUAL_SEARCH_TOKEN, "tok")
        await kv_store.set(SessionPreferences.VISUAL_SEARCH_TOKEN_EXPIRES_AT, "soon")
        assert await preferences.visual_search_token() == ("tok", None)

    @pytest.mark.asyncio
    async def test_empty_visual_search_config_reads_as_none(self, preferences):
        await preferences.save_visual_search_config("", "")
        assert await preferences.visual_search_base_url() is None
        assert await preferences.visual_search_wtoken() is None

    @pytest.mark.asyncio
    async def test_clear_visual_search_data_keeps_store_selection(self, preferences):
        await preferences.save_selected_store("RS", "rs_sr")
        await preferences.save_visual_search_config("https://vs.example.com/", "w")
        await preferences.save_visual_search_token("tok", 1.0)

        await preferences.clear_visual_search_data()

        assert await preferences.visual_search_base_url() is None
        assert await preferences.visual_search_token() == (None, None)
        assert await preferences.selected_store() == ("RS", "rs_sr")

    @pytest.mark.asyncio
    async def test_active_filters_json(self, preferences, kv_store):
        await preferences.save_active_filters({"brand": ["12", "7"]})
        assert await preferences.active_filters() == {"brand": ["12", "7"]}

        await kv_store.set(SessionPreferences.ACTIVE_FILTERS, "{not json")
        assert await preferences.active_filters() is None

        await preferences.clear_active_filters()
        assert await preferences.active_filters() is None

    @pytest.mark.asyncio
    async def test_environment(self, preferences):
        assert await preferences.environment() is None
        await preferences.save_environment("development")
        assert await preferences.environment() == "development"


class TestRedisKeyValueStore:
    """Test cases for the Redis adapter with a mocked client"""

    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self):
        redis = AsyncMock()
        redis.get.return_value = "value"
        store = RedisKeyValueStore(redis, key_prefix="cq:")

        assert await store.get("k") == "value"
        await store.set("k", "v")
        await store.delete("a", "b")

        redis.get.assert_awaited_once_with("cq:k")
        redis.set.assert_awaited_once_with("cq:k", "v")
        redis.delete.assert_awaited_once_with("cq:a", "cq:b")

    @pytest.mark.asyncio
    async def test_delete_without_keys_is_noop(self):
        redis = AsyncMock()
        await RedisKeyValueStore(redis).delete()
        redis.delete.assert_not_awaited()


class TestKeyValueStoreInterface:
    def test_interface_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            KeyValueStore()

    def test_partial_implementation_rejected(self):
        class GetOnlyStore(KeyValueStore):
            async def get(self, key):
                return None

        with pytest.raises(TypeError):
            GetOnlyStore()
