"""
Persisted session state (selected store, visual search config, token, filters)
on top of an opaque key-value store.
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from common_py.logging_config import configure_logging

logger = configure_logging("catalog-query:preferences")


class KeyValueStore(ABC):
    """Minimal async string key-value interface used for session state."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for development and tests."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; expects a client created with decode_responses=True."""

    def __init__(self, redis_client: Any, key_prefix: str = "catalog-query:"):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(self._key(key), value)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self.redis.delete(*(self._key(k) for k in keys))


class SessionPreferences:
    """Typed accessors over the key-value store."""

    SELECTED_STORE_CODE = "selected_store_code"
    SELECTED_COUNTRY_CODE = "selected_country_code"
    VISUAL_SEARCH_TOKEN = "visual_search_access_token"
    VISUAL_SEARCH_TOKEN_EXPIRES_AT = "visual_search_token_expires_at"
    VISUAL_SEARCH_BASE_URL = "visual_search_website_url"
    VISUAL_SEARCH_WTOKEN = "visual_search_wtoken"
    ACTIVE_FILTERS = "active_filters"
    ENVIRONMENT = "environment"

    def __init__(self, store: KeyValueStore):
        self.store = store

    # Store selection

    async def selected_store(self) -> Tuple[Optional[str], Optional[str]]:
        """(country_code, store_code) of the persisted selection."""
        country_code = await self.store.get(self.SELECTED_COUNTRY_CODE)
        store_code = await self.store.get(self.SELECTED_STORE_CODE)
        return country_code, store_code

    async def save_selected_store(self, country_code: str, store_code: str) -> None:
        await self.store.set(self.SELECTED_COUNTRY_CODE, country_code)
        await self.store.set(self.SELECTED_STORE_CODE, store_code)

    async def clear_selected_store(self) -> None:
        await self.store.delete(self.SELECTED_COUNTRY_CODE, self.SELECTED_STORE_CODE)

    # Visual search config

    async def visual_search_base_url(self) -> Optional[str]:
        return await self.store.get(self.VISUAL_SEARCH_BASE_URL) or None

    async def visual_search_wtoken(self) -> Optional[str]:
        return await self.store.get(self.VISUAL_SEARCH_WTOKEN) or None

    async def save_visual_search_config(self, website_url: str, wtoken: str) -> None:
        await self.store.set(self.VISUAL_SEARCH_BASE_URL, website_url)
        await self.store.set(self.VISUAL_SEARCH_WTOKEN, wtoken)

    # Bearer token

    async def visual_search_token(self) -> Tuple[Optional[str], Optional[float]]:
        token = await self.store.get(self.VISUAL_SEARCH_TOKEN)
        expires_at = await self.store.get(self.VISUAL_SEARCH_TOKEN_EXPIRES_AT)
        try:
            return token, float(expires_at) if expires_at is not None else None
        except ValueError:
            logger.warning("Ignoring malformed persisted token expiry", value=expires_at)
            return token, None

    async def save_visual_search_token(self, token: str, expires_at: float) -> None:
        await self.store.set(self.VISUAL_SEARCH_TOKEN, token)
        await self.store.set(self.VISUAL_SEARCH_TOKEN_EXPIRES_AT, str(expires_at))

    async def clear_visual_search_data(self) -> None:
        await self.store.delete(
            self.VISUAL_SEARCH_TOKEN,
            self.VISUAL_SEARCH_TOKEN_EXPIRES_AT,
            self.VISUAL_SEARCH_BASE_URL,
            self.VISUAL_SEARCH_WTOKEN,
        )

    # Active filter selection

    async def active_filters(self) -> Optional[Dict[str, Any]]:
        raw = await self.store.get(self.ACTIVE_FILTERS)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable persisted filter selection")
            return None

    async def save_active_filters(self, data: Dict[str, Any]) -> None:
        await self.store.set(self.ACTIVE_FILTERS, json.dumps(data))

    async def clear_active_filters(self) -> None:
        await self.store.delete(self.ACTIVE_FILTERS)

    # Environment

    async def environment(self) -> Optional[str]:
        return await self.store.get(self.ENVIRONMENT)

    async def save_environment(self, environment: str) -> None:
        await self.store.set(self.ENVIRONMENT, environment)
