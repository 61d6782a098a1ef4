"""
Visual search bearer token lifecycle: refresh from store config, JWT expiry
decoding, persistence and startup restore.
"""
import asyncio
import base64
import json
import time
from typing import Callable, Dict, Optional

from common_py.error_codes import SystemError
from common_py.logging_config import configure_logging
from models.store import find_store_config
from services.preferences import SessionPreferences
from services.token_store import TokenStore

logger = configure_logging("catalog-query:token_manager")

FALLBACK_TTL_SECS = 365 * 24 * 60 * 60


class VisualSearchTokenManager:
    """Serialises token refreshes for the visual search API.

    Refresh failures are logged and reported as ``None``; callers continue
    unauthenticated and rely on a 401 to trigger the next attempt.
    """

    def __init__(
        self,
        token_store: TokenStore,
        preferences: SessionPreferences,
        primary_client,
        fallback_ttl_secs: int = FALLBACK_TTL_SECS,
        clock: Callable[[], float] = time.time,
    ):
        self.token_store = token_store
        self.preferences = preferences
        self.primary_client = primary_client
        self.fallback_ttl_secs = fallback_ttl_secs
        self._clock = clock
        self._lock = asyncio.Lock()
        # token -> exp claim (unix seconds)
        self._jwt_expiry_cache: Dict[str, Optional[float]] = {}

    async def get_valid_token(self, fallback_token: Optional[str] = None) -> Optional[str]:
        """Current token if fresh, otherwise a refreshed one.

        When the refresh fails and `fallback_token` is given, the fallback is
        stored and returned instead.
        """
        async with self._lock:
            current = self.token_store.current_token()
            if current and not self.token_store.is_expired_or_expiring_soon():
                logger.debug("Using existing visual search token")
                return current

            logger.info("Visual search token expired or missing, refreshing",
                        state=self.token_store.state().value)
            token = await self._refresh_from_store_config()
            if token is None and fallback_token:
                logger.warning("Token refresh failed, using store config fallback token")
                await self._save_token(fallback_token)
                token = fallback_token
            return token

    async def force_refresh(self) -> Optional[str]:
        """Refresh regardless of the current token state (used after a 401)."""
        async with self._lock:
            logger.info("Force refreshing visual search token")
            return await self._refresh_from_store_config()

    async def restore(self) -> bool:
        """Load a persisted token into the token store. Returns True if one was found."""
        token, expires_at = await self.preferences.visual_search_token()
        if not token or expires_at is None:
            return False
        self.token_store.restore(token, expires_at)
        logger.info("Restored persisted visual search token",
                    state=self.token_store.state().value)
        return True

    async def clear(self) -> None:
        self.token_store.clear()
        await self.preferences.clear_visual_search_data()
        self._jwt_expiry_cache.clear()
        logger.debug("Visual search token, config and JWT cache cleared")

    async def _refresh_from_store_config(self) -> Optional[str]:
        country_code, store_code = await self.preferences.selected_store()
        if not country_code or not store_code:
            logger.error("Cannot refresh visual search token: no store selected")
            return None

        try:
            countries = await self.primary_client.get_store_configs()
        except SystemError as e:
            logger.error("Failed to fetch store configs for token refresh",
                         error_code=e.error_code.value, error=e.message)
            return None

        store = find_store_config(countries, country_code, store_code)
        if store is None:
            logger.error("Selected store not found in store config",
                         country_code=country_code, store_code=store_code)
            return None

        token = store.visual_search_access_token
        if not token:
            logger.error("Store config carries no visual search token", store_code=store_code)
            return None

        await self.preferences.save_visual_search_config(
            store.visual_search_website_url, store.visual_search_wtoken
        )
        await self._save_token(token)
        logger.info("Visual search token refreshed from store config",
                    country_code=country_code, store_code=store_code)
        return token

    async def _save_token(self, token: str) -> None:
        snapshot = self.token_store.save(token, self.ttl_seconds(token))
        await self.preferences.save_visual_search_token(snapshot.value, snapshot.expires_at)

    def ttl_seconds(self, token: str) -> float:
        """Seconds until the JWT `exp` claim, or the fallback TTL.

        The fallback applies when the token is not a JWT, has no usable
        `exp`, or is already expired.
        """
        if token not in self._jwt_expiry_cache:
            self._jwt_expiry_cache[token] = decode_jwt_expiry(token)
        exp = self._jwt_expiry_cache[token]
        if exp is None:
            return self.fallback_ttl_secs
        remaining = exp - self._clock()
        if remaining <= 0:
            logger.warning("Visual search JWT already expired, using fallback TTL")
            return self.fallback_ttl_secs
        return remaining


def decode_jwt_expiry(token: str) -> Optional[float]:
    """The `exp` claim of an unverified JWT, or None if it cannot be read."""
    parts = token.split(".")
    if len(parts) != 3:
        logger.warning("Visual search token is not a JWT")
        return None
    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (ValueError, UnicodeEncodeError) as e:
        logger.warning("Could not decode JWT payload", error=str(e))
        return None
    exp = claims.get("exp") if isinstance(claims, dict) else None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        logger.warning("JWT carries no numeric exp claim")
        return None
    return float(exp)
