"""
In-memory bearer token holder for the visual search API.
"""
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from common_py.logging_config import configure_logging

logger = configure_logging("catalog-query:token_store")

# Refresh when less than this many seconds remain
DEFAULT_REFRESH_MARGIN_SECS = 300


class TokenState(Enum):
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


@dataclass(frozen=True)
class BearerToken:
    """Token string plus absolute expiry (unix seconds)."""
    value: str
    expires_at: float


class TokenStore:
    """Holds one bearer token and answers freshness questions about it.

    Reads take a single reference to an immutable snapshot and never lock;
    `save`, `restore` and `clear` swap the snapshot under a lock.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        refresh_margin_secs: int = DEFAULT_REFRESH_MARGIN_SECS,
    ):
        self._clock = clock
        self.refresh_margin_secs = refresh_margin_secs
        self._snapshot: Optional[BearerToken] = None
        self._write_lock = threading.Lock()

    def save(self, token: str, ttl_seconds: float) -> BearerToken:
        """Store `token` expiring `ttl_seconds` from now."""
        snapshot = BearerToken(value=token, expires_at=self._clock() + ttl_seconds)
        with self._write_lock:
            self._snapshot = snapshot
        logger.debug("Bearer token saved", ttl_seconds=ttl_seconds)
        return snapshot

    def restore(self, token: str, expires_at: float) -> BearerToken:
        """Rehydrate from persisted state keeping the original expiry."""
        snapshot = BearerToken(value=token, expires_at=expires_at)
        with self._write_lock:
            self._snapshot = snapshot
        return snapshot

    def clear(self) -> None:
        with self._write_lock:
            self._snapshot = None
        logger.debug("Bearer token cleared")

    def snapshot(self) -> Optional[BearerToken]:
        return self._snapshot

    def current_token(self) -> Optional[str]:
        snapshot = self._snapshot
        return snapshot.value if snapshot else None

    def state(self) -> TokenState:
        snapshot = self._snapshot
        if snapshot is None:
            return TokenState.NO_TOKEN
        remaining = snapshot.expires_at - self._clock()
        if remaining <= 0:
            return TokenState.EXPIRED
        if remaining < self.refresh_margin_secs:
            return TokenState.EXPIRING_SOON
        return TokenState.VALID

    def is_expired_or_expiring_soon(self) -> bool:
        """True when fewer than `refresh_margin_secs` remain, or there is no token."""
        return self.state() is not TokenState.VALID
