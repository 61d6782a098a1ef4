import asyncio
from typing import Awaitable, Callable, List, Optional

from common_py.logging_config import configure_logging
from .visual_search_api_client import VisualSearchApiClient

logger = configure_logging("catalog-query:service_provisioner")

DEFAULT_VISUAL_SEARCH_BASE_URL = "https://eu-1.athenasearch.cloud/"

ClientFactory = Callable[[str], VisualSearchApiClient]
BaseUrlSource = Callable[[], Awaitable[Optional[str]]]


class ServiceProvisioner:
    """
    Caches a visual search client for the currently configured base URL and
    rebuilds it when that URL changes.

    Replaced clients are retired rather than closed because requests started
    through them may still be in flight; `aclose()` closes all of them.
    """

    def __init__(
        self,
        base_url_source: BaseUrlSource,
        client_factory: ClientFactory,
        default_base_url: str = DEFAULT_VISUAL_SEARCH_BASE_URL,
    ) -> None:
        self._base_url_source = base_url_source
        self._client_factory = client_factory
        self._default_base_url = default_base_url
        self._client: Optional[VisualSearchApiClient] = None
        self._base_url: Optional[str] = None
        self._retired: List[VisualSearchApiClient] = []
        self._lock = asyncio.Lock()

    @property
    def cached_base_url(self) -> Optional[str]:
        return self._base_url

    async def _current_base_url(self) -> str:
        base_url = await self._base_url_source()
        if not base_url:
            logger.warning(
                "No visual search base URL configured, using default endpoint",
                default_base_url=self._default_base_url,
            )
            return self._default_base_url
        return base_url

    async def get_client(self) -> VisualSearchApiClient:
        """Return the client bound to the current base URL."""
        async with self._lock:
            base_url = await self._current_base_url()
            if self._client is not None and self._base_url == base_url:
                return self._client

            if self._client is not None:
                logger.info("Visual search base URL changed, rebuilding client",
                            old_base_url=self._base_url, new_base_url=base_url)
                self._retired.append(self._client)
            else:
                logger.debug("Building visual search client", base_url=base_url)

            self._client = self._client_factory(base_url)
            self._base_url = base_url
            return self._client

    async def invalidate(self) -> None:
        """Drop the cached client; the next `get_client()` builds a fresh one."""
        async with self._lock:
            if self._client is not None:
                self._retired.append(self._client)
            self._client = None
            self._base_url = None
        logger.debug("Visual search client invalidated")

    async def aclose(self) -> None:
        async with self._lock:
            clients = self._retired + ([self._client] if self._client is not None else [])
            self._client = None
            self._base_url = None
            self._retired = []
        for client in clients:
            await client.aclose()
