"""
Bearer-authenticated client for the visual search API.
"""
from typing import Any, Dict, Optional

import httpx

from common_py.logging_config import configure_logging
from services.exceptions import AuthenticationExpired, ListingUnavailable
from services.token_store import TokenStore
from .request_pipeline import (
    RequestPipeline,
    base_url_rewrite_step,
    bearer_auth_step,
    logging_step,
)

logger = configure_logging("catalog-query:visual_search_api_client")

VISUAL_SEARCH_PATH = "api/v2/visual-similarity-search"


class VisualSearchApiClient:
    """Client bound to one base URL for its whole lifetime.

    The bearer token is read from the token store on every request, so
    token changes never require a new client.

    Pipeline order is bearer auth, then logging, then base URL rewrite. The
    rewrite targets this client's own host and base URL, so it passes
    requests through unchanged; a new base URL means a new client from the
    provisioner.
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url.endswith("/"):
            base_url = f"{base_url}/"
        self.base_url = base_url
        bound_host = httpx.URL(base_url).host
        self.pipeline = RequestPipeline([
            bearer_auth_step(token_store),
            logging_step(logger),
            base_url_rewrite_step(bound_host, lambda: self.base_url),
        ])
        self.client = httpx.AsyncClient(
            base_url=base_url,
            auth=self.pipeline,
            timeout=timeout,
            transport=transport,
        )

    async def visual_search(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a visual similarity search and return the raw listing response.

        Raises:
            AuthenticationExpired: On HTTP 401.
            ListingUnavailable: On any other failure status, network error or
                unparseable body.
        """
        url = f"{self.base_url}{VISUAL_SEARCH_PATH}"
        try:
            response = await self.client.post(VISUAL_SEARCH_PATH, json=body)
        except httpx.HTTPError as e:
            logger.error("Visual search request failed", url=url, error=str(e))
            raise ListingUnavailable(f"Visual search request failed: {e}", mode="visual_search") from e

        if response.status_code == 401:
            logger.warning("Visual search token rejected", url=url)
            raise AuthenticationExpired("Visual search API returned 401", url=url)
        if not response.is_success:
            logger.error("Visual search returned error status", url=url, status_code=response.status_code)
            raise ListingUnavailable(
                f"Visual search API returned HTTP {response.status_code}",
                status_code=response.status_code,
                mode="visual_search",
            )
        try:
            return response.json()
        except ValueError as e:
            raise ListingUnavailable(
                f"Visual search API returned a non-JSON body: {e}",
                status_code=response.status_code,
                mode="visual_search",
            ) from e

    async def aclose(self) -> None:
        await self.client.aclose()
