"""
OAuth1-signed client for the primary store API.
"""
import time
from typing import Any, Dict, List, Optional

import httpx

from common_py.logging_config import configure_logging
from config_loader import PRODUCTION_BASE_URL, config
from models.store import BrandImage, CountryStore
from services.exceptions import PrimaryApiError
from .oauth1_signer import OAuth1Credentials
from .request_pipeline import (
    RequestPipeline,
    base_url_rewrite_step,
    logging_step,
    oauth1_step,
)

logger = configure_logging("catalog-query:primary_api_client")


class PrimaryApiClient:
    """Store configs, store locations, brand images and category listings.

    Requests are addressed to the canonical production host and rewritten to
    the active environment before they are signed.
    """

    def __init__(
        self,
        credentials: OAuth1Credentials,
        environment: str = "production",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.environment = environment
        self.pipeline = RequestPipeline([
            base_url_rewrite_step(config.PRIMARY_CANONICAL_HOST, self.environment_base_url),
            oauth1_step(credentials),
            logging_step(logger),
        ])
        self.client = httpx.AsyncClient(
            base_url=f"{PRODUCTION_BASE_URL}{config.PRIMARY_API_PATH}",
            auth=self.pipeline,
            timeout=timeout,
            transport=transport,
        )

    def environment_base_url(self) -> str:
        return config.primary_base_url_for(self.environment)

    def set_environment(self, environment: str) -> None:
        """Switch environments; applies from the next request on."""
        if environment != self.environment:
            logger.info("Primary API environment changed", old=self.environment, new=environment)
        self.environment = environment

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Primary API request failed", method=method, url=url, error=str(e))
            raise PrimaryApiError(f"Request to primary API failed: {e}", url=url) from e

        if not response.is_success:
            logger.error(
                "Primary API returned error status",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise PrimaryApiError(
                f"Primary API returned HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PrimaryApiError(
                f"Primary API returned a non-JSON body: {e}",
                status_code=response.status_code,
                url=url,
            ) from e

        logger.debug(
            "Primary API request completed",
            method=method,
            url=url,
            latency=round(time.time() - start_time, 3),
        )
        return data

    async def get_store_configs(self) -> List[CountryStore]:
        data = await self._request("GET", "store/storeConfigs")
        return [CountryStore.from_api_response(item) for item in data or []]

    async def get_store_locations(self, country_code: str) -> List[Dict[str, Any]]:
        cc = country_code.lower()
        url = f"{PRODUCTION_BASE_URL}{cc}/rest/V1/store-locator/locations/{cc}"
        return await self._request("GET", url) or []

    async def get_brand_images(self) -> List[BrandImage]:
        data = await self._request("POST", f"{PRODUCTION_BASE_URL}rest/V1/brands-info")
        images = (BrandImage.from_api_response(item) for item in data or [])
        return [image for image in images if image is not None]

    async def get_category_products(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Raw listing response for a category page."""
        return await self._request("GET", "category/products", params=params)

    async def aclose(self) -> None:
        await self.client.aclose()
