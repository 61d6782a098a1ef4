from typing import List, Optional

from common_py.error_codes import SystemError
from common_py.logging_config import configure_logging
from models.store import (
    BrandImage,
    CountryStore,
    StoreConfig,
    StoreLocation,
    find_store_config,
)
from services.exceptions import StoreNotFound, StoreNotSelected
from services.preferences import SessionPreferences
from services.token_manager import VisualSearchTokenManager

logger = configure_logging("catalog-query:store_service")


class StoreService:
    """Store selection and store-scoped lookups"""

    def __init__(
        self,
        primary_client,
        preferences: SessionPreferences,
        token_manager: VisualSearchTokenManager,
        provisioner,
    ):
        self.primary_client = primary_client
        self.preferences = preferences
        self.token_manager = token_manager
        self.provisioner = provisioner
        self._brand_images: Optional[List[BrandImage]] = None

    async def get_store_configs(self) -> List[CountryStore]:
        countries = await self.primary_client.get_store_configs()
        logger.info("Loaded store configs",
                    countries=len(countries),
                    stores=sum(len(c.stores) for c in countries))
        return countries

    async def select_store(self, country_code: str, store_code: str) -> None:
        """Persist the selection; the visual search token and client are dropped."""
        await self.preferences.save_selected_store(country_code, store_code)
        await self.token_manager.clear()
        await self.provisioner.invalidate()
        logger.info("Store selected", country_code=country_code, store_code=store_code)

    async def clear_selected_store(self) -> None:
        await self.preferences.clear_selected_store()
        await self.token_manager.clear()
        await self.provisioner.invalidate()
        logger.info("Store selection cleared")

    async def refresh_store_config_and_init_visual_search(self) -> StoreConfig:
        """
        Re-read the selected store's config and prepare visual search.

        Persists the store's visual search base URL and website token, then
        makes sure a bearer token is available, with the store config token
        as fallback.

        Raises:
            StoreNotSelected: If no store selection is persisted.
            StoreNotFound: If the selected store is missing from the response.
        """
        country_code, store_code = await self.preferences.selected_store()
        if not country_code or not store_code:
            raise StoreNotSelected()

        logger.info("Refreshing store config", country_code=country_code, store_code=store_code)
        countries = await self.primary_client.get_store_configs()
        store = find_store_config(countries, country_code, store_code)
        if store is None:
            raise StoreNotFound(country_code, store_code)

        await self.preferences.save_visual_search_config(
            store.visual_search_website_url, store.visual_search_wtoken
        )
        token = await self.token_manager.get_valid_token(
            fallback_token=store.visual_search_access_token or None
        )
        if token:
            logger.info("Visual search ready", base_url=store.visual_search_website_url)
        else:
            logger.warning("Visual search token unavailable, even with fallback",
                           store_code=store_code)
        return store

    async def get_store_locations(self, country_code: str) -> List[StoreLocation]:
        """Physical stores for a country, image URLs resolved against the media URL."""
        raw_locations = await self.primary_client.get_store_locations(country_code)
        media_url = await self._media_url_for(country_code)
        return [StoreLocation.from_api_response(item, media_url) for item in raw_locations]

    async def _media_url_for(self, country_code: str) -> str:
        selected_country, selected_store = await self.preferences.selected_store()
        countries = await self.primary_client.get_store_configs()
        country = next(
            (c for c in countries if c.country_code.lower() == country_code.lower()), None
        )
        if country is None or not country.stores:
            logger.warning("No store config for country, image URLs left relative",
                           country_code=country_code)
            return ""
        store = None
        if selected_country and selected_country.lower() == country_code.lower():
            store = country.find_store(selected_store or "")
        return (store or country.stores[0]).secure_base_media_url

    async def get_brand_images(self) -> List[BrandImage]:
        """Brand logos, fetched once per process. Failures degrade to an empty list."""
        if self._brand_images is not None:
            return self._brand_images
        try:
            self._brand_images = await self.primary_client.get_brand_images()
            logger.info("Loaded brand images", count=len(self._brand_images))
        except SystemError as e:
            logger.error("Failed to fetch brand images", error=e.message)
            return []
        return self._brand_images
