"""
Listing facade used by the UI layer.
"""
import asyncio
from typing import Optional, Set

from common_py.logging_config import configure_logging
from filters.filter_resolver import ActiveFilterLevels, DimensionParamBindings, FilterSelection
from pagination.pagination_coordinator import (
    ListingMode,
    PageResult,
    PaginationCoordinator,
    encode_image_payload,
)
from services.exceptions import AuthenticationExpired, ListingUnavailable
from services.preferences import SessionPreferences
from services.token_manager import VisualSearchTokenManager

logger = configure_logging("catalog-query:catalog_service")


class CatalogQueryService:
    """Wraps the coordinator so that listing failures surface as one retryable error.

    A rejected visual search token starts a background refresh and is
    reported as `ListingUnavailable`; the next attempt uses the new token.
    """

    def __init__(
        self,
        coordinator: PaginationCoordinator,
        token_manager: VisualSearchTokenManager,
        preferences: SessionPreferences,
    ):
        self.coordinator = coordinator
        self.token_manager = token_manager
        self.preferences = preferences
        self._background_tasks: Set[asyncio.Task] = set()

    async def browse_category(
        self,
        category_id: str,
        category_level: str,
        page_number: int = 1,
        selection: Optional[FilterSelection] = None,
        bindings: Optional[DimensionParamBindings] = None,
        active_levels: Optional[ActiveFilterLevels] = None,
    ) -> PageResult:
        return await self._fetch(
            ListingMode.CATEGORY_BROWSE,
            page_number,
            selection,
            bindings,
            active_levels,
            category_id=category_id,
            category_level=category_level,
        )

    async def visual_search(
        self,
        page_number: int = 1,
        image_bytes: Optional[bytes] = None,
        continuation_handle: Optional[str] = None,
        selection: Optional[FilterSelection] = None,
        bindings: Optional[DimensionParamBindings] = None,
        active_levels: Optional[ActiveFilterLevels] = None,
    ) -> PageResult:
        # Expiring tokens are replaced before the bearer step reads the store
        await self.token_manager.get_valid_token()
        # Only page 1 carries the image; later pages use the handle
        payload = encode_image_payload(image_bytes) if image_bytes and page_number == 1 else None
        return await self._fetch(
            ListingMode.VISUAL_SEARCH,
            page_number,
            selection,
            bindings,
            active_levels,
            continuation_handle=continuation_handle,
            image_payload=payload,
        )

    async def _fetch(
        self,
        mode: ListingMode,
        page_number: int,
        selection: Optional[FilterSelection],
        bindings: Optional[DimensionParamBindings],
        active_levels: Optional[ActiveFilterLevels],
        **kwargs,
    ) -> PageResult:
        try:
            return await self.coordinator.fetch_page(
                mode,
                page_number,
                selection,
                bindings or DimensionParamBindings(),
                active_levels or {},
                **kwargs,
            )
        except AuthenticationExpired as e:
            logger.warning("Visual search token expired, refreshing in background", mode=mode.value)
            self._schedule_token_refresh()
            raise ListingUnavailable(
                "Listing temporarily unavailable while credentials refresh",
                status_code=401,
                mode=mode.value,
            ) from e

    def _schedule_token_refresh(self) -> None:
        task = asyncio.create_task(self.token_manager.force_refresh())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def wait_for_background_tasks(self) -> None:
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def save_selection(self, selection: FilterSelection) -> None:
        await self.preferences.save_active_filters(selection.to_dict())

    async def load_selection(self) -> Optional[FilterSelection]:
        """Persisted selection, or None when nothing has been saved."""
        data = await self.preferences.active_filters()
        return FilterSelection.from_dict(data) if data is not None else None

    async def clear_selection(self) -> None:
        await self.preferences.clear_active_filters()
