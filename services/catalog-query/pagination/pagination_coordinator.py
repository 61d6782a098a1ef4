"""
Page-by-page listing fetches for catalog browse and visual search.

The coordinator keeps no state between calls: every `PageResult` carries the
parameter bindings, active filter levels and continuation handle the caller
must pass into the next `fetch_page`.
"""
import base64
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Sequence

from common_py.logging_config import configure_logging
from filters.filter_options import FilterOptions, active_filter_levels, build_filter_options
from filters.filter_resolver import (
    DEFAULT_CATEGORY_PARAM,
    ActiveFilterLevels,
    DimensionParamBindings,
    FilterSelection,
    resolve_or_none,
)
from models.product import Product
from models.store import BrandImage
from services.exceptions import (
    ContinuationTokenMissing,
    InvalidPageRequest,
    ListingUnavailable,
    PrimaryApiError,
)

logger = configure_logging("catalog-query:pagination_coordinator")

BrandImageSource = Callable[[], Awaitable[List[BrandImage]]]


class ListingMode(Enum):
    CATEGORY_BROWSE = "category_browse"
    VISUAL_SEARCH = "visual_search"


@dataclass(frozen=True)
class PageResult:
    items: List[Product]
    has_next_page: bool
    current_page: int
    last_page: int
    total_count: int
    bindings: DimensionParamBindings
    active_filter_levels: Dict[str, FrozenSet[str]]
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    continuation_handle: Optional[str] = None


def encode_image_payload(image_bytes: bytes) -> str:
    """Base64 image body for the first visual search page."""
    return base64.b64encode(image_bytes).decode("ascii")


def has_next_page(amounts: Dict[str, Any], current_page: int, last_page: int) -> bool:
    """The server decides: a reported `next_page`, or current < last."""
    return amounts.get("next_page") is not None or current_page < last_page


def parse_listing_response(
    data: Any,
    mode: ListingMode,
    requested_page: int,
    prior_bindings: DimensionParamBindings,
    brand_images: Sequence[BrandImage] = (),
    prefer_consolidated_categories: bool = False,
    continuation_handle: Optional[str] = None,
) -> PageResult:
    """Build a PageResult from a complete listing response.

    Raises:
        ListingUnavailable: If the body does not have the listing shape.
    """
    try:
        payload = data["data"]
        products = payload.get("products") or {}
        amounts = products.get("amounts") or {}
        items = [Product.from_api_response(p) for p in products.get("results") or []]
        current_page = int(amounts.get("current_page") or requested_page)
        last_page = int(amounts.get("last_page") or current_page)
        total_count = int(amounts.get("total") or 0)
        raw_filters = products.get("filters") or []
        raw_active = products.get("active_filters") or []
        handle = payload.get("image_cache") if mode is ListingMode.VISUAL_SEARCH else None
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        logger.error("Unparseable listing response", mode=mode.value, error=str(e))
        raise ListingUnavailable(f"Unparseable listing response: {e}", mode=mode.value) from e

    filter_options = build_filter_options(
        raw_filters, raw_active, brand_images, prefer_consolidated_categories
    )
    return PageResult(
        items=items,
        has_next_page=has_next_page(amounts, current_page, last_page),
        current_page=current_page,
        last_page=last_page,
        total_count=total_count,
        bindings=prior_bindings.merged_with(filter_options.bindings),
        active_filter_levels=active_filter_levels(raw_active),
        filter_options=filter_options,
        continuation_handle=handle or (continuation_handle if mode is ListingMode.VISUAL_SEARCH else None),
    )


class PaginationCoordinator:
    """Issues listing requests for both modes and parses the responses."""

    def __init__(
        self,
        primary_client,
        provisioner,
        preferences,
        brand_image_source: Optional[BrandImageSource] = None,
        customer_group_id: int = 0,
        default_category_param: str = DEFAULT_CATEGORY_PARAM,
        prefer_consolidated_categories: bool = False,
    ):
        self.primary_client = primary_client
        self.provisioner = provisioner
        self.preferences = preferences
        self.brand_image_source = brand_image_source
        self.customer_group_id = customer_group_id
        self.default_category_param = default_category_param
        self.prefer_consolidated_categories = prefer_consolidated_categories

    async def fetch_page(
        self,
        mode: ListingMode,
        page_number: int,
        selection: Optional[FilterSelection],
        prior_bindings: DimensionParamBindings,
        prior_active_filter_levels: ActiveFilterLevels,
        continuation_handle: Optional[str] = None,
        image_payload: Optional[str] = None,
        category_id: Optional[str] = None,
        category_level: Optional[str] = None,
    ) -> PageResult:
        """
        Fetch one listing page.

        Raises:
            ContinuationTokenMissing: Visual search page > 1 without the handle
                returned by page 1.
            InvalidPageRequest: Page < 1, visual search page 1 without an
                image, or category browse without a category.
            ListingUnavailable: The backend failed or returned an unusable body.
            AuthenticationExpired: The visual search API rejected the token.
        """
        self._validate(mode, page_number, continuation_handle, image_payload, category_id, category_level)

        filter_params = resolve_or_none(
            selection, prior_bindings, prior_active_filter_levels, self.default_category_param
        ) or {}

        start_time = time.time()
        if mode is ListingMode.CATEGORY_BROWSE:
            data = await self._fetch_category_page(page_number, category_id, category_level, filter_params)
        else:
            data = await self._fetch_visual_search_page(
                page_number, continuation_handle, image_payload, filter_params
            )

        brand_images = await self.brand_image_source() if self.brand_image_source else []
        result = parse_listing_response(
            data,
            mode,
            page_number,
            prior_bindings,
            brand_images=brand_images,
            prefer_consolidated_categories=self.prefer_consolidated_categories,
            continuation_handle=continuation_handle,
        )
        logger.info(
            "Fetched listing page",
            mode=mode.value,
            page=result.current_page,
            last_page=result.last_page,
            items=len(result.items),
            has_next_page=result.has_next_page,
            latency=round(time.time() - start_time, 3),
        )
        return result

    def _validate(
        self,
        mode: ListingMode,
        page_number: int,
        continuation_handle: Optional[str],
        image_payload: Optional[str],
        category_id: Optional[str],
        category_level: Optional[str],
    ) -> None:
        if page_number < 1:
            raise InvalidPageRequest(f"Page number must be >= 1, got {page_number}",
                                     mode=mode.value, page_number=page_number)
        if mode is ListingMode.VISUAL_SEARCH:
            if page_number > 1 and not continuation_handle:
                raise ContinuationTokenMissing(page_number)
            if page_number == 1 and not image_payload:
                raise InvalidPageRequest("Visual search page 1 requires an image payload",
                                         mode=mode.value, page_number=page_number)
        elif not category_id or not category_level:
            raise InvalidPageRequest("Category browse requires a category id and level",
                                     mode=mode.value, page_number=page_number)

    async def _fetch_category_page(
        self,
        page_number: int,
        category_id: str,
        category_level: str,
        filter_params: Dict[str, str],
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "category": category_id,
            "level": category_level,
            "customer_group_id": self.customer_group_id,
            "page": page_number,
        }
        params.update(filter_params)
        try:
            return await self.primary_client.get_category_products(params)
        except PrimaryApiError as e:
            raise ListingUnavailable(
                f"Category listing failed: {e.message}",
                status_code=e.status_code,
                mode=ListingMode.CATEGORY_BROWSE.value,
            ) from e

    async def _fetch_visual_search_page(
        self,
        page_number: int,
        continuation_handle: Optional[str],
        image_payload: Optional[str],
        filter_params: Dict[str, str],
    ) -> Dict[str, Any]:
        wtoken = await self.preferences.visual_search_wtoken()
        if not wtoken:
            logger.warning("No visual search website token configured")
        body: Dict[str, Any] = {
            "token": wtoken or "",
            "image": image_payload if page_number == 1 else continuation_handle,
            "customer_group_id": self.customer_group_id,
            "page": page_number,
        }
        body.update(filter_params)
        client = await self.provisioner.get_client()
        return await client.visual_search(body)
