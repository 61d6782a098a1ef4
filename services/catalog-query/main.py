import argparse
import asyncio
import json
import sys
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import redis.asyncio as aioredis

from common_py.error_codes import SystemError
from common_py.logging_config import configure_logging, set_correlation_id
from clients.oauth1_signer import OAuth1Credentials
from clients.primary_api_client import PrimaryApiClient
from clients.service_provisioner import ServiceProvisioner
from clients.visual_search_api_client import VisualSearchApiClient
from config_loader import config
from filters.filter_resolver import FilterSelection
from pagination.pagination_coordinator import PageResult, PaginationCoordinator
from services.catalog_service import CatalogQueryService
from services.preferences import InMemoryKeyValueStore, RedisKeyValueStore, SessionPreferences
from services.store_service import StoreService
from services.token_manager import VisualSearchTokenManager
from services.token_store import TokenStore

logger = configure_logging("catalog-query:main", log_level=config.LOG_LEVEL)


@dataclass
class CatalogContext:
    preferences: SessionPreferences
    store_service: StoreService
    catalog_service: CatalogQueryService


@asynccontextmanager
async def service_context():
    """Context manager for service resources"""
    redis_client = None
    primary_client = None
    provisioner = None
    catalog_service = None

    try:
        if config.USE_IN_MEMORY_PREFERENCES:
            store = InMemoryKeyValueStore()
        else:
            redis_client = aioredis.from_url(config.REDIS_URL, decode_responses=True)
            await redis_client.ping()
            logger.info("Redis connection established")
            store = RedisKeyValueStore(redis_client, key_prefix=config.PREFERENCES_KEY_PREFIX)
        preferences = SessionPreferences(store)

        environment = await preferences.environment() or config.CATALOG_ENVIRONMENT
        credentials = OAuth1Credentials(
            consumer_key=config.OAUTH_CONSUMER_KEY,
            consumer_secret=config.OAUTH_CONSUMER_SECRET,
            access_token=config.OAUTH_ACCESS_TOKEN,
            token_secret=config.OAUTH_TOKEN_SECRET,
        )
        primary_client = PrimaryApiClient(
            credentials, environment=environment, timeout=config.HTTP_TIMEOUT_SECS
        )

        token_store = TokenStore(refresh_margin_secs=config.TOKEN_REFRESH_MARGIN_SECS)
        provisioner = ServiceProvisioner(
            preferences.visual_search_base_url,
            lambda base_url: VisualSearchApiClient(
                base_url, token_store, timeout=config.HTTP_TIMEOUT_SECS
            ),
            default_base_url=config.VISUAL_SEARCH_DEFAULT_BASE_URL,
        )
        token_manager = VisualSearchTokenManager(
            token_store, preferences, primary_client,
            fallback_ttl_secs=config.TOKEN_FALLBACK_TTL_SECS,
        )
        await token_manager.restore()

        store_service = StoreService(primary_client, preferences, token_manager, provisioner)
        coordinator = PaginationCoordinator(
            primary_client,
            provisioner,
            preferences,
            brand_image_source=store_service.get_brand_images,
            customer_group_id=config.CUSTOMER_GROUP_ID,
            default_category_param=config.DEFAULT_CATEGORY_PARAM,
            prefer_consolidated_categories=config.PREFER_CONSOLIDATED_CATEGORIES,
        )
        catalog_service = CatalogQueryService(coordinator, token_manager, preferences)

        yield CatalogContext(preferences, store_service, catalog_service)

    except Exception as e:
        logger.error("Catalog query service error", error=str(e))
        raise
    finally:
        # Background token refreshes finish before their clients close
        if catalog_service:
            await catalog_service.wait_for_background_tasks()
        if provisioner:
            await provisioner.aclose()
        if primary_client:
            await primary_client.aclose()
        if redis_client:
            await redis_client.aclose()
            logger.info("Redis connection closed")


def setup_argument_parser() -> argparse.ArgumentParser:
    """Setup command line argument parser"""
    parser = argparse.ArgumentParser(description="Query store catalogs by category or by image")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stores", help="List countries and stores")

    select = subparsers.add_parser("select-store", help="Select a store and initialise visual search")
    select.add_argument("country_code")
    select.add_argument("store_code")

    environment = subparsers.add_parser("environment", help="Switch the primary API environment")
    environment.add_argument("name", choices=["production", "development"])

    browse = subparsers.add_parser("browse", help="Browse a category listing")
    browse.add_argument("--category", required=True, help="Category id")
    browse.add_argument("--level", required=True, help="Category level")
    browse.add_argument("--page", type=int, default=1)
    _add_filter_arguments(browse)

    visual = subparsers.add_parser("visual-search", help="Search by image")
    visual.add_argument("--image", type=Path, help="Image file (page 1 only)")
    visual.add_argument("--page", type=int, default=1)
    visual.add_argument("--handle", help="Continuation handle from page 1")
    _add_filter_arguments(visual)

    return parser


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    for name in ("gender", "filter-category", "brand", "size", "color"):
        parser.add_argument(f"--{name}", action="append", default=[], metavar="ID")


def _selection_from_args(args: argparse.Namespace) -> Optional[FilterSelection]:
    selection = FilterSelection.of(
        genders=args.gender,
        categories=args.filter_category,
        brands=args.brand,
        sizes=args.size,
        colors=args.color,
    )
    return None if selection.is_empty() else selection


def _page_summary(result: PageResult) -> dict:
    return {
        "current_page": result.current_page,
        "last_page": result.last_page,
        "total_count": result.total_count,
        "has_next_page": result.has_next_page,
        "continuation_handle": result.continuation_handle,
        "items": [{"id": p.id, "sku": p.sku, "name": p.name} for p in result.items],
        "active_filter_levels": {k: sorted(v) for k, v in result.active_filter_levels.items()},
    }


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


async def run_command(args: argparse.Namespace, context: CatalogContext) -> None:
    if args.command == "stores":
        countries = await context.store_service.get_store_configs()
        _print_json([
            {
                "country_code": c.country_code,
                "country_name": c.country_name,
                "stores": [{"code": s.code, "name": s.name} for s in c.stores],
            }
            for c in countries
        ])
    elif args.command == "select-store":
        await context.store_service.select_store(args.country_code, args.store_code)
        store = await context.store_service.refresh_store_config_and_init_visual_search()
        _print_json({"code": store.code, "name": store.name, "currency": store.currency})
    elif args.command == "environment":
        await context.preferences.save_environment(args.name)
        context.store_service.primary_client.set_environment(args.name)
        _print_json({"environment": args.name})
    elif args.command == "browse":
        result = await context.catalog_service.browse_category(
            args.category, args.level, args.page, selection=_selection_from_args(args)
        )
        _print_json(_page_summary(result))
    elif args.command == "visual-search":
        image_bytes = args.image.read_bytes() if args.image else None
        result = await context.catalog_service.visual_search(
            args.page,
            image_bytes=image_bytes,
            continuation_handle=args.handle,
            selection=_selection_from_args(args),
        )
        _print_json(_page_summary(result))


async def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    args = setup_argument_parser().parse_args(argv)
    set_correlation_id(uuid.uuid4().hex)
    try:
        async with service_context() as context:
            await run_command(args, context)
    except SystemError as e:
        logger.error("Command failed", command=args.command, **e.to_dict())
        return 2 if e.retryable else 1
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
