"""
Pytest configuration and shared fixtures for catalog-query tests
"""
import base64
import json
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
SERVICE_ROOT = TESTS_DIR.parent
REPO_ROOT = SERVICE_ROOT.parent.parent
for candidate in (SERVICE_ROOT, REPO_ROOT / "libs" / "common-py"):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from services.preferences import InMemoryKeyValueStore, SessionPreferences  # noqa: E402


class FakeClock:
    """Manually advanced clock for expiry tests"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_jwt(claims: dict) -> str:
    """Unsigned JWT with the given payload claims"""

    def segment(data: dict) -> str:
        raw = json.dumps(data).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{segment({'alg': 'HS256', 'typ': 'JWT'})}.{segment(claims)}.signature"


def make_listing_response(
    results=None,
    current_page=1,
    last_page=1,
    next_page="absent",
    total=None,
    filters=None,
    active_filters=None,
    image_cache=None,
):
    """Listing response in the shape both backends return"""
    results = results if results is not None else [{"id": 1, "name": "Item 1"}]
    amounts = {
        "current_page": current_page,
        "last_page": last_page,
        "total": total if total is not None else len(results),
        "per_page": 20,
    }
    if next_page != "absent":
        amounts["next_page"] = next_page
    data = {
        "products": {
            "results": results,
            "amounts": amounts,
            "filters": filters or [],
            "active_filters": active_filters or [],
        }
    }
    if image_cache is not None:
        data["image_cache"] = image_cache
    return {"data": data}


def make_store_configs_response(
    country_code="RS",
    store_code="rs_sr",
    website_url="https://eu-1.athenasearch.cloud/",
    access_token="store-token",
    wtoken="website-token",
):
    return [
        {
            "country_code": country_code,
            "country_name": "Serbia",
            "storeConfigs": [
                {
                    "id": "1",
                    "name": "Serbian store",
                    "code": store_code,
                    "website_id": "1",
                    "locale": "sr_RS",
                    "base_currency_code": "RSD",
                    "default_display_currency_code": "RSD",
                    "timezone": "Europe/Belgrade",
                    "secure_base_url": "https://www.fashionandfriends.com/rs/",
                    "secure_base_media_url": "https://www.fashionandfriends.com/media/",
                    "athena_search_website_url": website_url,
                    "athena_search_wtoken": wtoken,
                    "athena_search_access_token": access_token,
                }
            ],
        }
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def preferences(kv_store):
    return SessionPreferences(kv_store)
