"""
Unit tests for the primary (OAuth1) and visual search (bearer) API clients.
"""
import json

import httpx
import pytest

from clients.oauth1_signer import OAuth1Credentials
from clients.primary_api_client import PrimaryApiClient
from clients.visual_search_api_client import VisualSearchApiClient
from common_py.error_codes import ErrorCode
from conftest import make_listing_response, make_store_configs_response
from services.exceptions import AuthenticationExpired, ListingUnavailable, PrimaryApiError
from services.token_store import TokenStore

pytestmark = pytest.mark.unit

CREDENTIALS = OAuth1Credentials("ck", "cs", "at", "ts")


def mock_transport(seen, status_code=200, payload=None, content=None):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=payload if payload is not None else {})

    return httpx.MockTransport(handler)


class TestPrimaryApiClient:
    """Test cases for the OAuth1-signed store API client"""

    @pytest.mark.asyncio
    async def test_get_store_configs_signed_and_parsed(self):
        seen = []
        client = PrimaryApiClient(
            CREDENTIALS, transport=mock_transport(seen, payload=make_store_configs_response())
        )
        countries = await client.get_store_configs()
        await client.aclose()

        assert str(seen[0].url) == "https://www.fashionandfriends.com/rest/V1/mobile/store/storeConfigs"
        assert seen[0].headers["Authorization"].startswith("OAuth ")
        assert countries[0].country_code == "RS"
        assert countries[0].stores[0].visual_search_wtoken == "website-token"

    @pytest.mark.asyncio
    async def test_development_environment_rewrites_host(self):
        seen = []
        client = PrimaryApiClient(
            CREDENTIALS, environment="development", transport=mock_transport(seen, payload={})
        )
        await client.get_category_products({"category": "5", "page": 1})
        client.set_environment("production")
        await client.get_category_products({"category": "5", "page": 1})
        await client.aclose()

        assert seen[0].url.host == "develop-pm.fashionandfriends.com"
        assert seen[0].url.path == "/rest/V1/mobile/category/products"
        assert seen[0].url.params["category"] == "5"
        assert seen[1].url.host == "www.fashionandfriends.com"

    @pytest.mark.asyncio
    async def test_store_locations_url(self):
        seen = []
        client = PrimaryApiClient(CREDENTIALS, transport=mock_transport(seen, payload=[{"id": "1"}]))
        locations = await client.get_store_locations("RS")
        await client.aclose()

        assert str(seen[0].url) == "https://www.fashionandfriends.com/rs/rest/V1/store-locator/locations/rs"
        assert locations == [{"id": "1"}]

    @pytest.mark.asyncio
    async def test_brand_images_drop_incomplete_entries(self):
        seen = []
        payload = [
            {"image_url": "https://cdn/x.png", "option_value": "nike", "option_label": "Nike"},
            {"image_url": None, "option_value": "adidas", "option_label": "Adidas"},
        ]
        client = PrimaryApiClient(CREDENTIALS, transport=mock_transport(seen, payload=payload))
        images = await client.get_brand_images()
        await client.aclose()

        assert seen[0].method == "POST"
        assert str(seen[0].url) == "https://www.fashionandfriends.com/rest/V1/brands-info"
        assert [i.option_label for i in images] == ["Nike"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,error_code",
        [(500, ErrorCode.TEMPORARY_SERVICE_UNAVAILABLE), (429, ErrorCode.EXTERNAL_API_RATE_LIMIT)],
    )
    async def test_error_status_raises(self, status_code, error_code):
        client = PrimaryApiClient(CREDENTIALS, transport=mock_transport([], status_code=status_code))
        with pytest.raises(PrimaryApiError) as exc_info:
            await client.get_store_configs()
        await client.aclose()

        assert exc_info.value.status_code == status_code
        assert exc_info.value.error_code == error_code

    @pytest.mark.asyncio
    async def test_network_error_raises_primary_api_error(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        client = PrimaryApiClient(CREDENTIALS, transport=httpx.MockTransport(handler))
        with pytest.raises(PrimaryApiError):
            await client.get_store_configs()
        await client.aclose()


class TestVisualSearchApiClient:
    """Test cases for the bearer-authenticated visual search client"""

    @pytest.mark.asyncio
    async def test_posts_body_with_current_bearer_token(self, clock):
        seen = []
        token_store = TokenStore(clock=clock)
        token_store.save("tok-1", 3600)
        client = VisualSearchApiClient(
            "https://eu-1.athenasearch.cloud",
            token_store,
            transport=mock_transport(seen, payload=make_listing_response(image_cache="T")),
        )

        data = await client.visual_search({"token": "w", "image": "abc", "page": 1})
        token_store.save("tok-2", 3600)
        await client.visual_search({"token": "w", "image": "T", "page": 2})
        await client.aclose()

        assert str(seen[0].url) == "https://eu-1.athenasearch.cloud/api/v2/visual-similarity-search"
        assert seen[0].headers["Authorization"] == "Bearer tok-1"
        assert seen[1].headers["Authorization"] == "Bearer tok-2"
        assert json.loads(seen[0].content)["image"] == "abc"
        assert data["data"]["image_cache"] == "T"
        assert client.pipeline.step_names == ["bearer_auth", "logging", "base_url_rewrite"]

    @pytest.mark.asyncio
    async def test_401_raises_authentication_expired(self, clock):
        client = VisualSearchApiClient(
            "https://vs.example.com/", TokenStore(clock=clock),
            transport=mock_transport([], status_code=401),
        )
        with pytest.raises(AuthenticationExpired) as exc_info:
            await client.visual_search({})
        await client.aclose()

        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_server_error_raises_listing_unavailable(self, clock):
        client = VisualSearchApiClient(
            "https://vs.example.com/", TokenStore(clock=clock),
            transport=mock_transport([], status_code=503),
        )
        with pytest.raises(ListingUnavailable) as exc_info:
            await client.visual_search({})
        await client.aclose()

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_non_json_body_raises_listing_unavailable(self, clock):
        client = VisualSearchApiClient(
            "https://vs.example.com/", TokenStore(clock=clock),
            transport=mock_transport([], content=b"<html>oops</html>"),
        )
        with pytest.raises(ListingUnavailable):
            await client.visual_search({})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rewrite_step_passes_bound_requests_through(self, clock):
        seen = []
        client = VisualSearchApiClient(
            "https://vs.example.com:8443/search", TokenStore(clock=clock),
            transport=mock_transport(seen, payload=make_listing_response()),
        )
        rewrite = client.pipeline.steps[-1]
        request = httpx.Request("POST", "https://vs.example.com:8443/search/api/v2/visual-similarity-search")

        assert rewrite.name == "base_url_rewrite"
        assert rewrite.apply(request) is request

        await client.visual_search({})
        await client.aclose()
        assert str(seen[0].url) == "https://vs.example.com:8443/search/api/v2/visual-similarity-search"
