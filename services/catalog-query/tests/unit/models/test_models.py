"""
Unit tests for store and listing item models.
"""
import pytest

from conftest import make_store_configs_response
from models.product import Product
from models.store import (
    BrandImage,
    CountryStore,
    StoreLocation,
    distance_km,
    find_nearest,
    find_store_config,
    group_by_city,
)

pytestmark = pytest.mark.unit


def location(id, city="Beograd", lat=None, lng=None, active=True):
    return StoreLocation(id=id, name=f"Store {id}", city=city, latitude=lat,
                         longitude=lng, is_active=active)


class TestStoreConfig:
    def test_visual_search_fields_read_from_api_names(self):
        countries = [CountryStore.from_api_response(c) for c in make_store_configs_response()]
        store = find_store_config(countries, "RS", "rs_sr")

        assert store.visual_search_website_url == "https://eu-1.athenasearch.cloud/"
        assert store.visual_search_wtoken == "website-token"
        assert store.visual_search_access_token == "store-token"

    def test_currency_prefers_display_currency(self):
        data = make_store_configs_response()[0]["storeConfigs"][0]
        data = dict(data, default_display_currency_code="", base_currency_code="EUR")
        country = CountryStore.from_api_response(
            {"country_code": "ME", "country_name": "Montenegro", "storeConfigs": [data]}
        )
        assert country.stores[0].currency == "EUR"

    def test_find_store_config_misses(self):
        countries = [CountryStore.from_api_response(c) for c in make_store_configs_response()]
        assert find_store_config(countries, "BA", "rs_sr") is None
        assert find_store_config(countries, "RS", "other") is None

    def test_country_without_stores(self):
        country = CountryStore.from_api_response({"country_code": "HR", "storeConfigs": None})
        assert country.stores == []


class TestBrandImage:
    def test_complete_entry(self):
        image = BrandImage.from_api_response(
            {"image_url": "https://cdn/n.png", "option_value": "nike", "option_label": "Nike"}
        )
        assert image.option_label == "Nike"

    @pytest.mark.parametrize("missing", ["image_url", "option_value", "option_label"])
    def test_incomplete_entry_dropped(self, missing):
        data = {"image_url": "u", "option_value": "v", "option_label": "l"}
        data[missing] = None
        assert BrandImage.from_api_response(data) is None


class TestStoreLocations:
    """Test cases for distance and grouping helpers"""

    def test_distance_between_same_point_is_zero(self):
        assert distance_km(44.8, 20.4, 44.8, 20.4) == pytest.approx(0.0, abs=1e-6)

    def test_distance_belgrade_novi_sad(self):
        assert distance_km(44.8125, 20.4612, 45.2671, 19.8335) == pytest.approx(70, abs=5)

    def test_find_nearest_skips_unlocated(self):
        stores = [
            location("1", lat=45.2671, lng=19.8335),
            location("2", lat=44.8125, lng=20.4612),
            location("3"),
        ]
        assert find_nearest(stores, 44.80, 20.45).id == "2"

    def test_find_nearest_without_coordinates(self):
        assert find_nearest([location("1")], 44.8, 20.4) is None

    def test_group_by_city_keeps_active_sorted(self):
        stores = [
            location("1", city="Novi Sad"),
            location("2", city="Beograd"),
            location("3", city="Beograd", active=False),
            location("4", city="Beograd"),
        ]
        grouped = group_by_city(stores)

        assert list(grouped) == ["Beograd", "Novi Sad"]
        assert [s.id for s in grouped["Beograd"]] == ["2", "4"]


class TestProduct:
    def test_full_item(self):
        product = Product.from_api_response({
            "id": 5,
            "sku": "SKU-5",
            "name": "Patike",
            "image": "https://cdn/5.jpg",
            "hover_image": "https://cdn/5b.jpg",
            "price": {"regular_price": 99.9, "special_price": 79.9, "discount_percentage": 20},
            "brand": {"id": 3, "label": "Nike"},
            "category_ids": [1, 2],
            "configurable_options": [
                {"attribute_code": "size", "options": [{"option_label": "42"}, {"option_label": "43"}]}
            ],
        })

        assert product.image_url == "https://cdn/5.jpg"
        assert product.hover_image_url == "https://cdn/5b.jpg"
        assert product.price.special_price == 79.9
        assert product.brand.label == "Nike"
        assert product.configurable_options[0].option_labels == ["42", "43"]

    def test_missing_fields_are_none(self):
        product = Product.from_api_response({"id": 9})

        assert product.name is None
        assert product.price is None
        assert product.brand is None
        assert product.category_names == []
        assert product.configurable_options == []
