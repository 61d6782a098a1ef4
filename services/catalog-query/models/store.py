import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StoreConfig(BaseModel):
    """Per-store configuration returned by the primary API.

    Replaced wholesale on every store-config fetch; never mutated.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    name: str
    code: str
    website_id: str = ""
    secure_base_url: str = Field(default="", description="Primary base URL for this store")
    secure_base_media_url: str = ""
    locale: str = ""
    base_currency_code: str = ""
    default_display_currency_code: str = ""
    timezone: str = ""
    visual_search_website_url: str = Field(
        default="", alias="athena_search_website_url",
        description="Base URL of the visual search API for this store",
    )
    visual_search_wtoken: str = Field(default="", alias="athena_search_wtoken")
    visual_search_access_token: str = Field(
        default="", alias="athena_search_access_token",
        description="Fallback bearer token for the visual search API",
    )

    @property
    def currency(self) -> str:
        return self.default_display_currency_code or self.base_currency_code


class CountryStore(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    country_code: str
    country_name: str
    stores: List[StoreConfig] = Field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "CountryStore":
        return cls(
            country_code=data.get("country_code", ""),
            country_name=data.get("country_name", ""),
            stores=[StoreConfig.model_validate(s) for s in data.get("storeConfigs") or []],
        )

    def find_store(self, store_code: str) -> Optional[StoreConfig]:
        return next((s for s in self.stores if s.code == store_code), None)


def find_store_config(
    countries: List[CountryStore], country_code: str, store_code: str
) -> Optional[StoreConfig]:
    """Locate a store by country code and store code."""
    country = next((c for c in countries if c.country_code == country_code), None)
    return country.find_store(store_code) if country else None


class StoreLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    image_url: Optional[str] = None
    email: Optional[str] = None
    phone_number1: Optional[str] = None
    phone_number2: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    street_address: str = ""
    country: str = ""
    zipcode: Optional[str] = None
    city: str = ""
    trading_hours: Optional[str] = None
    is_active: bool = False

    @classmethod
    def from_api_response(cls, data: Dict[str, Any], base_media_url: str) -> "StoreLocation":
        image = data.get("image")
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            image_url=f"{base_media_url}{image}" if image else None,
            email=data.get("email"),
            phone_number1=data.get("phone_number1"),
            phone_number2=data.get("phone_number2"),
            latitude=_to_float(data.get("lat")),
            longitude=_to_float(data.get("lng")),
            street_address=data.get("street_address") or "",
            country=data.get("country", ""),
            zipcode=data.get("zipcode"),
            city=data.get("city") or "",
            trading_hours=data.get("trading_hours"),
            is_active=data.get("status") == "1",
        )


class BrandImage(BaseModel):
    """Brand logo for the filter UI, matched to filter options by label."""
    model_config = ConfigDict(frozen=True)

    image_url: str
    option_value: str
    option_label: str

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> Optional["BrandImage"]:
        """Only complete entries are usable; anything missing a field is dropped."""
        image_url = data.get("image_url")
        option_value = data.get("option_value")
        option_label = data.get("option_label")
        if not (image_url and option_value and option_label):
            return None
        return cls(image_url=image_url, option_value=option_value, option_label=option_label)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance using the spherical law of cosines."""
    earth_radius = 6371.0
    lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)
    cos_angle = (
        math.sin(lat1_rad) * math.sin(lat2_rad)
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lon)
    )
    # Clamp rounding noise so identical points don't fall outside acos' domain
    return earth_radius * math.acos(max(-1.0, min(1.0, cos_angle)))


def find_nearest(
    locations: List[StoreLocation], latitude: float, longitude: float
) -> Optional[StoreLocation]:
    located = [l for l in locations if l.latitude is not None and l.longitude is not None]
    if not located:
        return None
    return min(located, key=lambda l: distance_km(latitude, longitude, l.latitude, l.longitude))


def group_by_city(locations: List[StoreLocation]) -> Dict[str, List[StoreLocation]]:
    """Active stores grouped by city, cities in alphabetical order."""
    grouped: Dict[str, List[StoreLocation]] = {}
    for location in locations:
        if location.is_active:
            grouped.setdefault(location.city, []).append(location)
    return dict(sorted(grouped.items()))
