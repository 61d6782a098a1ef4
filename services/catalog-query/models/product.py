"""Listing item models parsed from listing responses.

Every field except `id` is optional: the backend omits fields inconsistently
and a missing field must never fail a whole page.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ProductPrice:
    regular_price: Optional[float] = None
    regular_price_with_currency: Optional[str] = None
    special_price: Optional[float] = None
    special_price_with_currency: Optional[str] = None
    loyalty_price: Optional[float] = None
    loyalty_price_with_currency: Optional[str] = None
    discount_percentage: Optional[int] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "ProductPrice":
        return cls(
            regular_price=data.get("regular_price"),
            regular_price_with_currency=data.get("regular_price_with_currency"),
            special_price=data.get("special_price"),
            special_price_with_currency=data.get("special_price_with_currency"),
            loyalty_price=data.get("loyalty_price"),
            loyalty_price_with_currency=data.get("loyalty_price_with_currency"),
            discount_percentage=data.get("discount_percentage"),
        )


@dataclass(frozen=True)
class ProductBrand:
    id: Optional[int]
    label: Optional[str]
    option_id: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "ProductBrand":
        return cls(id=data.get("id"), label=data.get("label"), option_id=data.get("option_id"))


@dataclass(frozen=True)
class ConfigurableOption:
    attribute_code: str
    option_labels: List[str] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "ConfigurableOption":
        return cls(
            attribute_code=data.get("attribute_code", ""),
            option_labels=[
                o.get("option_label", "") for o in data.get("options") or []
            ],
        )


@dataclass(frozen=True)
class Product:
    """A single listing item."""

    id: int
    sku: Optional[str] = None
    name: Optional[str] = None
    short_description: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    hover_image_url: Optional[str] = None
    link: Optional[str] = None
    price: Optional[ProductPrice] = None
    brand: Optional[ProductBrand] = None
    availability: Optional[int] = None
    salable_qty: Optional[int] = None
    discount_percentage: Optional[int] = None
    category_names: List[str] = field(default_factory=list)
    category_ids: List[int] = field(default_factory=list)
    gallery_images: List[str] = field(default_factory=list)
    configurable_options: List[ConfigurableOption] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "Product":
        price = data.get("price")
        brand = data.get("brand")
        return cls(
            id=data.get("id", 0),
            sku=data.get("sku"),
            name=data.get("name"),
            short_description=data.get("short_description"),
            description=data.get("description"),
            image_url=data.get("image"),
            hover_image_url=data.get("hover_image"),
            link=data.get("link"),
            price=ProductPrice.from_api_response(price) if price else None,
            brand=ProductBrand.from_api_response(brand) if brand else None,
            availability=data.get("availability"),
            salable_qty=data.get("salable_qty"),
            discount_percentage=data.get("discount_percentage"),
            category_names=list(data.get("category_names") or []),
            category_ids=list(data.get("category_ids") or []),
            gallery_images=list(data.get("gallery_images") or []),
            configurable_options=[
                ConfigurableOption.from_api_response(o)
                for o in data.get("configurable_options") or []
            ],
        )
