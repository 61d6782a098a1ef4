"""
Selectable filter options built from the `filters` / `active_filters`
blocks of a listing response.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from models.store import BrandImage
from .filter_resolver import (
    CATEGORY_PARAM_PREFIX,
    CONSOLIDATED_CATEGORY_PARAM,
    FALLBACK_PARAM_NAMES,
    DimensionParamBindings,
    FilterDimension,
)

GENDER_TYPE = FALLBACK_PARAM_NAMES[FilterDimension.GENDER]
BRAND_TYPE = FALLBACK_PARAM_NAMES[FilterDimension.BRAND]
SIZE_TYPE = FALLBACK_PARAM_NAMES[FilterDimension.SIZE]
COLOR_TYPE = FALLBACK_PARAM_NAMES[FilterDimension.COLOR]


@dataclass(frozen=True)
class FilterOption:
    key: str
    label: str
    count: int = 0
    image_url: Optional[str] = None
    hex_code: Optional[str] = None


@dataclass(frozen=True)
class FilterOptions:
    genders: List[FilterOption] = field(default_factory=list)
    categories: List[FilterOption] = field(default_factory=list)
    brands: List[FilterOption] = field(default_factory=list)
    sizes: List[FilterOption] = field(default_factory=list)
    colors: List[FilterOption] = field(default_factory=list)
    bindings: DimensionParamBindings = field(default_factory=DimensionParamBindings)

    def options_for(self, dimension: FilterDimension) -> List[FilterOption]:
        return {
            FilterDimension.GENDER: self.genders,
            FilterDimension.CATEGORY: self.categories,
            FilterDimension.BRAND: self.brands,
            FilterDimension.SIZE: self.sizes,
            FilterDimension.COLOR: self.colors,
        }[dimension]


def _find_group(filters: Sequence[Dict[str, Any]], group_type: str) -> Optional[Dict[str, Any]]:
    return next((f for f in filters if f.get("type") == group_type), None)


def _group_options(group: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return (group or {}).get("array") or []


def _first_option_key(groups: Sequence[Optional[Dict[str, Any]]]) -> Optional[str]:
    for group in groups:
        for option in _group_options(group):
            if option.get("option_key"):
                return option["option_key"]
    return None


def _to_options(
    group: Optional[Dict[str, Any]],
    brand_images: Sequence[BrandImage] = (),
    with_hex_code: bool = False,
) -> List[FilterOption]:
    options = []
    for raw in _group_options(group):
        key, label = raw.get("option_value"), raw.get("option_label")
        if key is None or label is None:
            continue
        options.append(FilterOption(
            key=str(key),
            label=label,
            count=raw.get("count") or 0,
            image_url=_brand_image_url(brand_images, label),
            hex_code=raw.get("hax_code") if with_hex_code else None,
        ))
    return options


def _brand_image_url(brand_images: Sequence[BrandImage], label: Optional[str]) -> Optional[str]:
    # Brand logos are keyed by display label; option values differ between the two APIs
    match = next((b for b in brand_images if b.option_label == label), None)
    return match.image_url if match else None


def _merge_active(
    available: List[FilterOption],
    active: Sequence[Dict[str, Any]],
    brand_images: Sequence[BrandImage] = (),
    color_group: Optional[Dict[str, Any]] = None,
) -> List[FilterOption]:
    """Append active selections the server no longer lists, with count 0."""
    known = {o.key for o in available}
    merged = list(available)
    for item in active:
        item_id = str(item.get("id", ""))
        if not item_id or item_id in known:
            continue
        label = item.get("label") or item_id
        hex_code = None
        if color_group is not None:
            hex_code = next(
                (o.get("hax_code") for o in _group_options(color_group)
                 if str(o.get("option_value")) == item_id),
                None,
            )
        merged.append(FilterOption(
            key=item_id,
            label=label,
            count=0,
            image_url=_brand_image_url(brand_images, item.get("label")),
            hex_code=hex_code,
        ))
        known.add(item_id)
    return merged


def _dedupe_by_label(options: List[FilterOption]) -> List[FilterOption]:
    seen = set()
    unique = []
    for option in options:
        label_key = option.label.strip().lower()
        if label_key in seen:
            continue
        seen.add(label_key)
        unique.append(option)
    return unique


def build_filter_options(
    filters: Optional[Sequence[Dict[str, Any]]],
    active_filters: Optional[Sequence[Dict[str, Any]]] = None,
    brand_images: Sequence[BrandImage] = (),
    prefer_consolidated_categories: bool = False,
) -> FilterOptions:
    """Options per dimension plus the parameter names the server uses for them.

    Category options come from the consolidated `kategorije` group when
    `prefer_consolidated_categories` is set and that group is non-empty,
    otherwise from every `category*` group.
    """
    filters = filters or []
    active_filters = active_filters or []

    gender_group = _find_group(filters, GENDER_TYPE)
    brand_group = _find_group(filters, BRAND_TYPE)
    size_group = _find_group(filters, SIZE_TYPE)
    color_group = _find_group(filters, COLOR_TYPE)
    consolidated_group = _find_group(filters, CONSOLIDATED_CATEGORY_PARAM)
    category_groups = [f for f in filters if str(f.get("type", "")).startswith(CATEGORY_PARAM_PREFIX)]

    def active_of(group_type: str) -> List[Dict[str, Any]]:
        return [a for a in active_filters if a.get("type") == group_type]

    active_categories = [
        a for a in active_filters
        if str(a.get("type", "")).startswith(CATEGORY_PARAM_PREFIX)
        or (prefer_consolidated_categories and a.get("type") == CONSOLIDATED_CATEGORY_PARAM)
    ]

    if prefer_consolidated_categories and _group_options(consolidated_group):
        available_categories = _to_options(consolidated_group)
        category_param = _first_option_key([consolidated_group] + category_groups[:1])
    else:
        available_categories = [o for g in category_groups for o in _to_options(g)]
        category_param = _first_option_key(category_groups[:1])

    names = {
        FilterDimension.GENDER: _first_option_key([gender_group]),
        FilterDimension.CATEGORY: category_param,
        FilterDimension.BRAND: _first_option_key([brand_group]),
        FilterDimension.SIZE: _first_option_key([size_group]),
        FilterDimension.COLOR: _first_option_key([color_group]),
    }

    return FilterOptions(
        genders=_merge_active(_to_options(gender_group), active_of(GENDER_TYPE)),
        categories=_dedupe_by_label(_merge_active(available_categories, active_categories)),
        brands=_merge_active(
            _to_options(brand_group, brand_images=brand_images),
            active_of(BRAND_TYPE),
            brand_images=brand_images,
        ),
        sizes=_merge_active(_to_options(size_group), active_of(SIZE_TYPE)),
        colors=_merge_active(
            _to_options(color_group, with_hex_code=True),
            active_of(COLOR_TYPE),
            color_group=color_group,
        ),
        bindings=DimensionParamBindings({d: n for d, n in names.items() if n}),
    )


def active_filter_levels(active_filters: Optional[Sequence[Dict[str, Any]]]) -> Dict[str, FrozenSet[str]]:
    """Group echoed active filter ids by their parameter name (`type`)."""
    grouped: Dict[str, set] = {}
    for item in active_filters or []:
        group_type, item_id = item.get("type"), item.get("id")
        if group_type and item_id is not None:
            grouped.setdefault(group_type, set()).add(str(item_id))
    return {name: frozenset(ids) for name, ids in grouped.items()}
