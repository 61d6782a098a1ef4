"""
Maps a filter selection onto backend query parameters.

Parameter names are supplied by the server with each listing response, so
the mapping goes through a `DimensionParamBindings` table instead of fixed
names. Categories are hierarchical: a selected category id keeps the level
(parameter name) the server last echoed it under.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from common_py.logging_config import configure_logging

logger = configure_logging("catalog-query:filter_resolver")

DEFAULT_CATEGORY_PARAM = "category2"
CONSOLIDATED_CATEGORY_PARAM = "kategorije"
CATEGORY_PARAM_PREFIX = "category"


class FilterDimension(Enum):
    GENDER = "gender"
    CATEGORY = "category"
    BRAND = "brand"
    SIZE = "size"
    COLOR = "color"


# Used when the server has not (yet) told us the parameter name
FALLBACK_PARAM_NAMES = {
    FilterDimension.GENDER: "pol",
    FilterDimension.BRAND: "brend",
    FilterDimension.SIZE: "velicina",
    FilterDimension.COLOR: "boja",
}

# Backend parameter name -> category ids active under it
ActiveFilterLevels = Mapping[str, AbstractSet[str]]


@dataclass(frozen=True)
class FilterSelection:
    """What the user has selected, per dimension, as opaque ids."""

    genders: FrozenSet[str] = frozenset()
    categories: FrozenSet[str] = frozenset()
    brands: FrozenSet[str] = frozenset()
    sizes: FrozenSet[str] = frozenset()
    colors: FrozenSet[str] = frozenset()

    @classmethod
    def of(
        cls,
        genders: Iterable[str] = (),
        categories: Iterable[str] = (),
        brands: Iterable[str] = (),
        sizes: Iterable[str] = (),
        colors: Iterable[str] = (),
    ) -> "FilterSelection":
        return cls(
            genders=frozenset(genders),
            categories=frozenset(categories),
            brands=frozenset(brands),
            sizes=frozenset(sizes),
            colors=frozenset(colors),
        )

    def ids_for(self, dimension: FilterDimension) -> FrozenSet[str]:
        return {
            FilterDimension.GENDER: self.genders,
            FilterDimension.CATEGORY: self.categories,
            FilterDimension.BRAND: self.brands,
            FilterDimension.SIZE: self.sizes,
            FilterDimension.COLOR: self.colors,
        }[dimension]

    def is_empty(self) -> bool:
        return not any(self.ids_for(d) for d in FilterDimension)

    def to_dict(self) -> Dict[str, List[str]]:
        """JSON-friendly form for persisting the selection."""
        return {d.value: sorted(self.ids_for(d)) for d in FilterDimension}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterSelection":
        return cls.of(
            genders=data.get("gender") or (),
            categories=data.get("category") or (),
            brands=data.get("brand") or (),
            sizes=data.get("size") or (),
            colors=data.get("color") or (),
        )


@dataclass(frozen=True)
class DimensionParamBindings:
    """Backend parameter name per dimension, as last reported by the server."""

    names: Mapping[FilterDimension, str] = field(default_factory=dict)

    def param_name(self, dimension: FilterDimension) -> Optional[str]:
        return self.names.get(dimension)

    def param_name_or_fallback(self, dimension: FilterDimension) -> str:
        return self.names.get(dimension) or FALLBACK_PARAM_NAMES[dimension]

    def merged_with(self, newer: "DimensionParamBindings") -> "DimensionParamBindings":
        """Names from `newer` win; dimensions it does not report keep ours."""
        merged = dict(self.names)
        merged.update(newer.names)
        return DimensionParamBindings(merged)


def join_ids(ids: Iterable[str]) -> str:
    return "_".join(sorted(ids))


def is_category_level(param_name: str, bound_category_param: Optional[str] = None) -> bool:
    return (
        param_name.startswith(CATEGORY_PARAM_PREFIX)
        or param_name == CONSOLIDATED_CATEGORY_PARAM
        or (bound_category_param is not None and param_name == bound_category_param)
    )


def _level_sort_key(param_name: str) -> Tuple[int, int, str]:
    match = re.search(r"(\d+)$", param_name)
    if match:
        return (0, int(match.group(1)), param_name)
    return (1, 0, param_name)


def _category_level_for(
    category_id: str,
    active_filter_levels: ActiveFilterLevels,
    bound_category_param: Optional[str],
) -> Optional[str]:
    """Parameter name the server last echoed `category_id` under, if any."""
    candidates = [
        name
        for name, ids in active_filter_levels.items()
        if category_id in ids and is_category_level(name, bound_category_param)
    ]
    if not candidates:
        return None
    chosen = min(candidates, key=_level_sort_key)
    if len(candidates) > 1:
        logger.debug("Category active under several levels, lowest wins",
                     category_id=category_id, candidates=sorted(candidates), chosen=chosen)
    return chosen


def resolve_category_params(
    category_ids: AbstractSet[str],
    bindings: DimensionParamBindings,
    active_filter_levels: ActiveFilterLevels,
    default_category_param: str = DEFAULT_CATEGORY_PARAM,
) -> Dict[str, str]:
    """Bucket category ids by level; one parameter per distinct level."""
    bound = bindings.param_name(FilterDimension.CATEGORY)
    buckets: Dict[str, List[str]] = {}
    for category_id in category_ids:
        level = _category_level_for(category_id, active_filter_levels, bound)
        if level is None:
            logger.info("Category level unknown, using default parameter",
                        category_id=category_id, param=default_category_param)
            level = default_category_param
        buckets.setdefault(level, []).append(category_id)
    return {level: join_ids(ids) for level, ids in buckets.items()}


def resolve(
    selection: FilterSelection,
    bindings: DimensionParamBindings,
    active_filter_levels: ActiveFilterLevels,
    default_category_param: str = DEFAULT_CATEGORY_PARAM,
) -> Dict[str, str]:
    """Query parameters for `selection`. An empty selection gives an empty map."""
    params: Dict[str, str] = {}
    for dimension in (FilterDimension.GENDER, FilterDimension.BRAND,
                      FilterDimension.SIZE, FilterDimension.COLOR):
        ids = selection.ids_for(dimension)
        if ids:
            params[bindings.param_name_or_fallback(dimension)] = join_ids(ids)

    if selection.categories:
        params.update(resolve_category_params(
            selection.categories, bindings, active_filter_levels, default_category_param
        ))
    return params


def resolve_or_none(
    selection: Optional[FilterSelection],
    bindings: DimensionParamBindings,
    active_filter_levels: ActiveFilterLevels,
    default_category_param: str = DEFAULT_CATEGORY_PARAM,
) -> Optional[Dict[str, str]]:
    """Like `resolve`, but `None` (nothing selected yet) stays `None`."""
    if selection is None:
        return None
    return resolve(selection, bindings, active_filter_levels, default_category_param)
