from __future__ import annotations

from collections.abc import Mapping

from constants import (
    POSITION_FIELD_PREFIX,
    SCORE_FIELD,
    SORT_POSITION,
    SORT_PRICE,
    SORT_RELEVANCE,
)

from storefront_search.services.attributes import sortable_field_name
from storefront_search.services.search_context import SearchContext


def price_field_name(context: SearchContext) -> str:
    return f"price_{context.customer_group_id}_{context.website_id}"


def position_field_name(category_id) -> str:
    return f"{POSITION_FIELD_PREFIX}{category_id}"


def _sort_entries(sort_by):
    if isinstance(sort_by, Mapping):
        sort_by = [{field: direction} for field, direction in sort_by.items()]
    for sort in sort_by or []:
        if not sort:
            continue
        yield next(iter(sort.items()))


def prepare_sort_fields(
    sort_by,
    context: SearchContext,
    sortable_attributes: Mapping | None = None,
) -> list[dict[str, str]]:
    """Map logical sort keys to physical index fields for ``context``."""
    sortable_attributes = sortable_attributes or {}
    result = []
    for sort_field, sort_type in _sort_entries(sort_by):
        # Category position only exists inside a category listing.
        if sort_field == SORT_POSITION and context.category_id is None:
            sort_field = SORT_RELEVANCE

        if sort_field == SORT_RELEVANCE:
            sort_field = SCORE_FIELD
            sort_type = "desc"
        elif sort_field == SORT_POSITION:
            sort_field = position_field_name(context.category_id)
        elif sort_field == SORT_PRICE:
            sort_field = price_field_name(context)
        else:
            attribute = sortable_attributes.get(sort_field, sort_field)
            sort_field = sortable_field_name(attribute, context.locale_code)
        result.append({sort_field: str(sort_type or "asc").strip().lower()})
    return result
