from __future__ import annotations

import re
from collections.abc import Mapping

from constants import CATEGORY_FIELD

from storefront_search.services.search_client import ResultSet


# Matches the facet name emitted for a category query facet, see field_condition().
CATEGORY_FACET_PATTERN = re.compile(r"\(categories:(\d+) OR show_in_categories:\d+\)")

TERM_BUCKET = "terms"
STATS_BUCKET = "stats"
RANGE_BUCKET = "ranges"
CATEGORY_BUCKET = "categories"


def object_to_array(value):
    """Recursively turn mappings, sequences and plain objects into dicts/lists."""
    if isinstance(value, Mapping):
        return {key: object_to_array(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [object_to_array(item) for item in value]
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return {
            key: object_to_array(item)
            for key, item in vars(value).items()
            if not key.startswith("_")
        }
    return value


def prepare_query_response(response) -> list:
    if not isinstance(response, ResultSet) or response.has_error() or not response.count():
        return []
    return [object_to_array(hit.get("_source", {})) for hit in response.hits]


def bucket_kind(name: str, data) -> str | None:
    if not isinstance(data, Mapping):
        return None
    if TERM_BUCKET in data:
        return TERM_BUCKET
    if data.get("_type") == "statistical":
        return STATS_BUCKET
    if RANGE_BUCKET in data:
        return RANGE_BUCKET
    if CATEGORY_FACET_PATTERN.search(name):
        return CATEGORY_BUCKET
    return None


def prepare_facets_query_response(facets) -> dict:
    result: dict = {}
    for name, data in (facets or {}).items():
        kind = bucket_kind(name, data)
        if kind == TERM_BUCKET:
            for value in data[TERM_BUCKET]:
                result.setdefault(name, {})[value["term"]] = value["count"]
        elif kind == STATS_BUCKET:
            result.setdefault("stats", {})[name] = dict(data)
        elif kind == RANGE_BUCKET:
            for facet_range in data[RANGE_BUCKET]:
                start = facet_range.get("from_str", "")
                end = facet_range.get("to_str", "")
                result.setdefault(name, {})[f"[{start} TO {end}]"] = facet_range["total_count"]
        elif kind == CATEGORY_BUCKET:
            category_id = CATEGORY_FACET_PATTERN.search(name).group(1)
            result.setdefault(CATEGORY_FIELD, {})[category_id] = data.get("count", 0)
    return result
