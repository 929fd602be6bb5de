from __future__ import annotations

import re
from collections.abc import Mapping

from constants import CATEGORY_FIELD, PRICE_FIELD, SHOW_IN_CATEGORY_FIELD, WILDCARD


# http://lucene.apache.org/core/3_6_0/queryparsersyntax.html
ESCAPE_PATTERN = re.compile(r'(\+|-|&&|\|\||!|\(|\)|\{|\}|\[|\]|\^|"|~|\*|\?|:|\\)')
PHRASE_ESCAPE_PATTERN = re.compile(r'("|\\)')


def _text(value) -> str:
    if value is None:
        return ""
    return str(value)


def _is_blank(value) -> bool:
    return not _text(value).strip()


def _is_sequence(value) -> bool:
    return isinstance(value, (list, tuple, set))


def escape(value) -> str:
    return ESCAPE_PATTERN.sub(r"\\\1", _text(value))


def escape_phrase(value) -> str:
    return PHRASE_ESCAPE_PATTERN.sub(r"\\\1", _text(value))


def phrase(value) -> str:
    return f'"{escape_phrase(value)}"'


def prepare_query_text(text) -> str:
    """Escape free text, grouping multi-word input as ``(word word)``."""
    text = _text(text)
    words = text.split(" ")
    if len(words) > 1:
        words = [escape(word) for word in words if word]
        if not words:
            return ""
        return "(" + " ".join(words) + ")"
    return escape(text)


def prepare_filter_query_text(text) -> str:
    """Escape filter text; multi-word input must match as an exact phrase."""
    text = _text(text)
    if len(text.split(" ")) > 1:
        return phrase(text)
    return escape(text)


def field_condition(field: str, value: str) -> str:
    if field == CATEGORY_FIELD:
        return f"({CATEGORY_FIELD}:{value} OR {SHOW_IN_CATEGORY_FIELD}:{value})"
    return f"{field}:{value}"


def _is_range_record(value) -> bool:
    return isinstance(value, Mapping) and ("from" in value or "to" in value)


def _is_value_list(value) -> bool:
    return isinstance(value, Mapping) or _is_sequence(value)


def _values(value):
    if isinstance(value, Mapping):
        return list(value.values())
    return value


def _range_bounds(field, value):
    if _is_range_record(value):
        return value.get("from"), value.get("to")
    if field == PRICE_FIELD and _is_sequence(value):
        bounds = list(value)
        return (
            bounds[0] if len(bounds) > 0 else None,
            bounds[1] if len(bounds) > 1 else None,
        )
    return None, None


def _is_range(field, value) -> bool:
    if _is_range_record(value):
        return True
    return field == PRICE_FIELD and _is_sequence(value)


def _range_condition(field, value, prepare) -> str:
    start, end = _range_bounds(field, value)
    start = prepare(start) if not _is_blank(start) else ""
    end = prepare(end) if not _is_blank(end) else ""
    return f"{field}:[{start} TO {end}]"


def _disjunction(field, values, prepare) -> str:
    parts = [field_condition(field, prepare(part)) for part in values]
    return "(" + " OR ".join(parts) + ")"


def prepare_filters(filters) -> list[str]:
    """Compile a filter set into clauses the caller joins with ``AND``."""
    result = []
    if not filters:
        return result
    for field, value in filters.items():
        if _is_range(field, value):
            condition = _range_condition(field, value, prepare_filter_query_text)
        elif _is_value_list(value):
            values = _values(value)
            if not values:
                continue
            condition = _disjunction(field, values, prepare_filter_query_text)
        else:
            condition = field_condition(field, prepare_filter_query_text(value))
        result.append(condition)
    return result


def prepare_search_conditions(query) -> str:
    if not isinstance(query, Mapping):
        return prepare_query_text(query)
    conditions = []
    for field, value in query.items():
        if _is_range(field, value):
            condition = _range_condition(field, value, prepare_query_text)
        elif _is_value_list(value):
            values = _values(value)
            if not values:
                continue
            condition = _disjunction(field, values, prepare_filter_query_text)
        else:
            if value != WILDCARD:
                value = prepare_query_text(value)
            if not value:
                continue
            condition = field_condition(field, value)
        conditions.append(condition)
    return " AND ".join(conditions)


def _prepare_facet_range(condition: Mapping) -> dict:
    facet_range = dict(condition)
    for bound in ("from", "to"):
        value = facet_range.pop(bound, None)
        if not _is_blank(value):
            facet_range[bound] = prepare_query_text(_text(value).strip())
    return facet_range


def prepare_facets_conditions(facets) -> dict:
    """Compile a facet request into ``fields``/``ranges``/``queries`` sections."""
    result: dict = {}
    if not isinstance(facets, Mapping):
        return result
    for field, conditions in facets.items():
        if not conditions:
            result.setdefault("fields", []).append(field)
            continue
        if not _is_sequence(conditions):
            conditions = [conditions]
        for condition in conditions:
            if isinstance(condition, Mapping) and ("from" in condition or "to" in condition):
                ranges = result.setdefault("ranges", {})
                ranges.setdefault(field, []).append(_prepare_facet_range(condition))
            else:
                query = field_condition(field, prepare_query_text(condition))
                result.setdefault("queries", []).append(query)
    return result
