from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from constants import (
    BACKEND_DATETIME,
    BACKEND_DECIMAL,
    BACKEND_VARCHAR,
    FRONTEND_MULTISELECT,
    SORT_FIELD_PREFIX,
)
from helpers import first_value, locale_language, parse_float

from storefront_search.services.search_context import Store


EMPTY_DATES = {"", "0000-00-00", "0000-00-00 00:00:00"}


def _store_timezone(store: Store):
    if not store.timezone or store.timezone.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(store.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def to_store_date(value, store: Store):
    """Render a stored date as ISO-8601 in the store's timezone."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text in EMPTY_DATES:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_store_timezone(store))
    return parsed.isoformat()


@dataclass(frozen=True)
class Attribute:
    code: str
    backend_type: str = BACKEND_VARCHAR
    frontend_input: str = "text"
    options: dict = field(default_factory=dict, compare=False)

    uses_source = False
    uses_options = False
    localized_sort = True

    def get_option(self, value):
        if value is None:
            return None
        return self.options.get(str(value))

    def index_value(self, value, store: Store):
        return value

    def option_label(self, value):
        return None

    def sort_value(self, value):
        return first_value(value)


class PlainAttribute(Attribute):
    pass


class DateAttribute(Attribute):
    localized_sort = False

    def index_value(self, value, store: Store):
        if isinstance(value, list):
            rendered = (to_store_date(item, store) for item in value)
            return [item for item in rendered if item]
        return to_store_date(value, store)


class DecimalAttribute(Attribute):
    localized_sort = False

    def sort_value(self, value):
        return parse_float(first_value(value))


@dataclass(frozen=True)
class OptionAttribute(Attribute):
    multiselect: bool = False

    uses_source = True

    @property
    def uses_options(self):
        return not self.multiselect

    def index_value(self, value, store: Store):
        if not value or not self.multiselect:
            return value
        return [part for part in str(first_value(value)).split(",") if part]

    def option_label(self, value):
        if not value or not self.uses_options:
            return None
        return self.get_option(first_value(value))

    def sort_value(self, value):
        return self.get_option(first_value(value))


def build_attribute(
    code: str,
    backend_type: str | None = None,
    frontend_input: str | None = None,
    uses_source: bool = False,
    options: dict | None = None,
) -> Attribute:
    backend_type = backend_type or BACKEND_VARCHAR
    frontend_input = frontend_input or "text"
    options = {str(key): label for key, label in (options or {}).items()}
    if backend_type == BACKEND_DATETIME:
        return DateAttribute(code, backend_type, frontend_input, options)
    if uses_source:
        return OptionAttribute(
            code,
            backend_type,
            frontend_input,
            options,
            multiselect=frontend_input == FRONTEND_MULTISELECT,
        )
    if backend_type == BACKEND_DECIMAL:
        return DecimalAttribute(code, backend_type, frontend_input, options)
    return PlainAttribute(code, backend_type, frontend_input, options)


def sortable_field_name(attribute, locale_code: str | None = None) -> str:
    if isinstance(attribute, Attribute):
        code = attribute.code
        localized = attribute.localized_sort
    else:
        code = str(attribute)
        localized = True
    field_name = f"{SORT_FIELD_PREFIX}{code}"
    language = locale_language(locale_code) if localized else None
    if language:
        field_name = f"{field_name}_{language}"
    return field_name
