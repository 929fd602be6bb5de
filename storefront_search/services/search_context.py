from __future__ import annotations

from dataclasses import dataclass

from constants import (
    DEFAULT_LOCALE,
    DEFAULT_TIMEZONE,
    VISIBLE_IN_CATALOG_IDS,
    VISIBLE_IN_SEARCH_IDS,
)


@dataclass(frozen=True)
class Store:
    id: int
    website_id: int = 0
    locale_code: str = DEFAULT_LOCALE
    timezone: str = DEFAULT_TIMEZONE


@dataclass(frozen=True)
class SearchContext:
    """Store, customer and category scope a search runs in."""

    store_id: int = 0
    website_id: int = 0
    customer_group_id: int = 0
    locale_code: str | None = None
    category_id: int | None = None
    show_out_of_stock: bool = False
    visible_in_search_ids: tuple[int, ...] = VISIBLE_IN_SEARCH_IDS
    visible_in_catalog_ids: tuple[int, ...] = VISIBLE_IN_CATALOG_IDS

    @classmethod
    def for_store(cls, store: Store, **kwargs) -> "SearchContext":
        kwargs.setdefault("locale_code", store.locale_code)
        return cls(store_id=store.id, website_id=store.website_id, **kwargs)

    def visibility_ids(self, query) -> list[int]:
        if isinstance(query, str):
            query = query.strip()
        if query:
            return list(self.visible_in_search_ids)
        return list(self.visible_in_catalog_ids)
