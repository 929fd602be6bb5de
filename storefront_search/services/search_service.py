from __future__ import annotations

import threading
from collections.abc import Mapping

from flask import current_app

from constants import DEFAULT_ENTITY_TYPE, DEFAULT_ROWS_LIMIT, DEFAULT_STORE_ID, SORT_RELEVANCE
from helpers import parse_bool, parse_int

from storefront_search.services.catalog_service import StaticAttributeCatalog
from storefront_search.services.document_builder import prepare_docs, prepare_entity_indexes
from storefront_search.services.query_builder import (
    prepare_facets_conditions,
    prepare_filters,
    prepare_search_conditions,
)
from storefront_search.services.search_client import ElasticsearchClient, ResultSet
from storefront_search.services.search_context import SearchContext
from storefront_search.services.search_response import (
    prepare_facets_query_response,
    prepare_query_response,
)
from storefront_search.services.sort_fields import prepare_sort_fields


class ProductSearchService:
    def __init__(self, app=None, client=None, catalog=None):
        self.app = app or current_app
        self.client = client or ElasticsearchClient(self.app)
        self.catalog = catalog or StaticAttributeCatalog()
        self._available = None
        self._lock = threading.Lock()

    def is_enabled(self) -> bool:
        return bool(self.app.config.get("ELASTICSEARCH_ENABLED", False))

    def _default_query_params(self) -> dict:
        return {
            "offset": 0,
            "limit": self.app.config.get("SEARCH_DEFAULT_ROWS_LIMIT", DEFAULT_ROWS_LIMIT),
            "sort_by": [{SORT_RELEVANCE: "desc"}],
            "fields": [],
            "params": {},
            "store_id": None,
            "filters": {},
            "facets": {},
            "range_filters": {},
            "stats": [],
        }

    def _query_params(self, params) -> dict:
        merged = self._default_query_params()
        if isinstance(params, Mapping):
            for key in merged:
                if key in params:
                    merged[key] = params[key]
        return merged

    def default_store_id(self):
        return parse_int(self.app.config.get("DEFAULT_STORE_ID", DEFAULT_STORE_ID), 0)

    def default_context(self, store_id=None) -> SearchContext:
        if store_id is None:
            store_id = self.default_store_id()
        store = self.catalog.get_store(store_id)
        return SearchContext.for_store(
            store,
            show_out_of_stock=parse_bool(self.app.config.get("SHOW_OUT_OF_STOCK", False)),
        )

    def search(
        self,
        query,
        params=None,
        entity_type: str = DEFAULT_ENTITY_TYPE,
        context: SearchContext | None = None,
    ) -> dict:
        _params = self._query_params(params)
        if context is None:
            context = self.default_context(_params["store_id"])
        store_id = _params["store_id"] if _params["store_id"] is not None else context.store_id

        search_conditions = prepare_search_conditions(query)

        search_params = {
            "offset": parse_int(_params["offset"], 0),
            "limit": parse_int(_params["limit"], DEFAULT_ROWS_LIMIT),
        }
        if _params["fields"]:
            search_params["fields"] = list(_params["fields"])

        sortables = self.catalog.get_sortable_attributes(store_id)
        search_params["sort"] = prepare_sort_fields(_params["sort_by"], context, sortables)

        use_facet_search = bool(_params["facets"])
        if use_facet_search:
            search_params["facets"] = prepare_facets_conditions(_params["facets"])

        if isinstance(_params["params"], Mapping):
            for name, value in _params["params"].items():
                search_params[name] = value

        filters = dict(_params["filters"] or {})
        if parse_int(store_id, 0) > 0:
            filters["store_id"] = store_id
        if not context.show_out_of_stock:
            filters["in_stock"] = "1"
        filters["visibility"] = context.visibility_ids(query)
        search_params["filters"] = " AND ".join(prepare_filters(filters))

        if _params["range_filters"]:
            search_params["range_filters"] = _params["range_filters"]

        if _params["stats"]:
            search_params["stats"] = _params["stats"]
            use_facet_search = True

        data = self.client.search(search_conditions, search_params, entity_type)
        if not isinstance(data, ResultSet):
            return {}

        docs = prepare_query_response(data)
        result = {
            "ids": [doc.get("id") for doc in docs],
            "total_count": data.total_hits,
        }
        if use_facet_search:
            result["facets"] = prepare_facets_query_response(data.get_facets())
        return result

    def get_stats(
        self,
        query,
        params=None,
        entity_type: str = DEFAULT_ENTITY_TYPE,
        context: SearchContext | None = None,
    ) -> dict:
        result = self.search(query, params, entity_type, context)
        return result.get("facets", {}).get("stats", {})

    def save_entity_indexes(self, store_id, indexes: Mapping, entity_type: str = DEFAULT_ENTITY_TYPE) -> int:
        indexes = {entity_id: dict(data) for entity_id, data in indexes.items()}
        indexes = self.catalog.add_advanced_index(indexes, store_id, list(indexes))

        store = self.catalog.get_store(store_id)
        searchables = self.catalog.get_searchable_attributes(store.id)
        sortables = self.catalog.get_sortable_attributes(store.id)
        indexes = prepare_entity_indexes(indexes, store, searchables, sortables)

        docs = prepare_docs(indexes, self.client, entity_type)
        return self._add_docs(docs, entity_type)

    def _add_docs(self, docs: list, entity_type: str = DEFAULT_ENTITY_TYPE) -> int:
        added = 0
        if docs:
            added = self.client.add_documents(docs)
        self.client.refresh_index(entity_type)
        return added

    def clean_index(self, store_id=None, id=None, entity_type: str = DEFAULT_ENTITY_TYPE):
        return self.client.clean_index(store_id, id, entity_type)

    def delete_index(self):
        return self.client.delete_index()

    def test(self) -> bool:
        """Whether the engine answers a status probe; probed once per instance."""
        if self._available is not None:
            return self._available
        with self._lock:
            if self._available is None:
                try:
                    self.client.get_status()
                    available = True
                except Exception as exc:
                    if parse_bool(self.app.config.get("SEARCH_DEBUG", False)):
                        self.app.logger.warning("Elasticsearch engine is not available: %s", exc)
                    available = False
                self._available = available
        return self._available
