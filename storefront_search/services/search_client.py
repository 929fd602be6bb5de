from __future__ import annotations

from collections.abc import Mapping

from elasticsearch import ApiError, Elasticsearch, TransportError, helpers
from flask import current_app

from constants import (
    DEFAULT_ENTITY_TYPE,
    DEFAULT_FACET_LIMIT,
    DEFAULT_INDEX_NAME,
    POSITION_FIELD_PREFIX,
    SCORE_FIELD,
    SORT_FIELD_PREFIX,
)
from helpers import parse_float


ES_ERRORS = (ApiError, TransportError)
QUERIES_AGGREGATION = "_queries"
STATS_PREFIX = "_stats:"
PASSTHROUGH_BODY_KEYS = {"min_score", "timeout", "track_scores", "explain", "_source"}
KEYWORD_SUBFIELD = "keyword"
UNTOKENIZED_FIELD_PREFIXES = ("price_", POSITION_FIELD_PREFIX, SORT_FIELD_PREFIX)


def _index_settings():
    return {
        "mappings": {
            "dynamic_templates": [
                {
                    "sort_fields": {
                        "match": "sort_by_*",
                        "mapping": {"type": "keyword", "ignore_above": 256},
                    }
                },
                {
                    "price_fields": {
                        "match": "price_*",
                        "mapping": {"type": "float"},
                    }
                },
                {
                    "position_fields": {
                        "match": "position_category_*",
                        "mapping": {"type": "integer"},
                    }
                },
                {
                    "string_fields": {
                        "match_mapping_type": "string",
                        "mapping": {
                            "type": "text",
                            "fields": {KEYWORD_SUBFIELD: {"type": "keyword", "ignore_above": 256}},
                        },
                    }
                },
            ],
            "properties": {
                "unique": {"type": "keyword"},
                "id": {"type": "integer"},
                "store_id": {"type": "integer"},
                "visibility": {"type": "integer"},
                "in_stock": {"type": "integer"},
                "categories": {"type": "integer"},
                "show_in_categories": {"type": "integer"},
                "price": {"type": "float"},
                "_options": {"type": "text"},
            },
        }
    }


MAPPED_PROPERTIES = frozenset(_index_settings()["mappings"]["properties"])


def _aggregation_field(field: str) -> str:
    """Terms aggregations on dynamic string fields go through their keyword subfield."""
    if field in MAPPED_PROPERTIES or field.startswith(UNTOKENIZED_FIELD_PREFIXES):
        return field
    return f"{field}.{KEYWORD_SUBFIELD}"


def _range_key(facet_range: Mapping) -> str:
    return f"{facet_range.get('from', '*')}-{facet_range.get('to', '*')}"


def _number(value):
    number = parse_float(value)
    if number is None:
        return value
    return int(number) if number.is_integer() else number


class ResultSet:
    """Search response with facets decoded into per-facet records."""

    def __init__(self, response: Mapping, facets: dict | None = None):
        self.response = response or {}
        self.facets = facets or {}

    def has_error(self) -> bool:
        return bool(self.response.get("error"))

    @property
    def hits(self) -> list:
        return list(self.response.get("hits", {}).get("hits", []))

    @property
    def total_hits(self) -> int:
        total = self.response.get("hits", {}).get("total", 0)
        if isinstance(total, Mapping):
            total = total.get("value", 0)
        return int(total or 0)

    def count(self) -> int:
        return len(self.hits)

    def get_facets(self) -> dict:
        return self.facets


class ElasticsearchClient:
    def __init__(self, app=None):
        self.app = app or current_app
        self._es = None

    def _client(self):
        if self._es is not None:
            return self._es
        url = self.app.config.get("ELASTICSEARCH_URL")
        if not url:
            return None
        timeout = self.app.config.get("ELASTICSEARCH_TIMEOUT", 5)
        verify_certs = bool(self.app.config.get("ELASTICSEARCH_VERIFY_CERTS", False))
        username = self.app.config.get("ELASTICSEARCH_USERNAME")
        password = self.app.config.get("ELASTICSEARCH_PASSWORD")
        kwargs = {
            "request_timeout": timeout,
            "verify_certs": verify_certs,
        }
        if username and password:
            kwargs["basic_auth"] = (username, password)
        self._es = Elasticsearch(url, **kwargs)
        return self._es

    def _index_name(self, entity_type: str = DEFAULT_ENTITY_TYPE) -> str:
        base = self.app.config.get("ELASTICSEARCH_INDEX", DEFAULT_INDEX_NAME)
        return f"{base}-{entity_type}"

    def get_status(self):
        client = self._client()
        if client is None:
            raise RuntimeError("ELASTICSEARCH_URL is not configured")
        return client.info()

    def ensure_index(self, entity_type: str = DEFAULT_ENTITY_TYPE) -> bool:
        client = self._client()
        if client is None:
            return False
        index = self._index_name(entity_type)
        try:
            if not client.indices.exists(index=index):
                client.indices.create(index=index, **_index_settings())
            return True
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch index setup failed: %s", exc)
            return False

    def create_doc(self, id, fields: Mapping, entity_type: str = DEFAULT_ENTITY_TYPE) -> dict:
        return {
            "_index": self._index_name(entity_type),
            "_id": id,
            "_source": dict(fields),
        }

    def add_documents(self, docs) -> int:
        client = self._client()
        if client is None:
            return 0
        try:
            success, _ = helpers.bulk(client, docs, raise_on_error=False)
            return success or 0
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch bulk index failed: %s", exc)
            return 0

    def refresh_index(self, entity_type: str = DEFAULT_ENTITY_TYPE) -> bool:
        client = self._client()
        if client is None:
            return False
        try:
            client.indices.refresh(index=self._index_name(entity_type))
            return True
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch refresh failed: %s", exc)
            return False

    def clean_index(self, store_id=None, id=None, entity_type: str = DEFAULT_ENTITY_TYPE) -> bool:
        client = self._client()
        if client is None:
            return False
        filters = []
        if store_id is not None:
            filters.append({"term": {"store_id": store_id}})
        if id is not None:
            ids = id if isinstance(id, (list, tuple, set)) else [id]
            filters.append({"terms": {"id": list(ids)}})
        query = {"bool": {"filter": filters}} if filters else {"match_all": {}}
        try:
            client.delete_by_query(
                index=self._index_name(entity_type),
                query=query,
                refresh=True,
                conflicts="proceed",
            )
            return True
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch clean failed: %s", exc)
            return False

    def delete_index(self) -> bool:
        client = self._client()
        if client is None:
            return False
        base = self.app.config.get("ELASTICSEARCH_INDEX", DEFAULT_INDEX_NAME)
        try:
            client.indices.delete(index=f"{base}-*", ignore_unavailable=True)
            return True
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch delete failed: %s", exc)
            return False

    def count_documents(self, entity_type: str = DEFAULT_ENTITY_TYPE) -> int | None:
        client = self._client()
        if client is None:
            return None
        try:
            response = client.count(index=self._index_name(entity_type))
            return int(response.get("count", 0))
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch count failed: %s", exc)
            return None

    def build_body(self, conditions: str, params: Mapping) -> dict:
        must = [{"query_string": {"query": conditions}}] if conditions else [{"match_all": {}}]
        filters = []
        if params.get("filters"):
            filters.append({"query_string": {"query": params["filters"]}})
        for field, bounds in (params.get("range_filters") or {}).items():
            range_query = {}
            if isinstance(bounds, Mapping):
                if bounds.get("from") not in (None, ""):
                    range_query["gte"] = _number(bounds["from"])
                if bounds.get("to") not in (None, ""):
                    range_query["lte"] = _number(bounds["to"])
            if range_query:
                filters.append({"range": {field: range_query}})

        body = {
            "query": {"bool": {"must": must, "filter": filters}},
            "from": int(params.get("offset", 0) or 0),
            "size": int(params.get("limit", 0) or 0),
            "track_total_hits": True,
        }
        sort = []
        for sort_field in params.get("sort") or []:
            for field, direction in sort_field.items():
                if field == SCORE_FIELD:
                    sort.append({field: direction})
                else:
                    sort.append(
                        {field: {"order": direction, "missing": "_last", "unmapped_type": "keyword"}}
                    )
        if sort:
            body["sort"] = sort

        aggs = self._build_aggregations(params.get("facets") or {}, params.get("stats") or [])
        if aggs:
            body["aggs"] = aggs

        if params.get("fields"):
            body["_source"] = list(params["fields"])
        for key in PASSTHROUGH_BODY_KEYS:
            if key in params:
                body[key] = params[key]
        return body

    def _build_aggregations(self, facets: Mapping, stats) -> dict:
        size = int(self.app.config.get("ELASTICSEARCH_FACET_LIMIT", DEFAULT_FACET_LIMIT))
        aggs = {}
        for field in facets.get("fields", []):
            aggs[field] = {"terms": {"field": _aggregation_field(field), "size": size}}
        for field, ranges in facets.get("ranges", {}).items():
            buckets = []
            for facet_range in ranges:
                bucket = {"key": _range_key(facet_range)}
                if "from" in facet_range:
                    bucket["from"] = _number(facet_range["from"])
                if "to" in facet_range:
                    bucket["to"] = _number(facet_range["to"])
                buckets.append(bucket)
            aggs[field] = {"range": {"field": field, "ranges": buckets}}
        if facets.get("queries"):
            aggs[QUERIES_AGGREGATION] = {
                "filters": {
                    "filters": {
                        query: {"query_string": {"query": query}}
                        for query in facets["queries"]
                    }
                }
            }
        if isinstance(stats, str):
            stats = [stats]
        for field in stats:
            aggs[f"{STATS_PREFIX}{field}"] = {"extended_stats": {"field": field}}
        return aggs

    def _decode_facets(self, aggregations: Mapping, facets: Mapping) -> dict:
        result = {}
        requested_ranges = facets.get("ranges", {})
        for name, data in (aggregations or {}).items():
            if name == QUERIES_AGGREGATION:
                for query, bucket in data.get("buckets", {}).items():
                    result[query] = {"_type": "query", "count": bucket.get("doc_count", 0)}
            elif name.startswith(STATS_PREFIX):
                result[name[len(STATS_PREFIX):]] = {
                    "_type": "statistical",
                    "count": data.get("count", 0),
                    "total": data.get("sum"),
                    "min": data.get("min"),
                    "max": data.get("max"),
                    "mean": data.get("avg"),
                    "sum_of_squares": data.get("sum_of_squares"),
                    "variance": data.get("variance"),
                    "std_deviation": data.get("std_deviation"),
                }
            elif name in requested_ranges:
                buckets = data.get("buckets", [])
                if not isinstance(buckets, Mapping):
                    buckets = {bucket.get("key"): bucket for bucket in buckets}
                ranges = []
                for facet_range in requested_ranges[name]:
                    bucket = buckets.get(_range_key(facet_range), {})
                    ranges.append(
                        {
                            "from": bucket.get("from"),
                            "to": bucket.get("to"),
                            "from_str": facet_range.get("from", ""),
                            "to_str": facet_range.get("to", ""),
                            "count": bucket.get("doc_count", 0),
                            "total_count": bucket.get("doc_count", 0),
                        }
                    )
                result[name] = {"_type": "range", "ranges": ranges}
            elif "buckets" in data:
                result[name] = {
                    "_type": "terms",
                    "other": data.get("sum_other_doc_count", 0),
                    "terms": [
                        {
                            "term": bucket.get("key_as_string", bucket.get("key")),
                            "count": bucket.get("doc_count", 0),
                        }
                        for bucket in data["buckets"]
                    ],
                }
        return result

    def search(self, conditions: str, params: Mapping, entity_type: str = DEFAULT_ENTITY_TYPE):
        client = self._client()
        if client is None:
            return None
        body = self.build_body(conditions, params)
        try:
            response = client.search(index=self._index_name(entity_type), body=body)
        except ES_ERRORS as exc:
            self.app.logger.warning("Elasticsearch search failed: %s", exc)
            return None
        facets = self._decode_facets(response.get("aggregations", {}), params.get("facets") or {})
        return ResultSet(response, facets)
