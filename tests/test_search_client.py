import pytest
from elasticsearch import ConnectionError as ElasticsearchConnectionError

from storefront_search.services.search_client import ElasticsearchClient, ResultSet, _index_settings


class StubIndices:
    def __init__(self):
        self.calls = []

    def exists(self, index):
        self.calls.append(("exists", index))
        return False

    def create(self, index, **settings):
        self.calls.append(("create", index))

    def refresh(self, index):
        self.calls.append(("refresh", index))

    def delete(self, index, **kwargs):
        self.calls.append(("delete", index))


class StubElasticsearch:
    def __init__(self, response=None, error=None):
        self.response = response or {"hits": {"total": {"value": 0}, "hits": []}}
        self.error = error
        self.indices = StubIndices()
        self.searches = []
        self.deletes = []

    def search(self, index, body):
        self.searches.append((index, body))
        if self.error is not None:
            raise self.error
        return self.response

    def delete_by_query(self, index, query, **kwargs):
        self.deletes.append((index, query))

    def info(self):
        return {"version": {"number": "8.13.0"}}


@pytest.fixture
def es_client(app):
    app.config["ELASTICSEARCH_INDEX"] = "shop"
    app.config["ELASTICSEARCH_FACET_LIMIT"] = 20
    client = ElasticsearchClient(app)
    client._es = StubElasticsearch()
    return client


class TestBuildBody:
    def test_free_text_and_filters(self, es_client):
        body = es_client.build_body(
            "(red shoes)",
            {"offset": 10, "limit": 5, "filters": "in_stock:1", "sort": [{"_score": "desc"}]},
        )
        assert body["query"] == {
            "bool": {
                "must": [{"query_string": {"query": "(red shoes)"}}],
                "filter": [{"query_string": {"query": "in_stock:1"}}],
            }
        }
        assert body["from"] == 10
        assert body["size"] == 5
        assert body["track_total_hits"] is True
        assert body["sort"] == [{"_score": "desc"}]

    def test_empty_conditions_match_all(self, es_client):
        body = es_client.build_body("", {"limit": 1})
        assert body["query"]["bool"]["must"] == [{"match_all": {}}]
        assert "sort" not in body
        assert "aggs" not in body

    def test_field_sort_tolerates_missing_values(self, es_client):
        body = es_client.build_body("", {"sort": [{"price_0_1": "asc"}]})
        assert body["sort"] == [
            {"price_0_1": {"order": "asc", "missing": "_last", "unmapped_type": "keyword"}}
        ]

    def test_range_filters(self, es_client):
        body = es_client.build_body("", {"range_filters": {"price": {"from": "10", "to": "19.5"}, "weight": {"to": ""}}})
        assert body["query"]["bool"]["filter"] == [{"range": {"price": {"gte": 10, "lte": 19.5}}}]

    def test_aggregations(self, es_client):
        facets = {
            "fields": ["color"],
            "ranges": {"price": [{"to": "10"}, {"from": "10"}]},
            "queries": ["size:m"],
        }
        body = es_client.build_body("", {"facets": facets, "stats": ["price"]})
        assert body["aggs"] == {
            "color": {"terms": {"field": "color.keyword", "size": 20}},
            "price": {
                "range": {
                    "field": "price",
                    "ranges": [{"key": "*-10", "to": 10}, {"key": "10-*", "from": 10}],
                }
            },
            "_queries": {"filters": {"filters": {"size:m": {"query_string": {"query": "size:m"}}}}},
            "_stats:price": {"extended_stats": {"field": "price"}},
        }

    def test_mapped_fields_aggregate_directly(self, es_client):
        facets = {"fields": ["categories", "store_id", "price_0_1", "sort_by_name_en"]}
        aggs = es_client.build_body("", {"facets": facets})["aggs"]
        assert [agg["terms"]["field"] for agg in aggs.values()] == [
            "categories",
            "store_id",
            "price_0_1",
            "sort_by_name_en",
        ]

    def test_fields_and_passthrough(self, es_client):
        body = es_client.build_body("", {"fields": ["id"], "min_score": 0.2, "unknown": 1})
        assert body["_source"] == ["id"]
        assert body["min_score"] == 0.2
        assert "unknown" not in body


class TestDecodeFacets:
    def test_terms(self, es_client):
        aggregations = {"color": {"sum_other_doc_count": 0, "buckets": [{"key": "red", "doc_count": 3}]}}
        assert es_client._decode_facets(aggregations, {"fields": ["color"]}) == {
            "color": {"_type": "terms", "other": 0, "terms": [{"term": "red", "count": 3}]}
        }

    def test_ranges_keep_requested_bounds(self, es_client):
        aggregations = {
            "price": {
                "buckets": [
                    {"key": "*-10", "to": 10.0, "doc_count": 2},
                    {"key": "10-*", "from": 10.0, "doc_count": 4},
                ]
            }
        }
        facets = {"ranges": {"price": [{"to": "10"}, {"from": "10"}]}}
        decoded = es_client._decode_facets(aggregations, facets)["price"]
        assert decoded["_type"] == "range"
        assert [(r["from_str"], r["to_str"], r["total_count"]) for r in decoded["ranges"]] == [
            ("", "10", 2),
            ("10", "", 4),
        ]

    def test_ranges_follow_bucket_keys_not_order(self, es_client):
        aggregations = {
            "price": {
                "buckets": [
                    {"key": "0-50", "from": 0.0, "to": 50.0, "doc_count": 9},
                    {"key": "50-100", "from": 50.0, "to": 100.0, "doc_count": 1},
                ]
            }
        }
        facets = {"ranges": {"price": [{"from": "50", "to": "100"}, {"from": "0", "to": "50"}]}}
        decoded = es_client._decode_facets(aggregations, facets)
        assert [(r["from_str"], r["to_str"], r["total_count"]) for r in decoded["price"]["ranges"]] == [
            ("50", "100", 1),
            ("0", "50", 9),
        ]

    def test_missing_range_bucket_counts_zero(self, es_client):
        facets = {"ranges": {"price": [{"from": "0", "to": "50"}]}}
        decoded = es_client._decode_facets({"price": {"buckets": []}}, facets)
        assert decoded["price"]["ranges"][0]["total_count"] == 0

    def test_queries(self, es_client):
        aggregations = {"_queries": {"buckets": {"size:m": {"doc_count": 5}}}}
        assert es_client._decode_facets(aggregations, {}) == {"size:m": {"_type": "query", "count": 5}}

    def test_stats(self, es_client):
        aggregations = {"_stats:price": {"count": 2, "min": 1.0, "max": 3.0, "avg": 2.0, "sum": 4.0}}
        stats = es_client._decode_facets(aggregations, {})["price"]
        assert stats["_type"] == "statistical"
        assert (stats["count"], stats["min"], stats["max"], stats["mean"], stats["total"]) == (2, 1.0, 3.0, 2.0, 4.0)


class TestSearch:
    def test_returns_result_set(self, es_client):
        es_client._es.response = {
            "hits": {"total": {"value": 7}, "hits": [{"_source": {"id": 1}}]},
            "aggregations": {"color": {"buckets": [{"key": "red", "doc_count": 1}]}},
        }
        result = es_client.search("shoes", {"limit": 1, "facets": {"fields": ["color"]}}, "product")

        assert isinstance(result, ResultSet)
        assert result.total_hits == 7
        assert result.count() == 1
        assert result.get_facets()["color"]["terms"] == [{"term": "red", "count": 1}]
        index, body = es_client._es.searches[0]
        assert index == "shop-product"
        assert body["query"]["bool"]["must"] == [{"query_string": {"query": "shoes"}}]

    def test_engine_error_returns_none(self, es_client):
        es_client._es.error = ElasticsearchConnectionError("connection refused")
        assert es_client.search("shoes", {}) is None

    def test_legacy_integer_total(self):
        assert ResultSet({"hits": {"total": 3, "hits": []}}).total_hits == 3


class TestIndexMaintenance:
    def test_ensure_index_creates_missing_index(self, es_client):
        assert es_client.ensure_index("product") is True
        assert es_client._es.indices.calls == [("exists", "shop-product"), ("create", "shop-product")]

    def test_clean_index_by_store_and_id(self, es_client):
        assert es_client.clean_index(1, 7) is True
        assert es_client._es.deletes == [
            ("shop-product", {"bool": {"filter": [{"term": {"store_id": 1}}, {"terms": {"id": [7]}}]}})
        ]

    def test_clean_everything(self, es_client):
        es_client.clean_index()
        assert es_client._es.deletes == [("shop-product", {"match_all": {}})]

    def test_delete_index_removes_all_entity_types(self, es_client):
        assert es_client.delete_index() is True
        assert es_client._es.indices.calls == [("delete", "shop-*")]

    def test_create_doc(self, es_client):
        assert es_client.create_doc("5|1", {"id": 5}) == {
            "_index": "shop-product",
            "_id": "5|1",
            "_source": {"id": 5},
        }


class TestStatus:
    def test_status_requires_url(self, app):
        app.config["ELASTICSEARCH_URL"] = ""
        with pytest.raises(RuntimeError):
            ElasticsearchClient(app).get_status()

    def test_search_without_url(self, app):
        app.config["ELASTICSEARCH_URL"] = None
        assert ElasticsearchClient(app).search("shoes", {}) is None

    def test_status_uses_info(self, es_client):
        assert es_client.get_status()["version"]["number"] == "8.13.0"


class TestIndexSettings:
    def test_dynamic_strings_get_keyword_subfield(self):
        templates = {
            name: template
            for entry in _index_settings()["mappings"]["dynamic_templates"]
            for name, template in entry.items()
        }
        strings = templates["string_fields"]
        assert strings["match_mapping_type"] == "string"
        assert strings["mapping"]["type"] == "text"
        assert strings["mapping"]["fields"]["keyword"]["type"] == "keyword"

    def test_specific_templates_win_over_strings(self):
        names = [next(iter(entry)) for entry in _index_settings()["mappings"]["dynamic_templates"]]
        assert names[-1] == "string_fields"

    def test_options_stay_full_text(self):
        assert _index_settings()["mappings"]["properties"]["_options"] == {"type": "text"}
