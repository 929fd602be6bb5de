import os

os.environ.setdefault("STOREFRONT_DATABASE_URL", "sqlite://")
os.environ.setdefault("ELASTICSEARCH_AUTO_INDEX", "0")

import pytest

from storefront_search import create_app
from storefront_search.services.attributes import build_attribute
from storefront_search.services.catalog_service import StaticAttributeCatalog
from storefront_search.services.search_client import ResultSet
from storefront_search.services.search_context import Store


class FakeSearchClient:
    def __init__(self, response=None, facets=None, status_error=None, fail=False):
        self.response = response or {"hits": {"total": {"value": 0}, "hits": []}}
        self.facets = facets or {}
        self.status_error = status_error
        self.fail = fail
        self.searches = []
        self.documents = []
        self.refreshed = []
        self.cleaned = []
        self.deleted = 0
        self.status_calls = 0

    @property
    def last_search(self):
        return self.searches[-1]

    def search(self, conditions, params, entity_type="product"):
        self.searches.append((conditions, params, entity_type))
        if self.fail:
            return None
        return ResultSet(self.response, self.facets)

    def create_doc(self, id, fields, entity_type="product"):
        return {"_index": f"test-{entity_type}", "_id": id, "_source": dict(fields)}

    def ensure_index(self, entity_type="product"):
        return True

    def count_documents(self, entity_type="product"):
        return len(self.documents)

    def add_documents(self, docs):
        self.documents.extend(docs)
        return len(docs)

    def refresh_index(self, entity_type="product"):
        self.refreshed.append(entity_type)
        return True

    def clean_index(self, store_id=None, id=None, entity_type="product"):
        self.cleaned.append((store_id, id, entity_type))
        return True

    def delete_index(self):
        self.deleted += 1
        return True

    def get_status(self):
        self.status_calls += 1
        if self.status_error is not None:
            raise self.status_error
        return {"version": {"number": "8.13.0"}}


def make_response(ids, total=None, error=None):
    response = {
        "hits": {
            "total": {"value": len(ids) if total is None else total},
            "hits": [{"_id": f"{id}|1", "_source": {"id": id}} for id in ids],
        }
    }
    if error:
        response["error"] = error
    return response


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "DATABASE_INIT": False,
            "ELASTICSEARCH_ENABLED": True,
            "ELASTICSEARCH_AUTO_INDEX": False,
            "SEARCH_DEFAULT_ROWS_LIMIT": 50,
        }
    )
    return app


@pytest.fixture
def store():
    return Store(id=1, website_id=2, locale_code="en_US", timezone="UTC")


@pytest.fixture
def catalog(store):
    color = build_attribute("color", "int", "select", uses_source=True, options={10: "Red", 11: "Blue"})
    sizes = build_attribute("sizes", "varchar", "multiselect", uses_source=True, options={1: "S", 2: "M"})
    name = build_attribute("name")
    news_from_date = build_attribute("news_from_date", "datetime", "date")
    price = build_attribute("price", "decimal", "price")
    return StaticAttributeCatalog(
        searchables={
            "color": color,
            "sizes": sizes,
            "name": name,
            "news_from_date": news_from_date,
        },
        sortables={"name": name, "price": price, "color": color},
        stores=[store],
    )


@pytest.fixture
def client():
    return FakeSearchClient()
