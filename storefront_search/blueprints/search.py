import re

from flask import Blueprint, current_app, jsonify, request

from constants import DEFAULT_ENTITY_TYPE
from database import SessionLocal
from helpers import parse_bool, parse_int
from storefront_search.services.catalog_service import DatabaseAttributeCatalog
from storefront_search.services.search_context import SearchContext
from storefront_search.services.search_service import ProductSearchService

search_bp = Blueprint("search", __name__, url_prefix="/api/search")

FILTER_ARG = re.compile(r"^filters\[(\w+)\](?:\[(from|to)\])?$")
EXTENSION_KEY = "storefront_search"


def get_search_service() -> ProductSearchService:
    service = current_app.extensions.get(EXTENSION_KEY)
    if service is None:
        app = current_app._get_current_object()
        service = ProductSearchService(app, catalog=DatabaseAttributeCatalog(SessionLocal))
        current_app.extensions[EXTENSION_KEY] = service
    return service


def build_context(service: ProductSearchService, values) -> SearchContext:
    store_id = parse_int(values.get("store_id"))
    if store_id is None:
        store_id = service.default_store_id()
    store = service.catalog.get_store(store_id)
    return SearchContext.for_store(
        store,
        customer_group_id=parse_int(values.get("customer_group_id"), 0),
        category_id=parse_int(values.get("category_id")),
        show_out_of_stock=parse_bool(current_app.config.get("SHOW_OUT_OF_STOCK", False)),
    )


def _filters_from_args(args) -> dict:
    filters = {}
    for name in args:
        match = FILTER_ARG.match(name)
        if not match:
            continue
        field, bound = match.groups()
        values = [value for value in args.getlist(name) if value != ""]
        if not values:
            continue
        if bound:
            filters.setdefault(field, {})[bound] = values[0]
        else:
            filters[field] = values if len(values) > 1 else values[0]
    return filters


def _params_from_args(args) -> dict:
    params = {
        "offset": parse_int(args.get("offset"), 0),
        "store_id": parse_int(args.get("store_id")),
        "filters": _filters_from_args(args),
        "facets": {field: [] for field in args.getlist("facet") if field},
    }
    if args.get("limit"):
        params["limit"] = parse_int(args.get("limit"))
    if args.get("order"):
        params["sort_by"] = [{args["order"]: args.get("dir", "asc")}]
    if args.getlist("stats"):
        params["stats"] = args.getlist("stats")
    return params


def _disabled():
    return jsonify({"error": "Search engine is disabled."}), 503


@search_bp.route("", methods=["GET"])
def search():
    service = get_search_service()
    if not service.is_enabled():
        return _disabled()
    query = (request.args.get("q") or "").strip()
    context = build_context(service, request.args)
    result = service.search(
        query,
        _params_from_args(request.args),
        request.args.get("type", DEFAULT_ENTITY_TYPE),
        context=context,
    )
    return jsonify(result)


@search_bp.route("", methods=["POST"])
def search_json():
    service = get_search_service()
    if not service.is_enabled():
        return _disabled()
    payload = request.get_json(silent=True) or {}
    context = build_context(service, payload.get("context") or {})
    result = service.search(
        payload.get("query") or "",
        payload.get("params") or {},
        payload.get("type") or DEFAULT_ENTITY_TYPE,
        context=context,
    )
    return jsonify(result)


@search_bp.route("/status")
def status():
    service = get_search_service()
    return jsonify({"enabled": service.is_enabled(), "available": service.test()})
