from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import or_

from constants import POSITION_FIELD_PREFIX
from models import (
    Attribute as AttributeModel,
    Product,
    ProductAttributeValue,
    ProductCategory,
    ProductPrice,
    Store as StoreModel,
)

from storefront_search.services.attributes import Attribute, build_attribute
from storefront_search.services.search_context import Store


class StaticAttributeCatalog:
    """Attribute metadata held in memory, keyed by attribute code."""

    def __init__(
        self,
        searchables: Mapping[str, Attribute] | None = None,
        sortables: Mapping[str, Attribute] | None = None,
        stores: Iterable[Store] | None = None,
    ):
        self.searchables = dict(searchables or {})
        self.sortables = dict(sortables or {})
        self.stores = {store.id: store for store in stores or []}

    def get_searchable_attributes(self, store_id=None) -> dict[str, Attribute]:
        return dict(self.searchables)

    def get_sortable_attributes(self, store_id=None) -> dict[str, Attribute]:
        return dict(self.sortables)

    def get_attribute(self, code: str, store_id=None) -> Attribute | None:
        return self.searchables.get(code) or self.sortables.get(code)

    def get_store(self, store_id) -> Store:
        if store_id in self.stores:
            return self.stores[store_id]
        return Store(id=int(store_id or 0))

    def add_advanced_index(self, indexes: dict, store_id, ids) -> dict:
        return indexes


class DatabaseAttributeCatalog:
    def __init__(self, session):
        self.session = session

    def _options(self, model: AttributeModel, store_id) -> dict:
        options = {}
        store_options = {}
        for option in model.options:
            if option.store_id is None:
                options[option.value] = option.label
            elif option.store_id == store_id:
                store_options[option.value] = option.label
        options.update(store_options)
        return options

    def _build(self, model: AttributeModel, store_id) -> Attribute:
        return build_attribute(
            model.code,
            backend_type=model.backend_type,
            frontend_input=model.frontend_input,
            uses_source=bool(model.uses_source),
            options=self._options(model, store_id) if model.uses_source else None,
        )

    def _attributes(self, criterion, store_id) -> dict[str, Attribute]:
        models = self.session.query(AttributeModel).filter(criterion).all()
        return {model.code: self._build(model, store_id) for model in models}

    def get_searchable_attributes(self, store_id=None) -> dict[str, Attribute]:
        return self._attributes(AttributeModel.is_searchable.is_(True), store_id)

    def get_sortable_attributes(self, store_id=None) -> dict[str, Attribute]:
        return self._attributes(AttributeModel.used_for_sort_by.is_(True), store_id)

    def get_attribute(self, code: str, store_id=None) -> Attribute | None:
        model = self.session.query(AttributeModel).filter_by(code=code).first()
        if model is None:
            return None
        return self._build(model, store_id)

    def get_store(self, store_id) -> Store:
        model = self.session.get(StoreModel, store_id) if store_id else None
        if model is None:
            return Store(id=int(store_id or 0))
        return Store(
            id=model.id,
            website_id=model.website_id,
            locale_code=model.locale_code,
            timezone=model.timezone,
        )

    def get_stores(self) -> list[Store]:
        models = (
            self.session.query(StoreModel)
            .filter(StoreModel.is_active.is_(True))
            .order_by(StoreModel.id)
            .all()
        )
        return [self.get_store(model.id) for model in models]

    def load_entity_indexes(self, store_id, product_ids) -> dict:
        """Attribute values per product, store values overriding defaults."""
        indexes: dict = {product_id: {} for product_id in product_ids}
        if not indexes:
            return indexes
        rows = (
            self.session.query(ProductAttributeValue, AttributeModel.code)
            .join(AttributeModel, ProductAttributeValue.attribute_id == AttributeModel.id)
            .filter(ProductAttributeValue.product_id.in_(list(indexes)))
            .filter(
                or_(
                    ProductAttributeValue.store_id.is_(None),
                    ProductAttributeValue.store_id == store_id,
                )
            )
            .order_by(ProductAttributeValue.store_id.is_(None).desc(), ProductAttributeValue.id)
            .all()
        )
        store_scoped = set()
        for value, code in rows:
            key = (value.product_id, code)
            data = indexes[value.product_id]
            if value.store_id is not None and key not in store_scoped:
                store_scoped.add(key)
                data[code] = []
            data.setdefault(code, []).append(value.value)
        return indexes

    def add_advanced_index(self, indexes: dict, store_id, ids) -> dict:
        """Add category, position, price, stock and visibility fields."""
        ids = list(ids)
        if not ids:
            return indexes
        store = self.get_store(store_id)

        products = self.session.query(Product).filter(Product.id.in_(ids)).all()
        for product in products:
            data = indexes.setdefault(product.id, {})
            data["in_stock"] = 1 if product.in_stock else 0
            data["visibility"] = product.visibility

        categories = (
            self.session.query(ProductCategory)
            .filter(ProductCategory.product_id.in_(ids))
            .all()
        )
        for category in categories:
            data = indexes.setdefault(category.product_id, {})
            field = "categories" if category.is_direct else "show_in_categories"
            data.setdefault(field, []).append(category.category_id)
            data[f"{POSITION_FIELD_PREFIX}{category.category_id}"] = category.position or 0

        prices = (
            self.session.query(ProductPrice)
            .filter(ProductPrice.product_id.in_(ids))
            .filter(ProductPrice.website_id == store.website_id)
            .all()
        )
        for price in prices:
            data = indexes.setdefault(price.product_id, {})
            data[f"price_{price.customer_group_id}_{price.website_id}"] = price.price
        return indexes
