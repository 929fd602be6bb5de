from __future__ import annotations

from collections.abc import Mapping

from constants import DEFAULT_ENTITY_TYPE, OPTIONS_FIELD, UNIQUE_KEY

from storefront_search.services.attributes import sortable_field_name
from storefront_search.services.search_context import Store


def _clean_list(values: list) -> list:
    return [value for value in dict.fromkeys(values) if value]


def prepare_entity_row(
    data: Mapping,
    store: Store,
    searchables: Mapping,
    sortables: Mapping,
) -> dict:
    row = dict(data)
    for key in list(row.keys()):
        value = row[key]
        if isinstance(value, (list, tuple)):
            value = _clean_list(list(value))

        attribute = searchables.get(key)
        if attribute is not None:
            value = attribute.index_value(value, store)
            label = attribute.option_label(value)
            if label is not None:
                row.setdefault(OPTIONS_FIELD, []).append(label)
        row[key] = value

        sortable = sortables.get(key)
        if sortable is not None:
            sort_key = sortable_field_name(sortable, store.locale_code)
            row[sort_key] = sortable.sort_value(value)
    row["store_id"] = store.id
    return row


def prepare_entity_indexes(
    indexes: Mapping,
    store: Store,
    searchables: Mapping,
    sortables: Mapping,
) -> dict:
    """Add sortable fields, option labels and the store id to every entity row."""
    return {
        entity_id: prepare_entity_row(data, store, searchables, sortables)
        for entity_id, data in indexes.items()
    }


def prepare_docs(indexes: Mapping, client, entity_type: str = DEFAULT_ENTITY_TYPE) -> list:
    docs = []
    for entity_id, index in indexes.items():
        index = dict(index)
        index[UNIQUE_KEY] = f"{entity_id}|{index['store_id']}"
        index["id"] = entity_id
        docs.append(client.create_doc(index[UNIQUE_KEY], index, entity_type))
    return docs
