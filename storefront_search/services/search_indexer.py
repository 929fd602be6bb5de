from __future__ import annotations

import os
import threading

from database import SessionLocal
from models import Product

from storefront_search.services.catalog_service import DatabaseAttributeCatalog
from storefront_search.services.search_client import ElasticsearchClient
from storefront_search.services.search_service import ProductSearchService


def _product_id_batches(session, batch_size):
    last_id = 0
    while True:
        batch = [
            row.id
            for row in session.query(Product.id)
            .filter(Product.id > last_id)
            .filter(Product.is_active.is_(True))
            .order_by(Product.id)
            .limit(batch_size)
            .all()
        ]
        if not batch:
            break
        yield batch
        last_id = batch[-1]


def reindex_products(app, session, rebuild=False) -> int:
    client = ElasticsearchClient(app)
    catalog = DatabaseAttributeCatalog(session)
    service = ProductSearchService(app, client=client, catalog=catalog)
    if rebuild:
        service.delete_index()
    if not client.ensure_index():
        return 0

    batch_size = int(app.config.get("ELASTICSEARCH_BATCH_SIZE", 1000))
    processed = 0
    for store in catalog.get_stores():
        service.clean_index(store.id)
        for batch in _product_id_batches(session, batch_size):
            indexes = catalog.load_entity_indexes(store.id, batch)
            processed += service.save_entity_indexes(store.id, indexes)
    return processed


def _index_all_products(app):
    with app.app_context():
        service = ProductSearchService(app)
        if not service.is_enabled():
            return
        if not service.test():
            app.logger.warning("Elasticsearch is not reachable; skipping catalog reindex.")
            return

        session = SessionLocal()
        try:
            product_count = session.query(Product.id).filter(Product.is_active.is_(True)).count()
            if product_count == 0:
                return
            doc_count = service.client.count_documents()
            force_reindex = bool(app.config.get("ELASTICSEARCH_FORCE_REINDEX", False))
            if not force_reindex and doc_count is not None and doc_count >= product_count:
                return
            reindex_products(app, session, rebuild=force_reindex)
        finally:
            session.close()


def schedule_search_index(app):
    if not app.config.get("ELASTICSEARCH_AUTO_INDEX", True):
        return
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        return
    thread = threading.Thread(target=_index_all_products, args=(app,), daemon=True)
    thread.start()
