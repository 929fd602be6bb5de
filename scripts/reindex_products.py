from __future__ import annotations

import os
import sys

os.environ.setdefault("ELASTICSEARCH_AUTO_INDEX", "0")

from storefront_search import create_app
from database import SessionLocal
from models import Product
from storefront_search.services.search_indexer import reindex_products
from storefront_search.services.search_service import ProductSearchService


def main() -> int:
    app = create_app()
    with app.app_context():
        service = ProductSearchService(app)
        if not service.is_enabled():
            print("Elasticsearch is disabled. Set ELASTICSEARCH_ENABLED=1.")
            return 1
        if not service.test():
            print("Elasticsearch is not reachable.")
            return 1

        rebuild = "--rebuild" in sys.argv or app.config.get("ELASTICSEARCH_FORCE_REINDEX", False)
        session = SessionLocal()
        try:
            total = session.query(Product).filter(Product.is_active.is_(True)).count()
            if total == 0:
                print("No products found to index.")
                return 0

            print(f"Indexing {total} products per store view...")
            processed = reindex_products(app, session, rebuild=rebuild)
            print(f"Done. Indexed {processed} documents.")
            return 0
        finally:
            session.close()


if __name__ == "__main__":
    raise SystemExit(main())
