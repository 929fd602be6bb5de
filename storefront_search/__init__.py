from flask import Flask

from constants import DEFAULT_FACET_LIMIT, DEFAULT_INDEX_NAME, DEFAULT_ROWS_LIMIT, DEFAULT_STORE_ID
from database import SessionLocal, init_db
from helpers import env_config, parse_bool, parse_int
from storefront_search.blueprints.search import search_bp
from storefront_search.services.search_indexer import schedule_search_index


def _load_search_config(app):
    app.config.update(
        ELASTICSEARCH_ENABLED=env_config("ELASTICSEARCH_ENABLED", False, parse_bool),
        ELASTICSEARCH_URL=env_config("ELASTICSEARCH_URL", "http://localhost:9200"),
        ELASTICSEARCH_INDEX=env_config("ELASTICSEARCH_INDEX", DEFAULT_INDEX_NAME),
        ELASTICSEARCH_TIMEOUT=env_config("ELASTICSEARCH_TIMEOUT", 5, parse_int),
        ELASTICSEARCH_VERIFY_CERTS=env_config("ELASTICSEARCH_VERIFY_CERTS", False, parse_bool),
        ELASTICSEARCH_USERNAME=env_config("ELASTICSEARCH_USERNAME"),
        ELASTICSEARCH_PASSWORD=env_config("ELASTICSEARCH_PASSWORD"),
        ELASTICSEARCH_FACET_LIMIT=env_config("ELASTICSEARCH_FACET_LIMIT", DEFAULT_FACET_LIMIT, parse_int),
        ELASTICSEARCH_AUTO_INDEX=env_config("ELASTICSEARCH_AUTO_INDEX", True, parse_bool),
        ELASTICSEARCH_FORCE_REINDEX=env_config("ELASTICSEARCH_FORCE_REINDEX", False, parse_bool),
        ELASTICSEARCH_BATCH_SIZE=env_config("ELASTICSEARCH_BATCH_SIZE", 1000, parse_int),
        SEARCH_DEFAULT_ROWS_LIMIT=env_config("SEARCH_DEFAULT_ROWS_LIMIT", DEFAULT_ROWS_LIMIT, parse_int),
        SEARCH_DEBUG=env_config("SEARCH_DEBUG", False, parse_bool),
        SHOW_OUT_OF_STOCK=env_config("SHOW_OUT_OF_STOCK", False, parse_bool),
        DEFAULT_STORE_ID=env_config("STOREFRONT_DEFAULT_STORE_ID", DEFAULT_STORE_ID, parse_int),
        DATABASE_INIT=env_config("STOREFRONT_DATABASE_INIT", True, parse_bool),
    )


def create_app(config=None):
    app = Flask(__name__)
    _load_search_config(app)
    if config:
        app.config.update(config)
    app.register_blueprint(search_bp)
    if app.config.get("DATABASE_INIT", True):
        init_db()

    @app.teardown_appcontext
    def remove_db_session(exception=None):
        SessionLocal.remove()

    schedule_search_index(app)
    return app
