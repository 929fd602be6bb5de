import os

from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker

from constants import DEFAULT_LOCALE, DEFAULT_STORE_ID, DEFAULT_TIMEZONE
from models import Base, Store


DATABASE_URL = os.environ.get("STOREFRONT_DATABASE_URL", "sqlite:///storefront_search.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = scoped_session(sessionmaker(bind=engine))


def seed_default_store(session):
    if session.query(Store.id).first():
        return
    session.add(
        Store(
            id=DEFAULT_STORE_ID,
            code="default",
            name="Default Store View",
            website_id=1,
            locale_code=os.environ.get("STOREFRONT_DEFAULT_LOCALE", DEFAULT_LOCALE),
            timezone=os.environ.get("STOREFRONT_DEFAULT_TIMEZONE", DEFAULT_TIMEZONE),
        )
    )
    session.commit()


def init_db(bind=None):
    """Create tables and seed the default store view."""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    session = sessionmaker(bind=bind)()
    try:
        seed_default_store(session)
    finally:
        session.close()
