from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from constants import BACKEND_VARCHAR, DEFAULT_LOCALE, DEFAULT_TIMEZONE, VISIBILITY_BOTH


Base = declarative_base()


class Store(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    code = Column(String(64), unique=True, nullable=False)
    name = Column(String(128), nullable=False)
    website_id = Column(Integer, nullable=False, default=1)
    locale_code = Column(String(16), nullable=False, default=DEFAULT_LOCALE)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    is_active = Column(Boolean, default=True)


class Attribute(Base):
    __tablename__ = "attributes"

    id = Column(Integer, primary_key=True)
    code = Column(String(64), unique=True, nullable=False)
    label = Column(String(128))
    backend_type = Column(String(32), nullable=False, default=BACKEND_VARCHAR)
    frontend_input = Column(String(32), nullable=False, default="text")
    uses_source = Column(Boolean, default=False)
    is_searchable = Column(Boolean, default=False)
    used_for_sort_by = Column(Boolean, default=False)

    options = relationship(
        "AttributeOption",
        back_populates="attribute",
        cascade="all, delete-orphan",
    )


class AttributeOption(Base):
    __tablename__ = "attribute_options"
    __table_args__ = (UniqueConstraint("attribute_id", "store_id", "value"),)

    id = Column(Integer, primary_key=True)
    attribute_id = Column(Integer, ForeignKey("attributes.id"), nullable=False)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=True)
    value = Column(String(64), nullable=False)
    label = Column(String(255), nullable=False)

    attribute = relationship("Attribute", back_populates="options")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    sku = Column(String(64), unique=True, nullable=False)
    visibility = Column(Integer, nullable=False, default=VISIBILITY_BOTH)
    in_stock = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True)

    values = relationship(
        "ProductAttributeValue",
        back_populates="product",
        cascade="all, delete-orphan",
    )
    categories = relationship(
        "ProductCategory",
        back_populates="product",
        cascade="all, delete-orphan",
    )
    prices = relationship(
        "ProductPrice",
        back_populates="product",
        cascade="all, delete-orphan",
    )


class ProductAttributeValue(Base):
    __tablename__ = "product_attribute_values"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    attribute_id = Column(Integer, ForeignKey("attributes.id"), nullable=False)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=True)
    value = Column(Text)

    product = relationship("Product", back_populates="values")
    attribute = relationship("Attribute")


class ProductCategory(Base):
    __tablename__ = "product_categories"
    __table_args__ = (UniqueConstraint("product_id", "category_id"),)

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    category_id = Column(Integer, nullable=False)
    position = Column(Integer, default=0)
    is_direct = Column(Boolean, default=True)

    product = relationship("Product", back_populates="categories")


class ProductPrice(Base):
    __tablename__ = "product_prices"
    __table_args__ = (UniqueConstraint("product_id", "customer_group_id", "website_id"),)

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    customer_group_id = Column(Integer, nullable=False, default=0)
    website_id = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False)

    product = relationship("Product", back_populates="prices")
