"""
Catalog Models
Products, categories, warehouses and customers
"""
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Text, Boolean, ForeignKey

from retailops.core.database import Base
from datetime import datetime


class Category(Base):
    """Product category"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


class Product(Base):
    """
    Product master

    Identity and SKU are fixed once created; price and descriptive fields
    are maintained by catalog management.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, doc="Product name")
    sku = Column(String(50), unique=True, nullable=False, index=True, doc="Stock keeping unit")
    description = Column(Text)
    unit = Column(String(20), nullable=False, default="pcs", doc="Unit of measure")
    price = Column(Numeric(18, 2), nullable=False, default=0, doc="Selling price")
    category_id = Column(Integer, ForeignKey("categories.id"))
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}')>"


class Warehouse(Base):
    """Stock-holding location; stores are warehouses used by POS and the storefront"""
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, doc="Natural key")
    location = Column(String(200))
    is_store = Column(Boolean, default=False, nullable=False)
    manager_user_id = Column(Integer, doc="User id of the store manager")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Warehouse(id={self.id}, name='{self.name}')>"


class Customer(Base):
    """Walk-in and storefront customers, keyed by phone number"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    phone_number = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(100))
    address = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
