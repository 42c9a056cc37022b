"""
Catalog Service
Products, categories and warehouses
"""
from typing import List, Optional
import logging

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import ReferenceNotFound, ValidationError
from retailops.core.numeric import to_money
from retailops.core.permissions import Action, authorize
from retailops.models.catalog import Category, Product, Warehouse
from retailops.schemas.catalog import CategoryCreate, ProductCreate, ProductUpdate, WarehouseCreate
from retailops.services.audit import record_audit

logger = logging.getLogger(__name__)


class CatalogService:
    """Catalog maintenance; stock quantities are never touched here"""

    def __init__(self, db: Session, current_user=None):
        self.db = db
        self.current_user = current_user

    # Products

    def get_product(self, product_id: int) -> Product:
        """Get product by ID"""
        product = self.db.get(Product, product_id)
        if product is None:
            raise ReferenceNotFound("Product", product_id)
        return product

    def list_products(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        active_only: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Product]:
        """List products with optional search"""
        stmt = select(Product)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        stmt = stmt.order_by(Product.name).offset(skip).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def create_product(self, product_data: ProductCreate) -> Product:
        """Create a product with a unique SKU"""
        authorize(self.current_user, Action.CATALOG_MANAGE)

        with unit_of_work(self.db):
            existing = self.db.execute(
                select(Product.id).where(Product.sku == product_data.sku)
            ).scalar_one_or_none()
            if existing is not None:
                raise ValidationError(f"SKU {product_data.sku} already exists", {"sku": product_data.sku})
            if product_data.category_id is not None and self.db.get(Category, product_data.category_id) is None:
                raise ReferenceNotFound("Category", product_data.category_id)

            product = Product(**product_data.model_dump(exclude={"price"}), price=to_money(product_data.price))
            self.db.add(product)
            self.db.flush()
            record_audit(
                self.db, self.current_user, "CREATE", "Product", product.id,
                new_values={"sku": product.sku, "name": product.name, "price": product.price},
            )

        logger.info(f"Product {product.sku} created")
        return product

    def update_product(self, product_id: int, product_data: ProductUpdate) -> Product:
        """Update descriptive fields and price"""
        authorize(self.current_user, Action.CATALOG_MANAGE)

        with unit_of_work(self.db):
            product = self.get_product(product_id)
            update_data = product_data.model_dump(exclude_unset=True)
            if update_data.get("category_id") is not None and self.db.get(Category, update_data["category_id"]) is None:
                raise ReferenceNotFound("Category", update_data["category_id"])
            if "price" in update_data and update_data["price"] is not None:
                update_data["price"] = to_money(update_data["price"])

            old_values = {field: getattr(product, field) for field in update_data}
            for field, value in update_data.items():
                setattr(product, field, value)
            record_audit(
                self.db, self.current_user, "UPDATE", "Product", product.id,
                old_values=old_values, new_values=update_data,
            )

        logger.info(f"Product {product.sku} updated")
        return product

    # Categories

    def list_categories(self) -> List[Category]:
        return list(self.db.execute(select(Category).order_by(Category.name)).scalars())

    def create_category(self, category_data: CategoryCreate) -> Category:
        authorize(self.current_user, Action.CATALOG_MANAGE)

        with unit_of_work(self.db):
            category = Category(name=category_data.name, description=category_data.description)
            self.db.add(category)
            self.db.flush()
        return category

    # Warehouses

    def get_warehouse(self, warehouse_id: int) -> Warehouse:
        """Get warehouse by ID"""
        warehouse = self.db.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise ReferenceNotFound("Warehouse", warehouse_id)
        return warehouse

    def list_warehouses(self, stores_only: bool = False) -> List[Warehouse]:
        stmt = select(Warehouse)
        if stores_only:
            stmt = stmt.where(Warehouse.is_store.is_(True))
        return list(self.db.execute(stmt.order_by(Warehouse.name)).scalars())

    def create_warehouse(self, warehouse_data: WarehouseCreate) -> Warehouse:
        """Create a warehouse or store with a unique name"""
        authorize(self.current_user, Action.CATALOG_MANAGE)

        with unit_of_work(self.db):
            existing = self.db.execute(
                select(Warehouse.id).where(Warehouse.name == warehouse_data.name)
            ).scalar_one_or_none()
            if existing is not None:
                raise ValidationError(f"Warehouse {warehouse_data.name} already exists")

            warehouse = Warehouse(**warehouse_data.model_dump())
            self.db.add(warehouse)
            self.db.flush()
            record_audit(
                self.db, self.current_user, "CREATE", "Warehouse", warehouse.id,
                new_values={"name": warehouse.name, "is_store": warehouse.is_store},
            )

        logger.info(f"Warehouse '{warehouse.name}' created")
        return warehouse
