#!/usr/bin/env python3
"""
RetailOps Demo Data Population Script
Populates the catalog and books opening stock through a received purchase order
"""
from decimal import Decimal
import logging

from sqlalchemy import select

from retailops.core.config import settings
from retailops.core.database import SessionLocal, init_db
from retailops.models.auth import User
from retailops.models.catalog import Category, Product, Warehouse
from retailops.schemas.catalog import ProductCreate, WarehouseCreate
from retailops.schemas.purchasing import PurchaseOrderCreate, PurchaseItemCreate
from retailops.services.bootstrap import bootstrap
from retailops.services.catalog import CatalogService
from retailops.services.ledger import LedgerService
from retailops.services.purchase_orders import PurchaseOrderService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {"name": "Office Desk Standard", "sku": "DESK-STD", "price": Decimal("199.99"), "quantity": Decimal("50")},
    {"name": "Laptop Computer Pro", "sku": "LAP-PRO", "price": Decimal("1299.99"), "quantity": Decimal("25")},
    {"name": "Printer Paper A4", "sku": "PAP-A4", "price": Decimal("5.99"), "unit": "ream", "quantity": Decimal("500")},
    {"name": "Desk Lamp LED", "sku": "LAMP-LED", "price": Decimal("34.50"), "quantity": Decimal("8")},
]

DEMO_STORES = ["Downtown Store", "Harbour Store"]


def create_demo_products(catalog: CatalogService, category_id: int):
    """Create demo products, skipping SKUs that already exist"""
    products = []
    for data in DEMO_PRODUCTS:
        product = catalog.db.execute(select(Product).where(Product.sku == data["sku"])).scalar_one_or_none()
        if product is None:
            product = catalog.create_product(ProductCreate(
                name=data["name"],
                sku=data["sku"],
                price=data["price"],
                unit=data.get("unit", "pcs"),
                category_id=category_id,
            ))
        products.append((product, data["quantity"]))

    logger.info(f"Created {len(products)} demo products")
    return products


def create_demo_stores(catalog: CatalogService):
    """Create demo physical stores"""
    for name in DEMO_STORES:
        exists = catalog.db.execute(select(Warehouse).where(Warehouse.name == name)).scalar_one_or_none()
        if exists is None:
            catalog.create_warehouse(WarehouseCreate(name=name, is_store=True))

    logger.info(f"Created {len(DEMO_STORES)} demo stores")


def populate_demo_data():
    """Main function to populate all demo data"""
    init_db()
    session = SessionLocal()
    try:
        logger.info("Starting demo data population...")
        bootstrap(session)

        admin = session.execute(
            select(User).where(User.email == settings.ADMIN_EMAIL.strip().lower())
        ).scalar_one()
        category = session.execute(
            select(Category).where(Category.name == settings.DEFAULT_CATEGORY_NAME)
        ).scalar_one()
        main = session.execute(
            select(Warehouse).where(Warehouse.name == settings.MAIN_WAREHOUSE_NAME)
        ).scalar_one()

        catalog = CatalogService(session, admin)
        products = create_demo_products(catalog, category.id)
        create_demo_stores(catalog)

        # Opening stock arrives through the normal purchasing workflow
        purchasing = PurchaseOrderService(session, admin)
        order = purchasing.create(PurchaseOrderCreate(
            supplier_name="Demo Wholesale Ltd",
            notes="Opening stock",
            items=[
                PurchaseItemCreate(
                    product_id=product.id,
                    warehouse_id=main.id,
                    quantity=quantity,
                    unit_price=(product.price * Decimal("0.6")).quantize(Decimal("0.01")),
                )
                for product, quantity in products
            ],
        ))
        purchasing.approve(order.id)
        purchasing.receive(order.id, "Opening stock")

        updated = LedgerService(session, admin).set_default_minimum_levels()
        logger.info(f"Demo data population completed successfully ({updated} balances given minimum levels)")
    finally:
        session.close()


if __name__ == "__main__":
    populate_demo_data()
