"""
Tests for the Catalog Service
Products, categories and warehouses
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import Session

from retailops.core.exceptions import Forbidden, ReferenceNotFound, ValidationError
from retailops.schemas.catalog import ProductCreate, ProductUpdate, WarehouseCreate
from retailops.services.catalog import CatalogService


class TestCatalogService:
    """Test suite for CatalogService"""

    def test_create_product_duplicate_sku(self, db_session: Session, admin_user, products):
        """SKUs are unique"""
        service = CatalogService(db_session, admin_user)

        with pytest.raises(ValidationError, match="WID-001"):
            service.create_product(ProductCreate(name="Another Widget", sku="WID-001"))

    def test_update_product_price(self, db_session: Session, admin_user, products):
        service = CatalogService(db_session, admin_user)

        product = service.update_product(products["gadget"].id, ProductUpdate(price=Decimal("19.995")))

        assert product.price == Decimal("20.00")
        assert product.sku == "GAD-001"

    def test_search_products(self, db_session: Session, admin_user, products):
        service = CatalogService(db_session, admin_user)

        assert [p.sku for p in service.list_products(search="widget")] == ["WID-001", "KIT-001"]

    def test_manager_cannot_edit_catalog(self, db_session: Session, manager_user, products):
        with pytest.raises(Forbidden):
            CatalogService(db_session, manager_user).create_product(ProductCreate(name="Nut", sku="NUT-001"))

    def test_warehouses(self, db_session: Session, admin_user, warehouses):
        service = CatalogService(db_session, admin_user)

        store = service.create_warehouse(WarehouseCreate(name="Harbour Store", is_store=True))

        assert store.id is not None
        assert [w.name for w in service.list_warehouses(stores_only=True)] == [
            "Downtown Store", "Harbour Store", "Online Store",
        ]
        with pytest.raises(ValidationError):
            service.create_warehouse(WarehouseCreate(name="Harbour Store"))
        with pytest.raises(ReferenceNotFound):
            service.get_warehouse(999)
