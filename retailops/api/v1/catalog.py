"""Catalog API endpoints: products, categories and warehouses"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from retailops.api import deps
from retailops.models.auth import User
from retailops.schemas.catalog import (
    CategoryCreate, CategoryResponse,
    ProductCreate, ProductUpdate, ProductResponse,
    WarehouseCreate, WarehouseResponse
)
from retailops.services.catalog import CatalogService

router = APIRouter()


@router.get("/products", response_model=List[ProductResponse])
async def list_products(
    search: Optional[str] = Query(None, description="Name or SKU search"),
    category_id: Optional[int] = Query(None, description="Filter by category"),
    active_only: bool = Query(False),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List products."""
    return CatalogService(db, current_user).list_products(
        search=search, category_id=category_id, active_only=active_only, **pagination
    )


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Get specific product by ID."""
    return CatalogService(db, current_user).get_product(product_id)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Create a product."""
    return CatalogService(db, current_user).create_product(product_data)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Update product details and price."""
    return CatalogService(db, current_user).update_product(product_id, product_data)


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    return CatalogService(db, current_user).list_categories()


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    return CatalogService(db, current_user).create_category(category_data)


@router.get("/warehouses", response_model=List[WarehouseResponse])
async def list_warehouses(
    stores_only: bool = Query(False, description="Only POS / storefront locations"),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List warehouses and stores."""
    return CatalogService(db, current_user).list_warehouses(stores_only=stores_only)


@router.post("/warehouses", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
async def create_warehouse(
    warehouse_data: WarehouseCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Create a warehouse or store."""
    return CatalogService(db, current_user).create_warehouse(warehouse_data)
