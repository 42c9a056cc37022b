"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter
from retailops.api.v1 import (
    auth,
    catalog,
    inventory,
    purchase_orders,
    sales_orders,
    pos,
    assemblies,
    product_requests,
    reports,
)

api_router = APIRouter()

# Authentication routes
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])

# Catalog and stock
api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])

# Order workflows
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])
api_router.include_router(sales_orders.router, prefix="/sales-orders", tags=["sales-orders"])
api_router.include_router(pos.router, prefix="/pos", tags=["point-of-sale"])

# Assembly and transfers
api_router.include_router(assemblies.router, prefix="/assemblies", tags=["assemblies"])
api_router.include_router(product_requests.router, prefix="/product-requests", tags=["product-requests"])

# Reports
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
