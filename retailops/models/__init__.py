"""
RetailOps SQLAlchemy Models
Database models for inventory, orders, assemblies and transfers
"""

# Import all models to ensure they are registered with SQLAlchemy
from .auth import User, Role, UserRole
from .catalog import Category, Product, Warehouse, Customer
from .inventory import (
    InventoryBalance, ProductMovement, ProductMovementSummary,
    MovementType, MovementDirection
)
from .purchasing import PurchaseOrder, PurchaseItem, PurchaseOrderStatus
from .sales import (
    SalesOrder, SalesItem, OrderTracking,
    SalesOrderStatus, SalesChannel, PaymentStatus
)
from .assembly import ProductAssembly, BillOfMaterial, AssemblyStatus
from .requests import ProductRequest, ProductRequestItem, ProductRequestStatus
from .audit import AuditLog

__all__ = [
    "User",
    "Role",
    "UserRole",
    "Category",
    "Product",
    "Warehouse",
    "Customer",
    "InventoryBalance",
    "ProductMovement",
    "ProductMovementSummary",
    "MovementType",
    "MovementDirection",
    "PurchaseOrder",
    "PurchaseItem",
    "PurchaseOrderStatus",
    "SalesOrder",
    "SalesItem",
    "OrderTracking",
    "SalesOrderStatus",
    "SalesChannel",
    "PaymentStatus",
    "ProductAssembly",
    "BillOfMaterial",
    "AssemblyStatus",
    "ProductRequest",
    "ProductRequestItem",
    "ProductRequestStatus",
    "AuditLog",
]
