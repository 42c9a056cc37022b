"""
RetailOps Business Services
Order workflows, ledger, assemblies, transfers and reporting
"""

from .auth_service import AuthService
from .catalog import CatalogService
from .ledger import LedgerService, MovementDraft
from .purchase_orders import PurchaseOrderService
from .sales_orders import SalesOrderService
from .assemblies import AssemblyService
from .product_requests import ProductRequestService
from .reporting import ReportingService
from .bootstrap import bootstrap

__all__ = [
    "AuthService",
    "CatalogService",
    "LedgerService",
    "MovementDraft",
    "PurchaseOrderService",
    "SalesOrderService",
    "AssemblyService",
    "ProductRequestService",
    "ReportingService",
    "bootstrap",
]
