"""
RetailOps Pydantic Schemas
Request/Response models for the RetailOps API
"""

from .common import ErrorResponse, MessageResponse, TransitionRequest
from .auth import UserCreate, UserResponse, Token
from .catalog import (
    CategoryCreate, CategoryResponse,
    ProductCreate, ProductUpdate, ProductResponse,
    WarehouseCreate, WarehouseResponse
)
from .inventory import (
    InventoryBalanceResponse, ProductMovementResponse,
    StockAdjustmentRequest, StockLevelsUpdate, DefaultMinimumLevelsRequest
)
from .purchasing import PurchaseOrderCreate, PurchaseItemCreate, PurchaseOrderResponse
from .sales import (
    SalesOrderCreate, SalesItemCreate, OnlineOrderCreate, POSSaleCreate,
    SalesOrderResponse, OrderTrackingResponse, ShipRequest
)
from .assembly import AssemblyCreate, AssemblyResponse, AssemblyValidation
from .requests import (
    ProductRequestCreate, ProductRequestApprove, ProductRequestReject,
    ProductRequestComplete, ProductRequestResponse
)
from .reports import (
    SummaryRegenerateRequest, MovementSummaryResponse, ReconciliationReport,
    LowStockItem, SalesReport, InventoryValuation
)
