"""Purchase Order Schemas"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal

from retailops.models.purchasing import PurchaseOrderStatus


class PurchaseItemCreate(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    unit: Optional[str] = None
    notes: Optional[str] = None


class PurchaseOrderCreate(BaseModel):
    supplier_name: str = Field(..., min_length=1, max_length=200)
    supplier_contact: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseItemCreate] = Field(..., min_length=1)


class PurchaseItemResponse(PurchaseItemCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    total_price: Decimal


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    supplier_name: str
    supplier_contact: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    total_amount: Decimal
    status: PurchaseOrderStatus
    notes: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    approved_by_user_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    received_by_user_id: Optional[int] = None
    received_at: Optional[datetime] = None
    cancelled_by_user_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    version: int
    items: List[PurchaseItemResponse] = Field(default_factory=list)
