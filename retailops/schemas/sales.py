"""Sales Order Schemas"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from retailops.models.sales import SalesOrderStatus, SalesChannel, PaymentStatus


class SalesItemCreate(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Defaults to the product price")


class SalesOrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    items: List[SalesItemCreate] = Field(..., min_length=1)


class OnlineOrderItem(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0)


class OnlineOrderCreate(BaseModel):
    """Storefront checkout; stock is taken from the online store warehouse"""
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    shipping_address: str = Field(..., min_length=1)
    notes: Optional[str] = None
    items: List[OnlineOrderItem] = Field(..., min_length=1)


class POSSaleItem(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)


class POSSaleCreate(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_method: str = Field("Cash", max_length=30)
    notes: Optional[str] = None
    items: List[POSSaleItem] = Field(..., min_length=1)


class SalesItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    warehouse_id: int
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


class SalesOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    channel: SalesChannel
    customer_id: Optional[int] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    total_amount: Decimal
    status: SalesOrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    order_date: datetime
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int
    items: List[SalesItemResponse] = Field(default_factory=list)


class OrderTrackingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: SalesOrderStatus
    notes: Optional[str] = None
    location: Optional[str] = None
    tracked_at: datetime
    updated_by_user_id: Optional[int] = None


class ShipRequest(BaseModel):
    notes: Optional[str] = None
    location: Optional[str] = None
