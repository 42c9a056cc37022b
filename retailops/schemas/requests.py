"""Product Request Schemas"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from retailops.models.requests import ProductRequestStatus


class ProductRequestItemCreate(BaseModel):
    product_id: int
    quantity_requested: Decimal = Field(..., gt=0)
    unit: Optional[str] = None
    notes: Optional[str] = None


class ProductRequestCreate(BaseModel):
    warehouse_id: int = Field(..., description="Requesting (destination) warehouse")
    source_warehouse_id: Optional[int] = Field(None, description="Defaults to the main warehouse")
    notes: Optional[str] = None
    items: List[ProductRequestItemCreate] = Field(..., min_length=1)


class LineApproval(BaseModel):
    item_id: int
    quantity_approved: Decimal = Field(..., ge=0)


class ProductRequestApprove(BaseModel):
    """Lines not listed are approved for the full requested quantity"""
    items: List[LineApproval] = Field(default_factory=list)
    notes: Optional[str] = None


class ProductRequestReject(BaseModel):
    reason: str = Field(..., min_length=1)


class LineReceipt(BaseModel):
    item_id: int
    quantity_received: Decimal = Field(..., ge=0)


class ProductRequestComplete(BaseModel):
    """Lines not listed are received for the full approved quantity"""
    items: List[LineReceipt] = Field(default_factory=list)
    notes: Optional[str] = None


class ProductRequestItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity_requested: Decimal
    quantity_approved: Optional[Decimal] = None
    quantity_received: Optional[Decimal] = None
    unit: Optional[str] = None
    notes: Optional[str] = None


class ProductRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    warehouse_id: int
    source_warehouse_id: int
    status: ProductRequestStatus
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    requested_by_user_id: Optional[int] = None
    requested_at: Optional[datetime] = None
    approved_by_user_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int
    items: List[ProductRequestItemResponse] = Field(default_factory=list)
