"""Inventory Schemas"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from retailops.models.inventory import MovementType, MovementDirection


class InventoryBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    warehouse_id: int
    quantity: Decimal
    minimum_stock_level: Optional[Decimal] = None
    maximum_stock_level: Optional[Decimal] = None
    is_low_stock: bool = False
    updated_at: Optional[datetime] = None


class ProductMovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    warehouse_id: int
    movement_type: MovementType
    direction: MovementDirection
    quantity: Decimal
    balance_after: Decimal
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    movement_date: datetime
    created_by_user_id: Optional[int] = None
    notes: Optional[str] = None


class StockAdjustmentRequest(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., gt=0)
    direction: MovementDirection
    notes: str = Field(..., min_length=1, description="Reason for the adjustment")


class StockLevelsUpdate(BaseModel):
    product_id: int
    warehouse_id: int
    minimum_stock_level: Optional[Decimal] = Field(None, ge=0)
    maximum_stock_level: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_range(self):
        if (
            self.minimum_stock_level is not None
            and self.maximum_stock_level is not None
            and self.minimum_stock_level > self.maximum_stock_level
        ):
            raise ValueError("minimum_stock_level cannot exceed maximum_stock_level")
        return self


class DefaultMinimumLevelsRequest(BaseModel):
    level: Optional[Decimal] = Field(None, ge=0)
    warehouse_id: Optional[int] = None
