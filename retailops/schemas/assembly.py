"""Assembly Schemas"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from retailops.models.assembly import AssemblyStatus


class BillOfMaterialCreate(BaseModel):
    raw_product_id: int
    warehouse_id: int
    required_quantity: Decimal = Field(..., gt=0)
    unit: Optional[str] = None
    notes: Optional[str] = None


class AssemblyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    output_product_id: int
    output_warehouse_id: int
    quantity: Decimal = Field(..., gt=0)
    unit: Optional[str] = None
    instructions: Optional[str] = None
    sale_price: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    bill_of_materials: List[BillOfMaterialCreate] = Field(..., min_length=1)


class BillOfMaterialResponse(BillOfMaterialCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    available_quantity: Decimal


class AssemblyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    output_product_id: int
    output_warehouse_id: int
    quantity: Decimal
    unit: Optional[str] = None
    instructions: Optional[str] = None
    sale_price: Optional[Decimal] = None
    is_active: bool
    status: AssemblyStatus
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int
    bill_of_materials: List[BillOfMaterialResponse] = Field(default_factory=list)


class MaterialShortage(BaseModel):
    bom_id: int
    raw_product_id: int
    warehouse_id: int
    required: Decimal
    available: Decimal
    shortfall: Decimal


class AssemblyValidation(BaseModel):
    assembly_id: int
    can_start: bool
    message: str
    shortages: List[MaterialShortage] = Field(default_factory=list)
