"""Reporting Schemas"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date
from decimal import Decimal


class SummaryRegenerateRequest(BaseModel):
    start_date: date
    end_date: date


class MovementSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    warehouse_id: int
    summary_date: date
    opening_balance: Decimal
    total_in: Decimal
    total_out: Decimal
    closing_balance: Decimal
    purchase_count: int
    sale_count: int
    assembly_count: int
    transfer_count: int
    adjustment_count: int


class BalanceMismatch(BaseModel):
    product_id: int
    warehouse_id: int
    balance_quantity: Decimal
    ledger_quantity: Decimal
    difference: Decimal


class ReconciliationReport(BaseModel):
    balances_checked: int
    is_consistent: bool
    mismatches: List[BalanceMismatch] = Field(default_factory=list)


class LowStockItem(BaseModel):
    product_id: int
    product_name: str
    sku: str
    warehouse_id: int
    warehouse_name: str
    quantity: Decimal
    minimum_stock_level: Decimal
    shortfall: Decimal


class DailySales(BaseModel):
    date: date
    order_count: int
    total_sales: Decimal


class TopProduct(BaseModel):
    product_id: int
    product_name: str
    quantity_sold: Decimal
    revenue: Decimal


class SalesReport(BaseModel):
    date_from: date
    date_to: date
    store_id: Optional[int] = None
    total_sales: Decimal
    total_orders: int
    average_order_value: Decimal
    daily: List[DailySales] = Field(default_factory=list)
    top_products: List[TopProduct] = Field(default_factory=list)


class ValuationLine(BaseModel):
    product_id: int
    product_name: str
    warehouse_id: int
    quantity: Decimal
    unit_price: Decimal
    value: Decimal


class InventoryValuation(BaseModel):
    total_value: Decimal
    lines: List[ValuationLine] = Field(default_factory=list)
