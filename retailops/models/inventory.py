"""
Inventory Models
Balances per (product, warehouse), the movement ledger and daily summaries
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Date, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)

from retailops.core.database import Base
from datetime import datetime


class MovementType(str, Enum):
    PURCHASE = "Purchase"
    SALE = "Sale"
    ASSEMBLY = "Assembly"
    TRANSFER = "Transfer"
    ADJUSTMENT = "Adjustment"


class MovementDirection(str, Enum):
    IN = "In"
    OUT = "Out"


class InventoryBalance(Base):
    """
    Current stock for one product at one warehouse

    ``quantity`` always equals the signed sum of the ledger rows for the
    same key and is written only by the ledger service.
    """
    __tablename__ = "inventory_balances"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    quantity = Column(Numeric(18, 2), nullable=False, default=0, doc="Quantity on hand")
    minimum_stock_level = Column(Numeric(18, 2), doc="Low-stock threshold")
    maximum_stock_level = Column(Numeric(18, 2), doc="Overstock threshold")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_balances_product_warehouse"),
        CheckConstraint("quantity >= 0", name="non_negative_quantity"),
        Index("idx_inventory_balances_warehouse", "warehouse_id"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.minimum_stock_level is not None and self.quantity <= self.minimum_stock_level

    def __repr__(self):
        return (
            f"<InventoryBalance(product_id={self.product_id}, "
            f"warehouse_id={self.warehouse_id}, quantity={self.quantity})>"
        )


class ProductMovement(Base):
    """
    Ledger entry

    Append-only. Quantity is always positive; the effect on the balance is
    carried by ``direction``.
    """
    __tablename__ = "product_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    movement_type = Column(String(20), nullable=False)
    direction = Column(String(3), nullable=False)
    quantity = Column(Numeric(18, 2), nullable=False)
    balance_after = Column(Numeric(18, 2), nullable=False, doc="Balance once this entry was applied")

    reference_type = Column(String(30), doc="Originating document type")
    reference_id = Column(Integer, doc="Originating document id")

    movement_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by_user_id = Column(Integer, ForeignKey("users.id"))
    notes = Column(Text)

    __table_args__ = (
        CheckConstraint(
            "movement_type IN ('Purchase', 'Sale', 'Assembly', 'Transfer', 'Adjustment')",
            name="valid_movement_type",
        ),
        CheckConstraint("direction IN ('In', 'Out')", name="valid_direction"),
        CheckConstraint("quantity > 0", name="positive_quantity"),
        Index("idx_product_movements_key_date", "product_id", "warehouse_id", "movement_date"),
        Index("idx_product_movements_reference", "reference_type", "reference_id"),
    )

    @property
    def signed_quantity(self):
        return self.quantity if self.direction == MovementDirection.IN.value else -self.quantity


class ProductMovementSummary(Base):
    """Daily rollup of the ledger per (product, warehouse); regenerable at any time"""
    __tablename__ = "product_movement_summaries"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    summary_date = Column(Date, nullable=False)

    opening_balance = Column(Numeric(18, 2), nullable=False, default=0)
    total_in = Column(Numeric(18, 2), nullable=False, default=0)
    total_out = Column(Numeric(18, 2), nullable=False, default=0)
    closing_balance = Column(Numeric(18, 2), nullable=False, default=0)

    purchase_count = Column(Integer, nullable=False, default=0)
    sale_count = Column(Integer, nullable=False, default=0)
    assembly_count = Column(Integer, nullable=False, default=0)
    transfer_count = Column(Integer, nullable=False, default=0)
    adjustment_count = Column(Integer, nullable=False, default=0)

    generated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", "summary_date", name="uq_movement_summary_key_date"),
        Index("idx_movement_summaries_date", "summary_date"),
    )
