"""
Purchasing Models
Purchase order header and line items
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Date, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from retailops.core.database import Base
from datetime import datetime


class PurchaseOrderStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"


class PurchaseOrder(Base):
    """Purchase order header"""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(30), unique=True, nullable=False, index=True)

    supplier_name = Column(String(200), nullable=False)
    supplier_contact = Column(String(200))
    expected_delivery_date = Column(Date)

    total_amount = Column(Numeric(18, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=PurchaseOrderStatus.PENDING.value)
    notes = Column(Text)

    created_by_user_id = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
    approved_by_user_id = Column(Integer, ForeignKey("users.id"))
    approved_at = Column(DateTime)
    received_by_user_id = Column(Integer, ForeignKey("users.id"))
    received_at = Column(DateTime)
    cancelled_by_user_id = Column(Integer, ForeignKey("users.id"))
    cancelled_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = Column(Integer, nullable=False)

    items = relationship(
        "PurchaseItem", cascade="all, delete-orphan", lazy="selectin",
        order_by="PurchaseItem.id",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'Approved', 'Received', 'Cancelled')",
            name="valid_status",
        ),
        Index("idx_purchase_orders_status", "status"),
    )
    __mapper_args__ = {"version_id_col": version}


class PurchaseItem(Base):
    """Purchase order line"""
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    quantity = Column(Numeric(18, 2), nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    total_price = Column(Numeric(18, 2), nullable=False)
    unit = Column(String(20))
    notes = Column(Text)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
    )
