"""
Product Request Models
Internal replenishment requests fulfilled by warehouse transfers
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from retailops.core.database import Base
from datetime import datetime


class ProductRequestStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"


class ProductRequest(Base):
    """Request to move stock from a source warehouse to a requesting warehouse"""
    __tablename__ = "product_requests"

    id = Column(Integer, primary_key=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, doc="Requesting warehouse")
    source_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    status = Column(String(20), nullable=False, default=ProductRequestStatus.PENDING.value)
    notes = Column(Text)
    rejection_reason = Column(Text)

    requested_by_user_id = Column(Integer, ForeignKey("users.id"))
    requested_at = Column(DateTime, default=datetime.utcnow)
    approved_by_user_id = Column(Integer, ForeignKey("users.id"))
    approved_at = Column(DateTime)
    rejected_by_user_id = Column(Integer, ForeignKey("users.id"))
    rejected_at = Column(DateTime)
    completed_by_user_id = Column(Integer, ForeignKey("users.id"))
    completed_at = Column(DateTime)

    version = Column(Integer, nullable=False)

    items = relationship(
        "ProductRequestItem", cascade="all, delete-orphan", lazy="selectin",
        order_by="ProductRequestItem.id",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'Approved', 'Rejected', 'Completed')",
            name="valid_status",
        ),
        Index("idx_product_requests_status", "status"),
    )
    __mapper_args__ = {"version_id_col": version}


class ProductRequestItem(Base):
    """Requested, approved and received quantities for one product"""
    __tablename__ = "product_request_items"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("product_requests.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity_requested = Column(Numeric(18, 2), nullable=False)
    quantity_approved = Column(Numeric(18, 2))
    quantity_received = Column(Numeric(18, 2))
    unit = Column(String(20))
    notes = Column(Text)

    __table_args__ = (
        CheckConstraint("quantity_requested > 0", name="positive_quantity_requested"),
    )
