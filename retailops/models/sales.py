"""
Sales Models
Sales orders from the back office, the online store and point of sale
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from retailops.core.database import Base
from datetime import datetime


class SalesOrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class SalesChannel(str, Enum):
    BACK_OFFICE = "BackOffice"
    ONLINE = "Online"
    POS = "POS"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    REFUNDED = "Refunded"


class SalesOrder(Base):
    """Sales order header"""
    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(30), unique=True, nullable=False, index=True)
    channel = Column(String(20), nullable=False, default=SalesChannel.BACK_OFFICE.value)

    customer_id = Column(Integer, ForeignKey("customers.id"))
    customer_user_id = Column(Integer, ForeignKey("users.id"))
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(100))
    customer_phone = Column(String(30))
    shipping_address = Column(Text)

    total_amount = Column(Numeric(18, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=SalesOrderStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(30))
    notes = Column(Text)

    order_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by_user_id = Column(Integer, ForeignKey("users.id"))
    confirmed_by_user_id = Column(Integer, ForeignKey("users.id"))
    confirmed_at = Column(DateTime)
    shipped_by_user_id = Column(Integer, ForeignKey("users.id"))
    shipped_at = Column(DateTime)
    delivered_by_user_id = Column(Integer, ForeignKey("users.id"))
    delivered_at = Column(DateTime)
    cancelled_by_user_id = Column(Integer, ForeignKey("users.id"))
    cancelled_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = Column(Integer, nullable=False)

    items = relationship(
        "SalesItem", cascade="all, delete-orphan", lazy="selectin",
        order_by="SalesItem.id",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'Confirmed', 'Shipped', 'Delivered', 'Cancelled')",
            name="valid_status",
        ),
        CheckConstraint("channel IN ('BackOffice', 'Online', 'POS')", name="valid_channel"),
        CheckConstraint("payment_status IN ('Pending', 'Paid', 'Refunded')", name="valid_payment_status"),
        Index("idx_sales_orders_status_date", "status", "order_date"),
    )
    __mapper_args__ = {"version_id_col": version}


class SalesItem(Base):
    """Sales order line"""
    __tablename__ = "sales_items"

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    quantity = Column(Numeric(18, 2), nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    total_price = Column(Numeric(18, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
    )


class OrderTracking(Base):
    """Append-only status history of a sales order"""
    __tablename__ = "order_tracking"

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    notes = Column(Text)
    location = Column(String(200))
    tracked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_by_user_id = Column(Integer, ForeignKey("users.id"))
