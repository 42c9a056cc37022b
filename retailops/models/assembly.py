"""
Assembly Models
Product assemblies and their bills of materials
"""
from enum import Enum

from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text, Boolean,
    ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship

from retailops.core.database import Base
from datetime import datetime


class AssemblyStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ProductAssembly(Base):
    """
    Assembly header

    Completing an assembly consumes every BOM line and credits
    ``quantity`` of the output product at the output warehouse.
    """
    __tablename__ = "product_assemblies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)

    output_product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    output_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    quantity = Column(Numeric(18, 2), nullable=False, doc="Output quantity")
    unit = Column(String(20))
    instructions = Column(Text)
    sale_price = Column(Numeric(18, 2))
    is_active = Column(Boolean, default=True, nullable=False)

    status = Column(String(20), nullable=False, default=AssemblyStatus.PENDING.value)

    created_by_user_id = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
    started_by_user_id = Column(Integer, ForeignKey("users.id"))
    started_at = Column(DateTime)
    completed_by_user_id = Column(Integer, ForeignKey("users.id"))
    completed_at = Column(DateTime)
    cancelled_by_user_id = Column(Integer, ForeignKey("users.id"))
    cancelled_at = Column(DateTime)

    version = Column(Integer, nullable=False)

    bill_of_materials = relationship(
        "BillOfMaterial", cascade="all, delete-orphan", lazy="selectin",
        order_by="BillOfMaterial.id",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'InProgress', 'Completed', 'Cancelled')",
            name="valid_status",
        ),
        CheckConstraint("quantity > 0", name="positive_quantity"),
    )
    __mapper_args__ = {"version_id_col": version}


class BillOfMaterial(Base):
    """Raw material consumed by an assembly"""
    __tablename__ = "bill_of_materials"

    id = Column(Integer, primary_key=True, index=True)
    assembly_id = Column(Integer, ForeignKey("product_assemblies.id", ondelete="CASCADE"), nullable=False)
    raw_product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    required_quantity = Column(Numeric(18, 2), nullable=False, doc="Total required for the assembly")
    available_quantity = Column(Numeric(18, 2), nullable=False, default=0, doc="Balance at last validation")
    unit = Column(String(20))
    notes = Column(Text)

    __table_args__ = (
        CheckConstraint("required_quantity > 0", name="positive_required_quantity"),
    )
