"""
Audit Trail Model
One row per state change, written in the same transaction as the change
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, ForeignKey, Index

from retailops.core.database import Base
from datetime import datetime


class AuditLog(Base):
    """Audit trail for order, assembly, request and inventory changes"""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"))
    action = Column(String(30), nullable=False)  # CREATE, APPROVE, RECEIVE, ADJUST, etc
    entity = Column(String(50), nullable=False)
    entity_id = Column(Integer)
    old_values = Column(JSON)
    new_values = Column(JSON)

    __table_args__ = (
        Index("idx_audit_log_entity", "entity", "entity_id"),
    )
