"""
Audit Service
Record state changes to the audit trail
"""
from typing import Any, Dict, Optional
from decimal import Decimal
from datetime import date, datetime

from sqlalchemy.orm import Session

from retailops.models.audit import AuditLog


def _jsonable(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    result = {}
    for key, value in values.items():
        if isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        result[key] = value
    return result


def record_audit(
    db: Session,
    user,
    action: str,
    entity: str,
    entity_id: Optional[int] = None,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit row to the current transaction

    The caller's unit of work commits or rolls it back together with the
    change being audited.
    """
    entry = AuditLog(
        user_id=getattr(user, "id", None),
        action=action,
        entity=entity,
        entity_id=entity_id,
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
    )
    db.add(entry)
    return entry
