"""
Custom Application Exceptions
Error taxonomy for order, assembly, transfer and ledger operations
"""
from typing import Any, Dict, Optional


class RetailOpsException(Exception):
    """Base exception for RetailOps application"""

    code = "retailops_error"
    retryable = False

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "detail": self.detail,
            "retryable": self.retryable,
        }


class InvalidStateTransition(RetailOpsException):
    """Raised when a requested status change is not in the transition table"""

    code = "invalid_state_transition"

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"{entity} cannot move from {current} to {target}",
            {"entity": entity, "current_status": current, "target_status": target},
        )
        self.current = current
        self.target = target


class Forbidden(RetailOpsException):
    """Raised when the actor lacks the role required for an action"""

    code = "forbidden"


class ReferenceNotFound(RetailOpsException):
    """Raised when an order, product, warehouse or other record is missing"""

    code = "reference_not_found"

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} {key} not found", {"entity": entity, "key": key})


class InsufficientStock(RetailOpsException):
    """Raised when a movement would drive a balance below zero"""

    code = "insufficient_stock"


class InsufficientMaterials(InsufficientStock):
    """Raised when an assembly's bill of materials cannot be covered"""

    code = "insufficient_materials"


class ValidationError(RetailOpsException):
    """Raised when request data fails business validation"""

    code = "validation_error"


class StateConflict(RetailOpsException):
    """Raised when a concurrent writer won the race; the caller may retry"""

    code = "state_conflict"
    retryable = True
