"""
RetailOps Common Schemas
Shared Pydantic models for common API structures
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class ErrorResponse(BaseModel):
    """
    Standard error response model

    Used for all API error responses
    """
    error: str = Field(..., description="Error code, e.g. insufficient_stock")
    message: str = Field(..., description="Human-readable error message")
    detail: Dict[str, Any] = Field(default_factory=dict, description="Structured error details")
    retryable: bool = Field(False, description="Whether retrying the same request may succeed")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": "insufficient_stock",
            "message": "Insufficient stock for product 4 at warehouse 1: requested 5.00, available 3.00",
            "detail": {"product_id": 4, "warehouse_id": 1, "requested": "5.00", "available": "3.00"},
            "retryable": False,
        }
    })


class TransitionRequest(BaseModel):
    """Optional notes attached to a status change"""
    notes: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
    count: Optional[int] = None
