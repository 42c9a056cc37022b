"""Purchase Order API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from retailops.api import deps
from retailops.models.auth import User
from retailops.models.purchasing import PurchaseOrderStatus
from retailops.schemas.common import TransitionRequest
from retailops.schemas.purchasing import PurchaseOrderCreate, PurchaseOrderResponse
from retailops.services.purchase_orders import PurchaseOrderService

router = APIRouter()


@router.get("", response_model=List[PurchaseOrderResponse])
async def list_purchase_orders(
    order_status: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List purchase orders, newest first."""
    return PurchaseOrderService(db, current_user).list(status=order_status, **pagination)


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    order_data: PurchaseOrderCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Create a Pending purchase order."""
    return PurchaseOrderService(db, current_user).create(order_data)


@router.get("/{order_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    order_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Get specific purchase order by ID."""
    return PurchaseOrderService(db, current_user).read(order_id)


@router.post("/{order_id}/approve", response_model=PurchaseOrderResponse)
async def approve_purchase_order(
    order_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Pending -> Approved."""
    return PurchaseOrderService(db, current_user).approve(order_id, request.notes)


@router.post("/{order_id}/receive", response_model=PurchaseOrderResponse)
async def receive_purchase_order(
    order_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Approved -> Received.

    Books one Purchase/In movement per line.
    """
    return PurchaseOrderService(db, current_user).receive(order_id, request.notes)


@router.post("/{order_id}/cancel", response_model=PurchaseOrderResponse)
async def cancel_purchase_order(
    order_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Cancel a Pending or Approved purchase order."""
    return PurchaseOrderService(db, current_user).cancel(order_id, request.notes)
