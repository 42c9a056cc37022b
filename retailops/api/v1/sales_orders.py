"""Sales Order API endpoints: back office and online storefront"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from retailops.api import deps
from retailops.models.auth import User
from retailops.models.sales import SalesOrderStatus, SalesChannel
from retailops.schemas.common import TransitionRequest
from retailops.schemas.sales import (
    SalesOrderCreate, OnlineOrderCreate, SalesOrderResponse,
    OrderTrackingResponse, ShipRequest
)
from retailops.services.sales_orders import SalesOrderService

router = APIRouter()


@router.get("", response_model=List[SalesOrderResponse])
async def list_sales_orders(
    order_status: Optional[SalesOrderStatus] = Query(None, alias="status"),
    channel: Optional[SalesChannel] = Query(None),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List sales orders, newest first."""
    return SalesOrderService(db, current_user).list(status=order_status, channel=channel, **pagination)


@router.post("", response_model=SalesOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_sales_order(
    order_data: SalesOrderCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Create a Pending back-office order."""
    return SalesOrderService(db, current_user).create(order_data)


@router.post("/online", response_model=SalesOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_online_order(
    order_data: OnlineOrderCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Storefront checkout.

    Fails with 422 when the online store cannot cover every line.
    """
    return SalesOrderService(db, current_user).create_online_order(order_data)


@router.get("/{order_id}", response_model=SalesOrderResponse)
async def get_sales_order(
    order_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Get specific sales order by ID."""
    return SalesOrderService(db, current_user).read(order_id)


@router.get("/{order_id}/tracking", response_model=List[OrderTrackingResponse])
async def get_order_tracking(
    order_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Status history of an order."""
    return SalesOrderService(db, current_user).tracking_history(order_id)


@router.post("/{order_id}/confirm", response_model=SalesOrderResponse)
async def confirm_sales_order(
    order_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Pending -> Confirmed after an availability check."""
    return SalesOrderService(db, current_user).confirm(order_id, request.notes)


@router.post("/{order_id}/ship", response_model=SalesOrderResponse)
async def ship_sales_order(
    order_id: int,
    request: ShipRequest = ShipRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Confirmed -> Shipped."""
    return SalesOrderService(db, current_user).ship(order_id, request.notes, request.location)


@router.post("/{order_id}/deliver", response_model=SalesOrderResponse)
async def deliver_sales_order(
    order_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Shipped -> Delivered."""
    return SalesOrderService(db, current_user).deliver(order_id, request.notes)


@router.post("/{order_id}/cancel", response_model=SalesOrderResponse)
async def cancel_sales_order(
    order_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Cancel a Pending or Confirmed order."""
    return SalesOrderService(db, current_user).cancel(order_id, request.notes)
