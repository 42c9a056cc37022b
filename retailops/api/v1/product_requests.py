"""Product Request (internal transfer) API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from retailops.api import deps
from retailops.models.auth import User
from retailops.models.requests import ProductRequestStatus
from retailops.schemas.requests import (
    ProductRequestCreate, ProductRequestApprove, ProductRequestReject,
    ProductRequestComplete, ProductRequestResponse
)
from retailops.services.product_requests import ProductRequestService

router = APIRouter()


@router.get("", response_model=List[ProductRequestResponse])
async def list_product_requests(
    request_status: Optional[ProductRequestStatus] = Query(None, alias="status"),
    warehouse_id: Optional[int] = Query(None, description="Requesting warehouse"),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List product requests."""
    return ProductRequestService(db, current_user).list(
        status=request_status, warehouse_id=warehouse_id, **pagination
    )


@router.post("", response_model=ProductRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_product_request(
    request_data: ProductRequestCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Request stock for a warehouse."""
    return ProductRequestService(db, current_user).create(request_data)


@router.get("/{request_id}", response_model=ProductRequestResponse)
async def get_product_request(
    request_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Get specific product request by ID."""
    return ProductRequestService(db, current_user).read(request_id)


@router.post("/{request_id}/approve", response_model=ProductRequestResponse)
async def approve_product_request(
    request_id: int,
    approval: ProductRequestApprove = ProductRequestApprove(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Approve and transfer stock.

    Every approved line moves from the source to the requesting warehouse
    in one transaction; any shortfall rejects the whole approval.
    """
    return ProductRequestService(db, current_user).approve(request_id, approval.items, approval.notes)


@router.post("/{request_id}/reject", response_model=ProductRequestResponse)
async def reject_product_request(
    request_id: int,
    rejection: ProductRequestReject,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Reject a Pending request."""
    return ProductRequestService(db, current_user).reject(request_id, rejection.reason)


@router.post("/{request_id}/complete", response_model=ProductRequestResponse)
async def complete_product_request(
    request_id: int,
    receipt: ProductRequestComplete = ProductRequestComplete(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Record received quantities for an Approved request."""
    return ProductRequestService(db, current_user).complete(request_id, receipt.items, receipt.notes)
