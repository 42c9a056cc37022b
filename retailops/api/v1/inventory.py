"""Inventory API endpoints: balances, ledger history and stock levels"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from retailops.api import deps
from retailops.core.permissions import Action, authorize
from retailops.models.auth import User
from retailops.models.inventory import MovementType
from retailops.schemas.common import MessageResponse
from retailops.schemas.inventory import (
    InventoryBalanceResponse, ProductMovementResponse,
    StockAdjustmentRequest, StockLevelsUpdate, DefaultMinimumLevelsRequest
)
from retailops.services.ledger import LedgerService

router = APIRouter()


@router.get("/balances", response_model=List[InventoryBalanceResponse])
async def list_balances(
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    product_id: Optional[int] = Query(None, description="Filter by product"),
    low_stock_only: bool = Query(False),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    List inventory balances.

    Quantities are maintained by the ledger only.
    """
    authorize(current_user, Action.INVENTORY_VIEW)
    return LedgerService(db, current_user).list_balances(
        warehouse_id=warehouse_id,
        product_id=product_id,
        low_stock_only=low_stock_only,
        **pagination,
    )


@router.get("/movements", response_model=List[ProductMovementResponse])
async def list_movements(
    product_id: Optional[int] = Query(None, description="Filter by product"),
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    movement_type: Optional[MovementType] = Query(None, description="Filter by type"),
    reference_type: Optional[str] = Query(None),
    reference_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Ledger history, newest first.
    """
    authorize(current_user, Action.INVENTORY_VIEW)
    return LedgerService(db, current_user).get_movements(
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        reference_type=reference_type,
        reference_id=reference_id,
        date_from=date_from,
        date_to=date_to,
        **pagination,
    )


@router.post("/adjustments", response_model=InventoryBalanceResponse)
async def adjust_stock(
    adjustment: StockAdjustmentRequest,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Manual stock adjustment with a mandatory reason."""
    return LedgerService(db, current_user).adjust(
        product_id=adjustment.product_id,
        warehouse_id=adjustment.warehouse_id,
        quantity=adjustment.quantity,
        direction=adjustment.direction,
        notes=adjustment.notes,
    )


@router.put("/stock-levels", response_model=InventoryBalanceResponse)
async def set_stock_levels(
    levels: StockLevelsUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Set minimum / maximum stock levels of one balance."""
    return LedgerService(db, current_user).set_stock_levels(
        product_id=levels.product_id,
        warehouse_id=levels.warehouse_id,
        minimum_stock_level=levels.minimum_stock_level,
        maximum_stock_level=levels.maximum_stock_level,
    )


@router.post("/default-minimum-levels", response_model=MessageResponse)
async def set_default_minimum_levels(
    request: DefaultMinimumLevelsRequest,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Apply a minimum stock level to every balance that has none."""
    updated = LedgerService(db, current_user).set_default_minimum_levels(
        level=request.level, warehouse_id=request.warehouse_id
    )
    return MessageResponse(message="Default minimum levels applied", count=updated)
