"""Reporting API endpoints"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from retailops.api import deps
from retailops.models.auth import User
from retailops.schemas.common import MessageResponse
from retailops.schemas.reports import (
    SummaryRegenerateRequest, MovementSummaryResponse, ReconciliationReport,
    LowStockItem, SalesReport, InventoryValuation
)
from retailops.services.reporting import ReportingService

router = APIRouter()


@router.post("/movement-summaries/regenerate", response_model=MessageResponse)
async def regenerate_movement_summaries(
    request: SummaryRegenerateRequest,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Rebuild daily movement summaries from the ledger."""
    written = ReportingService(db, current_user).regenerate_movement_summaries(
        request.start_date, request.end_date
    )
    return MessageResponse(message="Movement summaries regenerated", count=written)


@router.get("/movement-summaries", response_model=List[MovementSummaryResponse])
async def list_movement_summaries(
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    return ReportingService(db, current_user).get_movement_summaries(
        product_id=product_id, warehouse_id=warehouse_id, date_from=date_from, date_to=date_to
    )


@router.get("/reconciliation", response_model=ReconciliationReport)
async def reconcile_balances(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Compare balances with the ledger."""
    return ReportingService(db, current_user).reconcile_balances()


@router.get("/low-stock", response_model=List[LowStockItem])
async def low_stock(
    warehouse_id: Optional[int] = Query(None),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    return ReportingService(db, current_user).low_stock_report(warehouse_id=warehouse_id)


@router.get("/sales", response_model=SalesReport)
async def sales_report(
    date_from: date = Query(..., description="First day (inclusive)"),
    date_to: date = Query(..., description="Last day (inclusive)"),
    store_id: Optional[int] = Query(None, description="Only lines sold from this warehouse"),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Sales totals, daily breakdown and top products."""
    return ReportingService(db, current_user).sales_report(date_from, date_to, store_id=store_id)


@router.get("/inventory-valuation", response_model=InventoryValuation)
async def inventory_valuation(
    warehouse_id: Optional[int] = Query(None),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    return ReportingService(db, current_user).inventory_valuation(warehouse_id=warehouse_id)
