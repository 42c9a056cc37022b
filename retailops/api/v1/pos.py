"""Point of Sale API endpoints"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from retailops.api import deps
from retailops.models.auth import User
from retailops.schemas.sales import POSSaleCreate, SalesOrderResponse
from retailops.services.sales_orders import SalesOrderService

router = APIRouter()


@router.post("/sales", response_model=SalesOrderResponse, status_code=status.HTTP_201_CREATED)
async def process_sale(
    sale_data: POSSaleCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Checkout at the cashier's assigned store.

    The sale is delivered and paid in one transaction.
    """
    return SalesOrderService(db, current_user).process_pos_sale(sale_data)
