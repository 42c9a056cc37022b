"""
Product Request Service
Internal replenishment requests and the stock transfers that fulfil them
"""
from typing import Dict, List, Optional
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.config import settings
from retailops.core.database import unit_of_work
from retailops.core.exceptions import ReferenceNotFound, ValidationError
from retailops.core.numeric import to_positive_quantity, to_quantity
from retailops.core.permissions import Action, authorize
from retailops.models.catalog import Product, Warehouse
from retailops.models.requests import ProductRequest, ProductRequestItem, ProductRequestStatus
from retailops.schemas.requests import (
    ProductRequestCreate, LineApproval, LineReceipt
)
from retailops.services.audit import record_audit
from retailops.services.ledger import LedgerService
from retailops.services.order_workflow import StateMachine, WorkflowService

logger = logging.getLogger(__name__)

S = ProductRequestStatus

PRODUCT_REQUEST_MACHINE = StateMachine("ProductRequest", {
    S.PENDING.value: {S.APPROVED.value, S.REJECTED.value},
    S.APPROVED.value: {S.COMPLETED.value},
})


class ProductRequestService(WorkflowService):
    """
    Product requests

    Approval moves the approved quantities from the source warehouse to
    the requesting warehouse. Each line is a linked Transfer Out/In pair
    and the whole approval is one transaction: a shortfall on any line
    leaves nothing applied.
    """

    model = ProductRequest
    machine = PRODUCT_REQUEST_MACHINE
    view_action = Action.REQUEST_VIEW
    actions = {
        S.APPROVED.value: Action.REQUEST_APPROVE,
        S.REJECTED.value: Action.REQUEST_REJECT,
        S.COMPLETED.value: Action.REQUEST_COMPLETE,
    }
    stamps = {
        S.APPROVED.value: ("approved_at", "approved_by_user_id"),
        S.REJECTED.value: ("rejected_at", "rejected_by_user_id"),
        S.COMPLETED.value: ("completed_at", "completed_by_user_id"),
    }

    def __init__(self, db: Session, current_user=None):
        super().__init__(db, current_user)
        self.ledger = LedgerService(db, current_user)

    def create(self, request_data: ProductRequestCreate) -> ProductRequest:
        """Create a Pending request for the given warehouse"""
        authorize(self.current_user, Action.REQUEST_CREATE)

        with unit_of_work(self.db):
            destination = self.db.get(Warehouse, request_data.warehouse_id)
            if destination is None:
                raise ReferenceNotFound("Warehouse", request_data.warehouse_id)

            if request_data.source_warehouse_id is not None:
                source = self.db.get(Warehouse, request_data.source_warehouse_id)
                if source is None:
                    raise ReferenceNotFound("Warehouse", request_data.source_warehouse_id)
            else:
                source = self.db.execute(
                    select(Warehouse).where(Warehouse.name == settings.MAIN_WAREHOUSE_NAME)
                ).scalar_one_or_none()
                if source is None:
                    raise ReferenceNotFound("Warehouse", settings.MAIN_WAREHOUSE_NAME)

            if source.id == destination.id:
                raise ValidationError("A warehouse cannot request stock from itself")

            request = ProductRequest(
                warehouse_id=destination.id,
                source_warehouse_id=source.id,
                status=S.PENDING.value,
                notes=request_data.notes,
                requested_by_user_id=getattr(self.current_user, "id", None),
            )
            for item in request_data.items:
                product = self.db.get(Product, item.product_id)
                if product is None:
                    raise ReferenceNotFound("Product", item.product_id)
                request.items.append(ProductRequestItem(
                    product_id=item.product_id,
                    quantity_requested=to_positive_quantity(item.quantity_requested, "quantity_requested"),
                    unit=item.unit or product.unit,
                    notes=item.notes,
                ))

            self.db.add(request)
            self.db.flush()
            record_audit(
                self.db, self.current_user, "CREATE", self.entity, request.id,
                new_values={"warehouse_id": destination.id, "source_warehouse_id": source.id},
            )

        logger.info(f"Product request {request.id} created: {source.name} -> {destination.name}")
        return request

    def list(
        self,
        status: Optional[ProductRequestStatus] = None,
        warehouse_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ProductRequest]:
        """List requests, newest first"""
        self.authorize_view()
        stmt = self.visible(select(ProductRequest))
        if status is not None:
            stmt = stmt.where(ProductRequest.status == ProductRequestStatus(status).value)
        if warehouse_id is not None:
            stmt = stmt.where(ProductRequest.warehouse_id == warehouse_id)
        stmt = stmt.order_by(ProductRequest.requested_at.desc(), ProductRequest.id.desc())
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def approve(
        self,
        request_id: int,
        line_approvals: Optional[List[LineApproval]] = None,
        notes: Optional[str] = None,
    ) -> ProductRequest:
        """Approve and transfer; omitted lines are approved in full"""
        return self.transition(request_id, S.APPROVED, notes, line_approvals=line_approvals or [])

    def reject(self, request_id: int, reason: str) -> ProductRequest:
        """Reject a Pending request; a reason is mandatory"""
        return self.transition(request_id, S.REJECTED, reason, reason=reason)

    def complete(
        self,
        request_id: int,
        receipts: Optional[List[LineReceipt]] = None,
        notes: Optional[str] = None,
    ) -> ProductRequest:
        """Record what arrived; omitted lines are received in full"""
        return self.transition(request_id, S.COMPLETED, notes, receipts=receipts or [])

    def before_transition(self, request, previous, target, line_approvals=None, receipts=None, reason=None, **kwargs):
        items = {item.id: item for item in request.items}

        if target == S.REJECTED.value:
            if not reason or not reason.strip():
                raise ValidationError("A rejection reason is required")

        elif target == S.APPROVED.value:
            approved = self._by_item(items, line_approvals, "quantity_approved")
            for item in request.items:
                quantity = approved.get(item.id, to_quantity(item.quantity_requested))
                if quantity > item.quantity_requested:
                    raise ValidationError(
                        f"Approved quantity {quantity} exceeds requested {item.quantity_requested}",
                        {"item_id": item.id},
                    )
                item.quantity_approved = quantity

        elif target == S.COMPLETED.value:
            received = self._by_item(items, receipts, "quantity_received")
            for item in request.items:
                approved_quantity = to_quantity(item.quantity_approved or 0)
                quantity = received.get(item.id, approved_quantity)
                if quantity > approved_quantity:
                    raise ValidationError(
                        f"Received quantity {quantity} exceeds approved {approved_quantity}",
                        {"item_id": item.id},
                    )
                item.quantity_received = quantity

    def after_transition(self, request, previous, target, notes, reason=None, **kwargs):
        if target == S.REJECTED.value:
            request.rejection_reason = reason
            return
        if target != S.APPROVED.value:
            return

        for item in request.items:
            if item.quantity_approved and item.quantity_approved > 0:
                self.ledger.apply_transfer(
                    product_id=item.product_id,
                    source_warehouse_id=request.source_warehouse_id,
                    destination_warehouse_id=request.warehouse_id,
                    quantity=item.quantity_approved,
                    reference_type=self.entity,
                    reference_id=request.id,
                    notes=notes or f"Product request {request.id}",
                )

    def audit_values(self, request, notes):
        values = super().audit_values(request, notes)
        values["items"] = {
            item.id: {
                "requested": str(item.quantity_requested),
                "approved": str(item.quantity_approved) if item.quantity_approved is not None else None,
                "received": str(item.quantity_received) if item.quantity_received is not None else None,
            }
            for item in request.items
        }
        return values

    @staticmethod
    def _by_item(items: Dict[int, ProductRequestItem], lines, field: str) -> Dict[int, Decimal]:
        result = {}
        for line in lines or []:
            if line.item_id not in items:
                raise ReferenceNotFound("ProductRequestItem", line.item_id)
            result[line.item_id] = to_quantity(getattr(line, field))
        return result
