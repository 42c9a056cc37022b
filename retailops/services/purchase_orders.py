"""
Purchase Order Service
Purchase order creation and the Pending -> Approved -> Received workflow
"""
from typing import List, Optional
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import ReferenceNotFound
from retailops.core.numeric import to_money, to_positive_quantity, line_total
from retailops.core.permissions import Action, authorize
from retailops.models.catalog import Product, Warehouse
from retailops.models.inventory import MovementType, MovementDirection
from retailops.models.purchasing import PurchaseOrder, PurchaseItem, PurchaseOrderStatus
from retailops.schemas.purchasing import PurchaseOrderCreate
from retailops.services.audit import record_audit
from retailops.services.ledger import LedgerService, MovementDraft
from retailops.services.order_workflow import StateMachine, WorkflowService, next_order_number

logger = logging.getLogger(__name__)

S = PurchaseOrderStatus

PURCHASE_ORDER_MACHINE = StateMachine("PurchaseOrder", {
    S.PENDING.value: {S.APPROVED.value, S.CANCELLED.value},
    S.APPROVED.value: {S.RECEIVED.value, S.CANCELLED.value},
})


class PurchaseOrderService(WorkflowService):
    """
    Purchase orders

    Receiving is the only stock-affecting transition: one Purchase/In
    movement per line.
    """

    model = PurchaseOrder
    machine = PURCHASE_ORDER_MACHINE
    view_action = Action.PURCHASE_VIEW
    actions = {
        S.APPROVED.value: Action.PURCHASE_APPROVE,
        S.RECEIVED.value: Action.PURCHASE_RECEIVE,
        S.CANCELLED.value: Action.PURCHASE_CANCEL,
    }
    stamps = {
        S.APPROVED.value: ("approved_at", "approved_by_user_id"),
        S.RECEIVED.value: ("received_at", "received_by_user_id"),
        S.CANCELLED.value: ("cancelled_at", "cancelled_by_user_id"),
    }

    def __init__(self, db: Session, current_user=None):
        super().__init__(db, current_user)
        self.ledger = LedgerService(db, current_user)

    def create(self, order_data: PurchaseOrderCreate) -> PurchaseOrder:
        """Create a Pending purchase order"""
        authorize(self.current_user, Action.PURCHASE_CREATE)

        with unit_of_work(self.db):
            order = PurchaseOrder(
                order_number=next_order_number(self.db, PurchaseOrder, "PO"),
                supplier_name=order_data.supplier_name,
                supplier_contact=order_data.supplier_contact,
                expected_delivery_date=order_data.expected_delivery_date,
                notes=order_data.notes,
                status=S.PENDING.value,
                created_by_user_id=getattr(self.current_user, "id", None),
            )
            total = Decimal("0")
            for item in order_data.items:
                product = self.db.get(Product, item.product_id)
                if product is None:
                    raise ReferenceNotFound("Product", item.product_id)
                if self.db.get(Warehouse, item.warehouse_id) is None:
                    raise ReferenceNotFound("Warehouse", item.warehouse_id)
                quantity = to_positive_quantity(item.quantity)
                amount = line_total(quantity, item.unit_price)
                order.items.append(PurchaseItem(
                    product_id=item.product_id,
                    warehouse_id=item.warehouse_id,
                    quantity=quantity,
                    unit_price=to_money(item.unit_price),
                    total_price=amount,
                    unit=item.unit or product.unit,
                    notes=item.notes,
                ))
                total += amount
            order.total_amount = to_money(total)

            self.db.add(order)
            self.db.flush()
            record_audit(
                self.db, self.current_user, "CREATE", self.entity, order.id,
                new_values={"order_number": order.order_number, "total_amount": order.total_amount},
            )

        logger.info(f"Purchase order {order.order_number} created with {len(order.items)} items")
        return order

    def list(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[PurchaseOrder]:
        """List purchase orders, newest first"""
        self.authorize_view()
        stmt = self.visible(select(PurchaseOrder))
        if status is not None:
            stmt = stmt.where(PurchaseOrder.status == PurchaseOrderStatus(status).value)
        stmt = stmt.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def approve(self, order_id: int, notes: Optional[str] = None) -> PurchaseOrder:
        return self.transition(order_id, S.APPROVED, notes)

    def receive(self, order_id: int, notes: Optional[str] = None) -> PurchaseOrder:
        return self.transition(order_id, S.RECEIVED, notes)

    def cancel(self, order_id: int, notes: Optional[str] = None) -> PurchaseOrder:
        return self.transition(order_id, S.CANCELLED, notes)

    def after_transition(self, order, previous, target, notes, **kwargs):
        if target != S.RECEIVED.value:
            return
        for item in order.items:
            self.ledger.apply_movement(MovementDraft(
                product_id=item.product_id,
                warehouse_id=item.warehouse_id,
                movement_type=MovementType.PURCHASE,
                direction=MovementDirection.IN,
                quantity=item.quantity,
                reference_type=self.entity,
                reference_id=order.id,
                notes=notes or f"Received {order.order_number}",
            ))
