"""
Sales Order Service
Back-office, online storefront and point-of-sale orders
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple
from decimal import Decimal
import logging

from sqlalchemy import select, or_, false
from sqlalchemy.orm import Session

from retailops.core.config import settings
from retailops.core.database import unit_of_work
from retailops.core.exceptions import InsufficientStock, ReferenceNotFound, ValidationError
from retailops.core.numeric import to_money, to_positive_quantity, to_quantity, line_total
from retailops.core.permissions import Action, authorize, can
from retailops.models.catalog import Customer, Product, Warehouse
from retailops.models.inventory import MovementType, MovementDirection
from retailops.models.sales import (
    SalesOrder, SalesItem, OrderTracking,
    SalesOrderStatus, SalesChannel, PaymentStatus
)
from retailops.schemas.sales import SalesOrderCreate, OnlineOrderCreate, POSSaleCreate
from retailops.services.audit import record_audit
from retailops.services.ledger import LedgerService, MovementDraft
from retailops.services.order_workflow import StateMachine, WorkflowService, next_order_number

logger = logging.getLogger(__name__)

S = SalesOrderStatus

SALES_ORDER_MACHINE = StateMachine("SalesOrder", {
    S.PENDING.value: {S.CONFIRMED.value, S.CANCELLED.value},
    S.CONFIRMED.value: {S.SHIPPED.value, S.CANCELLED.value},
    S.SHIPPED.value: {S.DELIVERED.value},
})

ORDER_PREFIX = {
    SalesChannel.BACK_OFFICE: "SO",
    SalesChannel.ONLINE: "WEB",
    SalesChannel.POS: "POS",
}


class SalesOrderService(WorkflowService):
    """
    Sales orders

    Every status change appends an OrderTracking row. Stock leaves the
    warehouse on the transition named by SALES_STOCK_TRIGGER (Delivered
    unless configured otherwise), for every channel alike. Confirming an
    order checks availability but holds no reservation.
    """

    model = SalesOrder
    machine = SALES_ORDER_MACHINE
    view_action = Action.SALES_VIEW
    actions = {
        S.CONFIRMED.value: Action.SALES_CONFIRM,
        S.SHIPPED.value: Action.SALES_SHIP,
        S.DELIVERED.value: Action.SALES_DELIVER,
        S.CANCELLED.value: Action.SALES_CANCEL,
    }
    stamps = {
        S.CONFIRMED.value: ("confirmed_at", "confirmed_by_user_id"),
        S.SHIPPED.value: ("shipped_at", "shipped_by_user_id"),
        S.DELIVERED.value: ("delivered_at", "delivered_by_user_id"),
        S.CANCELLED.value: ("cancelled_at", "cancelled_by_user_id"),
    }

    def __init__(self, db: Session, current_user=None):
        super().__init__(db, current_user)
        self.ledger = LedgerService(db, current_user)

    @property
    def stock_trigger(self) -> str:
        return settings.SALES_STOCK_TRIGGER

    # Creation

    def create(self, order_data: SalesOrderCreate) -> SalesOrder:
        """Create a Pending back-office order"""
        authorize(self.current_user, Action.SALES_CREATE)

        with unit_of_work(self.db):
            order = self._new_order(
                SalesChannel.BACK_OFFICE,
                [(i.product_id, i.warehouse_id, i.quantity, i.unit_price) for i in order_data.items],
                customer_name=order_data.customer_name,
                customer_email=order_data.customer_email,
                customer_phone=order_data.customer_phone,
                shipping_address=order_data.shipping_address,
                notes=order_data.notes,
            )

        logger.info(f"Sales order {order.order_number} created for {order.customer_name}")
        return order

    def create_online_order(self, order_data: OnlineOrderCreate) -> SalesOrder:
        """Storefront order against the online store warehouse"""
        authorize(self.current_user, Action.SALES_ONLINE_ORDER)

        with unit_of_work(self.db):
            store = self._warehouse_by_name(settings.ONLINE_STORE_NAME)
            lines = [(i.product_id, store.id, i.quantity, None) for i in order_data.items]
            self._check_availability((p, w, q) for p, w, q, _ in lines)

            order = self._new_order(
                SalesChannel.ONLINE,
                lines,
                customer_name=order_data.customer_name or getattr(self.current_user, "full_name", None),
                customer_email=order_data.customer_email or getattr(self.current_user, "email", None),
                customer_phone=order_data.customer_phone,
                shipping_address=order_data.shipping_address,
                notes=order_data.notes,
                customer_user_id=getattr(self.current_user, "id", None),
            )

        logger.info(f"Online order {order.order_number} placed by user {order.customer_user_id}")
        return order

    def process_pos_sale(self, sale_data: POSSaleCreate) -> SalesOrder:
        """
        Point-of-sale checkout

        Sells from the cashier's assigned store. The order is created and
        driven to Delivered in a single transaction and marked Paid.
        """
        authorize(self.current_user, Action.POS_SALE)

        store_id = getattr(self.current_user, "assigned_store_id", None)
        if store_id is None:
            raise ValidationError("No store is assigned to this user")

        with unit_of_work(self.db):
            store = self.db.get(Warehouse, store_id)
            if store is None:
                raise ReferenceNotFound("Warehouse", store_id)

            customer = None
            if sale_data.customer_phone:
                customer = self._upsert_customer(sale_data.customer_phone, sale_data.customer_name)

            order = self._new_order(
                SalesChannel.POS,
                [(i.product_id, store.id, i.quantity, i.unit_price) for i in sale_data.items],
                customer_name=(customer.full_name if customer else sale_data.customer_name) or "Walk-in Customer",
                customer_phone=sale_data.customer_phone,
                customer_id=customer.id if customer else None,
                notes=sale_data.notes,
                payment_method=sale_data.payment_method,
                payment_status=PaymentStatus.PAID,
            )
            for target in (S.CONFIRMED.value, S.SHIPPED.value, S.DELIVERED.value):
                self._apply_transition(order, target, "Point of sale", location=store.name)

        logger.info(f"POS sale {order.order_number} at {store.name}: {order.total_amount}")
        return order

    # Transitions

    def confirm(self, order_id: int, notes: Optional[str] = None) -> SalesOrder:
        return self.transition(order_id, S.CONFIRMED, notes)

    def ship(self, order_id: int, notes: Optional[str] = None, location: Optional[str] = None) -> SalesOrder:
        return self.transition(order_id, S.SHIPPED, notes, location=location)

    def deliver(self, order_id: int, notes: Optional[str] = None) -> SalesOrder:
        return self.transition(order_id, S.DELIVERED, notes)

    def cancel(self, order_id: int, notes: Optional[str] = None) -> SalesOrder:
        return self.transition(order_id, S.CANCELLED, notes)

    def before_transition(self, order, previous, target, **kwargs):
        if target == S.CONFIRMED.value:
            self._check_availability((i.product_id, i.warehouse_id, i.quantity) for i in order.items)

    def after_transition(self, order, previous, target, notes, location=None, **kwargs):
        self.db.add(OrderTracking(
            sales_order_id=order.id,
            status=target,
            notes=notes or f"Order {target.lower()}",
            location=location,
            updated_by_user_id=getattr(self.current_user, "id", None),
        ))
        if target == self.stock_trigger:
            for item in order.items:
                self.ledger.apply_movement(MovementDraft(
                    product_id=item.product_id,
                    warehouse_id=item.warehouse_id,
                    movement_type=MovementType.SALE,
                    direction=MovementDirection.OUT,
                    quantity=item.quantity,
                    reference_type=self.entity,
                    reference_id=order.id,
                    notes=f"{target} {order.order_number}",
                ))

    # Queries

    def list(
        self,
        status: Optional[SalesOrderStatus] = None,
        channel: Optional[SalesChannel] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[SalesOrder]:
        """List sales orders, newest first"""
        self.authorize_view()
        stmt = self.visible(select(SalesOrder))
        if status is not None:
            stmt = stmt.where(SalesOrder.status == SalesOrderStatus(status).value)
        if channel is not None:
            stmt = stmt.where(SalesOrder.channel == SalesChannel(channel).value)
        stmt = stmt.order_by(SalesOrder.order_date.desc(), SalesOrder.id.desc())
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def tracking_history(self, order_id: int) -> List[OrderTracking]:
        """Status history of an order, oldest first"""
        self.read(order_id)
        return list(self.db.execute(
            select(OrderTracking)
            .where(OrderTracking.sales_order_id == order_id)
            .order_by(OrderTracking.tracked_at, OrderTracking.id)
        ).scalars())

    def visible(self, stmt):
        """
        Managers see every order. Cashiers see orders with a line at their
        assigned store and customers see the orders they placed.
        """
        user = self.current_user
        if can(user, Action.SALES_VIEW_ALL):
            return stmt

        scopes = []
        store_id = getattr(user, "assigned_store_id", None)
        if can(user, Action.SALES_VIEW_STORE) and store_id is not None:
            scopes.append(SalesOrder.items.any(SalesItem.warehouse_id == store_id))
        if can(user, Action.SALES_VIEW_OWN):
            scopes.append(SalesOrder.customer_user_id == user.id)
        return stmt.where(or_(*scopes)) if scopes else stmt.where(false())

    # Helpers

    def _new_order(
        self,
        channel: SalesChannel,
        lines: List[Tuple[int, int, Decimal, Optional[Decimal]]],
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        **fields,
    ) -> SalesOrder:
        order = SalesOrder(
            order_number=next_order_number(self.db, SalesOrder, ORDER_PREFIX[channel]),
            channel=channel.value,
            status=S.PENDING.value,
            payment_status=payment_status.value,
            created_by_user_id=getattr(self.current_user, "id", None),
            **fields,
        )
        total = Decimal("0")
        for product_id, warehouse_id, quantity, unit_price in lines:
            product = self.db.get(Product, product_id)
            if product is None:
                raise ReferenceNotFound("Product", product_id)
            if self.db.get(Warehouse, warehouse_id) is None:
                raise ReferenceNotFound("Warehouse", warehouse_id)
            quantity = to_positive_quantity(quantity)
            price = to_money(product.price if unit_price is None else unit_price)
            amount = line_total(quantity, price)
            order.items.append(SalesItem(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                unit_price=price,
                total_price=amount,
            ))
            total += amount
        order.total_amount = to_money(total)

        self.db.add(order)
        self.db.flush()
        self.db.add(OrderTracking(
            sales_order_id=order.id,
            status=S.PENDING.value,
            notes="Order created",
            updated_by_user_id=getattr(self.current_user, "id", None),
        ))
        record_audit(
            self.db, self.current_user, "CREATE", self.entity, order.id,
            new_values={
                "order_number": order.order_number,
                "channel": order.channel,
                "total_amount": order.total_amount,
            },
        )
        return order

    def _check_availability(self, lines: Iterable[Tuple[int, int, Decimal]]) -> None:
        """Raise InsufficientStock if any (product, warehouse) cannot cover its lines"""
        needed: Dict[Tuple[int, int], Decimal] = defaultdict(Decimal)
        for product_id, warehouse_id, quantity in lines:
            needed[(product_id, warehouse_id)] += to_quantity(quantity)

        for (product_id, warehouse_id), quantity in needed.items():
            available = self.ledger.get_quantity(product_id, warehouse_id)
            if available < quantity:
                logger.warning(
                    f"Availability check failed for product {product_id} at warehouse "
                    f"{warehouse_id}: need {quantity}, have {available}"
                )
                raise InsufficientStock(
                    f"Insufficient stock for product {product_id}: requested {quantity}, available {available}",
                    {
                        "product_id": product_id,
                        "warehouse_id": warehouse_id,
                        "requested": str(quantity),
                        "available": str(available),
                    },
                )

    def _warehouse_by_name(self, name: str) -> Warehouse:
        warehouse = self.db.execute(
            select(Warehouse).where(Warehouse.name == name)
        ).scalar_one_or_none()
        if warehouse is None:
            raise ReferenceNotFound("Warehouse", name)
        return warehouse

    def _upsert_customer(self, phone_number: str, full_name: Optional[str]) -> Customer:
        customer = self.db.execute(
            select(Customer).where(Customer.phone_number == phone_number)
        ).scalar_one_or_none()
        if customer is None:
            customer = Customer(phone_number=phone_number, full_name=full_name or "Walk-in Customer")
            self.db.add(customer)
            self.db.flush()
            logger.info(f"Customer {customer.id} registered from POS")
        elif full_name and customer.full_name != full_name:
            customer.full_name = full_name
        return customer
