"""
Tests for Sales Orders
Back-office workflow, storefront orders, point of sale and order tracking
"""

import pytest
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.config import settings
from retailops.core.exceptions import (
    Forbidden, InsufficientStock, InvalidStateTransition, ReferenceNotFound, ValidationError
)
from retailops.models.catalog import Customer
from retailops.models.sales import SalesOrderStatus, SalesChannel, PaymentStatus
from retailops.schemas.sales import (
    SalesOrderCreate, SalesItemCreate, OnlineOrderCreate, OnlineOrderItem,
    POSSaleCreate, POSSaleItem
)
from retailops.services.ledger import LedgerService
from retailops.services.sales_orders import SalesOrderService, SALES_ORDER_MACHINE


@pytest.fixture
def sales_order(db_session: Session, manager_user, products, warehouses):
    """Pending back-office order for 3 widgets from the main warehouse"""
    return SalesOrderService(db_session, manager_user).create(SalesOrderCreate(
        customer_name="Bob Buyer",
        items=[SalesItemCreate(
            product_id=products["widget"].id, warehouse_id=warehouses["main"].id, quantity=Decimal("3"),
        )],
    ))


def _quantity(db_session, product, warehouse):
    return LedgerService(db_session).get_quantity(product.id, warehouse.id)


SALES_STATUSES = [s.value for s in SalesOrderStatus]

DISALLOWED_SALES_MOVES = [
    (current, target)
    for current in SALES_STATUSES
    for target in SALES_STATUSES
    if not SALES_ORDER_MACHINE.can_transition(current, target)
]

# Transitions that bring a fresh order to each status
PATH_TO = {
    "Pending": [],
    "Confirmed": ["Confirmed"],
    "Shipped": ["Confirmed", "Shipped"],
    "Delivered": ["Confirmed", "Shipped", "Delivered"],
    "Cancelled": ["Cancelled"],
}


class TestSalesOrderWorkflow:
    """Test suite for the back-office order lifecycle"""

    def test_machine_table(self):
        assert SALES_ORDER_MACHINE.allowed_targets("Pending") == {"Confirmed", "Cancelled"}
        assert SALES_ORDER_MACHINE.allowed_targets("Confirmed") == {"Shipped", "Cancelled"}
        assert SALES_ORDER_MACHINE.allowed_targets("Shipped") == {"Delivered"}
        assert SALES_ORDER_MACHINE.is_terminal("Delivered")
        assert SALES_ORDER_MACHINE.is_terminal("Cancelled")

    @pytest.mark.parametrize("current,target", DISALLOWED_SALES_MOVES)
    def test_disallowed_transitions_leave_order_untouched(
        self, db_session: Session, manager_user, sales_order, products, warehouses, stock, current, target
    ):
        """Every move outside the table fails without changing status or stock"""
        stock(products["widget"], warehouses["main"], 10)
        service = SalesOrderService(db_session, manager_user)
        for step in PATH_TO[current]:
            service.transition(sales_order.id, step)
        before = _quantity(db_session, products["widget"], warehouses["main"])

        with pytest.raises(InvalidStateTransition):
            service.transition(sales_order.id, target)

        db_session.refresh(sales_order)
        assert sales_order.status == current
        assert _quantity(db_session, products["widget"], warehouses["main"]) == before

    def test_create_uses_product_price(self, sales_order):
        assert sales_order.order_number.startswith("SO")
        assert sales_order.channel == SalesChannel.BACK_OFFICE.value
        assert sales_order.items[0].unit_price == Decimal("10.00")
        assert sales_order.total_amount == Decimal("30.00")
        assert sales_order.payment_status == PaymentStatus.PENDING.value

    def test_quantity_rounding_to_zero_rejected(
        self, db_session: Session, manager_user, customer_user, products, warehouses
    ):
        """Every channel rejects lines that round to nothing before writing"""
        with pytest.raises(ValidationError):
            SalesOrderService(db_session, manager_user).create(SalesOrderCreate(
                customer_name="Bob Buyer",
                items=[SalesItemCreate(
                    product_id=products["widget"].id, warehouse_id=warehouses["main"].id,
                    quantity=Decimal("0.004"),
                )],
            ))
        with pytest.raises(ValidationError):
            SalesOrderService(db_session, customer_user).create_online_order(OnlineOrderCreate(
                shipping_address="1 Elm Street",
                items=[OnlineOrderItem(product_id=products["widget"].id, quantity=Decimal("0.001"))],
            ))

        assert SalesOrderService(db_session, manager_user).list() == []

    def test_full_lifecycle_deducts_on_delivery(
        self, db_session: Session, manager_user, sales_order, products, warehouses, stock
    ):
        """Stock leaves the warehouse when the order is delivered"""
        stock(products["widget"], warehouses["main"], 10)
        service = SalesOrderService(db_session, manager_user)

        service.confirm(sales_order.id)
        assert _quantity(db_session, products["widget"], warehouses["main"]) == Decimal("10.00")

        service.ship(sales_order.id, location="Courier depot")
        assert _quantity(db_session, products["widget"], warehouses["main"]) == Decimal("10.00")

        order = service.deliver(sales_order.id)
        assert order.status == SalesOrderStatus.DELIVERED.value
        assert order.delivered_by_user_id == manager_user.id
        assert _quantity(db_session, products["widget"], warehouses["main"]) == Decimal("7.00")

        movements = LedgerService(db_session).get_movements(reference_type="SalesOrder", reference_id=order.id)
        assert len(movements) == 1
        assert movements[0].movement_type == "Sale"
        assert movements[0].direction == "Out"

    def test_shipped_trigger_deducts_on_shipment(
        self, db_session: Session, manager_user, sales_order, products, warehouses, stock, monkeypatch
    ):
        """With the trigger set to Shipped, delivery books nothing further"""
        monkeypatch.setattr(settings, "SALES_STOCK_TRIGGER", "Shipped")
        stock(products["widget"], warehouses["main"], 10)
        service = SalesOrderService(db_session, manager_user)

        service.confirm(sales_order.id)
        service.ship(sales_order.id)
        assert _quantity(db_session, products["widget"], warehouses["main"]) == Decimal("7.00")

        service.deliver(sales_order.id)
        assert _quantity(db_session, products["widget"], warehouses["main"]) == Decimal("7.00")

    def test_confirm_checks_availability(self, db_session: Session, manager_user, sales_order, products, warehouses, stock):
        """Confirming without enough stock fails and the order stays Pending"""
        stock(products["widget"], warehouses["main"], 2)

        with pytest.raises(InsufficientStock):
            SalesOrderService(db_session, manager_user).confirm(sales_order.id)

        db_session.refresh(sales_order)
        assert sales_order.status == SalesOrderStatus.PENDING.value

    def test_confirm_does_not_reserve(self, db_session: Session, manager_user, products, warehouses, stock):
        """Two confirmed orders may compete for the same stock; the second delivery fails"""
        stock(products["widget"], warehouses["main"], 3)
        service = SalesOrderService(db_session, manager_user)
        orders = [
            service.create(SalesOrderCreate(
                customer_name=name,
                items=[SalesItemCreate(
                    product_id=products["widget"].id, warehouse_id=warehouses["main"].id, quantity=Decimal("3"),
                )],
            ))
            for name in ("First", "Second")
        ]
        for order in orders:
            service.confirm(order.id)
            service.ship(order.id)

        service.deliver(orders[0].id)
        with pytest.raises(InsufficientStock):
            service.deliver(orders[1].id)

        db_session.refresh(orders[1])
        assert orders[1].status == SalesOrderStatus.SHIPPED.value
        assert _quantity(db_session, products["widget"], warehouses["main"]) == Decimal("0.00")

    def test_cannot_cancel_shipped_order(self, db_session: Session, manager_user, sales_order, products, warehouses, stock):
        stock(products["widget"], warehouses["main"], 5)
        service = SalesOrderService(db_session, manager_user)
        service.confirm(sales_order.id)
        service.ship(sales_order.id)

        with pytest.raises(InvalidStateTransition):
            service.cancel(sales_order.id)

    def test_cancel_pending_order_books_nothing(self, db_session: Session, manager_user, sales_order):
        order = SalesOrderService(db_session, manager_user).cancel(sales_order.id, "Customer changed mind")

        assert order.status == SalesOrderStatus.CANCELLED.value
        assert LedgerService(db_session).get_movements(reference_type="SalesOrder") == []

    def test_tracking_history(self, db_session: Session, manager_user, sales_order, products, warehouses, stock):
        """Every status change appends a tracking row"""
        stock(products["widget"], warehouses["main"], 5)
        service = SalesOrderService(db_session, manager_user)
        service.confirm(sales_order.id)
        service.ship(sales_order.id, "Handed to courier", location="Courier depot")

        history = service.tracking_history(sales_order.id)

        assert [row.status for row in history] == ["Pending", "Confirmed", "Shipped"]
        assert history[-1].location == "Courier depot"
        assert history[-1].notes == "Handed to courier"

    def test_cashier_cannot_confirm(self, db_session: Session, cashier_user, sales_order):
        with pytest.raises(Forbidden):
            SalesOrderService(db_session, cashier_user).confirm(sales_order.id)


class TestOnlineOrders:
    """Test suite for storefront orders"""

    def test_online_order_uses_online_store(self, db_session: Session, customer_user, products, warehouses, stock):
        stock(products["gadget"], warehouses["online"], 5)

        order = SalesOrderService(db_session, customer_user).create_online_order(OnlineOrderCreate(
            shipping_address="1 Elm Street",
            items=[OnlineOrderItem(product_id=products["gadget"].id, quantity=Decimal("2"))],
        ))

        assert order.order_number.startswith("WEB")
        assert order.channel == SalesChannel.ONLINE.value
        assert order.customer_user_id == customer_user.id
        assert order.customer_name == "Carol Customer"
        assert order.items[0].warehouse_id == warehouses["online"].id
        assert order.total_amount == Decimal("51.00")
        # Nothing leaves the store until delivery
        assert _quantity(db_session, products["gadget"], warehouses["online"]) == Decimal("5.00")

    def test_online_order_rejects_unavailable_stock(self, db_session: Session, customer_user, products, warehouses, stock):
        """Lines for the same product are checked together"""
        stock(products["gadget"], warehouses["online"], 3)

        with pytest.raises(InsufficientStock):
            SalesOrderService(db_session, customer_user).create_online_order(OnlineOrderCreate(
                shipping_address="1 Elm Street",
                items=[
                    OnlineOrderItem(product_id=products["gadget"].id, quantity=Decimal("2")),
                    OnlineOrderItem(product_id=products["gadget"].id, quantity=Decimal("2")),
                ],
            ))

        assert SalesOrderService(db_session, customer_user).list(channel=SalesChannel.ONLINE) == []

    def test_cashier_cannot_place_online_order(self, db_session: Session, cashier_user, products, warehouses):
        with pytest.raises(Forbidden):
            SalesOrderService(db_session, cashier_user).create_online_order(OnlineOrderCreate(
                shipping_address="1 Elm Street",
                items=[OnlineOrderItem(product_id=products["gadget"].id, quantity=Decimal("1"))],
            ))


class TestPointOfSale:
    """Test suite for POS checkout"""

    def test_pos_sale_delivers_immediately(self, db_session: Session, cashier_user, products, warehouses, stock):
        stock(products["widget"], warehouses["store"], 10)

        order = SalesOrderService(db_session, cashier_user).process_pos_sale(POSSaleCreate(
            items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("4"))],
        ))

        assert order.order_number.startswith("POS")
        assert order.status == SalesOrderStatus.DELIVERED.value
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.payment_method == "Cash"
        assert order.customer_name == "Walk-in Customer"
        assert _quantity(db_session, products["widget"], warehouses["store"]) == Decimal("6.00")

        history = SalesOrderService(db_session, cashier_user).tracking_history(order.id)
        assert [row.status for row in history] == ["Pending", "Confirmed", "Shipped", "Delivered"]
        assert history[-1].location == "Downtown Store"

    def test_pos_sale_registers_customer(self, db_session: Session, cashier_user, products, warehouses, stock):
        """Customers are matched by phone number"""
        stock(products["widget"], warehouses["store"], 10)
        service = SalesOrderService(db_session, cashier_user)

        first = service.process_pos_sale(POSSaleCreate(
            customer_name="Dana Doe", customer_phone="555-0101",
            items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("1"))],
        ))
        second = service.process_pos_sale(POSSaleCreate(
            customer_phone="555-0101",
            items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("1"))],
        ))

        customers = db_session.execute(select(Customer)).scalars().all()
        assert len(customers) == 1
        assert first.customer_id == second.customer_id == customers[0].id
        assert second.customer_name == "Dana Doe"

    def test_pos_sale_without_stock_rolls_back(self, db_session: Session, cashier_user, products, warehouses, stock):
        """A failed checkout leaves no order behind"""
        stock(products["widget"], warehouses["store"], 1)
        service = SalesOrderService(db_session, cashier_user)

        with pytest.raises(InsufficientStock):
            service.process_pos_sale(POSSaleCreate(
                items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("2"))],
            ))

        assert service.list(channel=SalesChannel.POS) == []
        assert _quantity(db_session, products["widget"], warehouses["store"]) == Decimal("1.00")

    def test_pos_sale_requires_assigned_store(self, db_session: Session, admin_user, products):
        with pytest.raises(ValidationError):
            SalesOrderService(db_session, admin_user).process_pos_sale(POSSaleCreate(
                items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("1"))],
            ))

    def test_manager_cannot_use_pos(self, db_session: Session, manager_user, products):
        with pytest.raises(Forbidden):
            SalesOrderService(db_session, manager_user).process_pos_sale(POSSaleCreate(
                items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("1"))],
            ))


def _online_order(db_session, customer, products, quantity="1"):
    return SalesOrderService(db_session, customer).create_online_order(OnlineOrderCreate(
        shipping_address="1 Elm Street",
        items=[OnlineOrderItem(product_id=products["widget"].id, quantity=Decimal(quantity))],
    ))


class TestSalesOrderVisibility:
    """Test suite for who can read which sales orders"""

    def test_customer_sees_only_own_orders(
        self, db_session: Session, customer_user, other_customer_user, sales_order, products, warehouses, stock
    ):
        stock(products["widget"], warehouses["online"], 10)
        mine = _online_order(db_session, customer_user, products)
        theirs = _online_order(db_session, other_customer_user, products)
        service = SalesOrderService(db_session, customer_user)

        assert [o.id for o in service.list()] == [mine.id]
        assert service.read(mine.id).id == mine.id
        for order_id in (theirs.id, sales_order.id):
            with pytest.raises(ReferenceNotFound):
                service.read(order_id)
            with pytest.raises(ReferenceNotFound):
                service.tracking_history(order_id)

    def test_cashier_sees_store_orders(
        self, db_session: Session, cashier_user, customer_user, sales_order, products, warehouses, stock
    ):
        """Orders shipped from other warehouses stay hidden from the counter"""
        stock(products["widget"], warehouses["store"], 10)
        stock(products["widget"], warehouses["online"], 10)
        sale = SalesOrderService(db_session, cashier_user).process_pos_sale(POSSaleCreate(
            items=[POSSaleItem(product_id=products["widget"].id, quantity=Decimal("1"))],
        ))
        online = _online_order(db_session, customer_user, products)
        service = SalesOrderService(db_session, cashier_user)

        assert [o.id for o in service.list()] == [sale.id]
        for order_id in (sales_order.id, online.id):
            with pytest.raises(ReferenceNotFound):
                service.read(order_id)

    def test_cashier_without_store_sees_nothing(self, db_session: Session, cashier_user, sales_order):
        cashier_user.assigned_store_id = None
        db_session.commit()

        assert SalesOrderService(db_session, cashier_user).list() == []

    def test_manager_sees_every_order(
        self, db_session: Session, manager_user, customer_user, sales_order, products, warehouses, stock
    ):
        stock(products["widget"], warehouses["online"], 10)
        online = _online_order(db_session, customer_user, products)

        ids = {o.id for o in SalesOrderService(db_session, manager_user).list()}

        assert ids == {sales_order.id, online.id}

    def test_reading_requires_a_user(self, db_session: Session, sales_order):
        with pytest.raises(Forbidden):
            SalesOrderService(db_session).list()
