"""
Tests for the Inventory Ledger
Balances, movements and the administrative stock operations
"""

import pytest
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import (
    Forbidden, InsufficientStock, ReferenceNotFound, ValidationError
)
from retailops.models.audit import AuditLog
from retailops.models.inventory import (
    InventoryBalance, ProductMovement, MovementType, MovementDirection
)
from retailops.services.ledger import LedgerService, MovementDraft


def _draft(product, warehouse, quantity, direction=MovementDirection.IN, movement_type=MovementType.PURCHASE):
    return MovementDraft(
        product_id=product.id,
        warehouse_id=warehouse.id,
        movement_type=movement_type,
        direction=direction,
        quantity=Decimal(quantity),
        reference_type="Test",
        reference_id=1,
    )


class TestApplyMovement:
    """Test suite for LedgerService.apply_movement"""

    def test_inbound_creates_balance(self, db_session: Session, admin_user, products, warehouses):
        """First movement for a key creates the balance row"""
        ledger = LedgerService(db_session, admin_user)

        with unit_of_work(db_session):
            balance = ledger.apply_movement(_draft(products["widget"], warehouses["main"], "12.5"))

        assert balance.quantity == Decimal("12.50")
        movement = db_session.execute(select(ProductMovement)).scalar_one()
        assert movement.movement_type == "Purchase"
        assert movement.direction == "In"
        assert movement.balance_after == Decimal("12.50")
        assert movement.created_by_user_id == admin_user.id

    def test_outbound_decrements(self, db_session: Session, admin_user, products, warehouses, stock):
        """Outbound movement lowers the balance and records balance_after"""
        stock(products["widget"], warehouses["main"], 10)
        ledger = LedgerService(db_session, admin_user)

        with unit_of_work(db_session):
            balance = ledger.apply_movement(
                _draft(products["widget"], warehouses["main"], "4", MovementDirection.OUT, MovementType.SALE)
            )

        assert balance.quantity == Decimal("6.00")
        assert ledger.get_quantity(products["widget"].id, warehouses["main"].id) == Decimal("6.00")

    def test_outbound_exact_balance_reaches_zero(self, db_session: Session, admin_user, products, warehouses, stock):
        """Taking exactly what is on hand is allowed"""
        stock(products["bolt"], warehouses["main"], 3)
        ledger = LedgerService(db_session, admin_user)

        with unit_of_work(db_session):
            balance = ledger.apply_movement(
                _draft(products["bolt"], warehouses["main"], "3", MovementDirection.OUT, MovementType.SALE)
            )

        assert balance.quantity == Decimal("0.00")

    def test_outbound_beyond_balance_fails(self, db_session: Session, admin_user, products, warehouses, stock):
        """Insufficient stock leaves balance and ledger untouched"""
        stock(products["widget"], warehouses["main"], 2)
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(InsufficientStock) as exc_info:
            with unit_of_work(db_session):
                ledger.apply_movement(
                    _draft(products["widget"], warehouses["main"], "5", MovementDirection.OUT, MovementType.SALE)
                )

        assert exc_info.value.detail["requested"] == "5.00"
        assert exc_info.value.detail["available"] == "2.00"
        assert ledger.get_quantity(products["widget"].id, warehouses["main"].id) == Decimal("2.00")
        assert len(ledger.get_movements(product_id=products["widget"].id)) == 1

    def test_outbound_without_balance_fails(self, db_session: Session, admin_user, products, warehouses):
        """No balance row means nothing on hand"""
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(InsufficientStock):
            with unit_of_work(db_session):
                ledger.apply_movement(
                    _draft(products["gadget"], warehouses["store"], "1", MovementDirection.OUT, MovementType.SALE)
                )

    @pytest.mark.parametrize("quantity", ["0", "-1", "0.001"])
    def test_non_positive_quantity_rejected(self, db_session: Session, admin_user, products, warehouses, quantity):
        """Quantities must be positive after rounding"""
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(ValidationError):
            ledger.apply_movement(_draft(products["widget"], warehouses["main"], quantity))

    def test_unknown_product_rejected(self, db_session: Session, admin_user, warehouses):
        """Movements must reference existing rows"""
        ledger = LedgerService(db_session, admin_user)
        draft = MovementDraft(
            product_id=999,
            warehouse_id=warehouses["main"].id,
            movement_type=MovementType.PURCHASE,
            direction=MovementDirection.IN,
            quantity=Decimal("1"),
        )

        with pytest.raises(ReferenceNotFound):
            ledger.apply_movement(draft)

    def test_quantities_round_half_up(self, db_session: Session, admin_user, products, warehouses):
        """Quantities are stored with two decimals, rounded half up"""
        ledger = LedgerService(db_session, admin_user)

        with unit_of_work(db_session):
            balance = ledger.apply_movement(_draft(products["bolt"], warehouses["main"], "2.345"))

        assert balance.quantity == Decimal("2.35")

    def test_balance_matches_ledger_sum(self, db_session: Session, admin_user, products, warehouses, stock):
        """Balance always equals the signed sum of its movements"""
        stock(products["widget"], warehouses["main"], 20)
        ledger = LedgerService(db_session, admin_user)

        with unit_of_work(db_session):
            ledger.apply_movement(_draft(products["widget"], warehouses["main"], "7", MovementDirection.OUT))
            ledger.apply_movement(_draft(products["widget"], warehouses["main"], "2.5"))

        product_id, warehouse_id = products["widget"].id, warehouses["main"].id
        assert ledger.get_quantity(product_id, warehouse_id) == Decimal("15.50")
        assert ledger.ledger_sum(product_id, warehouse_id) == Decimal("15.50")


class TestTransfer:
    """Test suite for paired transfer movements"""

    def test_transfer_moves_stock(self, db_session: Session, admin_user, products, warehouses, stock):
        """Out at the source and In at the destination with one reference"""
        stock(products["gadget"], warehouses["main"], 10)
        ledger = LedgerService(db_session, admin_user)

        with unit_of_work(db_session):
            source, destination = ledger.apply_transfer(
                products["gadget"].id, warehouses["main"].id, warehouses["store"].id,
                Decimal("4"), reference_type="ProductRequest", reference_id=7,
            )

        assert source.quantity == Decimal("6.00")
        assert destination.quantity == Decimal("4.00")
        movements = ledger.get_movements(reference_type="ProductRequest", reference_id=7)
        assert {(m.warehouse_id, m.direction) for m in movements} == {
            (warehouses["main"].id, "Out"),
            (warehouses["store"].id, "In"),
        }
        assert all(m.movement_type == "Transfer" for m in movements)

    def test_transfer_to_same_warehouse_rejected(self, db_session: Session, admin_user, products, warehouses):
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(ValidationError):
            ledger.apply_transfer(
                products["gadget"].id, warehouses["main"].id, warehouses["main"].id,
                Decimal("1"), reference_type="ProductRequest", reference_id=1,
            )

    def test_transfer_shortfall_applies_nothing(self, db_session: Session, admin_user, products, warehouses, stock):
        """A failed source decrement leaves the destination untouched"""
        stock(products["gadget"], warehouses["main"], 1)
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(InsufficientStock):
            with unit_of_work(db_session):
                ledger.apply_transfer(
                    products["gadget"].id, warehouses["main"].id, warehouses["store"].id,
                    Decimal("3"), reference_type="ProductRequest", reference_id=1,
                )

        assert ledger.get_quantity(products["gadget"].id, warehouses["main"].id) == Decimal("1.00")
        assert ledger.get_quantity(products["gadget"].id, warehouses["store"].id) == Decimal("0.00")


class TestAdministrativeOperations:
    """Test suite for adjustments and stock levels"""

    def test_adjustment_requires_reason(self, db_session: Session, admin_user, products, warehouses):
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(ValidationError, match="reason"):
            ledger.adjust(products["widget"].id, warehouses["main"].id, Decimal("1"), MovementDirection.IN, "  ")

    def test_adjustment_is_audited(self, db_session: Session, manager_user, products, warehouses):
        """Adjustments write an Adjustment movement and an audit row"""
        ledger = LedgerService(db_session, manager_user)

        balance = ledger.adjust(
            products["widget"].id, warehouses["main"].id, Decimal("5"), MovementDirection.IN, "Stock count"
        )

        assert balance.quantity == Decimal("5.00")
        movement = ledger.get_movements(product_id=products["widget"].id)[0]
        assert movement.movement_type == "Adjustment"
        assert movement.notes == "Stock count"
        audit = db_session.execute(select(AuditLog).where(AuditLog.action == "ADJUST")).scalar_one()
        assert audit.user_id == manager_user.id

    def test_cashier_cannot_adjust(self, db_session: Session, cashier_user, products, warehouses):
        ledger = LedgerService(db_session, cashier_user)

        with pytest.raises(Forbidden):
            ledger.adjust(products["widget"].id, warehouses["main"].id, Decimal("1"), MovementDirection.IN, "Found")

    def test_default_minimum_levels_only_fill_missing(
        self, db_session: Session, admin_user, products, warehouses, stock
    ):
        """Existing thresholds and quantities are preserved"""
        stock(products["widget"], warehouses["main"], 50)
        stock(products["gadget"], warehouses["main"], 3)
        ledger = LedgerService(db_session, admin_user)
        ledger.set_stock_levels(products["widget"].id, warehouses["main"].id, minimum_stock_level=Decimal("25"))

        updated = ledger.set_default_minimum_levels()

        assert updated == 1
        widget = ledger.get_balance(products["widget"].id, warehouses["main"].id)
        gadget = ledger.get_balance(products["gadget"].id, warehouses["main"].id)
        assert widget.minimum_stock_level == Decimal("25.00")
        assert widget.quantity == Decimal("50.00")
        assert gadget.minimum_stock_level == Decimal("10.00")
        assert gadget.is_low_stock

    def test_stock_levels_validated(self, db_session: Session, admin_user, products, warehouses):
        ledger = LedgerService(db_session, admin_user)

        with pytest.raises(ValidationError):
            ledger.set_stock_levels(
                products["widget"].id, warehouses["main"].id,
                minimum_stock_level=Decimal("20"), maximum_stock_level=Decimal("5"),
            )

    def test_stock_levels_create_empty_balance(self, db_session: Session, admin_user, products, warehouses):
        ledger = LedgerService(db_session, admin_user)

        balance = ledger.set_stock_levels(
            products["kit"].id, warehouses["store"].id, minimum_stock_level=Decimal("2")
        )

        assert balance.quantity == Decimal("0.00")
        assert balance.minimum_stock_level == Decimal("2.00")
        assert db_session.execute(select(InventoryBalance)).scalars().all() == [balance]
