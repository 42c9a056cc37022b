"""
Tests for the Unit of Work
Commit, rollback and translation of database errors
"""

import pytest
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import StateConflict, ValidationError
from retailops.core.numeric import to_positive_quantity
from retailops.models.catalog import Warehouse
from retailops.models.inventory import InventoryBalance


def _count(db_session: Session, model) -> int:
    return db_session.execute(select(func.count(model.id))).scalar_one()


class TestUnitOfWork:
    """Test suite for unit_of_work()"""

    def test_commits_on_success(self, db_session: Session):
        with unit_of_work(db_session):
            db_session.add(Warehouse(name="Harbour Store", is_store=True))

        assert _count(db_session, Warehouse) == 1

    def test_duplicate_key_is_a_retryable_conflict(self, db_session: Session, warehouses):
        """A unique-key collision is what a lost insert race looks like"""
        with pytest.raises(StateConflict) as exc_info:
            with unit_of_work(db_session):
                db_session.add(Warehouse(name="Main Warehouse"))
                db_session.flush()

        assert exc_info.value.retryable is True
        assert _count(db_session, Warehouse) == 3

    def test_check_violation_is_a_validation_error(self, db_session: Session, products, warehouses):
        """Bad data never succeeds on retry, so it is not reported as a conflict"""
        with pytest.raises(ValidationError) as exc_info:
            with unit_of_work(db_session):
                db_session.add(InventoryBalance(
                    product_id=products["widget"].id,
                    warehouse_id=warehouses["main"].id,
                    quantity=Decimal("-1"),
                ))
                db_session.flush()

        assert exc_info.value.retryable is False
        assert exc_info.value.to_dict()["error"] == "validation_error"
        assert _count(db_session, InventoryBalance) == 0

    def test_other_errors_roll_back_and_propagate(self, db_session: Session):
        with pytest.raises(RuntimeError):
            with unit_of_work(db_session):
                db_session.add(Warehouse(name="Harbour Store"))
                db_session.flush()
                raise RuntimeError("boom")

        assert _count(db_session, Warehouse) == 0


class TestPositiveQuantity:
    """Test suite for to_positive_quantity()"""

    def test_rounds_half_up(self):
        assert to_positive_quantity("0.005") == Decimal("0.01")
        assert to_positive_quantity(Decimal("2")) == Decimal("2.00")

    @pytest.mark.parametrize("value", ["0.004", "0", "-1"])
    def test_rejects_values_that_round_to_nothing(self, value):
        with pytest.raises(ValidationError) as exc_info:
            to_positive_quantity(value, "required_quantity")

        assert exc_info.value.detail["field"] == "required_quantity"
        assert exc_info.value.retryable is False
