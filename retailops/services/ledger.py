"""
Inventory Ledger Service
Single write path for inventory balances and the movement ledger
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple
from decimal import Decimal
from datetime import datetime
import logging

from sqlalchemy import select, update, func, case
from sqlalchemy.orm import Session

from retailops.core.config import settings
from retailops.core.database import unit_of_work
from retailops.core.exceptions import InsufficientStock, ReferenceNotFound, ValidationError
from retailops.core.numeric import to_quantity
from retailops.core.permissions import Action, authorize
from retailops.models.catalog import Product, Warehouse
from retailops.models.inventory import (
    InventoryBalance, ProductMovement, MovementType, MovementDirection
)
from retailops.services.audit import record_audit

logger = logging.getLogger(__name__)


@dataclass
class MovementDraft:
    """A ledger entry that has not been applied yet"""
    product_id: int
    warehouse_id: int
    movement_type: MovementType
    direction: MovementDirection
    quantity: Decimal
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_by_user_id: Optional[int] = None


class LedgerService:
    """
    Inventory ledger

    ``apply_movement`` is the only code that changes
    ``InventoryBalance.quantity``. It runs inside the caller's transaction
    and never commits; outbound movements use a guarded UPDATE so the
    availability check and the decrement are one statement.
    """

    def __init__(self, db: Session, current_user=None):
        self.db = db
        self.current_user = current_user

    # Write path

    def apply_movement(self, draft: MovementDraft) -> InventoryBalance:
        """Append a ledger entry and apply it to the balance"""
        quantity = to_quantity(draft.quantity)
        if quantity <= 0:
            raise ValidationError(
                "Movement quantity must be greater than zero",
                {"quantity": str(quantity)},
            )

        self._ensure_references(draft.product_id, draft.warehouse_id)
        self._ensure_balance_row(draft.product_id, draft.warehouse_id)

        direction = MovementDirection(draft.direction)
        movement_type = MovementType(draft.movement_type)
        key = (
            (InventoryBalance.product_id == draft.product_id)
            & (InventoryBalance.warehouse_id == draft.warehouse_id)
        )

        if direction == MovementDirection.IN:
            stmt = (
                update(InventoryBalance)
                .where(key)
                .values(quantity=InventoryBalance.quantity + quantity, updated_at=datetime.utcnow())
            )
        else:
            stmt = (
                update(InventoryBalance)
                .where(key, InventoryBalance.quantity >= quantity)
                .values(quantity=InventoryBalance.quantity - quantity, updated_at=datetime.utcnow())
            )

        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            available = self.get_quantity(draft.product_id, draft.warehouse_id)
            logger.warning(
                f"Insufficient stock for product {draft.product_id} at warehouse "
                f"{draft.warehouse_id}: requested {quantity}, available {available}"
            )
            raise InsufficientStock(
                f"Insufficient stock for product {draft.product_id} at warehouse "
                f"{draft.warehouse_id}: requested {quantity}, available {available}",
                {
                    "product_id": draft.product_id,
                    "warehouse_id": draft.warehouse_id,
                    "requested": str(quantity),
                    "available": str(available),
                },
            )

        balance = self._reload_balance(draft.product_id, draft.warehouse_id)

        movement = ProductMovement(
            product_id=draft.product_id,
            warehouse_id=draft.warehouse_id,
            movement_type=movement_type.value,
            direction=direction.value,
            quantity=quantity,
            balance_after=balance.quantity,
            reference_type=draft.reference_type,
            reference_id=draft.reference_id,
            notes=draft.notes,
            created_by_user_id=draft.created_by_user_id or getattr(self.current_user, "id", None),
            movement_date=datetime.utcnow(),
        )
        self.db.add(movement)
        self.db.flush()

        logger.info(
            f"{movement_type.value}/{direction.value} {quantity} of product {draft.product_id} "
            f"at warehouse {draft.warehouse_id} -> {balance.quantity} "
            f"({draft.reference_type} {draft.reference_id})"
        )
        return balance

    def apply_transfer(
        self,
        product_id: int,
        source_warehouse_id: int,
        destination_warehouse_id: int,
        quantity,
        reference_type: str,
        reference_id: int,
        notes: Optional[str] = None,
    ) -> Tuple[InventoryBalance, InventoryBalance]:
        """Out at the source and In at the destination, sharing one reference"""
        if source_warehouse_id == destination_warehouse_id:
            raise ValidationError("Source and destination warehouse must differ")

        source = self.apply_movement(MovementDraft(
            product_id=product_id,
            warehouse_id=source_warehouse_id,
            movement_type=MovementType.TRANSFER,
            direction=MovementDirection.OUT,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        ))
        destination = self.apply_movement(MovementDraft(
            product_id=product_id,
            warehouse_id=destination_warehouse_id,
            movement_type=MovementType.TRANSFER,
            direction=MovementDirection.IN,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        ))
        return source, destination

    # Administrative operations

    def adjust(
        self,
        product_id: int,
        warehouse_id: int,
        quantity,
        direction: MovementDirection,
        notes: str,
    ) -> InventoryBalance:
        """Manual stock adjustment; a reason is mandatory"""
        authorize(self.current_user, Action.INVENTORY_ADJUST)
        if not notes or not notes.strip():
            raise ValidationError("A reason is required for stock adjustments")

        with unit_of_work(self.db):
            balance = self.apply_movement(MovementDraft(
                product_id=product_id,
                warehouse_id=warehouse_id,
                movement_type=MovementType.ADJUSTMENT,
                direction=MovementDirection(direction),
                quantity=quantity,
                reference_type="Adjustment",
                notes=notes,
            ))
            record_audit(
                self.db, self.current_user, "ADJUST", "InventoryBalance", balance.id,
                new_values={
                    "direction": MovementDirection(direction).value,
                    "quantity": to_quantity(quantity),
                    "balance": balance.quantity,
                    "notes": notes,
                },
            )
        return balance

    def set_default_minimum_levels(self, level=None, warehouse_id: Optional[int] = None) -> int:
        """
        Fill in the minimum stock level on balances that have none

        Existing thresholds and quantities are left untouched. Returns the
        number of balances updated.
        """
        authorize(self.current_user, Action.INVENTORY_CONFIGURE)
        level = to_quantity(settings.DEFAULT_MINIMUM_STOCK_LEVEL if level is None else level)
        if level < 0:
            raise ValidationError("Minimum stock level cannot be negative")

        stmt = update(InventoryBalance).where(InventoryBalance.minimum_stock_level.is_(None))
        if warehouse_id is not None:
            stmt = stmt.where(InventoryBalance.warehouse_id == warehouse_id)
        stmt = stmt.values(minimum_stock_level=level, updated_at=datetime.utcnow())

        with unit_of_work(self.db):
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
            updated = result.rowcount
            record_audit(
                self.db, self.current_user, "SET_MIN_LEVELS", "InventoryBalance",
                new_values={"level": level, "warehouse_id": warehouse_id, "updated": updated},
            )

        logger.info(f"Default minimum level {level} applied to {updated} balances")
        return updated

    def set_stock_levels(
        self,
        product_id: int,
        warehouse_id: int,
        minimum_stock_level=None,
        maximum_stock_level=None,
    ) -> InventoryBalance:
        """Set the thresholds of one balance, creating it at zero if needed"""
        authorize(self.current_user, Action.INVENTORY_CONFIGURE)
        minimum = to_quantity(minimum_stock_level) if minimum_stock_level is not None else None
        maximum = to_quantity(maximum_stock_level) if maximum_stock_level is not None else None
        if (minimum is not None and minimum < 0) or (maximum is not None and maximum < 0):
            raise ValidationError("Stock levels cannot be negative")
        if minimum is not None and maximum is not None and minimum > maximum:
            raise ValidationError("Minimum stock level cannot exceed maximum stock level")

        with unit_of_work(self.db):
            self._ensure_references(product_id, warehouse_id)
            self._ensure_balance_row(product_id, warehouse_id)
            balance = self._reload_balance(product_id, warehouse_id)
            old_values = {"minimum": balance.minimum_stock_level, "maximum": balance.maximum_stock_level}
            balance.minimum_stock_level = minimum
            balance.maximum_stock_level = maximum
            balance.updated_at = datetime.utcnow()
            record_audit(
                self.db, self.current_user, "SET_LEVELS", "InventoryBalance", balance.id,
                old_values=old_values,
                new_values={"minimum": minimum, "maximum": maximum},
            )
        return balance

    # Queries

    def get_balance(self, product_id: int, warehouse_id: int) -> Optional[InventoryBalance]:
        """Get balance by (product, warehouse)"""
        return self.db.execute(
            select(InventoryBalance)
            .where(
                InventoryBalance.product_id == product_id,
                InventoryBalance.warehouse_id == warehouse_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_quantity(self, product_id: int, warehouse_id: int) -> Decimal:
        """Current quantity read straight from the store; zero when no balance exists"""
        quantity = self.db.execute(
            select(InventoryBalance.quantity).where(
                InventoryBalance.product_id == product_id,
                InventoryBalance.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        return to_quantity(quantity or 0)

    def list_balances(
        self,
        warehouse_id: Optional[int] = None,
        product_id: Optional[int] = None,
        low_stock_only: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[InventoryBalance]:
        """List balances with optional filters"""
        stmt = select(InventoryBalance)
        if warehouse_id is not None:
            stmt = stmt.where(InventoryBalance.warehouse_id == warehouse_id)
        if product_id is not None:
            stmt = stmt.where(InventoryBalance.product_id == product_id)
        if low_stock_only:
            stmt = stmt.where(
                InventoryBalance.minimum_stock_level.is_not(None),
                InventoryBalance.quantity <= InventoryBalance.minimum_stock_level,
            )
        stmt = stmt.order_by(InventoryBalance.warehouse_id, InventoryBalance.product_id)
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def get_movements(
        self,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        movement_type: Optional[MovementType] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ProductMovement]:
        """Movement history, newest first"""
        stmt = select(ProductMovement)
        if product_id is not None:
            stmt = stmt.where(ProductMovement.product_id == product_id)
        if warehouse_id is not None:
            stmt = stmt.where(ProductMovement.warehouse_id == warehouse_id)
        if movement_type is not None:
            stmt = stmt.where(ProductMovement.movement_type == MovementType(movement_type).value)
        if reference_type is not None:
            stmt = stmt.where(ProductMovement.reference_type == reference_type)
        if reference_id is not None:
            stmt = stmt.where(ProductMovement.reference_id == reference_id)
        if date_from is not None:
            stmt = stmt.where(ProductMovement.movement_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(ProductMovement.movement_date <= date_to)
        stmt = stmt.order_by(ProductMovement.movement_date.desc(), ProductMovement.id.desc())
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def ledger_sum(self, product_id: int, warehouse_id: int) -> Decimal:
        """Signed sum of every movement for the key"""
        signed = case(
            (ProductMovement.direction == MovementDirection.IN.value, ProductMovement.quantity),
            else_=-ProductMovement.quantity,
        )
        total = self.db.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                ProductMovement.product_id == product_id,
                ProductMovement.warehouse_id == warehouse_id,
            )
        ).scalar_one()
        return to_quantity(total)

    # Helpers

    def _ensure_references(self, product_id: int, warehouse_id: int) -> None:
        if self.db.get(Product, product_id) is None:
            raise ReferenceNotFound("Product", product_id)
        if self.db.get(Warehouse, warehouse_id) is None:
            raise ReferenceNotFound("Warehouse", warehouse_id)

    def _ensure_balance_row(self, product_id: int, warehouse_id: int) -> None:
        exists = self.db.execute(
            select(InventoryBalance.id).where(
                InventoryBalance.product_id == product_id,
                InventoryBalance.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        if exists is None:
            # A concurrent insert of the same key fails the unique constraint
            # and surfaces as StateConflict from the unit of work
            self.db.add(InventoryBalance(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=Decimal("0"),
            ))
            self.db.flush()

    def _reload_balance(self, product_id: int, warehouse_id: int) -> InventoryBalance:
        balance = self.get_balance(product_id, warehouse_id)
        if balance is None:
            raise ReferenceNotFound("InventoryBalance", f"{product_id}/{warehouse_id}")
        return balance
