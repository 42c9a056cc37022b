"""
Reporting Service
Read-only rollups over the movement ledger, balances and sales
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging

from sqlalchemy import select, delete, func, case
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import ValidationError
from retailops.core.numeric import to_money, to_quantity
from retailops.core.permissions import Action, authorize
from retailops.models.catalog import Product, Warehouse
from retailops.models.inventory import (
    InventoryBalance, ProductMovement, ProductMovementSummary,
    MovementType, MovementDirection
)
from retailops.models.sales import SalesOrder, SalesItem, SalesOrderStatus
from retailops.schemas.reports import (
    BalanceMismatch, ReconciliationReport, LowStockItem,
    DailySales, TopProduct, SalesReport, ValuationLine, InventoryValuation
)

logger = logging.getLogger(__name__)

Key = Tuple[int, int]

COUNT_FIELDS = {
    MovementType.PURCHASE.value: "purchase_count",
    MovementType.SALE.value: "sale_count",
    MovementType.ASSEMBLY.value: "assembly_count",
    MovementType.TRANSFER.value: "transfer_count",
    MovementType.ADJUSTMENT.value: "adjustment_count",
}


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _signed_quantity():
    return case(
        (ProductMovement.direction == MovementDirection.IN.value, ProductMovement.quantity),
        else_=-ProductMovement.quantity,
    )


class ReportingService:
    """
    Reporting aggregator

    Never writes balances or movements. The only table it writes is
    product_movement_summaries, which is derived and can be rebuilt from
    the ledger at any time.
    """

    def __init__(self, db: Session, current_user=None):
        self.db = db
        self.current_user = current_user

    # Movement summaries

    def regenerate_movement_summaries(self, start_date: date, end_date: date) -> int:
        """
        Rebuild the daily summaries for [start_date, end_date]

        Each key with ledger activity on or before end_date gets one row per
        day from its first movement (or start_date) on. The first opening
        balance is the ledger sum before start_date; each following day
        opens at the previous close. Returns the number of rows written.
        """
        authorize(self.current_user, Action.REPORTS_REGENERATE)
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        range_start = _day_start(start_date)
        range_end = _day_start(end_date + timedelta(days=1))

        with unit_of_work(self.db):
            self.db.execute(
                delete(ProductMovementSummary).where(
                    ProductMovementSummary.summary_date >= start_date,
                    ProductMovementSummary.summary_date <= end_date,
                )
            )

            first_dates: Dict[Key, datetime] = {
                (product_id, warehouse_id): first
                for product_id, warehouse_id, first in self.db.execute(
                    select(
                        ProductMovement.product_id,
                        ProductMovement.warehouse_id,
                        func.min(ProductMovement.movement_date),
                    )
                    .where(ProductMovement.movement_date < range_end)
                    .group_by(ProductMovement.product_id, ProductMovement.warehouse_id)
                )
            }

            openings: Dict[Key, Decimal] = {
                (product_id, warehouse_id): to_quantity(total)
                for product_id, warehouse_id, total in self.db.execute(
                    select(
                        ProductMovement.product_id,
                        ProductMovement.warehouse_id,
                        func.sum(_signed_quantity()),
                    )
                    .where(ProductMovement.movement_date < range_start)
                    .group_by(ProductMovement.product_id, ProductMovement.warehouse_id)
                )
            }

            daily: Dict[Key, Dict[date, List[ProductMovement]]] = defaultdict(lambda: defaultdict(list))
            for movement in self.db.execute(
                select(ProductMovement).where(
                    ProductMovement.movement_date >= range_start,
                    ProductMovement.movement_date < range_end,
                )
            ).scalars():
                daily[(movement.product_id, movement.warehouse_id)][movement.movement_date.date()].append(movement)

            written = 0
            for key, first in sorted(first_dates.items()):
                opening = openings.get(key, Decimal("0.00"))
                day = max(start_date, first.date())
                while day <= end_date:
                    summary = self._summarize(key, day, opening, daily[key].get(day, []))
                    self.db.add(summary)
                    opening = summary.closing_balance
                    written += 1
                    day += timedelta(days=1)

        logger.info(f"Regenerated {written} movement summaries for {start_date}..{end_date}")
        return written

    def get_movement_summaries(
        self,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[ProductMovementSummary]:
        """Stored summaries ordered by key and date"""
        authorize(self.current_user, Action.REPORTS_VIEW)
        stmt = select(ProductMovementSummary)
        if product_id is not None:
            stmt = stmt.where(ProductMovementSummary.product_id == product_id)
        if warehouse_id is not None:
            stmt = stmt.where(ProductMovementSummary.warehouse_id == warehouse_id)
        if date_from is not None:
            stmt = stmt.where(ProductMovementSummary.summary_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(ProductMovementSummary.summary_date <= date_to)
        stmt = stmt.order_by(
            ProductMovementSummary.product_id,
            ProductMovementSummary.warehouse_id,
            ProductMovementSummary.summary_date,
        )
        return list(self.db.execute(stmt).scalars())

    # Consistency and stock reports

    def reconcile_balances(self) -> ReconciliationReport:
        """Compare every balance with the signed sum of its ledger"""
        authorize(self.current_user, Action.REPORTS_VIEW)

        ledger: Dict[Key, Decimal] = {
            (product_id, warehouse_id): to_quantity(total)
            for product_id, warehouse_id, total in self.db.execute(
                select(
                    ProductMovement.product_id,
                    ProductMovement.warehouse_id,
                    func.sum(_signed_quantity()),
                ).group_by(ProductMovement.product_id, ProductMovement.warehouse_id)
            )
        }
        balances: Dict[Key, Decimal] = {
            (product_id, warehouse_id): to_quantity(quantity)
            for product_id, warehouse_id, quantity in self.db.execute(
                select(InventoryBalance.product_id, InventoryBalance.warehouse_id, InventoryBalance.quantity)
            )
        }

        mismatches = []
        for key in sorted(set(ledger) | set(balances)):
            balance_quantity = balances.get(key, Decimal("0.00"))
            ledger_quantity = ledger.get(key, Decimal("0.00"))
            if balance_quantity != ledger_quantity:
                mismatches.append(BalanceMismatch(
                    product_id=key[0],
                    warehouse_id=key[1],
                    balance_quantity=balance_quantity,
                    ledger_quantity=ledger_quantity,
                    difference=balance_quantity - ledger_quantity,
                ))

        if mismatches:
            logger.error(f"Ledger reconciliation found {len(mismatches)} mismatched balances")
        return ReconciliationReport(
            balances_checked=len(balances),
            is_consistent=not mismatches,
            mismatches=mismatches,
        )

    def low_stock_report(self, warehouse_id: Optional[int] = None) -> List[LowStockItem]:
        """Balances at or below their minimum stock level"""
        authorize(self.current_user, Action.REPORTS_VIEW)
        stmt = (
            select(InventoryBalance, Product, Warehouse)
            .join(Product, Product.id == InventoryBalance.product_id)
            .join(Warehouse, Warehouse.id == InventoryBalance.warehouse_id)
            .where(
                InventoryBalance.minimum_stock_level.is_not(None),
                InventoryBalance.quantity <= InventoryBalance.minimum_stock_level,
            )
            .order_by(Warehouse.name, Product.name)
        )
        if warehouse_id is not None:
            stmt = stmt.where(InventoryBalance.warehouse_id == warehouse_id)

        return [
            LowStockItem(
                product_id=product.id,
                product_name=product.name,
                sku=product.sku,
                warehouse_id=warehouse.id,
                warehouse_name=warehouse.name,
                quantity=to_quantity(balance.quantity),
                minimum_stock_level=to_quantity(balance.minimum_stock_level),
                shortfall=to_quantity(balance.minimum_stock_level) - to_quantity(balance.quantity),
            )
            for balance, product, warehouse in self.db.execute(stmt)
        ]

    def inventory_valuation(self, warehouse_id: Optional[int] = None) -> InventoryValuation:
        """Stock on hand valued at the current product price"""
        authorize(self.current_user, Action.REPORTS_VIEW)
        stmt = (
            select(InventoryBalance, Product)
            .join(Product, Product.id == InventoryBalance.product_id)
            .where(InventoryBalance.quantity > 0)
            .order_by(InventoryBalance.warehouse_id, Product.name)
        )
        if warehouse_id is not None:
            stmt = stmt.where(InventoryBalance.warehouse_id == warehouse_id)

        lines = []
        total = Decimal("0")
        for balance, product in self.db.execute(stmt):
            value = to_money(to_quantity(balance.quantity) * to_money(product.price))
            lines.append(ValuationLine(
                product_id=product.id,
                product_name=product.name,
                warehouse_id=balance.warehouse_id,
                quantity=to_quantity(balance.quantity),
                unit_price=to_money(product.price),
                value=value,
            ))
            total += value
        return InventoryValuation(total_value=to_money(total), lines=lines)

    # Sales

    def sales_report(
        self,
        date_from: date,
        date_to: date,
        store_id: Optional[int] = None,
        top: int = 10,
    ) -> SalesReport:
        """
        Sales totals per day plus best sellers

        Cancelled orders are excluded. With a store, only lines sold from
        that warehouse count.
        """
        authorize(self.current_user, Action.REPORTS_VIEW)
        if date_from > date_to:
            raise ValidationError("date_from must not be after date_to")

        stmt = (
            select(SalesOrder.id, SalesOrder.order_date, SalesItem.product_id, SalesItem.quantity, SalesItem.total_price)
            .join(SalesItem, SalesItem.sales_order_id == SalesOrder.id)
            .where(
                SalesOrder.status != SalesOrderStatus.CANCELLED.value,
                SalesOrder.order_date >= _day_start(date_from),
                SalesOrder.order_date < _day_start(date_to + timedelta(days=1)),
            )
        )
        if store_id is not None:
            stmt = stmt.where(SalesItem.warehouse_id == store_id)

        day_totals: Dict[date, Decimal] = defaultdict(Decimal)
        day_orders: Dict[date, set] = defaultdict(set)
        product_quantity: Dict[int, Decimal] = defaultdict(Decimal)
        product_revenue: Dict[int, Decimal] = defaultdict(Decimal)
        orders = set()

        for order_id, order_date, product_id, quantity, total_price in self.db.execute(stmt):
            day = order_date.date()
            day_totals[day] += to_money(total_price)
            day_orders[day].add(order_id)
            product_quantity[product_id] += to_quantity(quantity)
            product_revenue[product_id] += to_money(total_price)
            orders.add(order_id)

        total_sales = to_money(sum(day_totals.values(), Decimal("0")))
        average = to_money(total_sales / len(orders)) if orders else to_money(0)

        best = sorted(product_quantity, key=lambda p: (-product_quantity[p], p))[:top]
        names = {
            product.id: product.name
            for product in self.db.execute(select(Product).where(Product.id.in_(best))).scalars()
        } if best else {}

        return SalesReport(
            date_from=date_from,
            date_to=date_to,
            store_id=store_id,
            total_sales=total_sales,
            total_orders=len(orders),
            average_order_value=average,
            daily=[
                DailySales(date=day, order_count=len(day_orders[day]), total_sales=to_money(day_totals[day]))
                for day in sorted(day_totals)
            ],
            top_products=[
                TopProduct(
                    product_id=product_id,
                    product_name=names.get(product_id, ""),
                    quantity_sold=product_quantity[product_id],
                    revenue=to_money(product_revenue[product_id]),
                )
                for product_id in best
            ],
        )

    @staticmethod
    def _summarize(key: Key, day: date, opening: Decimal, movements: List[ProductMovement]) -> ProductMovementSummary:
        total_in = Decimal("0")
        total_out = Decimal("0")
        counts = {field: 0 for field in COUNT_FIELDS.values()}
        for movement in movements:
            if movement.direction == MovementDirection.IN.value:
                total_in += to_quantity(movement.quantity)
            else:
                total_out += to_quantity(movement.quantity)
            counts[COUNT_FIELDS[movement.movement_type]] += 1

        return ProductMovementSummary(
            product_id=key[0],
            warehouse_id=key[1],
            summary_date=day,
            opening_balance=to_quantity(opening),
            total_in=to_quantity(total_in),
            total_out=to_quantity(total_out),
            closing_balance=to_quantity(opening + total_in - total_out),
            **counts,
        )
