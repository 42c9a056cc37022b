"""
Concurrency Tests
Two sessions against one file-backed database, interleaved by hand
"""

import pytest
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from retailops.core.database import Base, unit_of_work
from retailops.core.exceptions import InsufficientStock, StateConflict
from retailops.models.auth import User
from retailops.models.catalog import Product, Warehouse
from retailops.models.inventory import MovementType, MovementDirection
from retailops.models.purchasing import PurchaseOrderStatus
from retailops.schemas.assembly import AssemblyCreate, BillOfMaterialCreate
from retailops.schemas.purchasing import PurchaseOrderCreate, PurchaseItemCreate
from retailops.services.assemblies import AssemblyService
from retailops.services.ledger import LedgerService, MovementDraft
from retailops.services.purchase_orders import PurchaseOrderService
from retailops.services.reporting import ReportingService


@pytest.fixture
def session_factory(tmp_path):
    """Independent sessions sharing one SQLite file"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def seeded(session_factory):
    """Superuser, one warehouse and three products with raw stock on hand"""
    with session_factory() as db:
        admin = User(email="root@retailops.test", full_name="Root", password_hash="x", is_superuser=True)
        warehouse = Warehouse(name="Main Warehouse")
        raw_a = Product(name="Raw A", sku="RAW-A", price=Decimal("1.00"))
        raw_b = Product(name="Raw B", sku="RAW-B", price=Decimal("2.00"))
        output = Product(name="Assembled", sku="ASM-1", price=Decimal("20.00"))
        db.add_all([admin, warehouse, raw_a, raw_b, output])
        db.commit()

        ledger = LedgerService(db, admin)
        ledger.adjust(raw_a.id, warehouse.id, Decimal("10"), MovementDirection.IN, "Opening stock")
        ledger.adjust(raw_b.id, warehouse.id, Decimal("3"), MovementDirection.IN, "Opening stock")

        return {
            "admin_id": admin.id,
            "warehouse_id": warehouse.id,
            "raw_a": raw_a.id,
            "raw_b": raw_b.id,
            "output": output.id,
        }


def _actor(db, seeded):
    return db.get(User, seeded["admin_id"])


class TestOptimisticConcurrency:
    """Version checks on workflow documents"""

    def test_stale_approval_conflicts(self, session_factory, seeded):
        """The writer holding an old version loses and may retry"""
        with session_factory() as db:
            order = PurchaseOrderService(db, _actor(db, seeded)).create(PurchaseOrderCreate(
                supplier_name="Acme Supplies",
                items=[PurchaseItemCreate(
                    product_id=seeded["raw_a"], warehouse_id=seeded["warehouse_id"],
                    quantity=Decimal("5"), unit_price=Decimal("1.00"),
                )],
            ))
            order_id = order.id

        with session_factory() as db_a, session_factory() as db_b:
            service_a = PurchaseOrderService(db_a, _actor(db_a, seeded))
            service_b = PurchaseOrderService(db_b, _actor(db_b, seeded))
            stale = service_b.get(order_id)
            assert stale.version == 1

            service_a.approve(order_id)

            with pytest.raises(StateConflict) as exc_info:
                service_b.cancel(order_id)
            assert exc_info.value.retryable is True

        with session_factory() as db:
            order = PurchaseOrderService(db).get(order_id)
            assert order.status == PurchaseOrderStatus.APPROVED.value
            assert order.version == 2


class TestStockRaces:
    """Guarded decrements under interleaved writers"""

    def test_stale_reader_cannot_overdraw(self, session_factory, seeded):
        """A decision based on an old read still cannot drive stock negative"""
        with session_factory() as db_a, session_factory() as db_b:
            ledger_a = LedgerService(db_a, _actor(db_a, seeded))
            ledger_b = LedgerService(db_b, _actor(db_b, seeded))
            key = (seeded["raw_a"], seeded["warehouse_id"])

            assert ledger_a.get_quantity(*key) == Decimal("10.00")
            assert ledger_b.get_quantity(*key) == Decimal("10.00")

            def take(ledger, db):
                with unit_of_work(db):
                    ledger.apply_movement(MovementDraft(
                        product_id=key[0], warehouse_id=key[1],
                        movement_type=MovementType.SALE, direction=MovementDirection.OUT,
                        quantity=Decimal("8"),
                    ))

            take(ledger_a, db_a)
            with pytest.raises(InsufficientStock):
                take(ledger_b, db_b)

        with session_factory() as db:
            ledger = LedgerService(db)
            assert ledger.get_quantity(*key) == Decimal("2.00")
            assert ledger.ledger_sum(*key) == Decimal("2.00")

    def test_competing_assembly_completions(self, session_factory, seeded):
        """Two in-progress assemblies sharing a material: exactly one completes"""
        with session_factory() as db:
            service = AssemblyService(db, _actor(db, seeded))
            ids = []
            for name in ("A1", "A2"):
                assembly = service.create(AssemblyCreate(
                    name=name,
                    output_product_id=seeded["output"],
                    output_warehouse_id=seeded["warehouse_id"],
                    quantity=Decimal("1"),
                    bill_of_materials=[
                        BillOfMaterialCreate(
                            raw_product_id=seeded["raw_a"], warehouse_id=seeded["warehouse_id"],
                            required_quantity=Decimal("5"),
                        ),
                        BillOfMaterialCreate(
                            raw_product_id=seeded["raw_b"], warehouse_id=seeded["warehouse_id"],
                            required_quantity=Decimal("3"),
                        ),
                    ],
                ))
                service.start(assembly.id)
                ids.append(assembly.id)

        with session_factory() as db_a, session_factory() as db_b:
            service_a = AssemblyService(db_a, _actor(db_a, seeded))
            service_b = AssemblyService(db_b, _actor(db_b, seeded))
            service_b.get(ids[1])

            service_a.complete(ids[0])
            # InsufficientMaterials is an InsufficientStock
            with pytest.raises(InsufficientStock):
                service_b.complete(ids[1])

        with session_factory() as db:
            ledger = LedgerService(db)
            warehouse_id = seeded["warehouse_id"]
            assert ledger.get_quantity(seeded["raw_a"], warehouse_id) == Decimal("5.00")
            assert ledger.get_quantity(seeded["raw_b"], warehouse_id) == Decimal("0.00")
            assert ledger.get_quantity(seeded["output"], warehouse_id) == Decimal("1.00")
            assert AssemblyService(db).get(ids[1]).status == "InProgress"

            report = ReportingService(db, _actor(db, seeded)).reconcile_balances()
            assert report.is_consistent
