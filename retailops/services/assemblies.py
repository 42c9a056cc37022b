"""
Assembly Service
Bill-of-materials validation, start, completion and cancellation
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import InsufficientMaterials, InsufficientStock, ReferenceNotFound
from retailops.core.numeric import to_money, to_positive_quantity, to_quantity
from retailops.core.permissions import Action, authorize
from retailops.models.assembly import ProductAssembly, BillOfMaterial, AssemblyStatus
from retailops.models.catalog import Product, Warehouse
from retailops.models.inventory import MovementType, MovementDirection
from retailops.schemas.assembly import AssemblyCreate, AssemblyValidation, MaterialShortage
from retailops.services.audit import record_audit
from retailops.services.ledger import LedgerService, MovementDraft
from retailops.services.order_workflow import StateMachine, WorkflowService

logger = logging.getLogger(__name__)

S = AssemblyStatus

ASSEMBLY_MACHINE = StateMachine("ProductAssembly", {
    S.PENDING.value: {S.IN_PROGRESS.value, S.CANCELLED.value},
    S.IN_PROGRESS.value: {S.COMPLETED.value, S.CANCELLED.value},
})


class AssemblyService(WorkflowService):
    """
    Product assemblies

    Materials are not reserved at start; they are checked again and
    consumed at completion. A completion that loses a race for the same
    raw material fails on the guarded decrement and rolls back entirely.
    """

    model = ProductAssembly
    machine = ASSEMBLY_MACHINE
    view_action = Action.ASSEMBLY_VIEW
    actions = {
        S.IN_PROGRESS.value: Action.ASSEMBLY_MANAGE,
        S.COMPLETED.value: Action.ASSEMBLY_COMPLETE,
        S.CANCELLED.value: Action.ASSEMBLY_MANAGE,
    }
    stamps = {
        S.IN_PROGRESS.value: ("started_at", "started_by_user_id"),
        S.COMPLETED.value: ("completed_at", "completed_by_user_id"),
        S.CANCELLED.value: ("cancelled_at", "cancelled_by_user_id"),
    }

    def __init__(self, db: Session, current_user=None):
        super().__init__(db, current_user)
        self.ledger = LedgerService(db, current_user)

    def create(self, assembly_data: AssemblyCreate) -> ProductAssembly:
        """Create a Pending assembly with its bill of materials"""
        authorize(self.current_user, Action.ASSEMBLY_MANAGE)

        with unit_of_work(self.db):
            if self.db.get(Product, assembly_data.output_product_id) is None:
                raise ReferenceNotFound("Product", assembly_data.output_product_id)
            if self.db.get(Warehouse, assembly_data.output_warehouse_id) is None:
                raise ReferenceNotFound("Warehouse", assembly_data.output_warehouse_id)

            assembly = ProductAssembly(
                name=assembly_data.name,
                description=assembly_data.description,
                output_product_id=assembly_data.output_product_id,
                output_warehouse_id=assembly_data.output_warehouse_id,
                quantity=to_positive_quantity(assembly_data.quantity),
                unit=assembly_data.unit,
                instructions=assembly_data.instructions,
                sale_price=to_money(assembly_data.sale_price) if assembly_data.sale_price is not None else None,
                is_active=assembly_data.is_active,
                status=S.PENDING.value,
                created_by_user_id=getattr(self.current_user, "id", None),
            )
            for line in assembly_data.bill_of_materials:
                product = self.db.get(Product, line.raw_product_id)
                if product is None:
                    raise ReferenceNotFound("Product", line.raw_product_id)
                if self.db.get(Warehouse, line.warehouse_id) is None:
                    raise ReferenceNotFound("Warehouse", line.warehouse_id)
                assembly.bill_of_materials.append(BillOfMaterial(
                    raw_product_id=line.raw_product_id,
                    warehouse_id=line.warehouse_id,
                    required_quantity=to_positive_quantity(line.required_quantity, "required_quantity"),
                    available_quantity=self.ledger.get_quantity(line.raw_product_id, line.warehouse_id),
                    unit=line.unit or product.unit,
                    notes=line.notes,
                ))

            self.db.add(assembly)
            self.db.flush()
            record_audit(
                self.db, self.current_user, "CREATE", self.entity, assembly.id,
                new_values={"name": assembly.name, "quantity": assembly.quantity},
            )

        logger.info(f"Assembly {assembly.id} '{assembly.name}' created")
        return assembly

    def list(self, status: Optional[AssemblyStatus] = None, skip: int = 0, limit: int = 100) -> List[ProductAssembly]:
        """List assemblies, newest first"""
        self.authorize_view()
        stmt = self.visible(select(ProductAssembly))
        if status is not None:
            stmt = stmt.where(ProductAssembly.status == AssemblyStatus(status).value)
        stmt = stmt.order_by(ProductAssembly.created_at.desc(), ProductAssembly.id.desc())
        return list(self.db.execute(stmt.offset(skip).limit(limit)).scalars())

    def validate(self, assembly_id: int) -> AssemblyValidation:
        """
        Compare each BOM line with the current balance

        Read-only; repeated calls return the same answer until stock moves.
        """
        assembly = self.read(assembly_id)
        shortages = [
            MaterialShortage(
                bom_id=line.id,
                raw_product_id=line.raw_product_id,
                warehouse_id=line.warehouse_id,
                required=required,
                available=available,
                shortfall=required - available,
            )
            for line, required, available in self._material_status(assembly)
            if available < required
        ]
        if shortages:
            message = f"Insufficient materials for {len(shortages)} of {len(assembly.bill_of_materials)} lines"
        else:
            message = "All materials available"
        return AssemblyValidation(
            assembly_id=assembly.id,
            can_start=not shortages,
            message=message,
            shortages=shortages,
        )

    def start(self, assembly_id: int, notes: Optional[str] = None) -> ProductAssembly:
        return self.transition(assembly_id, S.IN_PROGRESS, notes)

    def complete(self, assembly_id: int, notes: Optional[str] = None) -> ProductAssembly:
        return self.transition(assembly_id, S.COMPLETED, notes)

    def cancel(self, assembly_id: int, notes: Optional[str] = None) -> ProductAssembly:
        return self.transition(assembly_id, S.CANCELLED, notes)

    def before_transition(self, assembly, previous, target, **kwargs):
        if target not in (S.IN_PROGRESS.value, S.COMPLETED.value):
            return

        shortages = []
        for line, required, available in self._material_status(assembly):
            line.available_quantity = available
            if available < required:
                shortages.append({
                    "raw_product_id": line.raw_product_id,
                    "warehouse_id": line.warehouse_id,
                    "required": str(required),
                    "available": str(available),
                    "shortfall": str(required - available),
                })
        if shortages:
            logger.warning(f"Assembly {assembly.id} cannot move to {target}: {len(shortages)} lines short")
            raise InsufficientMaterials(
                f"Insufficient materials for assembly {assembly.id}",
                {"assembly_id": assembly.id, "shortages": shortages},
            )

    def after_transition(self, assembly, previous, target, notes, **kwargs):
        if target != S.COMPLETED.value:
            return

        for line in assembly.bill_of_materials:
            try:
                self.ledger.apply_movement(MovementDraft(
                    product_id=line.raw_product_id,
                    warehouse_id=line.warehouse_id,
                    movement_type=MovementType.ASSEMBLY,
                    direction=MovementDirection.OUT,
                    quantity=line.required_quantity,
                    reference_type=self.entity,
                    reference_id=assembly.id,
                    notes=f"Consumed by assembly {assembly.name}",
                ))
            except InsufficientStock as e:
                raise InsufficientMaterials(e.message, {"assembly_id": assembly.id, **e.detail}) from e

        self.ledger.apply_movement(MovementDraft(
            product_id=assembly.output_product_id,
            warehouse_id=assembly.output_warehouse_id,
            movement_type=MovementType.ASSEMBLY,
            direction=MovementDirection.IN,
            quantity=assembly.quantity,
            reference_type=self.entity,
            reference_id=assembly.id,
            notes=f"Output of assembly {assembly.name}",
        ))

    def _material_status(self, assembly) -> List[Tuple[BillOfMaterial, Decimal, Decimal]]:
        """(line, required, available) per BOM line; lines sharing a key are checked together"""
        needed: Dict[Tuple[int, int], Decimal] = defaultdict(Decimal)
        for line in assembly.bill_of_materials:
            needed[(line.raw_product_id, line.warehouse_id)] += to_quantity(line.required_quantity)

        result = []
        for line in assembly.bill_of_materials:
            key = (line.raw_product_id, line.warehouse_id)
            available = self.ledger.get_quantity(*key)
            result.append((line, needed[key], available))
        return result
