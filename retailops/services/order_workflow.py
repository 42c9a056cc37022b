"""
Order Workflow Engine
Transition tables and the shared transition routine for orders, assemblies and requests
"""
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Type
from datetime import datetime
import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retailops.core.database import Base, unit_of_work
from retailops.core.exceptions import InvalidStateTransition, ReferenceNotFound
from retailops.core.permissions import Action, authorize
from retailops.services.audit import record_audit

logger = logging.getLogger(__name__)


class StateMachine:
    """
    Allowed status changes for one kind of document

    A status missing from the table, or mapped to an empty set, is terminal.
    """

    def __init__(self, entity: str, transitions: Mapping[str, Iterable[str]]):
        self.entity = entity
        self.transitions: Dict[str, FrozenSet[str]] = {
            str(source): frozenset(str(t) for t in targets)
            for source, targets in transitions.items()
        }

    def allowed_targets(self, current: str) -> FrozenSet[str]:
        return self.transitions.get(str(current), frozenset())

    def is_terminal(self, status: str) -> bool:
        return not self.allowed_targets(status)

    def can_transition(self, current: str, target: str) -> bool:
        return str(target) in self.allowed_targets(current)

    def ensure(self, current: str, target: str) -> None:
        """Raise InvalidStateTransition unless current -> target is allowed"""
        if not self.can_transition(current, target):
            raise InvalidStateTransition(self.entity, str(current), str(target))


def _value(status) -> str:
    return getattr(status, "value", status)


def next_order_number(db: Session, model: Type[Base], prefix: str, when: Optional[datetime] = None) -> str:
    """
    Next document number of the form PREFIXyyyyMMddNNNN

    The sequence restarts every day. Two writers racing for the same number
    collide on the unique index and the loser gets StateConflict.
    """
    when = when or datetime.utcnow()
    stem = f"{prefix}{when.strftime('%Y%m%d')}"
    count = db.execute(
        select(func.count(model.id)).where(model.order_number.like(f"{stem}%"))
    ).scalar_one()
    return f"{stem}{count + 1:04d}"


class WorkflowService:
    """
    Base class for services whose documents follow a StateMachine

    Subclasses declare the model, the machine, the action each target
    status requires and the (timestamp, actor) columns stamped on entry.
    ``transition`` authorizes, loads, checks the table, stamps, flushes
    (the version check fires here) and runs the subclass side effects,
    all in one unit of work. Reads go through ``read`` and the subclass
    ``list``, which check ``view_action`` and apply ``visible``.
    """

    model: Type[Base]
    machine: StateMachine
    view_action: Optional[Action] = None
    actions: Dict[str, Action] = {}
    stamps: Dict[str, Tuple[str, str]] = {}

    def __init__(self, db: Session, current_user=None):
        self.db = db
        self.current_user = current_user

    @property
    def entity(self) -> str:
        return self.machine.entity

    def get(self, document_id: int):
        """Get document by ID"""
        document = self.db.get(self.model, document_id)
        if document is None:
            raise ReferenceNotFound(self.entity, document_id)
        return document

    def read(self, document_id: int):
        """
        Get a document on behalf of the current user

        Documents outside the user's read scope are reported as missing.
        """
        self.authorize_view()
        document = self.get(document_id)
        in_scope = self.db.execute(
            self.visible(select(self.model.id).where(self.model.id == document_id))
        ).first()
        if in_scope is None:
            raise ReferenceNotFound(self.entity, document_id)
        return document

    def authorize_view(self) -> None:
        if self.view_action is not None:
            authorize(self.current_user, self.view_action)

    def visible(self, stmt):
        """Restrict a select over ``model`` to what the current user may read"""
        return stmt

    def transition(self, document_id: int, target, notes: Optional[str] = None, **kwargs):
        """Move a document to ``target`` and apply its side effects atomically"""
        target = _value(target)
        action = self.actions.get(target)
        if action is not None:
            authorize(self.current_user, action)

        with unit_of_work(self.db):
            document = self.get(document_id)
            previous = self._apply_transition(document, target, notes, **kwargs)

        logger.info(
            f"{self.entity} {document_id} moved {previous} -> {target} "
            f"by user {getattr(self.current_user, 'id', None)}"
        )
        return document

    def _apply_transition(self, document, target: str, notes: Optional[str] = None, **kwargs) -> str:
        """Status change plus side effects inside an open unit of work"""
        previous = document.status
        try:
            self.machine.ensure(previous, target)
        except InvalidStateTransition:
            logger.warning(f"Rejected {self.entity} {document.id} transition {previous} -> {target}")
            raise

        self.before_transition(document, previous, target, **kwargs)

        document.status = target
        stamp = self.stamps.get(target)
        if stamp:
            at_field, by_field = stamp
            setattr(document, at_field, datetime.utcnow())
            setattr(document, by_field, getattr(self.current_user, "id", None))
        # Flush now so a stale version fails before any ledger writes
        self.db.flush()

        self.after_transition(document, previous, target, notes, **kwargs)

        record_audit(
            self.db, self.current_user, target.upper(), self.entity, document.id,
            old_values={"status": previous},
            new_values=self.audit_values(document, notes),
        )
        return previous

    # Hooks

    def before_transition(self, document, previous: str, target: str, **kwargs) -> None:
        """Read-only precondition checks beyond the transition table"""

    def after_transition(self, document, previous: str, target: str, notes: Optional[str], **kwargs) -> None:
        """Ledger entries and history rows for the new status"""

    def audit_values(self, document, notes: Optional[str]) -> Dict[str, Any]:
        values = {"status": document.status}
        if notes:
            values["notes"] = notes
        return values
