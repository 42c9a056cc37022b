"""
Role Policy
Single action -> roles table consulted once per state-changing operation
"""
from enum import Enum
from typing import Dict, FrozenSet, Iterable
import logging

from .exceptions import Forbidden

security_logger = logging.getLogger("retailops.security")


class RoleName(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    STORE_MANAGER = "StoreManager"
    CASHIER = "Cashier"
    CUSTOMER = "Customer"


class Action(str, Enum):
    USERS_MANAGE = "users.manage"
    CATALOG_MANAGE = "catalog.manage"

    INVENTORY_VIEW = "inventory.view"
    INVENTORY_ADJUST = "inventory.adjust"
    INVENTORY_CONFIGURE = "inventory.configure"

    PURCHASE_VIEW = "purchase.view"
    PURCHASE_CREATE = "purchase.create"
    PURCHASE_APPROVE = "purchase.approve"
    PURCHASE_RECEIVE = "purchase.receive"
    PURCHASE_CANCEL = "purchase.cancel"

    SALES_VIEW = "sales.view"
    SALES_VIEW_ALL = "sales.view_all"
    SALES_VIEW_STORE = "sales.view_store"
    SALES_VIEW_OWN = "sales.view_own"
    SALES_CREATE = "sales.create"
    SALES_ONLINE_ORDER = "sales.online_order"
    SALES_CONFIRM = "sales.confirm"
    SALES_SHIP = "sales.ship"
    SALES_DELIVER = "sales.deliver"
    SALES_CANCEL = "sales.cancel"
    POS_SALE = "pos.sale"

    ASSEMBLY_VIEW = "assembly.view"
    ASSEMBLY_MANAGE = "assembly.manage"
    ASSEMBLY_COMPLETE = "assembly.complete"

    REQUEST_VIEW = "request.view"
    REQUEST_CREATE = "request.create"
    REQUEST_APPROVE = "request.approve"
    REQUEST_REJECT = "request.reject"
    REQUEST_COMPLETE = "request.complete"

    REPORTS_VIEW = "reports.view"
    REPORTS_REGENERATE = "reports.regenerate"


_ADMIN = RoleName.SUPER_ADMIN
_MANAGER = RoleName.STORE_MANAGER
_CASHIER = RoleName.CASHIER
_CUSTOMER = RoleName.CUSTOMER

POLICY: Dict[Action, FrozenSet[RoleName]] = {
    Action.USERS_MANAGE: frozenset({_ADMIN}),
    Action.CATALOG_MANAGE: frozenset({_ADMIN}),

    Action.INVENTORY_VIEW: frozenset({_ADMIN, _MANAGER, _CASHIER}),
    Action.INVENTORY_ADJUST: frozenset({_ADMIN, _MANAGER}),
    Action.INVENTORY_CONFIGURE: frozenset({_ADMIN}),

    Action.PURCHASE_VIEW: frozenset({_ADMIN, _MANAGER}),
    Action.PURCHASE_CREATE: frozenset({_ADMIN, _MANAGER}),
    Action.PURCHASE_APPROVE: frozenset({_ADMIN}),
    Action.PURCHASE_RECEIVE: frozenset({_ADMIN, _MANAGER}),
    Action.PURCHASE_CANCEL: frozenset({_ADMIN, _MANAGER}),

    # Cashiers read their store's orders and customers their own
    Action.SALES_VIEW: frozenset({_ADMIN, _MANAGER, _CASHIER, _CUSTOMER}),
    Action.SALES_VIEW_ALL: frozenset({_ADMIN, _MANAGER}),
    Action.SALES_VIEW_STORE: frozenset({_ADMIN, _CASHIER}),
    Action.SALES_VIEW_OWN: frozenset({_ADMIN, _CUSTOMER}),
    Action.SALES_CREATE: frozenset({_ADMIN, _MANAGER}),
    Action.SALES_ONLINE_ORDER: frozenset({_CUSTOMER, _MANAGER, _ADMIN}),
    Action.SALES_CONFIRM: frozenset({_ADMIN, _MANAGER}),
    Action.SALES_SHIP: frozenset({_ADMIN, _MANAGER}),
    Action.SALES_DELIVER: frozenset({_ADMIN, _MANAGER}),
    Action.SALES_CANCEL: frozenset({_ADMIN, _MANAGER}),
    Action.POS_SALE: frozenset({_ADMIN, _CASHIER}),

    Action.ASSEMBLY_VIEW: frozenset({_ADMIN, _MANAGER}),
    Action.ASSEMBLY_MANAGE: frozenset({_ADMIN, _MANAGER}),
    Action.ASSEMBLY_COMPLETE: frozenset({_ADMIN, _MANAGER}),

    Action.REQUEST_VIEW: frozenset({_ADMIN, _MANAGER}),
    Action.REQUEST_CREATE: frozenset({_ADMIN, _MANAGER}),
    Action.REQUEST_APPROVE: frozenset({_ADMIN}),
    Action.REQUEST_REJECT: frozenset({_ADMIN}),
    Action.REQUEST_COMPLETE: frozenset({_ADMIN, _MANAGER}),

    Action.REPORTS_VIEW: frozenset({_ADMIN, _MANAGER, _CASHIER}),
    Action.REPORTS_REGENERATE: frozenset({_ADMIN}),
}


def roles_for(action: Action) -> FrozenSet[RoleName]:
    return POLICY.get(action, frozenset())


def is_allowed(role_names: Iterable[str], action: Action) -> bool:
    """Check whether any of the given role names may perform the action"""
    allowed = {role.value for role in roles_for(action)}
    return any(name in allowed for name in role_names)


def can(actor, action: Action) -> bool:
    """Non-raising check used to pick a read scope"""
    if actor is None or not getattr(actor, "is_active", True):
        return False
    if getattr(actor, "is_superuser", False):
        return True
    return is_allowed(actor.role_names, action)


def authorize(actor, action: Action) -> None:
    """
    Raise Forbidden unless the actor holds a role allowed for the action.

    The actor is any object exposing ``id``, ``is_active`` and
    ``role_names``; superusers bypass the table.
    """
    if actor is None:
        raise Forbidden(f"Authentication required for {action.value}")

    if not getattr(actor, "is_active", True):
        security_logger.warning(f"Inactive user {actor.id} attempted {action.value}")
        raise Forbidden("Inactive user")

    if getattr(actor, "is_superuser", False):
        return

    if not is_allowed(actor.role_names, action):
        security_logger.warning(
            f"User {actor.id} with roles {sorted(actor.role_names)} denied {action.value}"
        )
        raise Forbidden(
            f"Role not allowed for {action.value}. Required one of: "
            f"{', '.join(sorted(r.value for r in roles_for(action)))}",
            {"action": action.value},
        )
