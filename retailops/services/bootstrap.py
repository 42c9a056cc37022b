"""
Bootstrap Service
Idempotent seeding of roles, default warehouses, category and administrator
"""
from typing import Dict
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.config import settings
from retailops.core.database import unit_of_work
from retailops.core.permissions import RoleName
from retailops.core.security import get_password_hash
from retailops.models.auth import Role, User
from retailops.models.catalog import Category, Warehouse

logger = logging.getLogger(__name__)

ROLE_DESCRIPTIONS = {
    RoleName.SUPER_ADMIN: "Full access to every operation",
    RoleName.STORE_MANAGER: "Runs a store: orders, assemblies, requests and adjustments",
    RoleName.CASHIER: "Point-of-sale checkout",
    RoleName.CUSTOMER: "Online storefront orders",
}


def _upsert_role(db: Session, name: RoleName) -> bool:
    role = db.execute(select(Role).where(Role.name == name.value)).scalar_one_or_none()
    if role is None:
        db.add(Role(name=name.value, description=ROLE_DESCRIPTIONS[name]))
        return True
    return False


def _upsert_warehouse(db: Session, name: str, is_store: bool, location: str) -> bool:
    warehouse = db.execute(select(Warehouse).where(Warehouse.name == name)).scalar_one_or_none()
    if warehouse is None:
        db.add(Warehouse(name=name, is_store=is_store, location=location, is_active=True))
        return True
    return False


def bootstrap(db: Session) -> Dict[str, int]:
    """
    Seed reference data by natural key

    Safe to run on every start: rows that already exist are left as they
    are. Returns how many rows of each kind were created.
    """
    created = {"roles": 0, "warehouses": 0, "categories": 0, "users": 0}

    with unit_of_work(db):
        for name in RoleName:
            created["roles"] += _upsert_role(db, name)

        created["warehouses"] += _upsert_warehouse(db, settings.MAIN_WAREHOUSE_NAME, False, "Central stock")
        created["warehouses"] += _upsert_warehouse(db, settings.ONLINE_STORE_NAME, True, "Online storefront")

        category = db.execute(
            select(Category).where(Category.name == settings.DEFAULT_CATEGORY_NAME)
        ).scalar_one_or_none()
        if category is None:
            db.add(Category(name=settings.DEFAULT_CATEGORY_NAME, description="Default product category"))
            created["categories"] += 1

        db.flush()

        admin_email = settings.ADMIN_EMAIL.strip().lower()
        admin = db.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
        if admin is None:
            super_admin = db.execute(
                select(Role).where(Role.name == RoleName.SUPER_ADMIN.value)
            ).scalar_one()
            admin = User(
                email=admin_email,
                full_name=settings.ADMIN_FULL_NAME,
                password_hash=get_password_hash(settings.ADMIN_PASSWORD),
                is_active=True,
                is_superuser=True,
            )
            admin.roles = [super_admin]
            db.add(admin)
            created["users"] += 1

    if any(created.values()):
        logger.info(f"Bootstrap created {created}")
    else:
        logger.info("Bootstrap found all reference data in place")
    return created
