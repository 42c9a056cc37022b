"""
Test Configuration and Fixtures
Shared testing infrastructure for RetailOps
"""

import os

# Configure the application before anything imports the settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["RUN_BOOTSTRAP_ON_STARTUP"] = "false"

import pytest
from decimal import Decimal
from typing import Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from retailops.main import app
from retailops.core.database import get_db, Base
from retailops.core.permissions import RoleName
from retailops.core.security import get_password_hash, create_user_token
from retailops.models.auth import User, Role
from retailops.models.catalog import Category, Product, Warehouse
from retailops.models.inventory import MovementDirection
from retailops.services.ledger import LedgerService

# Test database URL - in-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite://"

TEST_PASSWORD = "testpassword123"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Hash the shared test password once"""
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def roles(db_session: Session) -> Dict[str, Role]:
    """The four system roles"""
    created = {}
    for name in RoleName:
        role = Role(name=name.value, description=f"{name.value} role")
        db_session.add(role)
        created[name.value] = role
    db_session.commit()
    return created


@pytest.fixture
def warehouses(db_session: Session) -> Dict[str, Warehouse]:
    """Main warehouse, online store and one physical store"""
    created = {
        "main": Warehouse(name="Main Warehouse", location="Central stock", is_store=False),
        "online": Warehouse(name="Online Store", location="Online storefront", is_store=True),
        "store": Warehouse(name="Downtown Store", location="12 High Street", is_store=True),
    }
    db_session.add_all(created.values())
    db_session.commit()
    return created


@pytest.fixture
def products(db_session: Session) -> Dict[str, Product]:
    """Sample catalog"""
    category = Category(name="General", description="Default product category")
    db_session.add(category)
    db_session.flush()

    created = {
        "widget": Product(name="Widget", sku="WID-001", price=Decimal("10.00"), category_id=category.id),
        "gadget": Product(name="Gadget", sku="GAD-001", price=Decimal("25.50"), category_id=category.id),
        "bolt": Product(name="Bolt", sku="BLT-001", price=Decimal("0.50"), category_id=category.id),
        "kit": Product(name="Widget Kit", sku="KIT-001", price=Decimal("99.00"), category_id=category.id),
    }
    db_session.add_all(created.values())
    db_session.commit()
    return created


def _make_user(db_session: Session, password_hash: str, email: str, role: Role, **fields) -> User:
    user = User(
        email=email,
        full_name=fields.pop("full_name", email.split("@")[0].title()),
        password_hash=password_hash,
        is_active=fields.pop("is_active", True),
        is_superuser=False,
        **fields,
    )
    user.roles = [role]
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin_user(db_session: Session, roles, password_hash) -> User:
    """User holding the SuperAdmin role"""
    return _make_user(db_session, password_hash, "admin@retailops.test", roles["SuperAdmin"])


@pytest.fixture
def manager_user(db_session: Session, roles, password_hash) -> User:
    """User holding the StoreManager role"""
    return _make_user(db_session, password_hash, "manager@retailops.test", roles["StoreManager"])


@pytest.fixture
def cashier_user(db_session: Session, roles, warehouses, password_hash) -> User:
    """Cashier assigned to the downtown store"""
    return _make_user(
        db_session, password_hash, "cashier@retailops.test", roles["Cashier"],
        assigned_store_id=warehouses["store"].id,
    )


@pytest.fixture
def customer_user(db_session: Session, roles, password_hash) -> User:
    """Storefront customer"""
    return _make_user(
        db_session, password_hash, "customer@retailops.test", roles["Customer"],
        full_name="Carol Customer",
    )


@pytest.fixture
def other_customer_user(db_session: Session, roles, password_hash) -> User:
    """A second storefront customer"""
    return _make_user(
        db_session, password_hash, "other.customer@retailops.test", roles["Customer"],
        full_name="Oscar Other",
    )


@pytest.fixture
def stock(db_session: Session, admin_user: User) -> Callable[[Product, Warehouse, str], Decimal]:
    """Put opening stock on hand through the ledger"""
    ledger = LedgerService(db_session, admin_user)

    def _stock(product: Product, warehouse: Warehouse, quantity) -> Decimal:
        balance = ledger.adjust(
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=Decimal(str(quantity)),
            direction=MovementDirection.IN,
            notes="Opening stock",
        )
        return balance.quantity

    return _stock


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer headers for a user"""
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
def admin_headers(admin_user: User) -> Dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def manager_headers(manager_user: User) -> Dict[str, str]:
    return auth_headers(manager_user)


@pytest.fixture
def cashier_headers(cashier_user: User) -> Dict[str, str]:
    return auth_headers(cashier_user)


@pytest.fixture
def customer_headers(customer_user: User) -> Dict[str, str]:
    return auth_headers(customer_user)


@pytest.fixture
def other_customer_headers(other_customer_user: User) -> Dict[str, str]:
    return auth_headers(other_customer_user)
