"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so the environment must be set first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.pop("REDIS_URL", None)

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cafe_pos.core.rbac import UserRole
from cafe_pos.core.security import create_access_token, get_password_hash
from cafe_pos.db.base import Base
from cafe_pos.db.session import build_engine, get_db
from cafe_pos.main import app
# Import all models to ensure they're registered with Base.metadata
from cafe_pos.models import *  # noqa: F401,F403
from cafe_pos.models.customer import Customer
from cafe_pos.models.menu import Category, MenuItem
from cafe_pos.models.user import User
from cafe_pos.services.events import EventBus, EventLog
from cafe_pos.services.order_service import OrderService
from cafe_pos.services.payment_service import PaymentService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with foreign keys enforced."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def event_log(event_bus: EventBus) -> EventLog:
    log = EventLog(maxlen=100)
    event_bus.subscribe_all(log)
    return log


@pytest.fixture
def order_service(db_session: Session, event_bus: EventBus) -> OrderService:
    return OrderService(db_session, event_bus)


@pytest.fixture
def payment_service(db_session: Session, event_bus: EventBus) -> PaymentService:
    return PaymentService(db_session, event_bus)


@pytest.fixture(scope="function")
def client(db_session: Session, event_bus: EventBus, event_log: EventLog) -> Generator[TestClient, None, None]:
    """Create a test client with database and event bus overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.event_bus = event_bus
    app.state.event_log = event_log
    # Disable rate limiters during tests to avoid flaky failures
    from cafe_pos.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


def _make_user(db: Session, role: UserRole, email: str, name: str) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash("testpass123"),
        role=role,
        name=name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def reception_user(db_session: Session) -> User:
    return _make_user(db_session, UserRole.RECEPTION, "reception@cafe.com", "Rita Reception")


@pytest.fixture
def cashier_user(db_session: Session) -> User:
    return _make_user(db_session, UserRole.CASHIER, "cashier@cafe.com", "Carl Cashier")


@pytest.fixture
def chef_user(db_session: Session) -> User:
    return _make_user(db_session, UserRole.CHEF, "chef@cafe.com", "Chloe Chef")


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, UserRole.SUPER_ADMIN, "admin@cafe.com", "Ada Admin")


def _headers_for(user: User) -> dict:
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def reception_headers(reception_user: User) -> dict:
    return _headers_for(reception_user)


@pytest.fixture
def cashier_headers(cashier_user: User) -> dict:
    return _headers_for(cashier_user)


@pytest.fixture
def chef_headers(chef_user: User) -> dict:
    return _headers_for(chef_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


@pytest.fixture
def customer(db_session: Session) -> Customer:
    """Create a test customer."""
    customer = Customer(name="Jane Smith", phone="+1234567891", email="jane@example.com")
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def beverages(db_session: Session) -> Category:
    category = Category(name="Beverages", description="Hot and cold drinks", is_active=True)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


def _make_item(db: Session, category: Category, name: str, price: str, available: bool = True) -> MenuItem:
    item = MenuItem(
        name=name,
        price=Decimal(price),
        category_id=category.id,
        is_available=available,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def espresso(db_session: Session, beverages: Category) -> MenuItem:
    return _make_item(db_session, beverages, "Espresso", "2.50")


@pytest.fixture
def latte(db_session: Session, beverages: Category) -> MenuItem:
    return _make_item(db_session, beverages, "Latte", "4.00")


@pytest.fixture
def sold_out_item(db_session: Session, beverages: Category) -> MenuItem:
    return _make_item(db_session, beverages, "Seasonal Special", "6.00", available=False)


@pytest.fixture
def pending_order(order_service: OrderService, customer, espresso, reception_user):
    """A PENDING order for two espressos (5.00)."""
    from cafe_pos.schemas.order import OrderItemCreate

    return order_service.create_order(
        customer_id=customer.id,
        items=[OrderItemCreate(menu_item_id=espresso.id, quantity=2)],
        created_by_id=reception_user.id,
    )


@pytest.fixture
def confirmed_order(order_service: OrderService, pending_order, cashier_user):
    return order_service.update_order_status(
        pending_order.id, "CONFIRMED", cashier_user.id, UserRole.CASHIER
    )


@pytest.fixture
def paid_order(payment_service: PaymentService, confirmed_order, cashier_user):
    _, order = payment_service.process_payment(
        confirmed_order.id, "cash", processed_by_id=cashier_user.id
    )
    return order


@pytest.fixture
def file_engine(tmp_path):
    """A file-backed SQLite database, so separate sessions use separate connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seeded(file_engine):
    """Session factory plus the ids of one PENDING order and the staff who work it."""
    from cafe_pos.schemas.order import OrderItemCreate

    Session = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    db = Session()
    cashier = User(email="race-cashier@cafe.com", name="C", password_hash=get_password_hash("pw123456"),
                   role=UserRole.CASHIER, is_active=True)
    reception = User(email="race-reception@cafe.com", name="R", password_hash=get_password_hash("pw123456"),
                     role=UserRole.RECEPTION, is_active=True)
    customer = Customer(name="Walk-in")
    category = Category(name="Food", is_active=True)
    db.add_all([cashier, reception, customer, category])
    db.commit()
    item = MenuItem(name="Croissant", price=Decimal("3.50"), category_id=category.id, is_available=True)
    db.add(item)
    db.commit()
    order = OrderService(db).create_order(
        customer.id, [OrderItemCreate(menu_item_id=item.id, quantity=1)], reception.id
    )
    ids = {"order": order.id, "cashier": cashier.id, "reception": reception.id}
    db.close()
    return Session, ids
