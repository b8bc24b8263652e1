"""Pytest fixtures for testing"""

from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from tradeline.api.dependencies import get_clock
from tradeline.api.main import create_app
from tradeline.domain.models import (
    HealthState,
    IssueReport,
    IssueSeverity,
    IssueStatus,
    IssueType,
    Order,
    PaymentEvent,
    Relationship,
    Role,
)
from tradeline.domain.payment_terms import DaysAfterDelivery
from tradeline.infrastructure.database.models import Base
from tradeline.infrastructure.database.session import get_db
from tradeline.services.interactions import InteractionService

BUYER = "biz_buyer"
SUPPLIER = "biz_supplier"
OUTSIDER = "biz_outsider"

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# pysqlite defers BEGIN on its own, which breaks SAVEPOINT; let SQLAlchemy own the transaction
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


class FrozenClock:
    """Deterministic clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now: datetime) -> FrozenClock:
    return FrozenClock(now)


@pytest.fixture
def id_factory():
    counter = count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_db(db: Session) -> Generator[Session, None, None]:
    """Second session on the same database, standing in for a concurrent request"""
    other = TestingSessionLocal()
    try:
        yield other
    finally:
        other.close()


@pytest.fixture
def service(db: Session, clock: FrozenClock) -> InteractionService:
    return InteractionService(db, clock=clock)


@pytest.fixture
def client(db: Session, clock: FrozenClock) -> TestClient:
    """Create FastAPI test client with test database and frozen clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)


@pytest.fixture
def make_relationship(now: datetime):
    def _make(relationship_id="rel-1", payment_terms=DaysAfterDelivery(days=7), **kwargs) -> Relationship:
        return Relationship(
            id=relationship_id,
            buyer_business_id=kwargs.pop("buyer_business_id", BUYER),
            supplier_business_id=kwargs.pop("supplier_business_id", SUPPLIER),
            payment_terms=payment_terms,
            health_state=kwargs.pop("health_state", HealthState.STABLE),
            created_at=kwargs.pop("created_at", now - timedelta(days=90)),
        )

    return _make


@pytest.fixture
def make_order(now: datetime):
    def _make(order_id="order-1", created_at=None, terms=DaysAfterDelivery(days=7), **kwargs) -> Order:
        return Order(
            id=order_id,
            relationship_id=kwargs.pop("relationship_id", "rel-1"),
            item_summary=kwargs.pop("item_summary", f"Goods for {order_id}"),
            order_value_cents=kwargs.pop("order_value_cents", 10_000),
            created_at=created_at or now - timedelta(days=20),
            payment_term_snapshot=terms,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_payment(now: datetime):
    def _make(order_id="order-1", amount_cents=10_000, recorded_at=None, **kwargs) -> PaymentEvent:
        return PaymentEvent(
            id=kwargs.pop("payment_id", f"pay-{order_id}-{amount_cents}"),
            order_id=order_id,
            amount_cents=amount_cents,
            recorded_at=recorded_at or now,
            recorded_by=kwargs.pop("recorded_by", BUYER),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_issue(now: datetime):
    def _make(issue_id="issue-1", order_id="order-1", status=IssueStatus.OPEN, **kwargs) -> IssueReport:
        return IssueReport(
            id=issue_id,
            order_id=order_id,
            issue_type=kwargs.pop("issue_type", IssueType.DAMAGED_PRODUCT),
            severity=kwargs.pop("severity", IssueSeverity.MEDIUM),
            raised_by=kwargs.pop("raised_by", Role.BUYER),
            status=status,
            created_at=kwargs.pop("created_at", now - timedelta(days=1)),
            **kwargs,
        )

    return _make
