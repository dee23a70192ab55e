from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

import bakery.persistence.pg as pg
from bakery.core.config import get_settings
from bakery.domain.orders.aggregates import Order
from bakery.domain.orders.service import OrderService
from bakery.notifications.dispatcher import LogNotificationDispatcher, get_dispatcher
from bakery.notifications.scheduler import NotificationScheduler
from bakery.persistence.models import Base
from bakery.persistence.store import SqlOrderStore


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.notification_backend = "log"
    settings.auth_enabled = True

    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables(configure_test_engine):
    with pg.session_scope() as s:
        for table in reversed(Base.metadata.sorted_tables):
            s.execute(delete(table))
    dispatcher = get_dispatcher()
    if isinstance(dispatcher, LogNotificationDispatcher):
        dispatcher.clear()
    yield


@pytest.fixture()
def client(configure_test_engine):
    from bakery.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def store(session) -> SqlOrderStore:
    return SqlOrderStore(session)


@pytest.fixture()
def outbox() -> LogNotificationDispatcher:
    return LogNotificationDispatcher(template_loader=lambda name: None)


@pytest.fixture()
def scheduler(outbox):
    s = NotificationScheduler(outbox, max_workers=2)
    yield s
    s.shutdown(wait_for_pending=True)


@pytest.fixture()
def service(store, outbox, scheduler) -> OrderService:
    return OrderService(store=store, dispatcher=outbox, scheduler=scheduler)


@pytest.fixture()
def admin_headers():
    return {"X-API-Key": get_settings().admin_api_key}


def make_order(
    order_id: str,
    email: str = "jane@x.com",
    *,
    name: str = "Jane",
    phone: str | None = None,
    status: str = "pending",
    total: str = "10.00",
    created_at: datetime | None = None,
) -> Order:
    created = created_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return Order(
        id=order_id,
        created_at=created,
        updated_at=created,
        status=status,
        customer_name=name,
        customer_email=email,
        customer_phone=phone,
        quantity=1,
        description="Round cookies",
        total_amount=Decimal(total),
    )
