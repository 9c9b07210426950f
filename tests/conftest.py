import os
import secrets
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'mktdash' resolves without an editable install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from mktdash.main import app  # type: ignore
from mktdash.database import Base  # type: ignore
from mktdash.api import deps  # type: ignore
"""Pytest fixtures and factories.

All model modules are imported through mktdash.models.db before create_all so
relationship back_populates targets exist.
"""
from mktdash.models.db import (
    UserAccount, SubmittedReport, RosterEntry, OrderRecord,
)
from mktdash.models.db.enums import ReportStatus, UserRole
from mktdash.jobs.queue import PriorityDelayQueue
from mktdash.services.analytics_feed import FeedCache, FeedUnavailableError
from mktdash.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER
from mktdash.utils.security import generate_api_key, hash_password

# File-based SQLite so the worker (own session) and the test thread share data
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_mktdash.db"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# The worker module bound SessionLocal at import time; point it (and the
# database module used by /health/detailed) at the test database.
import mktdash.database as _mktdash_database  # noqa: E402
_mktdash_database.SessionLocal = TestingSessionLocal  # type: ignore
import mktdash.jobs.worker_sync as _worker_mod  # noqa: E402
_worker_mod.SessionLocal = TestingSessionLocal  # type: ignore

# Hash once; bcrypt is deliberately slow
TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FakeSheetsClient:
    """In-memory spreadsheet: records appended rows, can be told to fail."""

    def __init__(self):
        self.rows: list[list] = []
        self.header: list[list] = []
        self.header_formatted = 0
        self.fail_with: Exception | None = None

    def append_row(self, range_name, values):
        if self.fail_with is not None:
            raise self.fail_with
        self.rows.append(list(values))
        row_number = len(self.rows) + 1
        return f"Sheet1!A{row_number}:L{row_number}"

    def get_values(self, range_name):
        if self.fail_with is not None:
            raise self.fail_with
        return self.header

    def update_values(self, range_name, values):
        self.header = [list(v) for v in values]

    def format_header(self):
        self.header_formatted += 1


class FakeFeedClient:
    """Stands in for AnalyticsFeedClient; returns canned rows or raises."""

    def __init__(self, rows=None):
        self.rows = rows or []
        self.error: str | None = None
        self.calls = 0

    async def fetch_rows(self):
        self.calls += 1
        if self.error:
            raise FeedUnavailableError(self.error)
        return list(self.rows)


@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_mktdash.db")
    except OSError:
        pass


@pytest.fixture(scope="session", autouse=True)
def sync_queue(create_test_db):
    """Queue on app.state as the lifespan would set it. No worker thread runs;
    tests drive SheetSyncWorker.process directly."""
    queue = PriorityDelayQueue()
    app.state.sync_queue = queue  # type: ignore[attr-defined]
    yield queue
    queue.shutdown()


@pytest.fixture()
def sheets_client():
    fake = FakeSheetsClient()
    app.state.sheets_client = fake  # type: ignore[attr-defined]
    yield fake
    app.state.sheets_client = None  # type: ignore[attr-defined]


@pytest.fixture()
def feed_client():
    fake = FakeFeedClient()
    app.state.feed_cache = FeedCache(client=fake)  # type: ignore[attr-defined]
    return fake


@pytest.fixture(autouse=True)
def _isolate_test_state(sync_queue):  # type: ignore[unused-argument]
    """Per-test reset of the queue, circuit breaker, app state and tables."""
    sync_queue.purge()
    GLOBAL_CIRCUIT_BREAKER.reset()
    app.state.sheets_client = None  # type: ignore[attr-defined]
    app.state.feed_cache = FeedCache(client=FakeFeedClient())  # type: ignore[attr-defined]
    yield
    sync_queue.purge()
    GLOBAL_CIRCUIT_BREAKER.reset()
    session = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# Override dependency
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


app.dependency_overrides[deps.get_db] = _override_get_db


@pytest.fixture()
def client():
    return TestClient(app)


# ---------- Data factory helpers ----------

@pytest.fixture()
def user_factory(db_session):
    def _create(role: UserRole = UserRole.USER, team: str = "T1", email: str | None = None, username: str | None = None):
        suffix = secrets.token_hex(3)
        user = UserAccount(
            username=username or f"user_{suffix}",
            password_hash=TEST_PASSWORD_HASH,
            email=email or f"{role.value}_{suffix}@acme.io",
            display_name=f"{role.value.title()} {suffix}",
            team=team,
            role=role,
            api_key=generate_api_key(),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create


@pytest.fixture()
def auth_headers():
    def _headers(user: UserAccount) -> dict:
        return {"Authorization": f"Bearer {user.api_key}"}
    return _headers


@pytest.fixture()
def report_factory(db_session):
    def _create(user: UserAccount | None = None, **fields):
        values = dict(
            name=user.display_name if user else "Reporter",
            email=user.email if user else "reporter@acme.io",
            team=user.team if user else "T1",
            date=date(2024, 5, 1),
            shift="mid-shift",
            product="Serum A",
            market="Nhật Bản",
            ad_account="TK-01",
            ad_spend=Decimal("100.00"),
            message_count=10,
            order_count=2,
            revenue=Decimal("1000.00"),
            status=ReportStatus.PENDING,
            created_by_id=user.id if user else None,
        )
        values.update(fields)
        report = SubmittedReport(**values)
        db_session.add(report)
        db_session.commit()
        db_session.refresh(report)
        return report
    return _create


@pytest.fixture()
def roster_factory(db_session):
    def _create(**fields):
        values = dict(name="Roster Person", email="", team="T1", position="Nhân viên")
        values.update(fields)
        entry = RosterEntry(**values)
        db_session.add(entry)
        db_session.commit()
        db_session.refresh(entry)
        return entry
    return _create


@pytest.fixture()
def order_factory(db_session):
    def _create(**fields):
        values = dict(
            order_code=f"DH{secrets.token_hex(3)}",
            customer_name="Customer",
            marketing_staff="Mkt Staff",
            sales_staff="Sale Staff",
            team="T1",
            shift="mid-shift",
            product="Serum A",
            market="Nhật Bản",
            amount=Decimal("250.00"),
        )
        values.update(fields)
        order = OrderRecord(**values)
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order
    return _create
