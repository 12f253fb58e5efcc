import os
import secrets
import sys
from datetime import datetime, timezone
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'app' package resolves
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.main import app  # type: ignore
from app.database import Base, LedgerBase  # type: ignore
from app.api import deps  # type: ignore
"""Pytest fixtures and factories.

Both stores are file-based SQLite databases so that request handlers, worker
threads and the test body can open independent connections to the same data.
"""
from app.models.db import Affiliate, LedgerAffiliate, LedgerRegistration
from app.services import email as email_service
from app.services.email import EmailResult
from app.services.ledger import commission_values
from app.utils.ratelimiter import rate_limiter

LOCAL_TEST_URL = "sqlite+pysqlite:///./test_affiliates.db"
LEDGER_TEST_URL = "sqlite+pysqlite:///./test_ledger.db"

engine = create_engine(LOCAL_TEST_URL, connect_args={"check_same_thread": False})
ledger_engine = create_engine(LEDGER_TEST_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
TestingLedgerSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=ledger_engine)

@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.create_all(bind=engine)
    LedgerBase.metadata.create_all(bind=ledger_engine)
    yield
    Base.metadata.drop_all(bind=engine)
    LedgerBase.metadata.drop_all(bind=ledger_engine)
    engine.dispose()
    ledger_engine.dispose()
    for path in ("test_affiliates.db", "test_ledger.db"):
        try:
            os.remove(path)
        except OSError:
            pass

@pytest.fixture(autouse=True)
def _isolate_test_state(create_test_db):
    """Empty both stores and the in-memory rate limiter around every test."""
    rate_limiter.reset()
    yield
    rate_limiter.reset()
    for bind, metadata in ((engine, Base.metadata), (ledger_engine, LedgerBase.metadata)):
        with bind.begin() as conn:
            for table in reversed(metadata.sorted_tables):
                conn.execute(table.delete())

@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def session_factory():
    """Sessionmaker for tests that need several independent connections."""
    return TestingSessionLocal

@pytest.fixture()
def ledger_session():
    session = TestingLedgerSessionLocal()
    try:
        yield session
    finally:
        session.close()

# Override dependencies
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

def _override_get_ledger_db():
    session = TestingLedgerSessionLocal()
    try:
        yield session
    finally:
        session.close()

app.dependency_overrides[deps.get_db] = _override_get_db
app.dependency_overrides[deps.get_ledger_db] = _override_get_ledger_db

@pytest.fixture()
def client():
    return TestClient(app)

@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Replace SES delivery with an in-memory outbox."""
    outbox: list[dict] = []

    def _fake_send(to_email: str, first_name: str, affiliate_code: str) -> EmailResult:
        outbox.append({"to": to_email, "first_name": first_name, "code": affiliate_code})
        return EmailResult(success=True, message_id=f"test-{len(outbox)}")

    monkeypatch.setattr(email_service, "send_confirmation_email", _fake_send)
    return outbox

# ---------- Data factory helpers ----------

@pytest.fixture()
def affiliate_factory(db_session):
    def _create(
        name: str = "Somchai Jaidee",
        *,
        email: str | None = None,
        affiliate_code: str | None = None,
        line_user_id: str | None = None,
        phone: str = "0812345678",
    ) -> Affiliate:
        a = Affiliate(
            name=name,
            email=email or f"{secrets.token_hex(4)}@example.com",
            phone=phone,
            affiliate_code=affiliate_code or f"T{secrets.token_hex(3).upper()}",
            line_user_id=line_user_id or f"U{secrets.token_hex(8)}",
        )
        db_session.add(a)
        db_session.commit()
        db_session.refresh(a)
        return a
    return _create

@pytest.fixture()
def ledger_affiliate_factory(ledger_session):
    def _create(code: str, *, email: str | None = None, **totals) -> LedgerAffiliate:
        values = commission_values()
        record = LedgerAffiliate(
            name=f"Ledger {code}",
            email=email,
            code=code,
            commission_value=values["single_commission_value"],
            discount_value=values["single_discount_value"],
            **values,
            **totals,
        )
        ledger_session.add(record)
        ledger_session.commit()
        ledger_session.refresh(record)
        return record
    return _create

@pytest.fixture()
def referral_factory(ledger_session):
    def _create(
        code: str,
        *,
        customer_name: str = "Mali Suksan",
        package_code: str = "single",
        status: str = "pending",
        created_at: datetime | None = None,
    ) -> LedgerRegistration:
        reg = LedgerRegistration(
            customer_name=customer_name,
            email=f"{secrets.token_hex(3)}@customer.com",
            package_code=package_code,
            status=status,
            affiliate_code=code,
            created_at=created_at or datetime.now(timezone.utc),
        )
        ledger_session.add(reg)
        ledger_session.commit()
        ledger_session.refresh(reg)
        return reg
    return _create
