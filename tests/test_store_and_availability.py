import threading
import pytest
from sqlalchemy.exc import OperationalError
from app.errors import ConflictError, NotFoundError
from app.models.db import Affiliate
from app.models.db.enums import Availability
from app.services.affiliate_store import (
    conflict_field_from_integrity_error,
    get_by_line_user_id,
    insert_affiliate,
    update_bank_info,
)
from app.services.availability import check_code_availability, check_email_availability


def test_free_code_is_available(ledger_session):
    assert check_code_availability(ledger_session, "FREE123") == Availability.AVAILABLE


def test_ledger_code_is_taken(ledger_session, ledger_affiliate_factory):
    ledger_affiliate_factory("SOM5678")
    assert check_code_availability(ledger_session, "SOM5678") == Availability.TAKEN


def test_check_is_idempotent(ledger_session, ledger_affiliate_factory):
    ledger_affiliate_factory("SOM5678")
    for code in ("SOM5678", "NEW999"):
        first = check_code_availability(ledger_session, code)
        second = check_code_availability(ledger_session, code)
        assert first == second


@pytest.mark.parametrize("candidate", [None, "", "AB", "som5678", "SOM-56"])
def test_short_or_malformed_code_is_neutral(ledger_session, candidate):
    assert check_code_availability(ledger_session, candidate) is None


def test_store_failure_is_error_not_taken(ledger_session, monkeypatch):
    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(ledger_session, "query", broken_query)
    assert check_code_availability(ledger_session, "SOM5678") == Availability.ERROR


def test_email_availability(db_session, affiliate_factory):
    affiliate_factory(email="taken@example.com")
    assert check_email_availability(db_session, "taken@example.com") == Availability.TAKEN
    assert check_email_availability(db_session, "free@example.com") == Availability.AVAILABLE
    assert check_email_availability(db_session, "not-an-email") is None


def _insert(db, code="JANE2222", email="jane@x.com", line_user_id=None):
    return insert_affiliate(
        db,
        name="Jane Doe",
        email=email,
        phone="0891112222",
        affiliate_code=code,
        line_user_id=line_user_id,
    )


def test_duplicate_code_conflict_is_field_tagged(db_session):
    _insert(db_session)
    with pytest.raises(ConflictError) as exc:
        _insert(db_session, email="other@x.com")
    assert exc.value.field == "affiliateCode"


def test_duplicate_email_conflict_is_field_tagged(db_session):
    _insert(db_session)
    with pytest.raises(ConflictError) as exc:
        _insert(db_session, code="JANE9999")
    assert exc.value.field == "email"


def test_duplicate_line_user_conflict_is_field_tagged(db_session):
    _insert(db_session, line_user_id="U123")
    with pytest.raises(ConflictError) as exc:
        _insert(db_session, code="JANE9999", email="other@x.com", line_user_id="U123")
    assert exc.value.field == "lineUserId"


def test_conflict_field_parsing_handles_postgres_messages():
    class FakeIntegrityError(Exception):
        orig = 'duplicate key value violates unique constraint "affiliates_affiliate_code_key"'

    assert conflict_field_from_integrity_error(FakeIntegrityError()) == "affiliateCode"


def test_concurrent_inserts_of_same_code_yield_exactly_one_success(session_factory):
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker(i: int):
        session = session_factory()
        try:
            barrier.wait()
            _insert(session, code="RACE1234", email=f"racer{i}@x.com")
            result = "ok"
        except ConflictError as e:
            result = f"conflict:{e.field}"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict:affiliateCode", "ok"]
    check = session_factory()
    try:
        assert check.query(Affiliate).filter(Affiliate.affiliate_code == "RACE1234").count() == 1
    finally:
        check.close()


def test_lookup_by_line_user(db_session, affiliate_factory):
    a = affiliate_factory(line_user_id="U-lookup")
    assert get_by_line_user_id(db_session, "U-lookup").id == a.id
    with pytest.raises(NotFoundError):
        get_by_line_user_id(db_session, "U-missing")


def test_bank_update_keeps_previous_passbook(db_session, affiliate_factory):
    a = affiliate_factory()
    update_bank_info(
        db_session, a, bank_name="KBank", account_number="1234567890",
        account_name="Jane Doe", passbook_url="https://cdn/p1.jpg",
    )
    updated = update_bank_info(
        db_session, a, bank_name="SCB", account_number="123456789012", account_name="Jane Doe",
    )
    assert updated.bank_name == "SCB"
    assert updated.bank_passbook_url == "https://cdn/p1.jpg"
