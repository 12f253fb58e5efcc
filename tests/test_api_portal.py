import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
import app.services.storage as storage_service
from app.config import STORAGE_SETTINGS


def test_dashboard_reads_ledger_totals(client: TestClient, affiliate_factory, ledger_affiliate_factory):
    affiliate_factory(affiliate_code="SOM5678", line_user_id="U-dash")
    ledger_affiliate_factory(
        "SOM5678",
        total_registrations=4,
        total_commission=1300000,
        pending_commission=300000,
        approved_commission=700000,
    )

    r = client.get("/api/affiliate/dashboard/U-dash")
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["affiliate"]["affiliateCode"] == "SOM5678"
    assert data["stats"] == {
        "totalRegistrations": 4,
        "totalCommission": 1300000,
        "pendingCommission": 300000,
        "approvedCommission": 700000,
        "paidCommission": 1000000,
    }


def test_dashboard_without_ledger_row_is_zero(client: TestClient, affiliate_factory):
    affiliate_factory(affiliate_code="PART1234", line_user_id="U-partial")
    r = client.get("/api/affiliate/dashboard/U-partial")
    assert r.status_code == 200
    assert r.json()["data"]["stats"]["totalCommission"] == 0


def test_dashboard_unknown_user_is_404(client: TestClient):
    r = client.get("/api/affiliate/dashboard/U-nobody")
    assert r.status_code == 404
    assert r.json()["success"] is False


def test_referrals_newest_first_with_package_commission(
    client: TestClient, affiliate_factory, ledger_affiliate_factory, referral_factory
):
    affiliate_factory(affiliate_code="SOM5678", line_user_id="U-ref")
    ledger_affiliate_factory("SOM5678")
    now = datetime.now(timezone.utc)
    referral_factory("SOM5678", customer_name="Old Single", created_at=now - timedelta(days=2))
    referral_factory("SOM5678", customer_name="New Duo Buyer", package_code="duo", status="approved", created_at=now)
    referral_factory("OTHER999", customer_name="Someone Else", created_at=now)

    r = client.get("/api/affiliate/referrals/U-ref")
    assert r.status_code == 200
    referrals = r.json()["data"]["referrals"]
    assert [ref["firstName"] for ref in referrals] == ["New", "Old"]
    assert referrals[0]["lastName"] == "Duo Buyer"
    assert referrals[0]["commissionAmount"] == 700000
    assert referrals[0]["commissionStatus"] == "approved"
    assert referrals[1]["commissionAmount"] == 300000
    assert referrals[1]["packageType"] == "single"


def test_notifications_respect_last_seen(client: TestClient, affiliate_factory, ledger_affiliate_factory, referral_factory):
    affiliate_factory(affiliate_code="SOM5678", line_user_id="U-notif")
    ledger_affiliate_factory("SOM5678")
    now = datetime.now(timezone.utc)
    referral_factory("SOM5678", status="paid", created_at=now - timedelta(hours=3))
    referral_factory("SOM5678", status="pending", created_at=now - timedelta(minutes=5))

    r = client.get("/api/affiliate/notifications/U-notif")
    data = r.json()["data"]
    assert data["unreadCount"] == 2
    assert [n["type"] for n in data["notifications"]] == ["new_referral", "commission_paid"]

    last_seen = (now - timedelta(hours=1)).isoformat()
    data = client.get("/api/affiliate/notifications/U-notif", params={"lastSeen": last_seen}).json()["data"]
    assert data["unreadCount"] == 1
    assert [n["read"] for n in data["notifications"]] == [False, True]


def test_notifications_reject_bad_watermark(client: TestClient, affiliate_factory):
    affiliate_factory(line_user_id="U-bad")
    r = client.get("/api/affiliate/notifications/U-bad", params={"lastSeen": "yesterday"})
    assert r.status_code == 400
    assert r.json()["field"] == "lastSeen"


BANK_FORM = {"bankName": "Kasikorn", "accountNumber": "123-4-56789-0", "accountName": "Jane Doe"}


def test_profile_update_without_image(client: TestClient, affiliate_factory):
    affiliate_factory(line_user_id="U-bank")
    r = client.put("/api/affiliate/profile/U-bank", data=BANK_FORM)
    assert r.status_code == 200, r.text
    profile = r.json()["data"]
    assert profile["bankName"] == "Kasikorn"
    assert profile["bankAccountNumber"] == "1234567890"
    assert profile["bankPassbookUrl"] is None


def test_profile_update_rejects_bad_account_number(client: TestClient, affiliate_factory):
    affiliate_factory(line_user_id="U-bank2")
    r = client.put("/api/affiliate/profile/U-bank2", data={**BANK_FORM, "accountNumber": "12345"})
    assert r.status_code == 400
    assert "accountNumber" in r.json()["errors"]


def test_profile_update_uploads_passbook(client: TestClient, affiliate_factory, monkeypatch):
    affiliate_factory(affiliate_code="SOM5678", line_user_id="U-upload")
    uploads = []

    def fake_upload(data, filename, content_type, account_name, affiliate_code):
        uploads.append((len(data), filename, content_type, account_name, affiliate_code))
        return "https://files.example.com/passbooks/SOM5678-jane-doe-1.png"

    monkeypatch.setattr(storage_service, "is_storage_configured", lambda: True)
    monkeypatch.setattr(storage_service, "upload_passbook", fake_upload)

    r = client.put(
        "/api/affiliate/profile/U-upload",
        data=BANK_FORM,
        files={"passbookImage": ("book.png", b"\x89PNG fake", "image/png")},
    )
    assert r.status_code == 200, r.text
    assert r.json()["data"]["bankPassbookUrl"].endswith("SOM5678-jane-doe-1.png")
    assert uploads == [(9, "book.png", "image/png", "Jane Doe", "SOM5678")]


def test_profile_upload_without_storage_config_is_503(client: TestClient, affiliate_factory, monkeypatch):
    affiliate_factory(line_user_id="U-nostore")
    monkeypatch.setitem(STORAGE_SETTINGS, "account_id", None)
    r = client.put(
        "/api/affiliate/profile/U-nostore",
        data=BANK_FORM,
        files={"passbookImage": ("book.png", b"img", "image/png")},
    )
    assert r.status_code == 503
    assert r.json()["errorType"] == "storage"


def test_oversize_passbook_is_rejected_without_full_read(client: TestClient, affiliate_factory, monkeypatch):
    from starlette.datastructures import UploadFile as StarletteUploadFile

    affiliate_factory(line_user_id="U-big")
    reads = []
    original_read = StarletteUploadFile.read

    async def recording_read(self, size=-1):
        reads.append(size)
        return await original_read(self, size)

    monkeypatch.setattr(StarletteUploadFile, "read", recording_read)
    monkeypatch.setattr(storage_service, "is_storage_configured", lambda: True)
    monkeypatch.setattr(storage_service, "upload_passbook", lambda *a: pytest.fail("upload must not run"))

    big = b"\x00" * (int(STORAGE_SETTINGS["max_bytes"]) + 10)
    r = client.put(
        "/api/affiliate/profile/U-big",
        data=BANK_FORM,
        files={"passbookImage": ("big.png", big, "image/png")},
    )
    assert r.status_code == 400
    assert "passbookImage" in r.json()["errors"]
    assert -1 not in reads


def test_passbook_with_wrong_type_is_rejected_before_upload(client: TestClient, affiliate_factory, monkeypatch):
    affiliate_factory(line_user_id="U-pdf")
    monkeypatch.setattr(storage_service, "is_storage_configured", lambda: True)
    monkeypatch.setattr(storage_service, "upload_passbook", lambda *a: pytest.fail("upload must not run"))

    r = client.put(
        "/api/affiliate/profile/U-pdf",
        data=BANK_FORM,
        files={"passbookImage": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert r.status_code == 400
    assert r.json()["field"] == "passbookImage"


def test_passbook_upload_runs_off_the_event_loop(client: TestClient, affiliate_factory, monkeypatch):
    affiliate_factory(line_user_id="U-thread")
    seen = []

    def blocking_upload(*args):
        try:
            asyncio.get_running_loop()
            seen.append(True)
        except RuntimeError:
            seen.append(False)
        return "https://files.example.com/passbooks/x.png"

    monkeypatch.setattr(storage_service, "is_storage_configured", lambda: True)
    monkeypatch.setattr(storage_service, "upload_passbook", blocking_upload)

    r = client.put(
        "/api/affiliate/profile/U-thread",
        data=BANK_FORM,
        files={"passbookImage": ("book.png", b"img", "image/png")},
    )
    assert r.status_code == 200, r.text
    assert seen == [False]
