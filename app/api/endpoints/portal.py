"""
Partner portal endpoints. ``user_id`` is the external login id linked at registration.
"""
import re
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, status, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
import time
from app.api.deps import get_affiliate_for_user, get_db, get_ledger_db
from app.config import BANK_ACCOUNT_RULES, NOTIFICATION_SETTINGS, PORTAL_SETTINGS, STORAGE_SETTINGS
from app.errors import AffiliateError, StorageError, ValidationError
from app.models.db import Affiliate
from app.models.schemas.portal import (
    AffiliateProfileRead,
    DashboardResponse,
    NotificationFeedResponse,
    ProfileUpdateResponse,
    ReferralListResponse,
)
from app.services import storage as storage_service
from app.services.affiliate_store import update_bank_info
from app.services.ledger import list_referrals
from app.services.ledger_projection import get_dashboard
from app.services.notifications import derive_notifications, unread_count
from app.utils import get_logger, log_business_event, log_performance, parse_timestamp

router = APIRouter()
logger = get_logger(__name__)

_NON_DIGIT = re.compile(r"\D")

@router.get(
    "/dashboard/{user_id}",
    response_model=DashboardResponse,
    summary="Partner dashboard",
    description="Profile, bank data and commission totals read from the ledger"
)
async def get_affiliate_dashboard(
    request: Request,
    affiliate: Affiliate = Depends(get_affiliate_for_user),
    ledger_db: Session = Depends(get_ledger_db)
) -> DashboardResponse:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    stats = get_dashboard(ledger_db, affiliate.affiliate_code)

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="get_affiliate_dashboard",
        duration_ms=duration_ms,
        additional_data={"affiliate_code": affiliate.affiliate_code}
    )
    logger.info(
        "Dashboard served",
        affiliate_code=affiliate.affiliate_code,
        total_registrations=stats.total_registrations,
        request_id=request_id
    )

    return DashboardResponse.model_validate({
        "success": True,
        "data": {
            "affiliate": AffiliateProfileRead.model_validate(affiliate),
            "stats": stats.to_dict(),
        },
    })

@router.get(
    "/referrals/{user_id}",
    response_model=ReferralListResponse,
    summary="Referral history",
    description="Customers registered with the affiliate's code, newest first"
)
async def get_affiliate_referrals(
    request: Request,
    affiliate: Affiliate = Depends(get_affiliate_for_user),
    ledger_db: Session = Depends(get_ledger_db)
) -> ReferralListResponse:
    request_id = request.headers.get("X-Request-ID", "unknown")
    referrals = list_referrals(ledger_db, affiliate.affiliate_code, int(PORTAL_SETTINGS["referral_history_limit"]))

    logger.info(
        "Referral history served",
        affiliate_code=affiliate.affiliate_code,
        count=len(referrals),
        request_id=request_id
    )

    return ReferralListResponse.model_validate({
        "success": True,
        "data": {"referrals": [r.to_dict() for r in referrals]},
    })

@router.get(
    "/notifications/{user_id}",
    response_model=NotificationFeedResponse,
    summary="Notification feed",
    description="Derived from the most recent referrals; read state comes from the caller's lastSeen watermark"
)
async def get_affiliate_notifications(
    request: Request,
    last_seen: Optional[str] = Query(None, alias="lastSeen"),
    affiliate: Affiliate = Depends(get_affiliate_for_user),
    ledger_db: Session = Depends(get_ledger_db)
) -> NotificationFeedResponse:
    request_id = request.headers.get("X-Request-ID", "unknown")

    try:
        watermark = parse_timestamp(last_seen)
    except ValueError:
        raise ValidationError({"lastSeen": "lastSeen must be an ISO-8601 timestamp"})

    limit = int(NOTIFICATION_SETTINGS["feed_size"])
    referrals = list_referrals(ledger_db, affiliate.affiliate_code, limit)
    feed = derive_notifications(referrals, watermark, limit=limit)

    logger.debug(
        "Notification feed derived",
        affiliate_code=affiliate.affiliate_code,
        size=len(feed),
        request_id=request_id
    )

    return NotificationFeedResponse.model_validate({
        "success": True,
        "data": {
            "notifications": [n.to_dict() for n in feed],
            "unreadCount": unread_count(feed),
        },
    })

@router.put(
    "/profile/{user_id}",
    response_model=ProfileUpdateResponse,
    summary="Update bank profile",
    description="Bank name, account number and name, plus an optional passbook image uploaded to object storage"
)
async def update_affiliate_profile(
    request: Request,
    bank_name: str = Form("", alias="bankName"),
    account_number: str = Form("", alias="accountNumber"),
    account_name: str = Form("", alias="accountName"),
    passbook_image: Optional[UploadFile] = File(None, alias="passbookImage"),
    affiliate: Affiliate = Depends(get_affiliate_for_user),
    db: Session = Depends(get_db)
) -> ProfileUpdateResponse:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    digits = _NON_DIGIT.sub("", account_number or "")
    errors = {}
    if not bank_name.strip():
        errors["bankName"] = "Bank name is required"
    if not BANK_ACCOUNT_RULES["min_digits"] <= len(digits) <= BANK_ACCOUNT_RULES["max_digits"]:
        errors["accountNumber"] = "Account number must have 10-12 digits"
    if not account_name.strip():
        errors["accountName"] = "Account name is required"
    if errors:
        raise ValidationError(errors, message="Invalid bank information")

    try:
        passbook_url = None
        if passbook_image is not None and passbook_image.filename:
            if not storage_service.is_storage_configured():
                raise StorageError("File storage is not configured")
            # Declared type and size first; the read is capped at max_bytes + 1
            storage_service.validate_image(passbook_image.content_type, passbook_image.size or 0)
            data = await passbook_image.read(int(STORAGE_SETTINGS["max_bytes"]) + 1)
            storage_service.validate_image(passbook_image.content_type, len(data))
            passbook_url = await run_in_threadpool(
                storage_service.upload_passbook,
                data,
                passbook_image.filename,
                passbook_image.content_type,
                account_name.strip(),
                affiliate.affiliate_code,
            )

        updated = update_bank_info(
            db,
            affiliate,
            bank_name=bank_name.strip(),
            account_number=digits,
            account_name=account_name.strip(),
            passbook_url=passbook_url,
        )

        log_business_event(
            event_type="bank_profile_updated",
            details={"bank_name": updated.bank_name, "passbook_uploaded": passbook_url is not None},
            affiliate_code=updated.affiliate_code,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="update_affiliate_profile",
            duration_ms=duration_ms,
            additional_data={"affiliate_code": updated.affiliate_code}
        )

        return ProfileUpdateResponse(
            success=True,
            message="Profile updated",
            data=AffiliateProfileRead.model_validate(updated),
        )

    except (HTTPException, AffiliateError):
        raise
    except Exception as e:
        logger.error(
            "Profile update failed: unexpected error",
            error=str(e),
            error_type=type(e).__name__,
            affiliate_code=affiliate.affiliate_code,
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Profile update failed due to internal error"
        )
