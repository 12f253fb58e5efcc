"""Local/event store access for affiliate profiles.

Identity fields (email, affiliate code, external login id) are written once at
registration; only the bank profile is mutable afterwards. Rows are never
deleted by the application.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError
from app.models.db import Affiliate
from app.utils import get_logger

logger = get_logger(__name__)

CONFLICT_MESSAGES = {
    "email": "This email is already registered",
    "affiliateCode": "This affiliate code is already in use",
    "lineUserId": "This account is already linked to an affiliate",
}


def conflict_field_from_integrity_error(error: IntegrityError) -> Optional[str]:
    """Map a unique violation to the request field it concerns.

    Works with both sqlite ("UNIQUE constraint failed: affiliates.email") and
    postgres ('... unique constraint "affiliates_email_key"') messages.
    """
    msg = str(getattr(error, "orig", error)).lower()
    if "affiliate_code" in msg:
        return "affiliateCode"
    if "line_user_id" in msg:
        return "lineUserId"
    if "email" in msg:
        return "email"
    return None


def insert_affiliate(
    db: Session,
    *,
    name: str,
    email: str,
    phone: str,
    affiliate_code: str,
    note: Optional[str] = None,
    selected_product: Optional[str] = None,
    line_user_id: Optional[str] = None,
) -> Affiliate:
    """Single unique-constrained insert; a violation raises a field-tagged ConflictError."""
    affiliate = Affiliate(
        name=name,
        email=email,
        phone=phone,
        affiliate_code=affiliate_code,
        note=note or None,
        selected_product=selected_product or None,
        line_user_id=line_user_id or None,
    )
    db.add(affiliate)
    try:
        db.commit()
    except IntegrityError as ie:
        db.rollback()
        field = conflict_field_from_integrity_error(ie)
        logger.warning(
            "Affiliate insert rejected by unique constraint",
            conflict_field=field or "unknown",
            affiliate_code=affiliate_code,
        )
        if field is None:
            raise ConflictError("This registration already exists") from ie
        raise ConflictError(CONFLICT_MESSAGES[field], field=field) from ie
    db.refresh(affiliate)
    return affiliate


def find_by_line_user_id(db: Session, line_user_id: str) -> Optional[Affiliate]:
    return db.query(Affiliate).filter(Affiliate.line_user_id == line_user_id).first()


def get_by_line_user_id(db: Session, line_user_id: str) -> Affiliate:
    affiliate = find_by_line_user_id(db, line_user_id)
    if affiliate is None:
        raise NotFoundError("Affiliate not found for this account")
    return affiliate


def update_bank_info(
    db: Session,
    affiliate: Affiliate,
    *,
    bank_name: str,
    account_number: str,
    account_name: str,
    passbook_url: Optional[str] = None,
) -> Affiliate:
    affiliate.bank_name = bank_name
    affiliate.bank_account_number = account_number
    affiliate.bank_account_name = account_name
    # Keep the previous passbook unless a new one was uploaded
    if passbook_url:
        affiliate.bank_passbook_url = passbook_url
    db.commit()
    db.refresh(affiliate)
    return affiliate


__all__ = [
    "CONFLICT_MESSAGES",
    "conflict_field_from_integrity_error",
    "insert_affiliate",
    "find_by_line_user_id",
    "get_by_line_user_id",
    "update_bank_info",
]
