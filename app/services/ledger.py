"""Ledger ("main system") store access.

Registration writes exactly one `bootcamp_affiliates` row per code with the
fixed commission configuration. Totals and referral rows are owned by the
external commission path and only read here.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import COMMISSION_SETTINGS
from app.errors import ConflictError
from app.models.db import LedgerAffiliate, LedgerRegistration
from app.models.db.enums import PackageType
from app.utils import get_logger
from app.utils.time import ensure_aware

logger = get_logger(__name__)


def commission_values() -> Dict[str, int]:
    """Commission/discount configuration in integer minor units."""
    m = int(COMMISSION_SETTINGS["minor_unit_multiplier"])
    return {
        "single_commission_value": int(COMMISSION_SETTINGS["single_commission"]) * m,
        "single_discount_value": int(COMMISSION_SETTINGS["single_discount"]) * m,
        "duo_commission_value": int(COMMISSION_SETTINGS["duo_commission"]) * m,
        "duo_discount_value": int(COMMISSION_SETTINGS["duo_discount"]) * m,
    }


def register_ledger_affiliate(
    ledger_db: Session,
    *,
    name: str,
    email: Optional[str],
    phone: Optional[str],
    code: str,
) -> LedgerAffiliate:
    """Insert the commission-bearing record. Auto-approved (``is_active=True``)."""
    values = commission_values()
    record = LedgerAffiliate(
        name=name,
        email=email or None,
        phone=phone or None,
        code=code,
        commission_type=str(COMMISSION_SETTINGS["commission_type"]),
        commission_value=values["single_commission_value"],
        discount_type=str(COMMISSION_SETTINGS["discount_type"]),
        discount_value=values["single_discount_value"],
        total_registrations=0,
        total_commission=0,
        pending_commission=0,
        approved_commission=0,
        is_active=True,
        **values,
    )
    ledger_db.add(record)
    try:
        ledger_db.commit()
    except IntegrityError as ie:
        ledger_db.rollback()
        msg = str(ie.orig).lower()
        if "code" in msg:
            raise ConflictError("This affiliate code is already in use", field="generatedCode") from ie
        raise ConflictError("This registration already exists") from ie
    ledger_db.refresh(record)
    return record


def ledger_code_exists(ledger_db: Session, code: str) -> bool:
    return ledger_db.query(LedgerAffiliate.id).filter(LedgerAffiliate.code == code).limit(1).first() is not None


def ledger_email_exists(ledger_db: Session, email: str) -> bool:
    return ledger_db.query(LedgerAffiliate.id).filter(LedgerAffiliate.email == email).limit(1).first() is not None


def get_ledger_affiliate(ledger_db: Session, code: str) -> Optional[LedgerAffiliate]:
    return ledger_db.query(LedgerAffiliate).filter(LedgerAffiliate.code == code).first()


@dataclass(frozen=True)
class Referral:
    id: str
    first_name: str
    last_name: str
    email: Optional[str]
    package_type: str
    commission_amount: int
    commission_status: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "packageType": self.package_type,
            "commissionAmount": self.commission_amount,
            "commissionStatus": self.commission_status,
            "createdAt": self.created_at.isoformat(),
        }


def split_customer_name(full_name: str) -> tuple[str, str]:
    parts = (full_name or "").strip().split(" ", 1)
    first = parts[0] if parts else ""
    last = parts[1].strip() if len(parts) > 1 else ""
    return first, last


def list_referrals(ledger_db: Session, code: str, limit: int) -> List[Referral]:
    """Referrals for ``code``, newest first, with the per-package commission amount."""
    commission_amount = case(
        (LedgerRegistration.package_code == PackageType.DUO.value, LedgerAffiliate.duo_commission_value),
        else_=LedgerAffiliate.single_commission_value,
    )
    rows = (
        ledger_db.query(LedgerRegistration, commission_amount.label("commission_amount"))
        .outerjoin(LedgerAffiliate, LedgerRegistration.affiliate_code == LedgerAffiliate.code)
        .filter(LedgerRegistration.affiliate_code == code)
        .order_by(LedgerRegistration.created_at.desc())
        .limit(limit)
        .all()
    )
    referrals: List[Referral] = []
    for reg, amount in rows:
        first, last = split_customer_name(reg.customer_name)
        referrals.append(
            Referral(
                id=reg.id,
                first_name=first,
                last_name=last,
                email=reg.email,
                package_type=reg.package_code,
                commission_amount=int(amount or 0),
                commission_status=reg.status,
                created_at=ensure_aware(reg.created_at),
            )
        )
    return referrals


__all__ = [
    "commission_values",
    "register_ledger_affiliate",
    "ledger_code_exists",
    "ledger_email_exists",
    "get_ledger_affiliate",
    "Referral",
    "split_customer_name",
    "list_referrals",
]
