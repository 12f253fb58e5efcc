"""Code and email availability checks (server side).

The check is advisory: it narrows the window for collisions in the UI but
gives no exclusivity. The unique constraints on insert are the only
serialization point for concurrent registrations.
"""
from __future__ import annotations

import re
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import AFFILIATE_CODE_RULES, EMAIL_PATTERN
from app.models.db import Affiliate, LedgerAffiliate
from app.models.db.enums import Availability
from app.utils import get_logger

logger = get_logger(__name__)

_CODE_RE = re.compile(str(AFFILIATE_CODE_RULES["pattern"]))
_EMAIL_RE = re.compile(EMAIL_PATTERN)


def is_checkable_code(candidate: str | None) -> bool:
    """Short or malformed candidates yield a neutral result instead of a query."""
    if not candidate or len(candidate) < int(AFFILIATE_CODE_RULES["min_length"]):
        return False
    return bool(_CODE_RE.match(candidate))


def is_checkable_email(email: str | None) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email or ""))


def check_code_availability(ledger_db: Session, candidate: str | None) -> Optional[Availability]:
    """Look up ``candidate`` in the ledger store.

    Returns None for candidates that are too short or not ``[A-Z0-9]+``.
    Store failures map to ``Availability.ERROR``, never to TAKEN.
    """
    if not is_checkable_code(candidate):
        return None
    try:
        row = ledger_db.query(LedgerAffiliate.id).filter(LedgerAffiliate.code == candidate).limit(1).first()
    except SQLAlchemyError as e:
        ledger_db.rollback()
        logger.error("Code availability lookup failed", candidate=candidate, error=str(e))
        return Availability.ERROR
    return Availability.TAKEN if row is not None else Availability.AVAILABLE


def check_email_availability(local_db: Session, email: str | None) -> Optional[Availability]:
    """Same contract as :func:`check_code_availability`, against the local store."""
    if not is_checkable_email(email):
        return None
    try:
        row = local_db.query(Affiliate.id).filter(Affiliate.email == email).limit(1).first()
    except SQLAlchemyError as e:
        local_db.rollback()
        logger.error("Email availability lookup failed", error=str(e))
        return Availability.ERROR
    return Availability.TAKEN if row is not None else Availability.AVAILABLE


__all__ = [
    "is_checkable_code",
    "is_checkable_email",
    "check_code_availability",
    "check_email_availability",
]
