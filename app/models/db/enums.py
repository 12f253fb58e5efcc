"""Central Enum definitions for core domain states.

These replace scattered string literals to ensure consistency across
DB models, schemas, and business logic.
"""
from __future__ import annotations
import enum


class Availability(str, enum.Enum):
    AVAILABLE = "available"
    TAKEN = "taken"
    ERROR = "error"


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class PackageType(str, enum.Enum):
    SINGLE = "single"
    DUO = "duo"


class RegistrationState(str, enum.Enum):
    COLLECTING_INFO = "COLLECTING_INFO"
    VALIDATING = "VALIDATING"
    CHECKING_CODE = "CHECKING_CODE"
    SUBMITTING_LOCAL = "SUBMITTING_LOCAL"
    SUBMITTING_LEDGER = "SUBMITTING_LEDGER"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    DONE = "DONE"


class NotificationKind(str, enum.Enum):
    NEW_REFERRAL = "new_referral"
    COMMISSION_APPROVED = "commission_approved"
    COMMISSION_PAID = "commission_paid"


__all__ = [
    "Availability",
    "CommissionStatus",
    "PackageType",
    "RegistrationState",
    "NotificationKind",
]
