from .affiliates import Affiliate
from .ledger import LedgerAffiliate, LedgerRegistration
from .enums import Availability, CommissionStatus, PackageType, RegistrationState, NotificationKind

__all__ = [
    "Affiliate",
    "LedgerAffiliate",
    "LedgerRegistration",
    "Availability",
    "CommissionStatus",
    "PackageType",
    "RegistrationState",
    "NotificationKind",
]
