from .base import CamelModel, ResponseBase
from .registration import (
    AffiliateRegistrationRequest,
    RegistrationRequest,
    MainSystemRegistrationRequest,
    AffiliateRegistrationResponse,
    LedgerRecordRef,
    MainSystemRegistrationResponse,
    RegistrationResponse,
    CheckAffiliateResponse,
)
from .portal import (
    AffiliateProfileRead,
    DashboardStatsRead,
    DashboardData,
    DashboardResponse,
    ReferralRead,
    ReferralList,
    ReferralListResponse,
    NotificationRead,
    NotificationFeed,
    NotificationFeedResponse,
    ProfileUpdateResponse,
)

__all__ = [
    # Base
    "CamelModel",
    "ResponseBase",

    # Registration
    "AffiliateRegistrationRequest",
    "RegistrationRequest",
    "MainSystemRegistrationRequest",
    "AffiliateRegistrationResponse",
    "LedgerRecordRef",
    "MainSystemRegistrationResponse",
    "RegistrationResponse",
    "CheckAffiliateResponse",

    # Portal
    "AffiliateProfileRead",
    "DashboardStatsRead",
    "DashboardData",
    "DashboardResponse",
    "ReferralRead",
    "ReferralList",
    "ReferralListResponse",
    "NotificationRead",
    "NotificationFeed",
    "NotificationFeedResponse",
    "ProfileUpdateResponse",
]
