"""
Pydantic schemas for the partner portal (dashboard, referrals, notifications, bank profile).
"""
from datetime import datetime
from typing import List, Optional
from pydantic import ConfigDict
from app.models.db.enums import NotificationKind
from .base import CamelModel, ResponseBase

class AffiliateProfileRead(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    affiliate_code: str
    line_user_id: Optional[str] = None
    selected_product: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    bank_account_name: Optional[str] = None
    bank_passbook_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DashboardStatsRead(CamelModel):
    # Integer minor units
    total_registrations: int = 0
    total_commission: int = 0
    pending_commission: int = 0
    approved_commission: int = 0
    paid_commission: int = 0

class DashboardData(CamelModel):
    affiliate: AffiliateProfileRead
    stats: DashboardStatsRead

class DashboardResponse(ResponseBase):
    data: DashboardData

class ReferralRead(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    package_type: str
    commission_amount: int
    commission_status: str
    created_at: datetime

class ReferralList(CamelModel):
    referrals: List[ReferralRead]

class ReferralListResponse(ResponseBase):
    data: ReferralList

class NotificationRead(CamelModel):
    id: str
    type: NotificationKind
    title: str
    message: str
    timestamp: datetime
    read: bool

class NotificationFeed(CamelModel):
    notifications: List[NotificationRead]
    unread_count: int

class NotificationFeedResponse(ResponseBase):
    data: NotificationFeed

class ProfileUpdateResponse(ResponseBase):
    data: AffiliateProfileRead
