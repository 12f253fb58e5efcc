"""
Pydantic schemas for affiliate registration.
"""
import re
from typing import Optional
from pydantic import ConfigDict, EmailStr, Field
from .base import CamelModel, ResponseBase

_NON_DIGIT = re.compile(r"\D")

class AffiliateRegistrationRequest(CamelModel):
    """Local-store registration, as submitted by the registration wizard."""
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=30)
    affiliate_code: str = Field(pattern=r"^[A-Z0-9]{3,10}$")
    note: Optional[str] = Field(None, max_length=2000)
    selected_product: Optional[str] = Field(None, max_length=50)
    pdpa_consent: bool = False
    line_user_id: Optional[str] = Field(None, max_length=64)

    @property
    def phone_digits(self) -> str:
        return _NON_DIGIT.sub("", self.phone)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Somchai Jaidee",
                "email": "somchai@example.com",
                "phone": "081-234-5678",
                "affiliateCode": "SOM5678",
                "selectedProduct": "single_package",
                "pdpaConsent": True,
            }
        }
    )

class RegistrationRequest(CamelModel):
    """
    Full server-side workflow input. Fields are deliberately loose: the
    workflow validates them itself and reports every failing field at once.
    """
    name: str = ""
    email: str = ""
    phone: str = ""
    affiliate_code: str = ""
    note: Optional[str] = None
    selected_product: Optional[str] = None
    pdpa_consent: bool = False
    line_user_id: Optional[str] = None

class MainSystemRegistrationRequest(CamelModel):
    """Ledger ("main system") registration."""
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    tel: str = Field(min_length=1, max_length=30)
    generated_code: str = Field(pattern=r"^[A-Z0-9]{3,10}$")

    @property
    def tel_digits(self) -> str:
        return _NON_DIGIT.sub("", self.tel)

class AffiliateRegistrationResponse(ResponseBase):
    affiliate_id: int
    affiliate_code: str
    email_sent: bool

class LedgerRecordRef(CamelModel):
    id: str
    code: str

class MainSystemRegistrationResponse(ResponseBase):
    data: LedgerRecordRef

class RegistrationResponse(ResponseBase):
    affiliate_code: str
    email_sent: bool
    main_system_success: bool

class CheckAffiliateResponse(CamelModel):
    exists: bool
