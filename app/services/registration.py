"""Registration workflow.

``RegistrationOrchestrator.submit`` walks a single registration through

    COLLECTING_INFO -> VALIDATING -> CHECKING_CODE -> SUBMITTING_LOCAL
                    -> SUBMITTING_LEDGER -> DONE

Validation and conflict failures return the workflow to COLLECTING_INFO by
raising; nothing has been written at that point. Once the local insert
commits the workflow always reaches DONE: a ledger failure is recorded as
PARTIAL_SUCCESS on the result and an email failure only clears
``email_sent``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from app.config import AFFILIATE_CODE_RULES, EMAIL_PATTERN, PHONE_RULES
from app.errors import ConflictError, PartialFailureError, ValidationError
from app.models.db.enums import Availability, RegistrationState
from app.utils import get_logger, log_business_event

logger = get_logger(__name__)

_EMAIL_RE = re.compile(EMAIL_PATTERN)
_CODE_RE = re.compile(
    r"^[A-Z0-9]{%d,%d}$" % (int(AFFILIATE_CODE_RULES["min_length"]), int(AFFILIATE_CODE_RULES["max_length"]))
)
_NON_DIGIT = re.compile(r"\D")


@dataclass
class RegistrationForm:
    name: str
    email: str
    phone: str
    affiliate_code: str
    pdpa_consent: bool = False
    note: Optional[str] = None
    selected_product: Optional[str] = None
    line_user_id: Optional[str] = None

    @property
    def phone_digits(self) -> str:
        return _NON_DIGIT.sub("", self.phone or "")


def validate_registration(form: RegistrationForm) -> Dict[str, str]:
    """Per-field error messages; empty when the form is submittable."""
    errors: Dict[str, str] = {}
    if not (form.name or "").strip():
        errors["name"] = "Name is required"
    if not _EMAIL_RE.match((form.email or "").strip()):
        errors["email"] = "Invalid email address"
    digits = len(form.phone_digits)
    if not PHONE_RULES["min_digits"] <= digits <= PHONE_RULES["max_digits"]:
        errors["phone"] = "Phone number must have 9-10 digits"
    if not _CODE_RE.match(form.affiliate_code or ""):
        errors["affiliateCode"] = "Affiliate code must be 3-10 uppercase letters or digits"
    if not form.pdpa_consent:
        errors["pdpaConsent"] = "Consent to data processing is required"
    return errors


class RegistrationBackend(Protocol):
    """Side effects the workflow needs; implemented against the databases or the HTTP API."""

    async def check_code(self, code: str) -> Optional[Availability]:
        ...

    async def create_local_affiliate(self, form: RegistrationForm) -> None:
        ...

    async def create_ledger_affiliate(self, form: RegistrationForm) -> None:
        ...

    async def send_confirmation(self, form: RegistrationForm) -> bool:
        ...


@dataclass
class RegistrationResult:
    affiliate_code: str
    email_sent: bool
    main_system_success: bool
    state: RegistrationState
    history: List[RegistrationState] = field(default_factory=list)
    partial_failure: Optional[PartialFailureError] = None

    def to_dict(self) -> dict:
        return {
            "affiliateCode": self.affiliate_code,
            "emailSent": self.email_sent,
            "mainSystemSuccess": self.main_system_success,
        }


class RegistrationOrchestrator:
    def __init__(self, backend: RegistrationBackend):
        self.backend = backend
        self.state = RegistrationState.COLLECTING_INFO
        self.history: List[RegistrationState] = [self.state]

    def _transition(self, state: RegistrationState) -> None:
        logger.debug("Registration state change", from_state=self.state.value, to_state=state.value)
        self.state = state
        self.history.append(state)

    def _back_to_form(self) -> None:
        self._transition(RegistrationState.COLLECTING_INFO)

    async def submit(self, form: RegistrationForm) -> RegistrationResult:
        self._transition(RegistrationState.VALIDATING)
        errors = validate_registration(form)
        if errors:
            self._back_to_form()
            raise ValidationError(errors)

        self._transition(RegistrationState.CHECKING_CODE)
        availability = await self.backend.check_code(form.affiliate_code)
        if availability == Availability.TAKEN:
            self._back_to_form()
            raise ConflictError("This affiliate code is already in use", field="affiliateCode")
        if availability == Availability.ERROR:
            logger.warning("Code availability unknown; relying on insert constraint", affiliate_code=form.affiliate_code)

        self._transition(RegistrationState.SUBMITTING_LOCAL)
        try:
            await self.backend.create_local_affiliate(form)
        except (ConflictError, ValidationError):
            self._back_to_form()
            raise

        self._transition(RegistrationState.SUBMITTING_LEDGER)
        partial_failure: Optional[PartialFailureError] = None
        try:
            await self.backend.create_ledger_affiliate(form)
        except Exception as e:
            partial_failure = PartialFailureError(
                "Registered locally but the commission ledger write failed",
                affiliate_code=form.affiliate_code,
                cause=e,
            )
            logger.error(
                "Ledger replication failed after local registration",
                affiliate_code=form.affiliate_code,
                error=str(e),
                exc_info=True,
            )
            log_business_event(
                "ledger_replication_failed",
                {"error": str(e), "error_type": type(e).__name__},
                affiliate_code=form.affiliate_code,
            )
            self._transition(RegistrationState.PARTIAL_SUCCESS)

        email_sent = await self.backend.send_confirmation(form)

        self._transition(RegistrationState.DONE)
        log_business_event(
            "affiliate_registered",
            {"email_sent": email_sent, "main_system_success": partial_failure is None},
            affiliate_code=form.affiliate_code,
        )
        return RegistrationResult(
            affiliate_code=form.affiliate_code,
            email_sent=email_sent,
            main_system_success=partial_failure is None,
            state=self.state,
            history=list(self.history),
            partial_failure=partial_failure,
        )


__all__ = [
    "RegistrationForm",
    "validate_registration",
    "RegistrationBackend",
    "RegistrationResult",
    "RegistrationOrchestrator",
]
