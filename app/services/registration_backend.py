"""Server-side registration backend: both stores directly plus the SES mailer."""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.models.db.enums import Availability
from app.services.affiliate_store import insert_affiliate
from app.services.availability import check_code_availability
from app.services.email import EmailResult, first_name_of, send_confirmation_email
from app.services.ledger import register_ledger_affiliate
from app.services.registration import RegistrationForm

Mailer = Callable[[str, str, str], EmailResult]


class DatabaseRegistrationBackend:
    def __init__(self, local_db: Session, ledger_db: Session, mailer: Optional[Mailer] = None):
        self.local_db = local_db
        self.ledger_db = ledger_db
        self.mailer = mailer or send_confirmation_email

    async def check_code(self, code: str) -> Optional[Availability]:
        return check_code_availability(self.ledger_db, code)

    async def create_local_affiliate(self, form: RegistrationForm) -> None:
        insert_affiliate(
            self.local_db,
            name=form.name.strip(),
            email=form.email.strip(),
            phone=form.phone_digits,
            affiliate_code=form.affiliate_code,
            note=form.note,
            selected_product=form.selected_product,
            line_user_id=form.line_user_id,
        )

    async def create_ledger_affiliate(self, form: RegistrationForm) -> None:
        register_ledger_affiliate(
            self.ledger_db,
            name=form.name.strip(),
            email=form.email.strip(),
            phone=form.phone_digits,
            code=form.affiliate_code,
        )

    async def send_confirmation(self, form: RegistrationForm) -> bool:
        # Blocking boto3 call
        result = await asyncio.to_thread(self.mailer, form.email.strip(), first_name_of(form.name), form.affiliate_code)
        return result.success


__all__ = ["DatabaseRegistrationBackend"]
