from __future__ import annotations
"""SQLAlchemy models for the ledger ("main system") store.

`LedgerAffiliate` is written once by the registration workflow. Its running
totals and every `LedgerRegistration` row are maintained by the external
commission-processing path; this service only reads them.
"""
import uuid
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.database import LedgerBase


def _new_id() -> str:
    return str(uuid.uuid4())


class LedgerAffiliate(LedgerBase):
    __tablename__ = "bootcamp_affiliates"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True)

    commission_type: Mapped[str] = mapped_column(String(20), default="fixed")
    commission_value: Mapped[int] = mapped_column(Integer, default=0)
    discount_type: Mapped[str] = mapped_column(String(20), default="fixed")
    discount_value: Mapped[int] = mapped_column(Integer, default=0)

    # Per-package configuration, integer minor units
    single_commission_value: Mapped[int] = mapped_column(Integer, default=0)
    single_discount_value: Mapped[int] = mapped_column(Integer, default=0)
    duo_commission_value: Mapped[int] = mapped_column(Integer, default=0)
    duo_discount_value: Mapped[int] = mapped_column(Integer, default=0)

    # Running totals, accumulated externally
    total_registrations: Mapped[int] = mapped_column(Integer, default=0)
    total_commission: Mapped[int] = mapped_column(Integer, default=0)
    pending_commission: Mapped[int] = mapped_column(Integer, default=0)
    approved_commission: Mapped[int] = mapped_column(Integer, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class LedgerRegistration(LedgerBase):
    """A customer purchase attributed to an affiliate code."""
    __tablename__ = "bootcamp_registrations"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    customer_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    package_code: Mapped[str] = mapped_column(String(20), default="single")
    package_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, default=0)
    # Commission status: pending | approved | paid | rejected
    status: Mapped[str] = mapped_column(String(20), default="pending")
    payment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    affiliate_code: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
