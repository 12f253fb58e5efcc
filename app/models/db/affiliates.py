from __future__ import annotations
"""SQLAlchemy model for affiliates in the local/event store."""
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.database import Base

class Affiliate(Base):
    __tablename__ = "affiliates"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(20))
    affiliate_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_product: Mapped[str | None] = mapped_column(String(50), nullable=True)
    line_user_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True, index=True)

    # Bank profile (mutable after registration)
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    bank_account_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_passbook_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
