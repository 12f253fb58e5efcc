"""Read-side commission projection for the partner dashboard.

Totals are pre-aggregated by the ledger store and surfaced as-is.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.services.ledger import get_ledger_affiliate


@dataclass(frozen=True)
class DashboardStats:
    total_registrations: int = 0
    total_commission: int = 0
    pending_commission: int = 0
    approved_commission: int = 0

    @property
    def paid_commission(self) -> int:
        # Approximation: counts approved-but-unpaid as paid when the ledger's
        # approved and paid states diverge.
        return self.total_commission - self.pending_commission

    def to_dict(self) -> dict:
        return {
            "totalRegistrations": self.total_registrations,
            "totalCommission": self.total_commission,
            "pendingCommission": self.pending_commission,
            "approvedCommission": self.approved_commission,
            "paidCommission": self.paid_commission,
        }


def get_dashboard(ledger_db: Session, code: str) -> DashboardStats:
    """Stats for ``code``; all zeros when the ledger has no row (partial registration)."""
    record = get_ledger_affiliate(ledger_db, code)
    if record is None:
        return DashboardStats()
    return DashboardStats(
        total_registrations=int(record.total_registrations or 0),
        total_commission=int(record.total_commission or 0),
        pending_commission=int(record.pending_commission or 0),
        approved_commission=int(record.approved_commission or 0),
    )


__all__ = ["DashboardStats", "get_dashboard"]
