"""Notification feed derived from referral records.

Nothing is stored server side. Read state comes from a "last seen" watermark
that lives with the caller: ``NotificationWatermark`` keeps it in a local JSON
file (initialised to the epoch on first read, moved to "now" by
``mark_all_read``, never expiring, not synchronised across devices).
"""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from app.config import NOTIFICATION_SETTINGS
from app.models.db.enums import CommissionStatus, NotificationKind
from app.services.ledger import Referral
from app.utils import get_logger
from app.utils.time import EPOCH, ensure_aware, parse_timestamp, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    id: str
    kind: NotificationKind
    title: str
    message: str
    timestamp: datetime
    read: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
        }


def _format_amount(minor_units: int) -> str:
    return f"฿{minor_units / 100:,.2f}"


def classify_referral(referral: Referral) -> tuple[NotificationKind, str, str]:
    """Map a referral to (kind, title, message) by its commission status."""
    status = (referral.commission_status or "").lower()
    if status == CommissionStatus.PAID.value:
        return (
            NotificationKind.COMMISSION_PAID,
            "Commission paid",
            f"{_format_amount(referral.commission_amount)} from {referral.first_name}",
        )
    if status == CommissionStatus.APPROVED.value:
        return (
            NotificationKind.COMMISSION_APPROVED,
            "Commission approved",
            f"{_format_amount(referral.commission_amount)} from {referral.first_name} awaiting payout",
        )
    full_name = f"{referral.first_name} {referral.last_name}".strip()
    return (
        NotificationKind.NEW_REFERRAL,
        "New referral",
        f"{full_name} registered with your code",
    )


def derive_notifications(
    referrals: Iterable[Referral],
    last_seen: Optional[datetime],
    limit: Optional[int] = None,
) -> List[Notification]:
    """Build the feed for the ``limit`` most recent referrals.

    A notification is read when its referral was created at or before
    ``last_seen``; a missing watermark means everything is unread.
    """
    limit = int(limit if limit is not None else NOTIFICATION_SETTINGS["feed_size"])
    watermark = ensure_aware(last_seen) if last_seen is not None else EPOCH
    recent = sorted(referrals, key=lambda r: ensure_aware(r.created_at), reverse=True)[:limit]
    feed: List[Notification] = []
    for referral in recent:
        kind, title, message = classify_referral(referral)
        created_at = ensure_aware(referral.created_at)
        feed.append(
            Notification(
                id=f"{referral.id}-{kind.value}",
                kind=kind,
                title=title,
                message=message,
                timestamp=created_at,
                read=created_at <= watermark,
            )
        )
    return feed


def unread_count(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)


class NotificationWatermark:
    """Local persisted "last seen" cursor, one entry per user."""

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path or str(NOTIFICATION_SETTINGS["watermark_path"]))
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Notification watermark unreadable; starting fresh", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _store(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def last_seen(self, user_id: str) -> datetime:
        with self._lock:
            data = self._load()
            raw = data.get(user_id)
            if raw is None:
                data[user_id] = EPOCH.isoformat()
                self._store(data)
                return EPOCH
            try:
                return parse_timestamp(raw) or EPOCH
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning("Stored watermark unparseable; treating as unseen", user_id=user_id, error=str(e))
                return EPOCH

    def mark_all_read(self, user_id: str, now: Optional[datetime] = None) -> datetime:
        seen_at = ensure_aware(now) if now is not None else utc_now()
        with self._lock:
            data = self._load()
            data[user_id] = seen_at.isoformat()
            self._store(data)
        return seen_at


__all__ = [
    "Notification",
    "classify_referral",
    "derive_notifications",
    "unread_count",
    "NotificationWatermark",
]
