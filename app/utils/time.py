"""Time utilities (UTC now, ISO parsing, epoch millis)."""
from __future__ import annotations
from datetime import datetime, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def ensure_aware(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; treat them as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))

def epoch_millis(value: datetime | None = None) -> int:
    return int((value or utc_now()).timestamp() * 1000)

__all__ = ["EPOCH", "utc_now", "ensure_aware", "parse_timestamp", "epoch_millis"]
