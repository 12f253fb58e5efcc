"""Retry delay helpers for the outbound API client."""
from __future__ import annotations

from typing import Optional

from app.config import CLIENT_RETRY_POLICY


def compute_retry_delay(attempt: int, *, step: Optional[float] = None) -> float:
    """Linear backoff: ``step * (attempt + 1)`` for a zero-based attempt index."""
    if attempt < 0:
        attempt = 0
    step = float(step if step is not None else CLIENT_RETRY_POLICY["retry_delay_seconds"])
    return max(step * (attempt + 1), 0.0)


__all__ = ["compute_retry_delay"]
