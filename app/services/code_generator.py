"""Deterministic affiliate code generation with bounded collision probing.

The base candidate is ``<first 3 Latin letters of name><last 4 phone digits>``
(``"Somchai Jaidee", "081-234-5678" -> "SOM5678"``). When it is taken the
lookup walks ``base1`` .. ``base5``. If every candidate is taken the last one
is returned anyway and the unique insert later rejects it; ``strict=True``
raises :class:`CodeGenerationError` instead.
"""
from __future__ import annotations

import re
from typing import Awaitable, Callable, Iterator, Optional

from app.config import AFFILIATE_CODE_RULES
from app.errors import CodeGenerationError
from app.models.db.enums import Availability
from app.utils import get_logger

logger = get_logger(__name__)

_LATIN_LETTER = re.compile(r"[A-Za-z]")
_NON_DIGIT = re.compile(r"\D")

AvailabilityLookup = Callable[[str], Optional[Availability]]
AsyncAvailabilityLookup = Callable[[str], Awaitable[Optional[Availability]]]


def generate_affiliate_code(name: str, phone: str) -> str:
    prefix_len = int(AFFILIATE_CODE_RULES["prefix_letters"])
    letters = _LATIN_LETTER.findall(name or "")
    if len(letters) >= prefix_len:
        prefix = "".join(letters[:prefix_len]).upper()
    else:
        prefix = str(AFFILIATE_CODE_RULES["fallback_prefix"])
    digits = _NON_DIGIT.sub("", phone or "")
    suffix_len = int(AFFILIATE_CODE_RULES["phone_suffix_digits"])
    return prefix + digits[-suffix_len:]


def candidate_codes(base: str, attempts: Optional[int] = None) -> Iterator[str]:
    """Yield the base candidate followed by ``attempts`` numerically suffixed ones."""
    attempts = int(attempts if attempts is not None else AFFILIATE_CODE_RULES["collision_attempts"])
    yield base
    for n in range(1, attempts + 1):
        yield f"{base}{n}"


def _exhausted(base: str, last: str, strict: bool) -> str:
    if strict:
        raise CodeGenerationError(
            f"Could not generate a unique affiliate code from '{base}'",
            field="affiliateCode",
        )
    logger.warning("All generated affiliate codes are taken; reusing last candidate", base=base, candidate=last)
    return last


def resolve_unique_code(
    name: str,
    phone: str,
    lookup: AvailabilityLookup,
    *,
    strict: Optional[bool] = None,
) -> str:
    """Return the first candidate the lookup does not report as taken."""
    strict = bool(AFFILIATE_CODE_RULES["strict_generation"]) if strict is None else strict
    base = generate_affiliate_code(name, phone)
    last = base
    for candidate in candidate_codes(base):
        last = candidate
        if lookup(candidate) != Availability.TAKEN:
            return candidate
    return _exhausted(base, last, strict)


async def aresolve_unique_code(
    name: str,
    phone: str,
    lookup: AsyncAvailabilityLookup,
    *,
    strict: Optional[bool] = None,
) -> str:
    """Async twin of :func:`resolve_unique_code` for the HTTP client."""
    strict = bool(AFFILIATE_CODE_RULES["strict_generation"]) if strict is None else strict
    base = generate_affiliate_code(name, phone)
    last = base
    for candidate in candidate_codes(base):
        last = candidate
        if await lookup(candidate) != Availability.TAKEN:
            return candidate
    return _exhausted(base, last, strict)


__all__ = [
    "generate_affiliate_code",
    "candidate_codes",
    "resolve_unique_code",
    "aresolve_unique_code",
]
