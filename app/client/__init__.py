"""
Async client for the affiliate API.
"""
from .http import AffiliateApiClient
from .availability import DebouncedAvailabilityChecker
from .registration import HttpRegistrationBackend, suggest_affiliate_code, register_over_http

__all__ = [
    "AffiliateApiClient",
    "DebouncedAvailabilityChecker",
    "HttpRegistrationBackend",
    "suggest_affiliate_code",
    "register_over_http",
]
