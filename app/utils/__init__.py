"""
Utilities package initialization.
"""
from .logger import get_logger, log_business_event, log_performance, setup_logging
from .time import utc_now, parse_timestamp, EPOCH

__all__ = [
    "get_logger",
    "log_business_event",
    "log_performance",
    "setup_logging",
    "utc_now",
    "parse_timestamp",
    "EPOCH",
]
