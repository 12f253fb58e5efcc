"""Core application configuration & tunable business rules.

Every rule that may evolve (code format, commission constants, retry policy,
rate limits, storage limits) is centralized here so it can be adjusted
without diving into service logic. Values are read from environment variables
at import time with sensible local defaults; tests monkeypatch the dicts
directly.
"""
from __future__ import annotations

import os

# ------------------------------- Databases -------------------------------- #
# Local/event store: affiliate profiles + bank data owned by this service.
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+pysqlite:///./affiliates.db")
# Ledger ("main system") store: commission-bearing affiliate records.
LEDGER_DATABASE_URL: str = os.getenv("LEDGER_DATABASE_URL", "sqlite+pysqlite:///./ledger.db")

DB_POOL_SETTINGS: dict[str, int] = {
	"pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
	"pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "1800")),
	"connect_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
}

# ----------------------------- Affiliate code ----------------------------- #
AFFILIATE_CODE_RULES: dict[str, int | str | bool] = {
	"min_length": 3,
	"max_length": 10,
	"pattern": r"^[A-Z0-9]+$",
	# Used when the display name has fewer than 3 Latin letters
	"fallback_prefix": "AIYA",
	"prefix_letters": 3,
	"phone_suffix_digits": 4,
	# Suffixed attempts after the base candidate (base, base1 .. base5)
	"collision_attempts": 5,
	# Raise instead of reusing the last taken candidate
	"strict_generation": os.getenv("STRICT_CODE_GENERATION", "false").lower() == "true",
}

PHONE_RULES: dict[str, int] = {
	"min_digits": 9,
	"max_digits": 10,
}

EMAIL_PATTERN: str = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

# ------------------------------- Commission ------------------------------- #
# Amounts in major currency units (THB); persisted x100 as integer minor units.
COMMISSION_SETTINGS: dict[str, int | str] = {
	"commission_type": "fixed",
	"discount_type": "fixed",
	"single_commission": 3_000,
	"single_discount": 1_000,
	"duo_commission": 7_000,
	"duo_discount": 2_000,
	"minor_unit_multiplier": 100,
}

# ------------------------------ HTTP client ------------------------------- #
CLIENT_RETRY_POLICY: dict[str, float | int] = {
	"timeout_seconds": 30.0,
	"retries": 2,
	# Linear: delay * (attempt + 1)
	"retry_delay_seconds": 1.0,
}

API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3000")

AVAILABILITY_DEBOUNCE_SECONDS: float = float(os.getenv("AVAILABILITY_DEBOUNCE_SECONDS", "0.5"))

# ------------------------------ Rate limiting ----------------------------- #
RATE_LIMIT_SETTINGS: dict[str, dict[str, int]] = {
	# Per client IP on the registration endpoints
	"registration": {"limit": 3, "window_seconds": 60},
}
RATE_LIMITED_PATHS: tuple[str, ...] = (
	"/api/register-affiliate",
	"/api/register",
)

# --------------------------------- Email ---------------------------------- #
EMAIL_SETTINGS: dict[str, str | bool] = {
	"enabled": os.getenv("EMAIL_ENABLED", "true").lower() == "true",
	"aws_region": os.getenv("AWS_REGION", "ap-southeast-1"),
	"sender": os.getenv("SENDER_EMAIL", "no-reply@aiya.ai"),
	"subject": "Affiliate registration confirmed",
}

# -------------------------------- Storage --------------------------------- #
STORAGE_SETTINGS: dict[str, object] = {
	"account_id": os.getenv("R2_ACCOUNT_ID") or None,
	"access_key_id": os.getenv("R2_ACCESS_KEY_ID") or None,
	"secret_access_key": os.getenv("R2_SECRET_ACCESS_KEY") or None,
	"bucket": os.getenv("R2_BUCKET_NAME") or None,
	"public_url": os.getenv("R2_PUBLIC_URL") or None,
	"folder": "passbooks",
	"allowed_content_types": ("image/jpeg", "image/jpg", "image/png", "image/webp"),
	"max_bytes": 2 * 1024 * 1024,
	"max_filename_slug": 50,
}

BANK_ACCOUNT_RULES: dict[str, int] = {
	"min_digits": 10,
	"max_digits": 12,
}

# ------------------------------ Partner portal ---------------------------- #
PORTAL_SETTINGS: dict[str, int | str] = {
	"referral_history_limit": int(os.getenv("REFERRAL_HISTORY_LIMIT", "50")),
	"referral_link_base": os.getenv("REFERRAL_LINK_BASE", "https://aiya-bootcamp.vercel.app/tickets?referral="),
}

NOTIFICATION_SETTINGS: dict[str, int | str] = {
	"feed_size": 10,
	"watermark_path": os.getenv("NOTIFICATION_WATERMARK_PATH", ".state/notifications_last_seen.json"),
}

# --------------------------------- Service -------------------------------- #
CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str = os.getenv("LOG_FILE", "logs/app.log")

__all__ = [
	"DATABASE_URL",
	"LEDGER_DATABASE_URL",
	"DB_POOL_SETTINGS",
	"AFFILIATE_CODE_RULES",
	"PHONE_RULES",
	"EMAIL_PATTERN",
	"COMMISSION_SETTINGS",
	"CLIENT_RETRY_POLICY",
	"API_BASE_URL",
	"AVAILABILITY_DEBOUNCE_SECONDS",
	"RATE_LIMIT_SETTINGS",
	"RATE_LIMITED_PATHS",
	"EMAIL_SETTINGS",
	"STORAGE_SETTINGS",
	"BANK_ACCOUNT_RULES",
	"PORTAL_SETTINGS",
	"NOTIFICATION_SETTINGS",
	"CORS_ORIGINS",
	"LOG_LEVEL",
	"LOG_FILE",
]
