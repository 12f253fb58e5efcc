"""Bank passbook image uploads to Cloudflare R2 (S3-compatible, via boto3)."""
from __future__ import annotations

import re
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import STORAGE_SETTINGS
from app.errors import StorageError, ValidationError
from app.utils import get_logger
from app.utils.time import epoch_millis

logger = get_logger(__name__)

_r2_client = None

# Thai -> Latin transliteration used to build readable object keys
THAI_TO_LATIN = {
    "ก": "k", "ข": "kh", "ค": "kh", "ฆ": "kh", "ง": "ng",
    "จ": "ch", "ฉ": "ch", "ช": "ch", "ซ": "s", "ฌ": "ch", "ญ": "y",
    "ฎ": "d", "ฏ": "t", "ฐ": "th", "ฑ": "th", "ฒ": "th", "ณ": "n",
    "ด": "d", "ต": "t", "ถ": "th", "ท": "th", "ธ": "th", "น": "n",
    "บ": "b", "ป": "p", "ผ": "ph", "ฝ": "f", "พ": "ph", "ฟ": "f", "ภ": "ph", "ม": "m",
    "ย": "y", "ร": "r", "ล": "l", "ว": "w",
    "ศ": "s", "ษ": "s", "ส": "s", "ห": "h", "ฬ": "l", "อ": "o", "ฮ": "h",
    "ะ": "a", "ั": "a", "า": "a", "ำ": "am",
    "ิ": "i", "ี": "i", "ึ": "ue", "ื": "ue", "ุ": "u", "ู": "u",
    "เ": "e", "แ": "ae", "โ": "o", "ใ": "ai", "ไ": "ai",
    "่": "", "้": "", "๊": "", "๋": "", "์": "", "ํ": "",
    "฿": "baht", "๏": "",
    "๐": "0", "๑": "1", "๒": "2", "๓": "3", "๔": "4",
    "๕": "5", "๖": "6", "๗": "7", "๘": "8", "๙": "9",
}

_ASCII_ALNUM = re.compile(r"[a-z0-9]")


def sanitize_filename(name: str) -> str:
    """Slugify a (possibly Thai) account name: ``"นาย ทดสอบ"`` -> ``"nay-thdsob"``."""
    out = []
    for char in (name or "").lower():
        if char in THAI_TO_LATIN:
            out.append(THAI_TO_LATIN[char])
        elif _ASCII_ALNUM.match(char):
            out.append(char)
        elif char in (" ", "-", "_"):
            out.append("-")
    slug = re.sub(r"-+", "-", "".join(out)).strip("-")
    return slug[: int(STORAGE_SETTINGS["max_filename_slug"])]  # type: ignore[arg-type]


def is_storage_configured() -> bool:
    return all(STORAGE_SETTINGS[k] for k in ("account_id", "access_key_id", "secret_access_key", "bucket"))


def get_r2_client():
    global _r2_client
    if _r2_client is None:
        _r2_client = boto3.client(
            "s3",
            region_name="auto",
            endpoint_url=f"https://{STORAGE_SETTINGS['account_id']}.r2.cloudflarestorage.com",
            aws_access_key_id=STORAGE_SETTINGS["access_key_id"],
            aws_secret_access_key=STORAGE_SETTINGS["secret_access_key"],
        )
    return _r2_client


def validate_image(content_type: Optional[str], size: int) -> None:
    allowed = STORAGE_SETTINGS["allowed_content_types"]
    if content_type not in allowed:  # type: ignore[operator]
        raise ValidationError(
            {"passbookImage": "Only JPEG, PNG and WebP images are allowed"},
        )
    if size > int(STORAGE_SETTINGS["max_bytes"]):  # type: ignore[arg-type]
        raise ValidationError({"passbookImage": "Image must not exceed 2MB"})


def build_object_key(original_filename: str, account_name: str, affiliate_code: str, folder: Optional[str] = None) -> str:
    """``{folder}/{CODE}-{slug}-{epoch_ms}.{ext}``"""
    folder = folder or str(STORAGE_SETTINGS["folder"])
    ext = "jpg"
    if original_filename and "." in original_filename:
        ext = original_filename.rsplit(".", 1)[-1].lower() or "jpg"
    return f"{folder}/{affiliate_code}-{sanitize_filename(account_name)}-{epoch_millis()}.{ext}"


def public_url_for(key: str) -> str:
    base = STORAGE_SETTINGS["public_url"]
    if base:
        return f"{str(base).rstrip('/')}/{key}"
    return f"https://{STORAGE_SETTINGS['bucket']}.r2.dev/{key}"


def upload_passbook(
    data: bytes,
    original_filename: str,
    content_type: Optional[str],
    account_name: str,
    affiliate_code: str,
) -> str:
    """Upload the image and return its public URL."""
    if not is_storage_configured():
        raise StorageError("File storage is not configured")
    validate_image(content_type, len(data))
    key = build_object_key(original_filename, account_name, affiliate_code)
    try:
        get_r2_client().put_object(
            Bucket=STORAGE_SETTINGS["bucket"],
            Key=key,
            Body=data,
            ContentType=content_type,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Passbook upload failed", affiliate_code=affiliate_code, key=key, error=str(e))
        raise StorageError("Could not upload passbook image") from e
    logger.info("Passbook uploaded", affiliate_code=affiliate_code, key=key, size=len(data))
    return public_url_for(key)


__all__ = [
    "sanitize_filename",
    "is_storage_configured",
    "get_r2_client",
    "validate_image",
    "build_object_key",
    "public_url_for",
    "upload_passbook",
]
