"""Confirmation email delivery through AWS SES (boto3).

Sending is best effort: failures are logged and reported through
``EmailResult.success`` and never raised to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import EMAIL_SETTINGS, PORTAL_SETTINGS
from app.utils import get_logger

logger = get_logger(__name__)

_ses_client = None


@dataclass(frozen=True)
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def get_ses_client():
    global _ses_client
    if _ses_client is None:
        _ses_client = boto3.client("ses", region_name=str(EMAIL_SETTINGS["aws_region"]))
    return _ses_client


def first_name_of(full_name: str) -> str:
    parts = (full_name or "").strip().split()
    return parts[0] if parts else ""


def render_confirmation_html(first_name: str, affiliate_code: str) -> str:
    name = escape(first_name)
    code = escape(affiliate_code)
    link = escape(f"{PORTAL_SETTINGS['referral_link_base']}{affiliate_code}")
    return f"""<!DOCTYPE html>
<html lang="en">
<body style="margin:0;padding:0;font-family:'Segoe UI',Tahoma,sans-serif;background-color:#020c17;color:#ffffff;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0">
    <tr><td align="center" style="padding:40px 0;">
      <table role="presentation" width="600" cellspacing="0" cellpadding="0" style="background-color:#0b1623;border-radius:24px;">
        <tr><td style="padding:40px;">
          <h2 style="text-align:center;">Welcome to the AIYA Affiliate Program!</h2>
          <p>Hi <strong>{name}</strong>,</p>
          <p>Thanks for joining as a partner. You can start referring customers and earning commission right away.</p>
          <div style="background:#3A23B5;border-radius:16px;padding:30px;text-align:center;">
            <p style="margin:0 0 10px 0;font-size:14px;">YOUR AFFILIATE CODE</p>
            <p style="margin:0;font-size:32px;font-weight:700;letter-spacing:3px;font-family:'Courier New',monospace;">{code}</p>
          </div>
          <p>Share your referral link: <a href="{link}" style="color:#a5b4fc;">{link}</a></p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def render_confirmation_text(first_name: str, affiliate_code: str) -> str:
    return (
        f"Hi {first_name},\n\n"
        "Thanks for joining the AIYA Affiliate Program.\n"
        f"Your affiliate code: {affiliate_code}\n"
        f"Referral link: {PORTAL_SETTINGS['referral_link_base']}{affiliate_code}\n"
    )


def send_confirmation_email(to_email: str, first_name: str, affiliate_code: str) -> EmailResult:
    if not EMAIL_SETTINGS["enabled"]:
        logger.info("Email delivery disabled; skipping confirmation", affiliate_code=affiliate_code)
        return EmailResult(success=False, error="email_disabled")
    try:
        response = get_ses_client().send_email(
            Source=str(EMAIL_SETTINGS["sender"]),
            Destination={"ToAddresses": [to_email]},
            Message={
                "Subject": {"Data": str(EMAIL_SETTINGS["subject"]), "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": render_confirmation_html(first_name, affiliate_code), "Charset": "UTF-8"},
                    "Text": {"Data": render_confirmation_text(first_name, affiliate_code), "Charset": "UTF-8"},
                },
            },
        )
    except (BotoCoreError, ClientError) as e:
        logger.warning("Confirmation email failed", affiliate_code=affiliate_code, error=str(e))
        return EmailResult(success=False, error=str(e))
    message_id = response.get("MessageId")
    logger.info("Confirmation email sent", affiliate_code=affiliate_code, message_id=message_id)
    return EmailResult(success=True, message_id=message_id)


__all__ = [
    "EmailResult",
    "get_ses_client",
    "first_name_of",
    "render_confirmation_html",
    "render_confirmation_text",
    "send_confirmation_email",
]
