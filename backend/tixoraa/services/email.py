"""Verification email composition, delivery and delivery logging."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from html import escape

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tixoraa.core.config import settings
from tixoraa.core.exceptions import StorageError
from tixoraa.integrations.sendgrid.client import SendGridClient
from tixoraa.integrations.sendgrid.schemas import MailMessage, SendResult
from tixoraa.models.email_log import EmailLog
from tixoraa.models.enums import DeliveryOutcome

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Tixoraa Verification Code"


@dataclass(frozen=True)
class DeliveryResult:
    code: str
    success: bool
    outcome: SendResult
    subject: str = VERIFICATION_SUBJECT


def _wrap_email_html(*, title: str, tagline: str, content: str, footer: str) -> str:
    return f"""\
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{escape(title)}</title>
  </head>
  <body style="margin:0;padding:0;background:#f9f9f9;font-family:Arial,sans-serif;color:#333333;">
    <div style="max-width:600px;margin:0 auto;padding:20px;">
      <div style="text-align:center;margin-bottom:20px;">
        <h1 style="color:#4f46e5;margin-bottom:5px;">Tixoraa</h1>
        <p style="color:#666666;font-size:16px;">{escape(tagline)}</p>
      </div>
      <div style="background:#ffffff;border-radius:8px;padding:30px;box-shadow:0 2px 10px rgba(0,0,0,0.08);">
        {content}
      </div>
      <div style="text-align:center;margin-top:20px;color:#999999;font-size:12px;">
        <p>{escape(footer)}</p>
      </div>
    </div>
  </body>
</html>
"""


def build_verification_code_email(code: str, *, expire_minutes: int, year: int | None = None) -> tuple[str, str, str]:
    year = year or dt.datetime.now(dt.timezone.utc).year
    support = settings.SUPPORT_EMAIL
    body = (
        f"Your verification code for Tixoraa is: {code}. "
        f"This code will expire in {expire_minutes} minutes.\n\n"
        "If you didn't request this code, please ignore this email.\n\n"
        f"Need help? Contact our support team at {support}"
    )
    html_content = (
        '<h2 style="color:#333333;margin-top:0;">Verify Your Email</h2>'
        '<p style="color:#555555;font-size:15px;line-height:1.5;">'
        "Please use the verification code below to complete your registration:</p>"
        '<div style="background:#f0f0f0;padding:15px;border-radius:5px;text-align:center;margin:25px 0;'
        'font-size:30px;letter-spacing:5px;font-weight:bold;color:#333333;">'
        f"{escape(code)}</div>"
        '<p style="color:#555555;font-size:14px;line-height:1.5;">'
        f"This code will expire in {expire_minutes} minutes. "
        "If you didn't request this code, please ignore this email.</p>"
        '<p style="color:#555555;font-size:14px;margin-top:25px;">'
        f"Need help? Contact our support team at {escape(support)}</p>"
    )
    html_body = _wrap_email_html(
        title=VERIFICATION_SUBJECT,
        tagline="Your Event Management Platform",
        content=html_content,
        footer=f"© {year} Tixoraa. All rights reserved.",
    )
    return VERIFICATION_SUBJECT, body, html_body


class VerificationEmailSender:
    """Delivers verification codes through an injected SendGrid client.

    ``send`` never raises for provider failures: the result always carries
    the code so the caller can decide whether to resend.
    """

    def __init__(self, client: SendGridClient, *, expire_minutes: int) -> None:
        self.client = client
        self.expire_minutes = expire_minutes

    def send(self, to_email: str, code: str) -> DeliveryResult:
        subject, text, html = build_verification_code_email(code, expire_minutes=self.expire_minutes)
        outcome = self.client.send(MailMessage(to=to_email, subject=subject, text=text, html=html))
        return DeliveryResult(code=code, success=outcome.ok, outcome=outcome, subject=subject)


def log_delivery(
    db: Session,
    to: str,
    result: DeliveryResult,
    *,
    verification_code_id: int | None = None,
) -> EmailLog:
    record = EmailLog(
        to=to,
        subject=result.subject,
        outcome=result.outcome.kind,
        status_code=result.outcome.status_code,
        verification_code_id=verification_code_id,
    )
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Email log write failed: %s", to)
        raise StorageError(operation="log_delivery") from exc
    if result.outcome.kind is DeliveryOutcome.ok:
        logger.info("Email logged: %s (%s)", to, result.outcome.kind.value)
    else:
        logger.warning("Email logged: %s (%s, status=%s)", to, result.outcome.kind.value, result.outcome.status_code)
    return record


def list_deliveries(db: Session, to: str) -> list[EmailLog]:
    return db.query(EmailLog).filter(EmailLog.to == to).order_by(EmailLog.sent_at.desc(), EmailLog.id.desc()).all()
