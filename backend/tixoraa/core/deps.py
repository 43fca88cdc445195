"""Common FastAPI dependencies."""

from __future__ import annotations

from collections.abc import Iterator

import httpx

from tixoraa.core.config import settings
from tixoraa.integrations.sendgrid.client import SendGridClient
from tixoraa.services.email import VerificationEmailSender


def get_email_sender() -> Iterator[VerificationEmailSender]:
    """One SendGrid client per request, closed afterwards; tests override this."""
    with httpx.Client() as http_client:
        client = SendGridClient.from_settings(settings, http_client=http_client)
        yield VerificationEmailSender(client, expire_minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES)
