"""SendGrid v3 mail-send client.

The client is constructed explicitly by the caller (see
``tixoraa.core.deps.get_email_sender``) and never retries: a failed send is
reported back as a :class:`SendResult` and the caller decides what to do.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tixoraa.core.config import Settings
from tixoraa.core.exceptions import DeliveryError
from tixoraa.integrations.sendgrid.schemas import MailMessage, SendResult
from tixoraa.models.enums import DeliveryOutcome

logger = logging.getLogger(__name__)

MAIL_SEND_PATH = "/v3/mail/send"

_STATUS_KINDS = {
    401: DeliveryOutcome.auth_error,
    403: DeliveryOutcome.sender_unverified,
    429: DeliveryOutcome.rate_limited,
}

_KIND_MESSAGES = {
    DeliveryOutcome.auth_error: "SendGrid rejected the API key",
    DeliveryOutcome.sender_unverified: "SendGrid refused the sender identity",
    DeliveryOutcome.rate_limited: "SendGrid rate limit reached",
    DeliveryOutcome.provider_error: "SendGrid returned an error",
}


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:300]
    errors = data.get("errors") if isinstance(data, dict) else None
    if isinstance(errors, list):
        messages = [str(err.get("message", "")) for err in errors if isinstance(err, dict)]
        return "; ".join(m for m in messages if m)[:300]
    return ""


class SendGridClient:
    def __init__(
        self,
        *,
        api_key: str,
        from_email: str,
        from_name: str = "",
        base_url: str = "https://api.sendgrid.com",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key.strip()
        self.from_email = from_email.strip()
        self.from_name = from_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Settings, *, http_client: httpx.Client | None = None) -> "SendGridClient":
        return cls(
            api_key=settings.SENDGRID_API_KEY,
            from_email=settings.SENDGRID_FROM_EMAIL,
            from_name=settings.SENDGRID_FROM_NAME,
            base_url=settings.SENDGRID_API_BASE_URL,
            timeout=settings.SENDGRID_TIMEOUT_SECONDS,
            http_client=http_client,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.from_email)

    def _payload(self, message: MailMessage) -> dict[str, Any]:
        sender: dict[str, str] = {"email": self.from_email}
        if self.from_name:
            sender["name"] = self.from_name
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": sender,
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }

    def _post(self, client: httpx.Client, message: MailMessage) -> httpx.Response:
        try:
            response = client.post(
                f"{self.base_url}{MAIL_SEND_PATH}",
                json=self._payload(message),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise DeliveryError(DeliveryOutcome.network_error.value, "SendGrid request timed out", detail="timeout") from exc
        except httpx.TransportError as exc:
            raise DeliveryError(
                DeliveryOutcome.network_error.value,
                "Could not reach SendGrid",
                detail=type(exc).__name__,
            ) from exc

        if response.is_success:
            return response
        kind = _STATUS_KINDS.get(response.status_code, DeliveryOutcome.provider_error)
        raise DeliveryError(
            kind.value,
            _KIND_MESSAGES[kind],
            status_code=response.status_code,
            detail=_error_detail(response),
        )

    def send(self, message: MailMessage) -> SendResult:
        if not self.configured:
            logger.warning("SendGrid not configured; skipping send to %s", message.to)
            return SendResult.failed(DeliveryOutcome.not_configured, detail="missing api key or sender")

        try:
            if self._http is not None:
                response = self._post(self._http, message)
            else:
                with httpx.Client() as client:
                    response = self._post(client, message)
        except DeliveryError as exc:
            logger.warning(
                "Email send failed: to=%s kind=%s status=%s detail=%s",
                message.to,
                exc.kind,
                exc.provider_status,
                exc.detail,
            )
            return SendResult.failed(DeliveryOutcome(exc.kind), status_code=exc.provider_status, detail=exc.detail)

        logger.info("Email accepted by SendGrid: to=%s status=%s", message.to, response.status_code)
        return SendResult.accepted(response.status_code, response.headers.get("X-Message-Id"))
