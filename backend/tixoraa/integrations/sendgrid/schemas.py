"""Tagged results for SendGrid mail-send calls."""

from __future__ import annotations

from dataclasses import dataclass

from tixoraa.models.enums import DeliveryOutcome


@dataclass(frozen=True)
class SendResult:
    kind: DeliveryOutcome
    status_code: int | None = None
    detail: str = ""
    message_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is DeliveryOutcome.ok

    @classmethod
    def accepted(cls, status_code: int, message_id: str | None = None) -> "SendResult":
        return cls(DeliveryOutcome.ok, status_code=status_code, message_id=message_id)

    @classmethod
    def failed(cls, kind: DeliveryOutcome, *, status_code: int | None = None, detail: str = "") -> "SendResult":
        return cls(kind, status_code=status_code, detail=detail)


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    text: str
    html: str
