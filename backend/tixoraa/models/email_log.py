"""Email log model recording every verification email delivery attempt."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tixoraa.db.base import Base
from tixoraa.models.enums import DeliveryOutcome


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class EmailLog(Base):
    __tablename__ = "email_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    to: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    outcome: Mapped[DeliveryOutcome] = mapped_column(
        Enum(DeliveryOutcome, name="delivery_outcome", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    verification_code_id: Mapped[int | None] = mapped_column(
        ForeignKey("verification_codes.id", ondelete="SET NULL"),
        nullable=True,
    )
    sent_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
