"""Verification code model used for email confirmation."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tixoraa.db.base import Base
from tixoraa.models.enums import VerificationCodeType


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    code: Mapped[str] = mapped_column(String(10), index=True, nullable=False)
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=VerificationCodeType.email_verification.value,
    )
    # "metadata" is reserved on declarative classes, hence the attribute name.
    extra_metadata: Mapped[str | None] = mapped_column("metadata", Text, nullable=True, default="{}")
    expires_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def is_expired(self, now: dt.datetime | None = None) -> bool:
        return as_utc(self.expires_at) <= (now or utcnow())

    def is_redeemable(self, now: dt.datetime | None = None) -> bool:
        return not self.is_used and not self.is_expired(now)

    def __repr__(self) -> str:
        return (
            f"<VerificationCode id={self.id} email={self.email!r} type={self.type!r} "
            f"is_used={self.is_used} expires_at={self.expires_at}>"
        )
