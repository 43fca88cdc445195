"""Verification code lifecycle: issue, deliver and redeem."""

from __future__ import annotations

import datetime as dt
import json
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Any

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from tixoraa.core.config import settings
from tixoraa.core.exceptions import (
    CodeRejectedError,
    InvalidCodeFormatError,
    InvalidEmailError,
    MissingLookupKeyError,
    StorageError,
)
from tixoraa.core.logging import mask_code
from tixoraa.core.sanitize import clean_code, clean_email
from tixoraa.models.enums import DeliveryOutcome, VerificationCodeType
from tixoraa.models.verification_code import VerificationCode, utcnow
from tixoraa.services import code_store
from tixoraa.services.email import VerificationEmailSender, log_delivery

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999
_CODE_RE = re.compile(r"\d{6}")
_EMAIL_ADAPTER = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class CodeRequestResult:
    code_id: int
    email: str
    expires_at: dt.datetime
    delivered: bool
    outcome: DeliveryOutcome


def generate_code() -> str:
    """Six digits in [100000, 999999]; leading zeros never appear."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def normalize_email(email: str) -> str:
    cleaned = clean_email(email)
    try:
        _EMAIL_ADAPTER.validate_python(cleaned)
    except ValidationError:
        raise InvalidEmailError(cleaned) from None
    return cleaned


def normalize_code(code: str) -> str:
    cleaned = clean_code(code)
    if not _CODE_RE.fullmatch(cleaned):
        raise InvalidCodeFormatError()
    return cleaned


def _serialize_metadata(metadata: dict[str, Any] | str | None) -> str:
    if metadata is None:
        return "{}"
    if isinstance(metadata, str):
        return metadata
    return json.dumps(metadata, separators=(",", ":"), sort_keys=True, default=str)


def request_code(
    db: Session,
    sender: VerificationEmailSender,
    *,
    email: str,
    user_id: int | None = None,
    type: str = VerificationCodeType.email_verification.value,
    metadata: dict[str, Any] | str | None = None,
) -> CodeRequestResult:
    """Issue a new code, persist it, then hand it to the email provider.

    A failed send leaves the stored row redeemable. Resending is a new call,
    which issues a fresh code; older rows are left untouched.
    """
    address = normalize_email(email)
    code = generate_code()
    expires_at = utcnow() + dt.timedelta(minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES)

    record = code_store.create_code(
        db,
        email=address,
        code=code,
        user_id=user_id,
        type=type,
        metadata=_serialize_metadata(metadata),
        expires_at=expires_at,
    )

    delivery = sender.send(address, code)
    try:
        log_delivery(db, address, delivery, verification_code_id=record.id)
    except StorageError:
        # The audit row is best effort; the stored code stays redeemable.
        logger.warning("Delivery of verification code %s not logged", record.id)
    if not delivery.success:
        logger.warning(
            "Verification code %s persisted but not delivered (%s)",
            record.id,
            delivery.outcome.kind.value,
        )

    return CodeRequestResult(
        code_id=record.id,
        email=address,
        expires_at=expires_at,
        delivered=delivery.success,
        outcome=delivery.outcome.kind,
    )


def verify_code(
    db: Session,
    *,
    code: str,
    email: str | None = None,
    user_id: int | None = None,
    type: str | None = None,
) -> VerificationCode:
    """Redeem a code, looked up by email when given, otherwise by user id.

    Raises :class:`CodeRejectedError` for wrong, expired and used codes alike.
    """
    value = normalize_code(code)
    now = utcnow()
    if email:
        address = normalize_email(email)
        candidate = code_store.find_by_email_and_code(db, address, value, type=type, now=now)
    elif user_id is not None:
        candidate = code_store.find_by_user_and_code(db, user_id, value, type=type, now=now)
    else:
        raise MissingLookupKeyError()

    candidate_id = candidate.id if candidate is not None else None
    if candidate_id is None or not code_store.claim_code(db, candidate_id, now=now):
        logger.warning(
            "Verification failed: email=%s user_id=%s code=%s",
            email or "-",
            user_id if user_id is not None else "-",
            mask_code(value),
        )
        raise CodeRejectedError()

    redeemed = code_store.get_code(db, candidate_id)
    logger.info("Verification succeeded: id=%s email=%s", candidate_id, redeemed.email if redeemed else "-")
    return redeemed
