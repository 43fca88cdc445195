"""Persistence helpers for verification codes.

Every lookup filters on ``is_used = false`` and ``expires_at > now`` in SQL,
so callers only ever see redeemable rows. Redemption goes through
:func:`claim_code`, a single conditional UPDATE, which keeps two concurrent
callers from both consuming the same code.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tixoraa.core.exceptions import StorageError
from tixoraa.core.logging import mask_code
from tixoraa.models.enums import VerificationCodeType
from tixoraa.models.verification_code import VerificationCode, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run(db: Session, operation: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Verification code store failure during %s", operation)
        raise StorageError(operation=operation) from exc


def create_code(
    db: Session,
    *,
    email: str,
    code: str,
    expires_at: dt.datetime,
    user_id: int | None = None,
    type: str = VerificationCodeType.email_verification.value,
    metadata: str | None = "{}",
) -> VerificationCode:
    record = VerificationCode(
        user_id=user_id,
        email=email,
        code=code,
        type=type,
        extra_metadata=metadata if metadata is not None else "{}",
        expires_at=expires_at,
        is_used=False,
        created_at=utcnow(),
    )

    def _insert() -> VerificationCode:
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    created = _run(db, "create", _insert)
    logger.info("Verification code issued: id=%s email=%s type=%s", created.id, email, type)
    return created


def _newest_redeemable(db: Session, *criteria, type: str | None, now: dt.datetime) -> VerificationCode | None:
    filters = [*criteria, VerificationCode.is_used.is_(False), VerificationCode.expires_at > now]
    if type is not None:
        filters.append(VerificationCode.type == type)
    stmt = (
        select(VerificationCode)
        .where(*filters)
        .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
        .limit(1)
    )
    return db.scalars(stmt).first()


def _log_miss(db: Session, key: str, *criteria) -> None:
    # The return contract hides why a lookup failed; the log keeps the reason.
    latest = db.scalars(
        select(VerificationCode).where(*criteria).order_by(VerificationCode.id.desc()).limit(1)
    ).first()
    if latest is None:
        logger.info("Verification lookup miss (%s): no matching code", key)
    elif latest.is_used:
        logger.info("Verification lookup miss (%s): code %s already used", key, latest.id)
    else:
        logger.info("Verification lookup miss (%s): code %s expired", key, latest.id)


def find_by_user_and_code(
    db: Session,
    user_id: int,
    code: str,
    *,
    type: str | None = None,
    now: dt.datetime | None = None,
) -> VerificationCode | None:
    criteria = (VerificationCode.user_id == user_id, VerificationCode.code == code)

    def _lookup() -> VerificationCode | None:
        record = _newest_redeemable(db, *criteria, type=type, now=now or utcnow())
        if record is None:
            _log_miss(db, f"user_id={user_id} code={mask_code(code)}", *criteria)
        return record

    return _run(db, "find_by_user_and_code", _lookup)


def find_by_email_and_code(
    db: Session,
    email: str,
    code: str,
    *,
    type: str | None = None,
    now: dt.datetime | None = None,
) -> VerificationCode | None:
    criteria = (VerificationCode.email == email, VerificationCode.code == code)

    def _lookup() -> VerificationCode | None:
        record = _newest_redeemable(db, *criteria, type=type, now=now or utcnow())
        if record is None:
            _log_miss(db, f"email={email} code={mask_code(code)}", *criteria)
        return record

    return _run(db, "find_by_email_and_code", _lookup)


def find_all_by_email(db: Session, email: str) -> list[VerificationCode]:
    stmt = (
        select(VerificationCode)
        .where(VerificationCode.email == email)
        .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
    )
    return _run(db, "find_all_by_email", lambda: list(db.scalars(stmt).all()))


def claim_code(db: Session, code_id: int, *, now: dt.datetime | None = None) -> bool:
    """Flip ``is_used`` if the row is still redeemable; True only for the winning caller."""
    stmt = (
        update(VerificationCode)
        .where(
            VerificationCode.id == code_id,
            VerificationCode.is_used.is_(False),
            VerificationCode.expires_at > (now or utcnow()),
        )
        .values(is_used=True)
        .execution_options(synchronize_session=False)
    )

    def _claim() -> bool:
        result = db.execute(stmt)
        db.commit()
        return result.rowcount == 1

    claimed = _run(db, "claim", _claim)
    if claimed:
        logger.info("Verification code redeemed: id=%s", code_id)
    else:
        logger.info("Verification code claim lost or stale: id=%s", code_id)
    return claimed


def mark_used(db: Session, code_id: int) -> VerificationCode | None:
    """Mark a code used regardless of expiry. Repeated calls are no-ops."""
    stmt = (
        update(VerificationCode)
        .where(VerificationCode.id == code_id, VerificationCode.is_used.is_(False))
        .values(is_used=True)
        .execution_options(synchronize_session=False)
    )

    def _mark() -> VerificationCode | None:
        result = db.execute(stmt)
        db.commit()
        record = db.get(VerificationCode, code_id, populate_existing=True)
        if record is not None and result.rowcount == 0:
            logger.info("Verification code %s was already used", code_id)
        return record

    return _run(db, "mark_used", _mark)


def get_code(db: Session, code_id: int) -> VerificationCode | None:
    return _run(db, "get", lambda: db.get(VerificationCode, code_id, populate_existing=True))
