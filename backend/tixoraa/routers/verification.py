"""Verification code endpoints (request, verify, history)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tixoraa.core.config import settings
from tixoraa.core.deps import get_email_sender
from tixoraa.core.exceptions import CodeRejectedError, NotFoundError
from tixoraa.core.rate_limit import limit_verification_attempts, rate_limit
from tixoraa.db.session import get_db
from tixoraa.schemas.verification import (
    EmailLogOut,
    RequestCodeRequest,
    RequestCodeResponse,
    VerificationCodeOut,
    VerificationHistoryOut,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from tixoraa.services import code_store
from tixoraa.services.email import VerificationEmailSender, list_deliveries
from tixoraa.services.verification import normalize_email, request_code, verify_code

router = APIRouter(dependencies=[Depends(rate_limit("verification"))])
logger = logging.getLogger(__name__)


@router.post("/request-code", response_model=RequestCodeResponse)
def request_verification_code(
    payload: RequestCodeRequest,
    db: Session = Depends(get_db),
    sender: VerificationEmailSender = Depends(get_email_sender),
) -> RequestCodeResponse:
    result = request_code(
        db,
        sender,
        email=payload.email,
        user_id=payload.user_id,
        type=payload.type,
        metadata=payload.metadata,
    )
    return RequestCodeResponse(
        accepted=result.delivered,
        expires_at=result.expires_at,
        delivery=result.outcome,
    )


@router.post("/verify-code", response_model=VerifyCodeResponse)
def verify_verification_code(payload: VerifyCodeRequest, db: Session = Depends(get_db)) -> VerifyCodeResponse:
    limit_verification_attempts(email=payload.email, user_id=payload.user_id)
    try:
        verify_code(
            db,
            code=payload.code,
            email=payload.email,
            user_id=payload.user_id,
            type=payload.type,
        )
    except CodeRejectedError:
        return VerifyCodeResponse(verified=False)
    return VerifyCodeResponse(verified=True)


@router.get("/verification-codes", response_model=VerificationHistoryOut)
def list_verification_codes(
    email: str = Query(min_length=3, max_length=255),
    db: Session = Depends(get_db),
) -> VerificationHistoryOut:
    if settings.is_production:
        raise NotFoundError()
    address = normalize_email(email)
    codes = code_store.find_all_by_email(db, address)
    deliveries = list_deliveries(db, address)
    logger.info("Verification history listed: %s (%d codes)", address, len(codes))
    return VerificationHistoryOut(
        email=address,
        codes=[VerificationCodeOut.model_validate(c) for c in codes],
        deliveries=[EmailLogOut.model_validate(d) for d in deliveries],
    )
