"""Health endpoint checking the database and email configuration."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tixoraa.core.config import settings
from tixoraa.db.session import get_db
from tixoraa.schemas.health import HealthOut

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthOut)
def health(db: Session = Depends(get_db)):
    email_issues = settings.email_config_issues()
    email_status = "configured" if not email_issues else "misconfigured"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check failed: database unreachable")
        body = HealthOut(status="unhealthy", database="error", email=email_status, email_issues=email_issues)
        return JSONResponse(status_code=503, content=body.model_dump())
    status = "healthy" if not email_issues else "degraded"
    return HealthOut(status=status, database="connected", email=email_status, email_issues=email_issues)
