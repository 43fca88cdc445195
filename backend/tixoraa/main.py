from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tixoraa.core.config import settings
from tixoraa.core.exceptions import TixoraaException
from tixoraa.core.logging import setup_logging
from tixoraa.db.schema import ensure_schema, validate_schema
from tixoraa.db.session import engine
from tixoraa.routers import health, verification

logger = logging.getLogger(__name__)


def _startup_checks() -> None:
    for issue in settings.email_config_issues():
        logger.warning("Email configuration: %s", issue)
    if not settings.AUTO_CREATE_SCHEMA:
        return
    ensure_schema(engine)
    validate_schema(engine)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        _startup_checks()
        yield

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(verification.router, prefix="/api", tags=["verification"])
    app.include_router(health.router, prefix="/api", tags=["health"])

    @app.exception_handler(TixoraaException)
    async def handle_tixoraa_exception(_: Request, exc: TixoraaException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    return app


app = create_app()
