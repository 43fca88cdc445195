"""Idempotent schema bootstrap for the verification tables."""

from __future__ import annotations

import logging

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from tixoraa.core.exceptions import StorageError
from tixoraa.db.base import Base
from tixoraa import models  # noqa: F401  (registers tables on Base.metadata)
from tixoraa.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)

VERIFICATION_TABLE = VerificationCode.__table__


def _relax_not_null(conn: Connection) -> None:
    # Older deployments declared user_id NOT NULL; email-only codes need it nullable.
    live = {col["name"]: col for col in inspect(conn).get_columns(VERIFICATION_TABLE.name)}
    stale = [
        column
        for column in VERIFICATION_TABLE.columns
        if column.nullable and not column.primary_key and live.get(column.name, {}).get("nullable") is False
    ]
    if not stale:
        return
    op = Operations(MigrationContext.configure(conn))
    with op.batch_alter_table(VERIFICATION_TABLE.name) as batch:
        for column in stale:
            logger.info("Dropping NOT NULL on verification_codes.%s", column.name)
            batch.alter_column(column.name, existing_type=column.type, existing_nullable=False, nullable=True)


def ensure_schema(engine: Engine) -> None:
    """Create missing tables and indexes; safe to call on every start."""
    try:
        with engine.begin() as conn:
            Base.metadata.create_all(bind=conn, checkfirst=True)
            _relax_not_null(conn)
            # Tables created by older deployments may predate some indexes.
            existing = {ix["name"] for ix in inspect(conn).get_indexes(VERIFICATION_TABLE.name)}
            for index in sorted(VERIFICATION_TABLE.indexes, key=lambda ix: str(ix.name)):
                if index.name not in existing:
                    logger.info("Creating missing index %s", index.name)
                    index.create(bind=conn)
    except SQLAlchemyError as exc:
        logger.exception("Schema bootstrap failed")
        raise StorageError("schema_bootstrap_failed", operation="ensure_schema") from exc
    logger.info("Verification schema ready")


def validate_schema(engine: Engine) -> list[str]:
    """Compare the live verification_codes table with the model definition."""
    try:
        inspector = inspect(engine)
        if not inspector.has_table(VERIFICATION_TABLE.name):
            return [f"missing table: {VERIFICATION_TABLE.name}"]
        live_columns = {col["name"]: col for col in inspector.get_columns(VERIFICATION_TABLE.name)}
        live_indexes = {ix["name"] for ix in inspector.get_indexes(VERIFICATION_TABLE.name)}
    except SQLAlchemyError as exc:
        raise StorageError("schema_inspection_failed", operation="validate_schema") from exc

    problems: list[str] = []
    for column in VERIFICATION_TABLE.columns:
        live = live_columns.get(column.name)
        if live is None:
            problems.append(f"missing column: {column.name}")
        elif column.primary_key:
            continue
        elif not column.nullable and live.get("nullable"):
            problems.append(f"column {column.name} should be NOT NULL")
        elif column.nullable and live.get("nullable") is False:
            problems.append(f"column {column.name} should be nullable")
    for index in VERIFICATION_TABLE.indexes:
        if index.name not in live_indexes:
            problems.append(f"missing index: {index.name}")

    for problem in problems:
        logger.warning("verification_codes schema drift: %s", problem)
    return problems
