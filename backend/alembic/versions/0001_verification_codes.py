"""verification codes and email logs

Revision ID: 0001_verification_codes
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_verification_codes"
down_revision = None
branch_labels = None
depends_on = None

delivery_outcome = sa.Enum(
    "ok",
    "auth_error",
    "sender_unverified",
    "rate_limited",
    "network_error",
    "provider_error",
    "not_configured",
    name="delivery_outcome",
)


def upgrade() -> None:
    op.create_table(
        "verification_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="email_verification"),
        sa.Column("metadata", sa.Text(), nullable=True, server_default="{}"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_verification_codes_email", "verification_codes", ["email"], unique=False)
    op.create_index("idx_verification_codes_user_id", "verification_codes", ["user_id"], unique=False)
    op.create_index("idx_verification_codes_code", "verification_codes", ["code"], unique=False)
    op.create_index("idx_verification_codes_expires_at", "verification_codes", ["expires_at"], unique=False)

    op.create_table(
        "email_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("to", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("outcome", delivery_outcome, nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("verification_code_id", sa.Integer(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["verification_code_id"], ["verification_codes.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_email_logs_to", "email_logs", ["to"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_email_logs_to", table_name="email_logs")
    op.drop_table("email_logs")
    delivery_outcome.drop(op.get_bind(), checkfirst=True)
    op.drop_index("idx_verification_codes_expires_at", table_name="verification_codes")
    op.drop_index("idx_verification_codes_code", table_name="verification_codes")
    op.drop_index("idx_verification_codes_user_id", table_name="verification_codes")
    op.drop_index("idx_verification_codes_email", table_name="verification_codes")
    op.drop_table("verification_codes")
