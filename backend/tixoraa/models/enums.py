"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class VerificationCodeType(str, enum.Enum):
    """Well-known purposes; the column itself accepts any string."""

    email_verification = "email_verification"
    signup = "signup"
    password_reset = "password_reset"


class DeliveryOutcome(str, enum.Enum):
    ok = "ok"
    auth_error = "auth_error"
    sender_unverified = "sender_unverified"
    rate_limited = "rate_limited"
    network_error = "network_error"
    provider_error = "provider_error"
    not_configured = "not_configured"
