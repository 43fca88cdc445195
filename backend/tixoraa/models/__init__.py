"""Convenience imports for metadata discovery."""

from tixoraa.models.verification_code import VerificationCode
from tixoraa.models.email_log import EmailLog

__all__ = ["VerificationCode", "EmailLog"]
