"""Verification code request/response schemas."""

from __future__ import annotations

import datetime as dt
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from tixoraa.core.sanitize import clean_code, clean_email, clean_single_line
from tixoraa.models.enums import DeliveryOutcome, VerificationCodeType


def _normalize_type(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = clean_single_line(value).lower()
    return cleaned or None


class RequestCodeRequest(BaseModel):
    email: EmailStr
    user_id: int | None = Field(default=None, ge=1)
    type: str = Field(default=VerificationCodeType.email_verification.value, max_length=50)
    metadata: dict[str, Any] | None = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: str | None) -> str:
        return _normalize_type(value) or VerificationCodeType.email_verification.value


class RequestCodeResponse(BaseModel):
    accepted: bool
    expires_at: dt.datetime | None = None
    delivery: DeliveryOutcome | None = None


class VerifyCodeRequest(BaseModel):
    code: str = Field(min_length=6, max_length=6)
    email: EmailStr | None = None
    user_id: int | None = Field(default=None, ge=1)
    type: str | None = Field(default=None, max_length=50)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return clean_email(value) or None

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = clean_code(value)
        if not re.fullmatch(r"\d{6}", code):
            raise ValueError("invalid_verification_code")
        return code

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: str | None) -> str | None:
        return _normalize_type(value)

    @model_validator(mode="after")
    def require_lookup_key(self) -> "VerifyCodeRequest":
        if self.email is None and self.user_id is None:
            raise ValueError("email_or_user_id_required")
        return self


class VerifyCodeResponse(BaseModel):
    verified: bool


class VerificationCodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None
    email: str
    type: str
    is_used: bool
    expires_at: dt.datetime
    created_at: dt.datetime


class EmailLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subject: str
    outcome: DeliveryOutcome
    status_code: int | None
    verification_code_id: int | None
    sent_at: dt.datetime


class VerificationHistoryOut(BaseModel):
    email: str
    codes: list[VerificationCodeOut]
    deliveries: list[EmailLogOut]
