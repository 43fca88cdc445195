"""Health check schema."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthOut(BaseModel):
    status: str
    database: str
    email: str
    email_issues: list[str] = Field(default_factory=list)
