"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    APP_NAME: str = "Tixoraa"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/tixoraa"
    AUTO_CREATE_SCHEMA: bool = True
    LOG_LEVEL: str = "INFO"

    VERIFICATION_CODE_EXPIRE_MINUTES: int = 30

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""
    SENDGRID_FROM_NAME: str = "Tixoraa Support"
    SENDGRID_API_BASE_URL: str = "https://api.sendgrid.com"
    SENDGRID_TIMEOUT_SECONDS: float = 10.0
    SUPPORT_EMAIL: str = "support@tixoraa.com"

    CORS_ORIGINS: str = "http://localhost:5000"

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 120
    RATE_LIMIT_VERIFICATION_MAX_REQUESTS: int = 20
    RATE_LIMIT_VERIFY_ATTEMPTS_PER_ACCOUNT: int = 10
    # Comma-separated peer addresses whose X-Forwarded-For header is honoured.
    RATE_LIMIT_TRUSTED_PROXIES: str = ""

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    @property
    def trusted_proxies(self) -> set[str]:
        return {addr.strip() for addr in self.RATE_LIMIT_TRUSTED_PROXIES.split(",") if addr.strip()}

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() == "production"

    @property
    def sendgrid_ready(self) -> bool:
        return bool(self.SENDGRID_API_KEY.strip() and self.SENDGRID_FROM_EMAIL.strip())

    def email_config_issues(self) -> list[str]:
        issues: list[str] = []
        api_key = self.SENDGRID_API_KEY.strip()
        if not api_key:
            issues.append("SENDGRID_API_KEY is not set")
        elif not api_key.startswith("SG."):
            issues.append("SENDGRID_API_KEY does not start with 'SG.'")
        if not self.SENDGRID_FROM_EMAIL.strip():
            issues.append("SENDGRID_FROM_EMAIL is not set")
        elif "@" not in self.SENDGRID_FROM_EMAIL:
            issues.append("SENDGRID_FROM_EMAIL is not an email address")
        return issues


settings = Settings()
