from __future__ import annotations

import json
import os
import re
import sys
from pathlib import Path

import httpx
import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_tixoraa.db")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from tixoraa.core.config import settings  # noqa: E402
from tixoraa.core.deps import get_email_sender  # noqa: E402
from tixoraa.db.schema import ensure_schema  # noqa: E402
from tixoraa.db.session import build_engine, get_db  # noqa: E402
from tixoraa.integrations.sendgrid.client import SendGridClient  # noqa: E402
from tixoraa.main import app  # noqa: E402
from tixoraa.services.email import VerificationEmailSender  # noqa: E402

_CODE_IN_TEXT = re.compile(r"code for Tixoraa is: (\d{6})")


class MailOutbox:
    """httpx MockTransport handler standing in for SendGrid."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 202
        self.errors: list[dict[str, str]] = []
        self.raise_exc: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"errors": self.errors})
        return httpx.Response(self.status_code, headers={"X-Message-Id": f"msg-{len(self.requests)}"})

    def fail_with(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.errors = [{"message": message}] if message else []

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)

    @property
    def last_code(self) -> str:
        text = next(c["value"] for c in self.last_payload["content"] if c["type"] == "text/plain")
        match = _CODE_IN_TEXT.search(text)
        assert match, text
        return match.group(1)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'verification.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def outbox() -> MailOutbox:
    return MailOutbox()


@pytest.fixture
def sendgrid_client(outbox):
    http_client = httpx.Client(transport=httpx.MockTransport(outbox))
    client = SendGridClient(
        api_key="SG.test-key",
        from_email="noreply@tixoraa.com",
        from_name="Tixoraa Support",
        http_client=http_client,
    )
    yield client
    http_client.close()


@pytest.fixture
def sender(sendgrid_client) -> VerificationEmailSender:
    return VerificationEmailSender(sendgrid_client, expire_minutes=30)


@pytest.fixture
def client(session_factory, sender, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: sender
    yield TestClient(app)
    app.dependency_overrides = {}
