from __future__ import annotations

import datetime as dt
import json

import pytest

from tixoraa.core.exceptions import (
    CodeRejectedError,
    InvalidCodeFormatError,
    InvalidEmailError,
    MissingLookupKeyError,
    StorageError,
)
from tixoraa.models.email_log import EmailLog
from tixoraa.models.enums import DeliveryOutcome
from tixoraa.services import code_store, verification
from tixoraa.services.email import build_verification_code_email


def test_end_to_end_issue_deliver_redeem(db, sender, outbox, monkeypatch) -> None:
    monkeypatch.setattr(verification, "generate_code", lambda: "654321")

    result = verification.request_code(db, sender, email="user@test.com", user_id=42)

    assert result.delivered is True
    assert result.outcome is DeliveryOutcome.ok
    assert outbox.last_code == "654321"
    remaining = result.expires_at - dt.datetime.now(dt.timezone.utc)
    assert dt.timedelta(minutes=29) < remaining <= dt.timedelta(minutes=30)

    found = code_store.find_by_user_and_code(db, 42, "654321")
    assert found is not None and found.id == result.code_id

    redeemed = verification.verify_code(db, email="user@test.com", code="654321")
    assert redeemed.id == result.code_id
    assert redeemed.is_used is True

    assert code_store.find_by_user_and_code(db, 42, "654321") is None
    with pytest.raises(CodeRejectedError):
        verification.verify_code(db, email="user@test.com", code="654321")


def test_delivery_failure_keeps_code_redeemable(db, sender, outbox) -> None:
    outbox.fail_with(403, "The from address does not match a verified Sender Identity.")

    result = verification.request_code(db, sender, email="user@test.com")

    assert result.delivered is False
    assert result.outcome is DeliveryOutcome.sender_unverified
    code = outbox.last_code

    redeemed = verification.verify_code(db, email="user@test.com", code=code)
    assert redeemed.id == result.code_id


def test_each_attempt_is_logged_without_the_code(db, sender, outbox) -> None:
    verification.request_code(db, sender, email="user@test.com")
    outbox.fail_with(429)
    result = verification.request_code(db, sender, email="user@test.com")

    logs = db.query(EmailLog).order_by(EmailLog.id).all()

    assert [log.outcome for log in logs] == [DeliveryOutcome.ok, DeliveryOutcome.rate_limited]
    assert logs[1].status_code == 429
    assert logs[1].verification_code_id == result.code_id
    assert logs[1].subject == "Tixoraa Verification Code"


def test_resend_issues_new_code_and_keeps_history(db, sender, outbox) -> None:
    first = verification.request_code(db, sender, email="user@test.com")
    first_code = outbox.last_code
    second = verification.request_code(db, sender, email="user@test.com")

    assert second.code_id != first.code_id
    history = code_store.find_all_by_email(db, "user@test.com")
    assert [r.id for r in history] == [second.code_id, first.code_id]
    # Older code stays valid until it expires or is used.
    assert verification.verify_code(db, email="user@test.com", code=first_code).id == first.code_id


def test_email_is_normalized_before_storage(db, sender) -> None:
    result = verification.request_code(db, sender, email="  User@Test.COM ")

    assert result.email == "user@test.com"
    assert code_store.get_code(db, result.code_id).email == "user@test.com"


def test_metadata_dict_is_serialized(db, sender) -> None:
    result = verification.request_code(
        db,
        sender,
        email="user@test.com",
        type="signup",
        metadata={"source": "checkout", "event_id": 12},
    )

    record = code_store.get_code(db, result.code_id)
    assert record.type == "signup"
    assert json.loads(record.extra_metadata) == {"event_id": 12, "source": "checkout"}


def test_invalid_email_rejected_before_storage_or_network(db, sender, outbox) -> None:
    with pytest.raises(InvalidEmailError):
        verification.request_code(db, sender, email="not-an-email")

    assert outbox.requests == []
    assert code_store.find_all_by_email(db, "not-an-email") == []


@pytest.mark.parametrize("bad_code", ["12345", "1234567", "abcdef", ""])
def test_malformed_code_is_rejected(db, bad_code) -> None:
    with pytest.raises(InvalidCodeFormatError):
        verification.verify_code(db, email="user@test.com", code=bad_code)


def test_verify_requires_email_or_user_id(db) -> None:
    with pytest.raises(MissingLookupKeyError):
        verification.verify_code(db, code="123456")


def test_verify_by_user_id(db, sender, outbox) -> None:
    result = verification.request_code(db, sender, email="user@test.com", user_id=5)

    redeemed = verification.verify_code(db, user_id=5, code=outbox.last_code)

    assert redeemed.id == result.code_id


def test_wrong_expired_and_used_codes_are_indistinguishable(db, sender, outbox, monkeypatch) -> None:
    verification.request_code(db, sender, email="user@test.com")
    code = outbox.last_code
    wrong = "100000" if code != "100000" else "100001"

    with pytest.raises(CodeRejectedError) as wrong_exc:
        verification.verify_code(db, email="user@test.com", code=wrong)

    verification.verify_code(db, email="user@test.com", code=code)
    with pytest.raises(CodeRejectedError) as used_exc:
        verification.verify_code(db, email="user@test.com", code=code)

    verification.request_code(db, sender, email="user@test.com")
    fresh = outbox.last_code
    later = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=31)
    monkeypatch.setattr(verification, "utcnow", lambda: later)
    with pytest.raises(CodeRejectedError) as expired_exc:
        verification.verify_code(db, email="user@test.com", code=fresh)

    assert wrong_exc.value.to_dict() == used_exc.value.to_dict() == expired_exc.value.to_dict()


def test_verification_email_template() -> None:
    subject, text, html = build_verification_code_email("482915", expire_minutes=30, year=2026)

    assert subject == "Tixoraa Verification Code"
    assert "482915" in text
    assert "expire in 30 minutes" in text
    assert "482915" in html
    assert "© 2026 Tixoraa" in html


def test_audit_log_failure_does_not_fail_request(db, sender, outbox, monkeypatch) -> None:
    def broken_log(*args, **kwargs):
        raise StorageError(operation="log_delivery")

    monkeypatch.setattr(verification, "log_delivery", broken_log)

    result = verification.request_code(db, sender, email="user@test.com")

    assert result.delivered is True
    assert db.query(EmailLog).count() == 0
    assert verification.verify_code(db, email="user@test.com", code=outbox.last_code).id == result.code_id
