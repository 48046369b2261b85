"""Unit tests for the login attempt audit repository."""

from __future__ import annotations

from authcore.repositories.login_attempt import LoginAttemptRepository


def test_record_and_read_back_newest_first(session):
    repo = LoginAttemptRepository(session=session)

    repo.record(email="Eve@Example.com", success=False, failure_reason="INVALID_PASSWORD",
                ip_address="10.0.0.1", device_type="desktop")
    repo.record(email="eve@example.com", success=True, user_id="u1")
    repo.record(email="other@example.com", success=True)

    rows = repo.recent_for_email("EVE@example.com")

    assert [r.success for r in rows] == [True, False]
    assert rows[1].failure_reason == "INVALID_PASSWORD"
    assert rows[1].ip_address == "10.0.0.1"
    assert rows[0].user_id == "u1"
    assert rows[0].created_at is not None


def test_recent_for_email_limit(session):
    repo = LoginAttemptRepository(session=session)
    for _ in range(5):
        repo.record(email="many@example.com", success=False)

    assert len(repo.recent_for_email("many@example.com", limit=3)) == 3
