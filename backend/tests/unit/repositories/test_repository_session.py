"""Unit tests for :class:`authcore.repositories.session.SessionRepository`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from authcore.models.session import UserSession
from authcore.repositories.session import SessionRepository
from tests.factories.session import SessionFactory
from tests.factories.user import UserFactory


@pytest.fixture
def repo(session):
    return SessionRepository(session=session)


def _now() -> datetime:
    return datetime.now(UTC)


def test_list_active_orders_by_last_activity(repo):
    user = UserFactory()
    now = _now()
    older = SessionFactory(user=user, last_activity_at=now - timedelta(hours=2))
    newer = SessionFactory(user=user, last_activity_at=now - timedelta(minutes=1))
    SessionFactory(user=user, is_active=False)
    SessionFactory(user=user, expires_at=now - timedelta(seconds=1))
    SessionFactory()  # someone else

    rows = repo.list_active(user.id, now=now)

    assert [r.id for r in rows] == [newer.id, older.id]


def test_active_ids_with_exclusion(repo):
    user = UserFactory()
    a = SessionFactory(user=user)
    b = SessionFactory(user=user)
    SessionFactory(user=user, is_active=False)

    assert sorted(repo.active_ids(user.id)) == sorted([a.id, b.id])
    assert repo.active_ids(user.id, exclude=a.id) == [b.id]


def test_deactivate_counts_only_rows_still_active(repo, session):
    user = UserFactory()
    a = SessionFactory(user=user)
    b = SessionFactory(user=user, is_active=False)

    assert repo.deactivate([a.id, b.id]) == 1
    assert repo.deactivate([a.id]) == 0
    assert repo.deactivate([]) == 0
    assert session.get(UserSession, a.id).is_active is False


def test_assign_token_hashes(repo):
    row = SessionFactory()

    repo.assign_updates(row, {"token_hash": "a" * 64, "refresh_token_hash": "b" * 64})

    assert row.refresh_token_hash == "b" * 64
    with pytest.raises(ValueError):
        repo.assign_updates(row, {"is_active": False})


def test_delete_stale(repo):
    now = _now()
    user = UserFactory()
    expired = SessionFactory(user=user, expires_at=now - timedelta(minutes=1))
    old_revoked = SessionFactory(
        user=user, is_active=False, last_activity_at=now - timedelta(days=10)
    )
    recent_revoked = SessionFactory(user=user, is_active=False)
    live = SessionFactory(user=user)
    # Deleted instances are expired by the bulk delete; keep plain ids
    expired_id, old_revoked_id = expired.id, old_revoked.id
    recent_revoked_id, live_id = recent_revoked.id, live.id

    deleted = repo.delete_stale(now=now, inactive_before=now - timedelta(days=7))

    assert deleted == 2
    assert repo.get(expired_id) is None
    assert repo.get(old_revoked_id) is None
    assert repo.get(recent_revoked_id) is not None
    assert repo.get(live_id) is not None
