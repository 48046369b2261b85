"""Unit tests for :mod:`authcore.models.session` and the shared mixins."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from authcore.models.base import as_utc, new_uuid
from authcore.models.user import User
from tests.factories.session import SessionFactory


def test_session_belongs_to_user(session):
    row = SessionFactory()

    user = session.get(User, row.user_id)

    assert [s.id for s in user.sessions] == [row.id]
    assert row.is_active is True
    assert row.token_hash is None


def test_deleting_user_removes_sessions(session):
    row = SessionFactory()
    user = session.get(User, row.user_id)
    assert len(user.sessions) == 1  # loaded, so the ORM cascade applies

    session.delete(user)
    session.flush()

    assert session.get(type(row), row.id) is None


def test_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)
    plus_two = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert as_utc(None) is None
    assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert as_utc(plus_two) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert as_utc(plus_two).tzinfo is UTC


def test_new_uuid_is_unique():
    assert new_uuid() != new_uuid()
