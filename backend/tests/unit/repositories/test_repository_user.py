"""Unit tests for :class:`authcore.repositories.user.UserRepository`."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from authcore.repositories.user import UserRepository
from tests.factories.user import UserFactory


@pytest.fixture
def repo(session):
    return UserRepository(session=session)


def test_get_by_email_is_case_insensitive(repo):
    user = UserFactory(email="bob@example.com")

    assert repo.get_by_email(" BOB@example.com ").id == user.id
    assert repo.exists_by_email("Bob@Example.com") is True
    assert repo.get_by_email("nobody@example.com") is None


def test_find_one_ignores_non_whitelisted_filters(repo):
    user = UserFactory(status="suspended")

    assert repo.find_one(email=user.email, status="suspended").id == user.id
    # ``password_hash`` is not filterable and is dropped
    assert repo.find_one(email=user.email, password_hash="x").id == user.id
    assert repo.exists(email=user.email, status="active") is False


def test_assign_updates_rejects_password_hash(repo):
    user = UserFactory()

    with pytest.raises(ValueError):
        repo.assign_updates(user, {"password_hash": "nope"})

    repo.assign_updates(user, {"name": "  New Name "})
    assert user.name == "New Name"


def test_set_status(repo):
    user = UserFactory()

    repo.set_status(user, "suspended")
    assert user.status == "suspended"

    with pytest.raises(ValueError):
        repo.set_status(user, "frozen")


def test_mark_email_verified_activates_pending(repo):
    user = UserFactory(status="pending_verification")
    at = datetime(2024, 5, 1, tzinfo=UTC)

    repo.mark_email_verified(user, at=at)

    assert user.email_verified is True
    assert user.status == "active"


def test_mark_email_verified_keeps_suspension(repo):
    user = UserFactory(status="suspended")

    repo.mark_email_verified(user, at=datetime.now(UTC))

    assert user.status == "suspended"


def test_password_hash_and_login_stamp(repo):
    user = UserFactory(password=False)
    assert user.has_password is False

    repo.set_password_hash(user, "pbkdf2:sha256:1000$s$h")
    repo.mark_login(user, at=datetime(2024, 5, 1, 9, 30, tzinfo=UTC))

    assert user.has_password is True
    assert user.last_login_at is not None
