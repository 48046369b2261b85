"""Unit tests for :mod:`authcore.models.user`."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from authcore.models.user import User
from tests.factories.user import UserFactory


def _user(**kwargs) -> User:
    kwargs.setdefault("tenant_id", "00000000-0000-0000-0000-000000000000")
    return User(**kwargs)


def test_email_is_normalized():
    user = _user(email="  Alice@Example.COM ")

    assert user.email == "alice@example.com"


@pytest.mark.parametrize("bad", ["", "alice", "alice@localhost", None])
def test_malformed_email_rejected(bad):
    with pytest.raises(ValueError):
        _user(email=bad)


def test_blank_name_becomes_none():
    assert _user(email="a@example.com", name="   ").name is None
    assert _user(email="a@example.com", name=" Ada ").name == "Ada"


def test_status_helpers():
    user = _user(email="a@example.com", status="suspended")

    assert user.is_active is False
    assert user.has_password is False
    user.password_hash = "pbkdf2:sha256:1000$salt$digest"
    assert user.has_password is True


def test_defaults_after_flush(session):
    user = _user(email="defaults@example.com")
    session.add(user)
    session.flush()

    assert len(user.id) == 36
    assert user.role == "user"
    assert user.status == "active"
    assert user.email_verified is False
    assert user.created_at is not None


def test_email_is_unique(session):
    UserFactory(email="dup@example.com")

    session.add(_user(email="DUP@example.com"))
    with pytest.raises(IntegrityError):
        session.flush()
    session.rollback()


def test_repr_contains_id():
    user = _user(email="a@example.com", id="abc")

    assert repr(user) == "<User id=abc>"
