"""Unit tests for :class:`authcore.uow.SQLAlchemyReadOnlyUnitOfWork`."""

from __future__ import annotations

import pytest

from authcore.models.user import User
from authcore.uow import SQLAlchemyReadOnlyUnitOfWork
from tests.factories.user import UserFactory


def test_reads_work():
    user = UserFactory()

    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        assert uow.users.get(user.id).email == user.email


def test_commit_is_refused():
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        with pytest.raises(RuntimeError):
            uow.commit()


def test_flush_of_new_objects_is_blocked():
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        uow.session.add(User(tenant_id="t", email="ro@example.com"))
        with pytest.raises(RuntimeError, match="Read-only"):
            uow.session.flush()
        uow.session.expunge_all()


def test_listener_removed_on_exit(session):
    with SQLAlchemyReadOnlyUnitOfWork():
        pass

    session.add(User(tenant_id="t", email="after@example.com"))
    session.flush()

    assert session.query(User).filter_by(email="after@example.com").count() == 1
