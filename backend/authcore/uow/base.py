"""Unit of Work contract used by the auth services."""

from __future__ import annotations

from abc import ABC, abstractmethod

from authcore.repositories import LoginAttemptRepository, SessionRepository, UserRepository


class UnitOfWork(ABC):
    """
    One transaction spanning the user, session and audit repositories.

    Used as a context manager: leaving the block normally commits (or, for
    read-only implementations, discards), leaving it with an exception
    rolls back.
    """

    users: UserRepository
    sessions: SessionRepository
    login_attempts: LoginAttemptRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
