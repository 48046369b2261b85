"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from authcore.repositories.base import BaseRepository
from authcore.repositories.login_attempt import LoginAttemptRepository
from authcore.repositories.session import SessionRepository
from authcore.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "LoginAttemptRepository",
    "SessionRepository",
    "UserRepository",
]
