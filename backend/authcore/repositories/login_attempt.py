"""Append-only repository for the login attempt audit log."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select

from authcore.models.login_attempt import LoginAttempt
from authcore.repositories.base import BaseRepository


class LoginAttemptRepository(BaseRepository[LoginAttempt]):
    """Insert and read audit rows; rows are never updated."""

    model = LoginAttempt

    def record(
        self,
        *,
        email: str,
        success: bool,
        ip_address: str | None = None,
        user_agent: str | None = None,
        device_type: str | None = None,
        failure_reason: str | None = None,
        user_id: str | None = None,
    ) -> LoginAttempt:
        """Append one attempt and flush it."""
        return self.add(
            LoginAttempt(
                email=email.strip().lower(),
                success=success,
                ip_address=ip_address,
                user_agent=user_agent,
                device_type=device_type,
                failure_reason=failure_reason,
                user_id=user_id,
            )
        )

    def recent_for_email(self, email: str, *, limit: int = 20) -> Sequence[LoginAttempt]:
        """Return the latest attempts for an email, newest first."""
        stmt = (
            select(LoginAttempt)
            .where(LoginAttempt.email == email.strip().lower())
            .order_by(LoginAttempt.id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())
