"""Session repository: device session rows and their lifecycle queries."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import and_, delete, or_, select, update

from authcore.models.session import UserSession
from authcore.repositories.base import BaseRepository


class SessionRepository(BaseRepository[UserSession]):
    """Persistence-only repository for :class:`UserSession`."""

    model = UserSession

    def _updatable_fields(self):
        return {"token_hash", "refresh_token_hash", "last_activity_at"}

    # ---------------------------- Queries ----------------------------

    def list_active(self, user_id: str, *, now: datetime) -> Sequence[UserSession]:
        """Return active, unexpired sessions of a user, most recently used first.

        :param user_id: Owner identifier.
        :type user_id: str
        :param now: Reference instant for the expiry check.
        :type now: datetime
        :returns: Ordered session rows.
        :rtype: Sequence[UserSession]
        """
        stmt = (
            select(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.is_active.is_(True),
                UserSession.expires_at > now,
            )
            .order_by(UserSession.last_activity_at.desc(), UserSession.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def active_ids(self, user_id: str, *, exclude: str | None = None) -> list[str]:
        """Return ids of the user's active sessions, optionally skipping one."""
        stmt = select(UserSession.id).where(
            UserSession.user_id == user_id, UserSession.is_active.is_(True)
        )
        if exclude is not None:
            stmt = stmt.where(UserSession.id != exclude)
        return list(self.session.execute(stmt).scalars().all())

    # ---------------------------- Mutations ----------------------------

    def deactivate(self, session_ids: Sequence[str]) -> int:
        """Flip ``is_active`` off for the given ids in one statement.

        :returns: Number of rows that were still active.
        :rtype: int
        """
        if not session_ids:
            return 0
        stmt = (
            update(UserSession)
            .where(UserSession.id.in_(list(session_ids)), UserSession.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)

    def delete_stale(self, *, now: datetime, inactive_before: datetime) -> int:
        """Hard-delete expired rows and long-inactive revoked rows.

        :param now: Rows with ``expires_at`` before this instant are removed.
        :param inactive_before: Inactive rows last used before this instant
            are removed.
        :returns: Number of deleted rows.
        :rtype: int
        """
        stmt = (
            delete(UserSession)
            .where(
                or_(
                    UserSession.expires_at < now,
                    and_(
                        UserSession.is_active.is_(False),
                        UserSession.last_activity_at < inactive_before,
                    ),
                )
            )
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)

    def delete_for_user(self, user_id: str) -> int:
        """Hard-delete every session row of ``user_id``, active or not."""
        stmt = (
            delete(UserSession)
            .where(UserSession.user_id == user_id)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)
