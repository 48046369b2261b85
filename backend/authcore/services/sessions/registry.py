# authcore/services/sessions/registry.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from authcore.models.base import as_utc
from authcore.models.session import UserSession
from authcore.services._shared.base import BaseService, Clock, ServiceContext
from authcore.services._shared.errors import AuthError, AuthErrorKind, StoreUnavailableError
from authcore.services._shared.ports import TokenFamilyStore
from authcore.services.sessions.device import detect_device_type, device_name_from
from authcore.services.sessions.dto import DeviceInfo, SessionOut
from authcore.services.tokens.authority import hash_token
from authcore.services.tokens.dto import TokenConfig, TokenPair

log = logging.getLogger(__name__)


def _to_out(row: UserSession) -> SessionOut:
    return SessionOut(
        id=row.id,
        user_id=row.user_id,
        device_type=row.device_type,
        device_name=row.device_name,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        remember_me=row.remember_me,
        is_active=row.is_active,
        created_at=as_utc(row.created_at),
        last_activity_at=as_utc(row.last_activity_at),
        expires_at=as_utc(row.expires_at),
    )


class SessionRegistry(BaseService):
    """
    Lifecycle of device session rows.

    The row's ``is_active`` flag decides whether refresh tokens bound to it
    may be redeemed. Every revoke path deletes the refresh family pointer
    first and then flips the row, so a concurrent rotation can never
    resurrect a revoked session. When the fast store is unreachable the row
    is still deactivated and the failure is logged.
    """

    def __init__(
        self,
        *,
        families: TokenFamilyStore,
        token_config: TokenConfig | None = None,
        retention_days: int = 7,
        touch_interval_seconds: int = 60,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.families = families
        self.token_cfg = token_config or TokenConfig()
        self.retention = timedelta(days=retention_days)
        self.touch_interval = timedelta(seconds=touch_interval_seconds)

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create(self, user_id: str, device: DeviceInfo | None, remember_me: bool) -> SessionOut:
        """
        Open a new active session for ``user_id``.

        :param user_id: Owner of the session.
        :param device: Client facts; may be ``None`` for server-side logins.
        :param remember_me: Selects the long refresh lifetime.
        :returns: The persisted session.
        """
        device = device or DeviceInfo()
        now = self.now_utc()
        row = UserSession(
            user_id=user_id,
            ip_address=device.ip_address,
            user_agent=device.user_agent,
            device_type=detect_device_type(device.user_agent, device.device_type),
            device_name=device.device_name or device_name_from(device.user_agent),
            remember_me=remember_me,
            is_active=True,
            expires_at=now + self.token_cfg.refresh_lifetime(remember_me),
            last_activity_at=now,
            created_at=now,
        )
        with self.rw_uow() as uow:
            uow.sessions.add(row)
            out = _to_out(row)
        log.debug(
            "session.created",
            extra={"user_id": user_id, "session_id": out.id},
        )
        return out

    def attach_tokens(self, session_id: str, pair: TokenPair) -> None:
        """Store digests of the session's current access and refresh tokens."""
        with self.rw_uow() as uow:
            row = uow.sessions.get(session_id)
            if row is None:
                return
            uow.sessions.assign_updates(
                row,
                {
                    "token_hash": hash_token(pair.access_token),
                    "refresh_token_hash": hash_token(pair.refresh_token),
                },
            )

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get(self, session_id: str) -> SessionOut | None:
        with self.ro_uow() as uow:
            row = uow.sessions.get(session_id)
            return _to_out(row) if row is not None else None

    def is_valid(self, session_id: str) -> bool:
        """Return ``True`` when the session exists, is active and unexpired."""
        s = self.get(session_id)
        return s is not None and s.is_active and s.expires_at > self.now_utc()

    def list_active(
        self, user_id: str, current_session_id: str | None = None
    ) -> list[SessionOut]:
        """
        List the user's active, unexpired sessions, most recently used first.

        :param user_id: Owner.
        :param current_session_id: Session of the caller, flagged ``is_current``.
        :returns: Session views.
        """
        with self.ro_uow() as uow:
            rows = uow.sessions.list_active(user_id, now=self.now_utc())
            return [_to_out(r).as_current(current_session_id) for r in rows]

    # ------------------------------------------------------------------ #
    # Activity
    # ------------------------------------------------------------------ #

    def touch(self, session_id: str, *, force: bool = False) -> bool:
        """
        Record activity on a session.

        Without ``force`` the write is skipped while the last recorded
        activity is younger than the touch interval.

        :returns: ``True`` when ``last_activity_at`` was updated.
        """
        now = self.now_utc()
        with self.rw_uow() as uow:
            row = uow.sessions.get(session_id)
            if row is None or not row.is_active:
                return False
            last = as_utc(row.last_activity_at)
            if not force and last is not None and now - last < self.touch_interval:
                return False
            uow.sessions.assign_updates(row, {"last_activity_at": now})
        return True

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke(self, user_id: str, session_id: str) -> bool:
        """
        Revoke one session owned by ``user_id``.

        :returns: ``True`` when the row was active, ``False`` when it was
            already revoked.
        :raises AuthError: ``NOT_FOUND_OR_FORBIDDEN`` for a missing or foreign
            session.
        """
        with self.ro_uow() as uow:
            row = uow.sessions.get(session_id)
            if row is None:
                raise AuthError(AuthErrorKind.NOT_FOUND_OR_FORBIDDEN)
            self.ensure_owner(user_id, row.user_id)
            was_active = row.is_active
        if not was_active:
            return False
        return self._deactivate(user_id, [session_id]) == 1

    def revoke_all(self, user_id: str) -> int:
        """Revoke every active session of the user; returns the count."""
        with self.ro_uow() as uow:
            ids = uow.sessions.active_ids(user_id)
        return self._deactivate(user_id, ids)

    def revoke_others(self, user_id: str, current_session_id: str | None) -> int:
        """Revoke every active session except ``current_session_id``."""
        with self.ro_uow() as uow:
            ids = uow.sessions.active_ids(user_id, exclude=current_session_id)
        return self._deactivate(user_id, ids)

    def _deactivate(self, user_id: str, session_ids: Sequence[str]) -> int:
        if not session_ids:
            return 0
        try:
            self.families.clear(*session_ids)
        except StoreUnavailableError:
            log.warning(
                "session.family_clear_failed",
                extra={"user_id": user_id, "count": len(session_ids)},
            )
        with self.rw_uow() as uow:
            count = uow.sessions.deactivate(session_ids)
        log.info("session.revoked", extra={"user_id": user_id, "count": count})
        return count

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    def sweep(self, now: datetime | None = None) -> int:
        """
        Hard-delete expired sessions and revoked ones idle past retention.

        :param now: Reference instant; defaults to the service clock.
        :returns: Number of deleted rows.
        """
        now = now or self.now_utc()
        with self.rw_uow() as uow:
            deleted = uow.sessions.delete_stale(now=now, inactive_before=now - self.retention)
        log.info("session.swept", extra={"count": deleted})
        return deleted
