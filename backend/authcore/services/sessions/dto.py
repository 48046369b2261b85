# authcore/services/sessions/dto.py
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    """
    Client facts captured when a session is opened.

    :param ip_address: Remote address as seen by the HTTP layer.
    :type ip_address: str | None
    :param user_agent: Raw ``User-Agent`` header.
    :type user_agent: str | None
    :param device_type: Optional client-declared type, used only without an agent.
    :type device_type: str | None
    :param device_name: Optional client-chosen label.
    :type device_name: str | None
    """

    ip_address: str | None = None
    user_agent: str | None = None
    device_type: str | None = None
    device_name: str | None = None


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Detached view of one device session.

    :param is_current: ``True`` only for the session of the caller.
    :type is_current: bool
    """

    id: str
    user_id: str
    device_type: str
    device_name: str | None
    ip_address: str | None
    user_agent: str | None
    remember_me: bool
    is_active: bool
    created_at: datetime
    last_activity_at: datetime
    expires_at: datetime
    is_current: bool = False

    def as_current(self, current_session_id: str | None) -> SessionOut:
        return replace(self, is_current=self.id == current_session_id)
