# authcore/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

# --------------------------- Input DTOs ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenSubject:
    """
    Identity facts copied into an access token.

    :param user_id: User identifier (``sub``).
    :type user_id: str
    :param email: Normalized email.
    :type email: str
    :param role: Role name driving the permission snapshot.
    :type role: str
    :param tenant_id: Owning tenant.
    :type tenant_id: str
    """

    user_id: str
    email: str
    role: str
    tenant_id: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Freshly signed access/refresh pair bound to one session.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param access_expires_at: Access token expiry (UTC).
    :param refresh_expires_at: Refresh token expiry (UTC).
    :param expires_in: Access token lifetime in seconds.
    :param session_id: Session both tokens are bound to.
    """

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    expires_in: int
    session_id: str
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """Verified access token payload."""

    user_id: str
    email: str
    role: str
    tenant_id: str
    session_id: str
    permissions: tuple[str, ...]
    version: int
    issued_at: datetime
    expires_at: datetime

    def has_permission(self, permission: str) -> bool:
        return "*" in self.permissions or permission in self.permissions


@dataclass(frozen=True, slots=True)
class RefreshClaims:
    """Verified refresh token payload whose family is still current."""

    user_id: str
    session_id: str
    family: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class IntrospectionOut:
    """
    Exception-free verification verdict for gateways.

    :param active: Whether the token would pass ``verify_access`` right now.
    :param claims: Public claims (``sub``, ``email``, ``role``, ``permissions``,
        ``exp``, ``iat``, ``scope``) when active.
    """

    active: bool
    claims: dict[str, Any] | None = field(default=None)


# ------------------------ Config DTO -------------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Token emission configuration.

    :param access_ttl: Access token lifetime.
    :param refresh_ttl: Refresh token lifetime without remember-me.
    :param remember_ttl: Refresh token lifetime with remember-me.
    :param leeway: Clock skew the verifier tolerates past ``exp``.
    """

    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    remember_ttl: timedelta = timedelta(days=30)
    leeway: timedelta = timedelta(0)

    def refresh_lifetime(self, remember_me: bool) -> timedelta:
        return self.remember_ttl if remember_me else self.refresh_ttl
