# authcore/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from authcore.services.sessions.dto import DeviceInfo, SessionOut
from authcore.services.tokens.dto import TokenPair

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for password registration.

    :param email: User email (normalized by the model).
    :type email: str
    :param password: Raw password (hashed before persistence).
    :type password: str
    :param name: Optional display name.
    :type name: str | None
    :param tenant_id: Owning tenant; the default tenant when omitted.
    :type tenant_id: str | None
    :param device: Client facts for the first session.
    :type device: DeviceInfo | None
    """

    email: str
    password: str
    name: str | None = None
    tenant_id: str | None = None
    device: DeviceInfo | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for password login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    :param remember_me: Selects the 30-day refresh lifetime.
    :type remember_me: bool
    :param device: Client facts; ``ip_address`` keys the rate limit.
    :type device: DeviceInfo | None
    """

    email: str
    password: str
    remember_me: bool = False
    device: DeviceInfo | None = None


@dataclass(frozen=True, slots=True)
class VerifiedIdentity:
    """
    Identity already vouched for by an external provider.

    The provider's token exchange happens outside this package; only its
    verified result enters here.
    """

    email: str
    provider: str
    provider_user_id: str | None = None
    name: str | None = None
    avatar_url: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """Client-safe projection of a user (never carries the password hash)."""

    id: str
    email: str
    name: str | None
    avatar_url: str | None
    role: str
    status: str
    email_verified: bool
    tenant_id: str
    created_at: datetime | None = None
    last_login_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AuthResult:
    """
    Outcome of a successful register / login / social login.

    :param user: Public user view.
    :param tokens: Token pair bound to ``session``.
    :param session: The session opened by this authentication.
    """

    user: UserPublicOut
    tokens: TokenPair
    session: SessionOut


# ------------------------ Config DTO -------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthPolicy:
    """
    Throttling and account policy knobs of :class:`AuthService`.

    :param login_max_attempts: Failed logins tolerated per email and IP.
    :param login_window: Window of the login counter.
    :param register_max_attempts: Registrations tolerated per IP.
    :param register_window: Window of the registration counter.
    :param reset_max_requests: Password reset mails per user.
    :param reset_window: Window of the reset counter.
    :param verification_ttl: Lifetime of email verification tokens.
    :param reset_ttl: Lifetime of password reset tokens.
    :param user_cache_ttl: Lifetime of cached credential snapshots.
    :param strict_device_policy: One session per account; a login evicts the others.
    :param auto_activate_pending: Activate ``pending_verification`` accounts on login.
    :param default_tenant_id: Tenant assigned when registration names none.
    """

    login_max_attempts: int = 10
    login_window: timedelta = timedelta(minutes=15)
    register_max_attempts: int = 5
    register_window: timedelta = timedelta(hours=1)
    reset_max_requests: int = 3
    reset_window: timedelta = timedelta(hours=1)
    verification_ttl: timedelta = timedelta(hours=24)
    reset_ttl: timedelta = timedelta(hours=1)
    user_cache_ttl: timedelta = timedelta(minutes=5)
    strict_device_policy: bool = False
    auto_activate_pending: bool = False
    default_tenant_id: str = "00000000-0000-0000-0000-000000000000"
