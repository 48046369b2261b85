"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP directly. They serve as stable contracts between
repositories, adapters and application services.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from enum import Enum

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, adapters or domain logic.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


class StoreUnavailableError(ServiceError):
    """
    Raised by fast-store adapters when Redis cannot be reached in time.

    Callers decide whether the operation fails open or closed.
    """


# --------------------------------------------------------------------------- #
# Authentication taxonomy
# --------------------------------------------------------------------------- #


class AuthErrorKind(str, Enum):
    """Stable, machine-readable authentication failure kinds."""

    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_SUSPENDED = "account_suspended"
    RATE_LIMITED = "rate_limited"
    INVALID_TOKEN = "invalid_token"
    BLACKLISTED = "token_blacklisted"
    VERSION_INVALIDATED = "token_version_invalidated"
    REUSE_DETECTED = "refresh_token_reuse_detected"
    SESSION_REVOKED = "session_revoked"
    NOT_FOUND_OR_FORBIDDEN = "not_found_or_forbidden"
    USER_EXISTS = "user_exists"
    NOT_FOUND = "not_found"
    SERVICE_UNAVAILABLE = "service_unavailable"


# Kinds that callers of refresh/verify only ever see as INVALID_TOKEN
TOKEN_FAILURE_KINDS = frozenset(
    {
        AuthErrorKind.BLACKLISTED,
        AuthErrorKind.VERSION_INVALIDATED,
        AuthErrorKind.REUSE_DETECTED,
        AuthErrorKind.SESSION_REVOKED,
    }
)

DEFAULT_MESSAGES: dict[AuthErrorKind, str] = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorKind.ACCOUNT_SUSPENDED: "Account is suspended",
    AuthErrorKind.RATE_LIMITED: "Too many attempts, try again later",
    AuthErrorKind.INVALID_TOKEN: "Invalid or expired token",
    AuthErrorKind.BLACKLISTED: "Token has been revoked",
    AuthErrorKind.VERSION_INVALIDATED: "Token has been invalidated",
    AuthErrorKind.REUSE_DETECTED: "Refresh token reuse detected",
    AuthErrorKind.SESSION_REVOKED: "Session has been revoked",
    AuthErrorKind.NOT_FOUND_OR_FORBIDDEN: "Session not found",
    AuthErrorKind.USER_EXISTS: "An account with this email already exists",
    AuthErrorKind.NOT_FOUND: "Resource not found",
    AuthErrorKind.SERVICE_UNAVAILABLE: "Service temporarily unavailable",
}


class AuthError(ServiceError):
    """
    Authentication or token failure of a specific :class:`AuthErrorKind`.

    :param kind: Failure kind.
    :type kind: AuthErrorKind
    :param message: Optional override of the default client-safe message.
    :type message: str | None
    """

    def __init__(self, kind: AuthErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    def public(self) -> AuthError:
        """Return the error as exposed to callers.

        Token-class kinds collapse to ``INVALID_TOKEN``; everything else is
        returned unchanged.
        """
        if self.kind in TOKEN_FAILURE_KINDS:
            return AuthError(AuthErrorKind.INVALID_TOKEN)
        return self

    def __repr__(self) -> str:  # pragma: no cover
        return f"AuthError(kind={self.kind.name})"
