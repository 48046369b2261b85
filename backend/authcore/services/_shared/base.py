# authcore/services/_shared/base.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from authcore.core import errors as api_errors
from authcore.services._shared.errors import (
    AuthError,
    AuthErrorKind,
    ServiceError,
    StoreUnavailableError,
)
from authcore.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(UTC)


@dataclass(slots=True)
class ServiceContext:
    """
    Request-scoped data a service may need for auditing.

    :param actor_id: Authenticated user id, when there is one.
    :param tenant_id: Tenant the request is scoped to.
    :param request_id: Correlation id copied into log lines.
    """

    actor_id: str | None = None
    tenant_id: str | None = None
    request_id: str | None = None


class BaseService:
    """
    Common plumbing for the auth services.

    Subclasses open transactions through :meth:`rw_uow` / :meth:`ro_uow`
    and read time only through :attr:`clock`; nothing here touches the
    Flask-scoped session directly.
    """

    def __init__(self, *, ctx: ServiceContext | None = None, clock: Clock | None = None) -> None:
        """
        :param ctx: Request-scoped context; an empty one when omitted.
        :param clock: Returns the current aware UTC datetime.
        """
        self.ctx = ctx or ServiceContext()
        self.clock: Clock = clock or utcnow

    def now_utc(self) -> datetime:
        return self.clock()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Transaction that commits on a clean exit."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """Transaction that never commits."""
        return SQLAlchemyReadOnlyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Turn a service-layer error into the HTTP error the API renders.

        Anything that is not a :class:`ServiceError` comes back unchanged
        and is left to the generic Flask handlers.
        """
        if isinstance(exc, AuthError):
            return to_api_error(exc.public())
        if isinstance(exc, StoreUnavailableError):
            # The store outage detail stays in the logs
            return api_errors.ServiceUnavailable()
        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")
        return exc

    # --------------------------- AuthZ --------------------------------

    def ensure_owner(self, actor_id: str | None, owner_id: str) -> None:
        """
        :raises AuthError: ``NOT_FOUND_OR_FORBIDDEN`` so a foreign resource
            looks exactly like a missing one.
        """
        from authcore.services._shared.policies.common import is_owner

        if not is_owner(actor_id=actor_id, owner_id=owner_id):
            raise AuthError(AuthErrorKind.NOT_FOUND_OR_FORBIDDEN)


def to_api_error(err: AuthError) -> api_errors.APIError:
    """Translate an :class:`AuthError` into the matching RFC 7807 error."""
    code = err.kind.value
    if err.kind is AuthErrorKind.ACCOUNT_SUSPENDED:
        return api_errors.Forbidden(err.message, code=code)
    if err.kind is AuthErrorKind.RATE_LIMITED:
        return api_errors.TooManyRequests(err.message, code=code)
    if err.kind in (AuthErrorKind.NOT_FOUND_OR_FORBIDDEN, AuthErrorKind.NOT_FOUND):
        return api_errors.NotFound(err.message, code=code)
    if err.kind is AuthErrorKind.USER_EXISTS:
        return api_errors.Conflict(err.message, code=code)
    if err.kind is AuthErrorKind.SERVICE_UNAVAILABLE:
        return api_errors.ServiceUnavailable(err.message, code=code)
    return api_errors.Unauthorized(err.message, code=code)
