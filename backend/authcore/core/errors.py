"""Problem Details (RFC 7807) error responses for the HTTP surface.

Every error leaving the app is rendered as ``application/problem+json``
with a stable ``code`` and the correlation ``request_id``. Service-layer
errors are translated by :meth:`BaseService.translate_exceptions` so the
mapping from :class:`AuthErrorKind` to status codes lives in one place.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authcore.core.logger import ensure_request_id

log = logging.getLogger(__name__)

_CODES_BY_STATUS: dict[int, str] = {
    HTTPStatus.BAD_REQUEST: "bad_request",
    HTTPStatus.UNAUTHORIZED: "unauthorized",
    HTTPStatus.FORBIDDEN: "forbidden",
    HTTPStatus.NOT_FOUND: "not_found",
    HTTPStatus.METHOD_NOT_ALLOWED: "method_not_allowed",
    HTTPStatus.CONFLICT: "conflict",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "unsupported_media_type",
    HTTPStatus.UNPROCESSABLE_ENTITY: "unprocessable_entity",
    HTTPStatus.TOO_MANY_REQUESTS: "too_many_requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "internal_server_error",
    HTTPStatus.SERVICE_UNAVAILABLE: "service_unavailable",
}


def code_for_status(status: int) -> str:
    """Return the canonical error code of an HTTP status (``error`` if unmapped)."""
    return _CODES_BY_STATUS.get(status, "error")


def problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a Problem Details body for the current request.

    :param status: HTTP status code.
    :param code: Machine-readable error code.
    :param message: Client-safe explanation, sent as ``detail``.
    :param details: Optional structured extras.
    :returns: Problem dictionary including ``request_id``.
    """
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        body["details"] = details
    body["request_id"] = ensure_request_id()
    return body


def problem_response(body: dict[str, Any]) -> Response:
    resp = jsonify(body)
    resp.mimetype = "application/problem+json"
    return resp


class APIError(Exception):
    """
    Error that knows how to render itself as a problem response.

    :param message: Client-safe description.
    :param status_code: HTTP status, ``400`` by default.
    :param code: Machine-readable code, ``bad_request`` by default.
    :param details: Optional structured extras.
    """

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.BAD_REQUEST,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class Unauthorized(APIError):
    """401: bad credentials or an unusable token."""

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, HTTPStatus.UNAUTHORIZED, code)


class Forbidden(APIError):
    """403: the account may not authenticate (suspended)."""

    def __init__(self, message: str = "Forbidden", code: str = "forbidden") -> None:
        super().__init__(message, HTTPStatus.FORBIDDEN, code)


class NotFound(APIError):
    """404: missing resource, or one the caller does not own."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found") -> None:
        super().__init__(message, HTTPStatus.NOT_FOUND, code)


class Conflict(APIError):
    def __init__(self, message: str = "Conflict", code: str = "conflict") -> None:
        super().__init__(message, HTTPStatus.CONFLICT, code)


class TooManyRequests(APIError):
    """429: a login, registration or reset counter is exhausted."""

    def __init__(self, message: str = "Too many requests", code: str = "rate_limited") -> None:
        super().__init__(message, HTTPStatus.TOO_MANY_REQUESTS, code)


class ServiceUnavailable(APIError):
    """503: the fast store or the database cannot be reached."""

    def __init__(
        self, message: str = "Service temporarily unavailable", code: str = "service_unavailable"
    ) -> None:
        super().__init__(message, HTTPStatus.SERVICE_UNAVAILABLE, code)


def _log_api_error(err: APIError, request_id: str | None) -> None:
    emit = log.error if err.status_code >= 500 else log.warning
    emit(
        "api_error code=%s status=%s request_id=%s",
        err.code,
        err.status_code,
        request_id,
        extra={"kind": err.code},
    )


def init_app(app: Flask) -> None:
    """
    Register the problem+json error handlers on ``app``.

    4xx are logged as warnings, 5xx as errors with the traceback.
    """
    # Imported here: the service layer itself depends on this module
    from authcore.services._shared.base import BaseService
    from authcore.services._shared.errors import ServiceError

    translator = BaseService()

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        body = err.to_problem()
        _log_api_error(err, body.get("request_id"))
        return problem_response(body), err.status_code

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        translated = translator.translate_exceptions(err)
        if not isinstance(translated, APIError):  # pragma: no cover - every ServiceError maps
            raise err
        return handle_api_error(translated)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = code_for_status(status)
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        body = problem(status=status, code=code, message=message)
        (log.error if status >= 500 else log.warning)(
            "http_error code=%s status=%s request_id=%s", code, status, body["request_id"]
        )
        return problem_response(body), status

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # The raw statement and constraint names stay in the logs
        body = problem(status=HTTPStatus.CONFLICT, code="conflict", message="Resource conflict")
        log.error("integrity_error request_id=%s", body["request_id"], exc_info=True)
        return problem_response(body), HTTPStatus.CONFLICT

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        body = problem(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("operational_error request_id=%s", body["request_id"], exc_info=True)
        return problem_response(body), HTTPStatus.SERVICE_UNAVAILABLE

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        body = problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("unhandled_exception request_id=%s", body["request_id"], exc_info=True)
        return problem_response(body), HTTPStatus.INTERNAL_SERVER_ERROR
