"""
Tagged results returned by the public service surface.

Expected failures (wrong password, revoked session, throttling) travel as
values so callers must branch on them; only programming errors and
infrastructure faults remain exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from authcore.services._shared.errors import AuthError, AuthErrorKind

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful outcome.

    :param value: Operation payload.
    """

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """
    Failed outcome carrying a public error kind and a client-safe message.

    :param kind: Failure kind visible to callers.
    :param message: Human-readable message.
    """

    kind: AuthErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        """Raise the equivalent :class:`AuthError`."""
        raise AuthError(self.kind, self.message)

    @classmethod
    def from_error(cls, exc: AuthError) -> Err:
        return cls(kind=exc.kind, message=exc.message)


Result = Union[Ok[T], Err]

__all__ = ["Ok", "Err", "Result"]
