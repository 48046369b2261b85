from __future__ import annotations

from typing import Any, Final, Protocol

# Token type identifiers carried in the ``tokenType`` claim
ACCESS: Final[str] = "access"
REFRESH: Final[str] = "refresh"


class TokenProvider(Protocol):
    """
    Port for signing and decoding JWTs of the two token kinds.

    Implementations raise :class:`~authcore.services._shared.errors.AuthError`
    with ``INVALID_TOKEN`` for any signature, issuer, audience, expiry or
    type-tag failure.
    """

    def encode(self, claims: dict[str, Any], *, kind: str) -> str: ...

    def decode(self, token: str, *, kind: str) -> dict[str, Any]: ...

    def peek(self, token: str) -> dict[str, Any]:
        """Return claims without verifying signature or expiry."""
        ...
