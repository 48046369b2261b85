# authcore/infra/jwt/pyjwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, cast

import jwt

from authcore.services._shared.errors import AuthError, AuthErrorKind
from authcore.services._shared.ports import ACCESS, REFRESH, TokenProvider

ALGORITHM = "HS256"
TOKEN_TYPE_CLAIM = "tokenType"


@dataclass(slots=True)
class PyJWTTokenProvider(TokenProvider):
    """
    HS256 adapter on top of PyJWT with one secret per token kind.

    The adapter is pure: it needs no Flask app context, so workers, CLI
    commands and tests share the same code path.

    :param access_secret: HMAC key for access tokens.
    :param refresh_secret: HMAC key for refresh tokens (must differ).
    :param issuer: ``iss`` stamped on and required from every token.
    :param audience: ``aud`` stamped on and required from every token.
    :param leeway_seconds: Clock skew tolerated on ``exp``/``iat``.
    :raises ValueError: On a missing or shared secret, so a misconfigured
        process fails at startup instead of on first use.
    """

    access_secret: str
    refresh_secret: str
    issuer: str
    audience: str
    leeway_seconds: int = 0
    _secrets: dict[str, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Both access and refresh signing secrets are required.")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets.")
        self._secrets = {ACCESS: self.access_secret, REFRESH: self.refresh_secret}

    def _secret(self, kind: str) -> str:
        try:
            return self._secrets[kind]
        except KeyError:
            raise ValueError(f"Unknown token kind: {kind!r}") from None

    def encode(self, claims: dict[str, Any], *, kind: str) -> str:
        payload = dict(claims)
        payload.setdefault("iss", self.issuer)
        payload.setdefault("aud", self.audience)
        payload[TOKEN_TYPE_CLAIM] = kind
        return jwt.encode(payload, self._secret(kind), algorithm=ALGORITHM)

    def decode(self, token: str, *, kind: str) -> dict[str, Any]:
        """
        Verify signature, issuer, audience, expiry and the type tag.

        :raises AuthError: ``INVALID_TOKEN`` on any verification failure.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway_seconds,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc
        if claims.get(TOKEN_TYPE_CLAIM) != kind:
            raise AuthError(AuthErrorKind.INVALID_TOKEN)
        return cast(dict[str, Any], claims)

    def peek(self, token: str) -> dict[str, Any]:
        try:
            return cast(
                dict[str, Any],
                jwt.decode(
                    token,
                    options={"verify_signature": False, "verify_exp": False, "verify_aud": False},
                    algorithms=[ALGORITHM],
                ),
            )
        except jwt.PyJWTError as exc:
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc
