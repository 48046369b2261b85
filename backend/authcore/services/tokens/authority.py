# authcore/services/tokens/authority.py
from __future__ import annotations

import hashlib
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from authcore.services._shared.base import Clock, utcnow
from authcore.services._shared.errors import AuthError, AuthErrorKind, StoreUnavailableError
from authcore.services._shared.ports import (
    ACCESS,
    REFRESH,
    RotationResult,
    TokenDenylistStore,
    TokenFamilyStore,
    TokenProvider,
    TokenVersionStore,
)
from authcore.services.tokens.dto import (
    AccessClaims,
    IntrospectionOut,
    RefreshClaims,
    TokenConfig,
    TokenPair,
    TokenSubject,
)
from authcore.services.tokens.permissions import permissions_for

log = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest used to reference a token at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _ts(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=UTC)


class TokenAuthority:
    """
    Mint, verify, rotate and revoke bearer tokens.

    Pure logic over four ports: the JWT provider and three fast-store
    structures (family pointers, token versions, access denylist). It never
    touches the relational store, which keeps :meth:`verify_access` cheap.

    Failure policy
    --------------
    - Store outages during verification or rotation fail closed
      (``INVALID_TOKEN``).
    - Store outages while blacklisting propagate as
      :class:`StoreUnavailableError`; the caller decides.
    """

    def __init__(
        self,
        *,
        provider: TokenProvider,
        families: TokenFamilyStore,
        versions: TokenVersionStore,
        denylist: TokenDenylistStore,
        config: TokenConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.provider = provider
        self.families = families
        self.versions = versions
        self.denylist = denylist
        self.cfg = config or TokenConfig()
        self.clock: Clock = clock or utcnow

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue(self, subject: TokenSubject, session_id: str, remember_me: bool) -> TokenPair:
        """
        Sign a new pair for ``session_id`` and start a new refresh family.

        :param subject: Identity facts for the access token.
        :param session_id: Session both tokens are bound to.
        :param remember_me: Selects the 30-day refresh lifetime.
        :returns: Signed token pair.
        :raises StoreUnavailableError: When the family pointer cannot be written.
        """
        family = str(uuid4())
        pair = self._sign_pair(subject, session_id, family, remember_me)
        ttl = int(self.cfg.refresh_lifetime(remember_me).total_seconds())
        self.families.set(session_id, family, ttl_seconds=ttl)
        return pair

    def _sign_pair(
        self, subject: TokenSubject, session_id: str, family: str, remember_me: bool
    ) -> TokenPair:
        now = self.clock()
        iat = int(now.timestamp())
        access_exp = now + self.cfg.access_ttl
        refresh_exp = now + self.cfg.refresh_lifetime(remember_me)
        version = self.versions.get(subject.user_id)

        access = self.provider.encode(
            {
                "sub": subject.user_id,
                "iat": iat,
                "exp": int(access_exp.timestamp()),
                "email": subject.email,
                "role": subject.role,
                "tenantId": subject.tenant_id,
                "sessionId": session_id,
                "permissions": list(permissions_for(subject.role)),
                "version": version,
            },
            kind=ACCESS,
        )
        refresh = self.provider.encode(
            {
                "sub": subject.user_id,
                "iat": iat,
                "exp": int(refresh_exp.timestamp()),
                "sessionId": session_id,
                "family": family,
            },
            kind=REFRESH,
        )
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
            expires_in=int(self.cfg.access_ttl.total_seconds()),
            session_id=session_id,
        )

    # ------------------------------------------------------------------ #
    # Verification
    # ------------------------------------------------------------------ #

    def verify_access(self, token: str) -> AccessClaims:
        """
        Validate an access token against signature, blacklist and version.

        :raises AuthError: ``INVALID_TOKEN``, ``BLACKLISTED`` or
            ``VERSION_INVALIDATED``.
        """
        claims = self.provider.decode(token, kind=ACCESS)
        try:
            user_id = str(claims["sub"])
            embedded = int(claims.get("version", 0))
            session_id = str(claims["sessionId"])
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc

        try:
            if self.denylist.is_denied(hash_token(token)):
                raise AuthError(AuthErrorKind.BLACKLISTED)
            current = self.versions.get(user_id)
        except StoreUnavailableError as exc:
            log.warning("token.verify_store_unavailable", extra={"user_id": user_id})
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc

        if embedded < current:
            raise AuthError(AuthErrorKind.VERSION_INVALIDATED)

        return AccessClaims(
            user_id=user_id,
            email=str(claims.get("email", "")),
            role=str(claims.get("role", "user")),
            tenant_id=str(claims.get("tenantId", "")),
            session_id=session_id,
            permissions=tuple(claims.get("permissions") or ()),
            version=embedded,
            issued_at=_ts(claims["iat"]),
            expires_at=_ts(claims["exp"]),
        )

    def decode_refresh(self, token: str) -> RefreshClaims:
        """Verify a refresh token's signature, expiry and type only."""
        claims = self.provider.decode(token, kind=REFRESH)
        try:
            return RefreshClaims(
                user_id=str(claims["sub"]),
                session_id=str(claims["sessionId"]),
                family=str(claims["family"]),
                issued_at=_ts(claims["iat"]),
                expires_at=_ts(claims["exp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc

    def verify_refresh(self, token: str) -> RefreshClaims:
        """
        Run the reuse-detection check on a refresh token.

        A missing pointer or a pointer naming another family means the token
        was already rotated away or its session revoked: the subject's token
        version is bumped and ``REUSE_DETECTED`` raised.

        :returns: Claims of a token whose family is current.
        :raises AuthError: ``INVALID_TOKEN`` or ``REUSE_DETECTED``.
        """
        claims = self.decode_refresh(token)
        try:
            current = self.families.get(claims.session_id)
        except StoreUnavailableError as exc:
            log.warning("token.refresh_store_unavailable", extra={"user_id": claims.user_id})
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc

        if current is None or current != claims.family:
            self._escalate_reuse(claims)
        return claims

    def rotate(self, claims: RefreshClaims, subject: TokenSubject, remember_me: bool) -> TokenPair:
        """
        Atomically replace the session's family and sign the next pair.

        The compare-and-set only succeeds while the pointer still equals
        ``claims.family``; the loser of a concurrent rotation gets
        ``REUSE_DETECTED``.

        :raises AuthError: ``REUSE_DETECTED`` or ``INVALID_TOKEN`` (store down).
        """
        new_family = str(uuid4())
        ttl = int(self.cfg.refresh_lifetime(remember_me).total_seconds())
        try:
            outcome = self.families.rotate(
                claims.session_id, expected=claims.family, new=new_family, ttl_seconds=ttl
            )
        except StoreUnavailableError as exc:
            log.warning("token.rotate_store_unavailable", extra={"session_id": claims.session_id})
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc

        if outcome is not RotationResult.OK:
            self._escalate_reuse(claims)

        try:
            return self._sign_pair(subject, claims.session_id, new_family, remember_me)
        except StoreUnavailableError as exc:
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc

    def _escalate_reuse(self, claims: RefreshClaims) -> None:
        try:
            version = self.versions.bump(claims.user_id)
        except StoreUnavailableError:
            version = None
            log.error(
                "token.reuse_bump_failed",
                extra={"user_id": claims.user_id, "session_id": claims.session_id},
            )
        log.warning(
            "token.reuse_detected",
            extra={
                "user_id": claims.user_id,
                "session_id": claims.session_id,
                "kind": AuthErrorKind.REUSE_DETECTED.value,
                "count": version,
            },
        )
        raise AuthError(AuthErrorKind.REUSE_DETECTED)

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def blacklist(self, token: str) -> bool:
        """
        Deny an access token for as long as the verifier would still accept it.

        The entry outlives ``exp`` by the configured leeway, never longer.

        :returns: ``False`` when the token is unreadable or already expired
            (nothing to block), ``True`` once the entry is stored.
        :raises StoreUnavailableError: When the denylist cannot be written.
        """
        try:
            exp = int(self.provider.peek(token)["exp"])
        except (AuthError, KeyError, TypeError, ValueError):
            return False
        leeway = int(self.cfg.leeway.total_seconds())
        remaining = exp + leeway - int(self.clock().timestamp())
        if remaining <= 0:
            return False
        self.denylist.deny(hash_token(token), ttl_seconds=remaining)
        return True

    def invalidate_all_for_user(self, user_id: str) -> int:
        """Bump the user's token version; every outstanding access token dies."""
        version = self.versions.bump(user_id)
        log.info("token.version_bumped", extra={"user_id": user_id, "count": version})
        return version

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def introspect(self, token: str) -> IntrospectionOut:
        """Side-effect free :meth:`verify_access` that never raises."""
        try:
            claims = self.verify_access(token)
        except AuthError:
            return IntrospectionOut(active=False)
        return IntrospectionOut(
            active=True,
            claims={
                "sub": claims.user_id,
                "email": claims.email,
                "role": claims.role,
                "permissions": list(claims.permissions),
                "exp": int(claims.expires_at.timestamp()),
                "iat": int(claims.issued_at.timestamp()),
                "scope": " ".join(claims.permissions),
            },
        )
