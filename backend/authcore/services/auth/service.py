# authcore/services/auth/service.py
from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from typing import Any, NoReturn, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authcore.models.user import User
from authcore.services._shared.base import BaseService, Clock, ServiceContext
from authcore.services._shared.errors import AuthError, AuthErrorKind, StoreUnavailableError
from authcore.services._shared.ports import (
    EventPublisher,
    NullEventPublisher,
    OneTimeTokenStore,
    PasswordHasher,
    RateLimiter,
    UserCache,
)
from authcore.services._shared.result import Err, Ok, Result
from authcore.services.auth.dto import (
    AuthPolicy,
    AuthResult,
    LoginIn,
    RegisterIn,
    UserPublicOut,
    VerifiedIdentity,
)
from authcore.services.sessions.device import detect_device_type
from authcore.services.sessions.dto import DeviceInfo, SessionOut
from authcore.services.sessions.registry import SessionRegistry
from authcore.services.tokens.authority import TokenAuthority, hash_token
from authcore.services.tokens.dto import IntrospectionOut, TokenPair, TokenSubject

log = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _user_out(user: User) -> UserPublicOut:
    return UserPublicOut(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        role=user.role,
        status=user.status,
        email_verified=user.email_verified,
        tenant_id=user.tenant_id,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


def _snapshot(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "password_hash": user.password_hash,
        "role": user.role,
        "status": user.status,
        "tenant_id": user.tenant_id,
    }


class AuthService(BaseService):
    """
    Authentication orchestrator.

    Composes the :class:`TokenAuthority`, the :class:`SessionRegistry`, the
    password hasher, the fast-store helpers (rate limiter, credential cache,
    one-time tokens), the login audit log and the event publisher.

    Public methods return :class:`Ok` or :class:`Err`; expected failures never
    escape as exceptions. Token-class failure kinds are collapsed into
    ``INVALID_TOKEN`` before they reach the caller and the precise kind is
    only logged.

    Failure policy
    --------------
    - Rate limiting, cache reads, audit rows and events fail open.
    - Token verification and rotation fail closed.
    - An outage anywhere else, such as writing the family pointer of a new
      session, is returned as ``SERVICE_UNAVAILABLE``.
    """

    def __init__(
        self,
        *,
        authority: TokenAuthority,
        registry: SessionRegistry,
        hasher: PasswordHasher,
        limiter: RateLimiter,
        cache: UserCache,
        one_time_tokens: OneTimeTokenStore,
        events: EventPublisher | None = None,
        policy: AuthPolicy | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.authority = authority
        self.registry = registry
        self.hasher = hasher
        self.limiter = limiter
        self.cache = cache
        self.one_time = one_time_tokens
        self.events = events or NullEventPublisher()
        self.policy = policy or AuthPolicy()
        self._dummy_digest: str | None = None

    # ------------------------------------------------------------------ #
    # Result plumbing
    # ------------------------------------------------------------------ #

    def _run(self, op: str, fn: Callable[[], T]) -> Result[T]:
        try:
            return Ok(fn())
        except AuthError as exc:
            log.info(
                "auth.%s_rejected",
                op,
                extra={"event": op, "kind": exc.kind.value, "user_id": self.ctx.actor_id},
            )
            return Err.from_error(exc.public())
        except StoreUnavailableError:
            log.warning(
                "auth.%s_store_unavailable",
                op,
                extra={"event": op, "user_id": self.ctx.actor_id},
                exc_info=True,
            )
            return Err.from_error(AuthError(AuthErrorKind.SERVICE_UNAVAILABLE))

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> Result[AuthResult]:
        """
        Create an active password account and open its first session.

        :param dto: Registration input.
        :returns: ``Ok(AuthResult)``; ``Err`` with ``RATE_LIMITED`` or
            ``USER_EXISTS``.
        """
        return self._run("register", lambda: self._register(dto))

    def _register(self, dto: RegisterIn) -> AuthResult:
        device = dto.device or DeviceInfo()
        if device.ip_address:
            key = f"register_attempts:{device.ip_address}"
            if self._limit_reached(key, self.policy.register_max_attempts):
                raise AuthError(AuthErrorKind.RATE_LIMITED)
            self._hit(key, self.policy.register_window.total_seconds())

        email = _normalize_email(dto.email)
        with self.ro_uow() as uow:
            if uow.users.exists_by_email(email):
                raise AuthError(AuthErrorKind.USER_EXISTS)

        digest = self.hasher.hash(dto.password)
        try:
            with self.rw_uow() as uow:
                user = User(
                    tenant_id=dto.tenant_id or self.policy.default_tenant_id,
                    email=email,
                    password_hash=digest,
                    name=dto.name,
                    role="user",
                    status="active",
                    email_verified=False,
                )
                uow.users.add(user)
                subject = self._subject(user)
                user_out = _user_out(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same email
            raise AuthError(AuthErrorKind.USER_EXISTS) from exc

        try:
            session, tokens = self._open_session(subject, device, remember_me=False)
        except StoreUnavailableError:
            # A retry must be able to register the same email again
            self._discard_user(subject.user_id)
            raise

        self.events.publish(
            "user.registered",
            {"userId": subject.user_id, "email": email, "name": dto.name, "sessionId": session.id},
        )
        try:
            self._issue_verification(subject.user_id, email)
        except StoreUnavailableError:
            log.warning("auth.verification_token_failed", extra={"user_id": subject.user_id})

        log.info(
            "auth.registered",
            extra={"user_id": subject.user_id, "session_id": session.id},
        )
        return AuthResult(user=user_out, tokens=tokens, session=session)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> Result[AuthResult]:
        """
        Authenticate with email and password.

        The attempt counter (email + IP) is checked before any credential
        lookup. Only failures increment it; a success resets it.

        :returns: ``Ok(AuthResult)``; ``Err`` with ``RATE_LIMITED``,
            ``INVALID_CREDENTIALS`` or ``ACCOUNT_SUSPENDED``.
        """
        return self._run("login", lambda: self._login(dto))

    def _login(self, dto: LoginIn) -> AuthResult:
        device = dto.device or DeviceInfo()
        email = _normalize_email(dto.email)
        key = f"login_attempts:{email}:{device.ip_address or 'unknown'}"

        log.debug("auth.login_validating", extra={"event": "login"})
        if self._limit_reached(key, self.policy.login_max_attempts):
            self._audit(email, device, success=False, reason="rate_limited")
            raise AuthError(AuthErrorKind.RATE_LIMITED)

        log.debug("auth.login_verifying_credentials", extra={"event": "login"})
        snap = self._credentials(email)
        if snap is None or not snap.get("password_hash"):
            self._burn_hash_time(dto.password)
            self._fail_login(key, email, device, "user_not_found")
        elif not self.hasher.verify(dto.password, snap["password_hash"]):
            self._fail_login(key, email, device, "invalid_password", snap["id"])

        log.debug("auth.login_checking_status", extra={"event": "login", "user_id": snap["id"]})
        status = snap["status"]
        if status == "suspended":
            self._hit(key, self.policy.login_window.total_seconds())
            self._audit(email, device, success=False, reason="account_suspended", user_id=snap["id"])
            raise AuthError(AuthErrorKind.ACCOUNT_SUSPENDED)
        if status == "deleted":
            self._fail_login(key, email, device, "account_deleted", snap["id"])

        if self.policy.strict_device_policy:
            self.registry.revoke_all(snap["id"])
            self._invalidate_tokens(snap["id"])

        now = self.now_utc()
        with self.rw_uow() as uow:
            user = uow.users.get(snap["id"])
            if user is None:
                # Deleted between the cached read and now
                raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)
            if user.status == "pending_verification" and self.policy.auto_activate_pending:
                uow.users.set_status(user, "active")
            uow.users.mark_login(user, at=now)
            subject = self._subject(user)
            user_out = _user_out(user)
        self._forget(email)

        session, tokens = self._open_session(subject, device, dto.remember_me)
        log.debug(
            "auth.login_tokens_issued",
            extra={"event": "login", "user_id": subject.user_id, "session_id": session.id},
        )

        self._audit(email, device, success=True, user_id=subject.user_id)
        self._reset(key)
        self.events.publish(
            "user.login",
            {
                "userId": subject.user_id,
                "sessionId": session.id,
                "metadata": {"ipAddress": device.ip_address, "deviceType": session.device_type},
            },
        )
        log.info("auth.logged_in", extra={"user_id": subject.user_id, "session_id": session.id})
        return AuthResult(user=user_out, tokens=tokens, session=session)

    def _fail_login(
        self,
        key: str,
        email: str,
        device: DeviceInfo,
        reason: str,
        user_id: str | None = None,
    ) -> NoReturn:
        self._hit(key, self.policy.login_window.total_seconds())
        self._audit(email, device, success=False, reason=reason, user_id=user_id)
        raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

    def _burn_hash_time(self, password: str) -> None:
        # Unknown emails cost one verification too
        if self._dummy_digest is None:
            self._dummy_digest = self.hasher.hash(secrets.token_hex(16))
        self.hasher.verify(password, self._dummy_digest)

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh(self, refresh_token: str) -> Result[TokenPair]:
        """
        Redeem a refresh token for a new pair bound to the same session.

        Order of checks: signature and expiry, session row, family pointer
        (reuse detection), user status, atomic rotation.

        :returns: ``Ok(TokenPair)`` or ``Err(INVALID_TOKEN)``.
        """
        return self._run("refresh", lambda: self._refresh(refresh_token))

    def _refresh(self, refresh_token: str) -> TokenPair:
        claims = self.authority.decode_refresh(refresh_token)

        session = self.registry.get(claims.session_id)
        if (
            session is None
            or not session.is_active
            or session.expires_at <= self.now_utc()
            or session.user_id != claims.user_id
        ):
            log.warning(
                "auth.refresh_session_revoked",
                extra={"user_id": claims.user_id, "session_id": claims.session_id},
            )
            raise AuthError(AuthErrorKind.SESSION_REVOKED)

        claims = self.authority.verify_refresh(refresh_token)

        with self.ro_uow() as uow:
            user = uow.users.get(claims.user_id)
            if user is None or user.status in ("suspended", "deleted"):
                raise AuthError(AuthErrorKind.INVALID_TOKEN)
            subject = self._subject(user)

        tokens = self.authority.rotate(claims, subject, session.remember_me)
        self.registry.attach_tokens(session.id, tokens)
        self.registry.touch(session.id, force=True)
        log.info("auth.refreshed", extra={"user_id": subject.user_id, "session_id": session.id})
        return tokens

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(
        self,
        user_id: str,
        session_id: str | None,
        all_devices: bool = False,
        access_token: str | None = None,
    ) -> Result[int]:
        """
        End one session, or every session of the user.

        Repeating a logout succeeds without effect.

        :param user_id: Authenticated user.
        :param session_id: Session of the caller.
        :param all_devices: Revoke every session and bump the token version.
        :param access_token: Presented access token, blacklisted for its
            remaining lifetime.
        :returns: ``Ok(number of sessions revoked)``.
        """
        return self._run(
            "logout", lambda: self._logout(user_id, session_id, all_devices, access_token)
        )

    def _logout(
        self,
        user_id: str,
        session_id: str | None,
        all_devices: bool,
        access_token: str | None,
    ) -> int:
        if all_devices:
            revoked = self.registry.revoke_all(user_id)
            self._invalidate_tokens(user_id)
        elif session_id:
            try:
                revoked = int(self.registry.revoke(user_id, session_id))
            except AuthError as exc:
                if exc.kind is not AuthErrorKind.NOT_FOUND_OR_FORBIDDEN:
                    raise
                revoked = 0
        else:
            revoked = 0

        if access_token:
            try:
                self.authority.blacklist(access_token)
            except StoreUnavailableError:
                log.warning("auth.blacklist_failed", extra={"user_id": user_id})

        self.events.publish(
            "user.logout",
            {"userId": user_id, "sessionId": session_id, "allDevices": all_devices},
        )
        log.info(
            "auth.logged_out",
            extra={"user_id": user_id, "session_id": session_id, "count": revoked},
        )
        return revoked

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def list_sessions(
        self, user_id: str, current_session_id: str | None = None
    ) -> Result[list[SessionOut]]:
        """List the user's live sessions; only the caller's is ``is_current``."""
        return self._run(
            "list_sessions", lambda: self.registry.list_active(user_id, current_session_id)
        )

    def revoke_session(self, user_id: str, session_id: str) -> Result[bool]:
        """
        Revoke one of the user's own sessions.

        :returns: ``Ok(True)`` when it was active, ``Ok(False)`` when already
            revoked; ``Err(NOT_FOUND_OR_FORBIDDEN)`` for missing or foreign ids.
        """
        return self._run("revoke_session", lambda: self._revoke_session(user_id, session_id))

    def _revoke_session(self, user_id: str, session_id: str) -> bool:
        revoked = self.registry.revoke(user_id, session_id)
        if revoked:
            self.events.publish(
                "auth.session_revoked", {"userId": user_id, "sessionId": session_id}
            )
        return revoked

    def sweep_sessions(self) -> Result[int]:
        """Delete expired and long-revoked sessions."""
        return self._run("sweep_sessions", lambda: self.registry.sweep(self.now_utc()))

    def touch_session(self, session_id: str) -> bool:
        """Throttled activity bump for authenticated request handlers."""
        return self.registry.touch(session_id)

    # ------------------------------------------------------------------ #
    # Passwords
    # ------------------------------------------------------------------ #

    def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        current_session_id: str | None = None,
    ) -> Result[int]:
        """
        Replace the password after checking the current one.

        Every other session is revoked; the caller's stays signed in.

        :returns: ``Ok(number of sessions revoked)`` or
            ``Err(INVALID_CREDENTIALS)`` (also for password-less accounts).
        """
        return self._run(
            "change_password",
            lambda: self._change_password(
                user_id, current_password, new_password, current_session_id
            ),
        )

    def _change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        current_session_id: str | None,
    ) -> int:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None or not user.has_password:
                raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)
            digest, email = user.password_hash, user.email
        if not self.hasher.verify(current_password, digest or ""):
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        new_digest = self.hasher.hash(new_password)
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            uow.users.set_password_hash(user, new_digest)
        self._forget(email)

        revoked = self.registry.revoke_others(user_id, current_session_id)
        self.events.publish(
            "auth.password_changed", {"userId": user_id, "sessionId": current_session_id}
        )
        log.info("auth.password_changed", extra={"user_id": user_id, "count": revoked})
        return revoked

    def forgot_password(self, email: str) -> Result[None]:
        """
        Start a password reset.

        Always succeeds so the response never reveals whether the email is
        registered. At most three reset tokens per user and hour are issued.
        """
        return self._run("forgot_password", lambda: self._forgot_password(email))

    def _forgot_password(self, email: str) -> None:
        email = _normalize_email(email)
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None or user.status == "deleted":
                return None
            user_id = user.id

        key = f"pwd_reset_requests:{user_id}"
        if self._limit_reached(key, self.policy.reset_max_requests):
            log.info("auth.password_reset_throttled", extra={"user_id": user_id})
            return None
        self._hit(key, self.policy.reset_window.total_seconds())

        token = secrets.token_hex(32)
        try:
            self.one_time.put(
                PASSWORD_RESET,
                hash_token(token),
                user_id,
                ttl_seconds=int(self.policy.reset_ttl.total_seconds()),
            )
        except StoreUnavailableError:
            log.warning("auth.password_reset_store_failed", extra={"user_id": user_id})
            return None
        self.events.publish(
            "auth.password_reset_requested", {"userId": user_id, "email": email, "token": token}
        )
        return None

    def reset_password(
        self, token: str, new_password: str, device: DeviceInfo | None = None
    ) -> Result[int]:
        """
        Redeem a reset token and set a new password.

        Every session is revoked and every outstanding access token
        invalidated.

        :returns: ``Ok(number of sessions revoked)`` or ``Err(INVALID_TOKEN)``.
        """
        return self._run("reset_password", lambda: self._reset_password(token, new_password, device))

    def _reset_password(self, token: str, new_password: str, device: DeviceInfo | None) -> int:
        user_id = self._consume(PASSWORD_RESET, token)
        new_digest = self.hasher.hash(new_password)
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None or user.status == "deleted":
                raise AuthError(AuthErrorKind.INVALID_TOKEN)
            uow.users.set_password_hash(user, new_digest)
            email = user.email
        self._forget(email)

        revoked = self.registry.revoke_all(user_id)
        self._invalidate_tokens(user_id)
        self.events.publish(
            "auth.password_reset",
            {"userId": user_id, "metadata": {"ipAddress": (device or DeviceInfo()).ip_address}},
        )
        log.info("auth.password_reset", extra={"user_id": user_id, "count": revoked})
        return revoked

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def request_email_verification(self, user_id: str) -> Result[bool]:
        """
        Issue a verification token for the user's address.

        :returns: ``Ok(False)`` when already verified, ``Ok(True)`` otherwise;
            ``Err(NOT_FOUND)`` for unknown users.
        """
        return self._run(
            "request_email_verification", lambda: self._request_verification(user_id)
        )

    def _request_verification(self, user_id: str) -> bool:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise AuthError(AuthErrorKind.NOT_FOUND)
            if user.email_verified:
                return False
            email = user.email
        self._issue_verification(user_id, email)
        return True

    def _issue_verification(self, user_id: str, email: str) -> None:
        token = secrets.token_hex(32)
        self.one_time.put(
            EMAIL_VERIFICATION,
            hash_token(token),
            user_id,
            ttl_seconds=int(self.policy.verification_ttl.total_seconds()),
        )
        self.events.publish(
            "auth.verification_requested", {"userId": user_id, "email": email, "token": token}
        )

    def verify_email(self, token: str) -> Result[UserPublicOut]:
        """Consume a verification token; unknown, used or expired → ``INVALID_TOKEN``."""
        return self._run("verify_email", lambda: self._verify_email(token))

    def _verify_email(self, token: str) -> UserPublicOut:
        user_id = self._consume(EMAIL_VERIFICATION, token)
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None or user.status == "deleted":
                raise AuthError(AuthErrorKind.INVALID_TOKEN)
            uow.users.mark_email_verified(user, at=self.now_utc())
            out = _user_out(user)
        self._forget(out.email)
        self.events.publish("auth.email_verified", {"userId": user_id, "email": out.email})
        return out

    def _consume(self, purpose: str, token: str) -> str:
        try:
            user_id = self.one_time.consume(purpose, hash_token(token or ""))
        except StoreUnavailableError as exc:
            raise AuthError(AuthErrorKind.INVALID_TOKEN) from exc
        if user_id is None:
            raise AuthError(AuthErrorKind.INVALID_TOKEN)
        return user_id

    # ------------------------------------------------------------------ #
    # Social login
    # ------------------------------------------------------------------ #

    def social_login(
        self, identity: VerifiedIdentity, device: DeviceInfo | None = None
    ) -> Result[AuthResult]:
        """
        Sign in with an identity verified by an external provider.

        Unknown emails get a new active, verified, password-less account.
        A ``pending_verification`` account with the same email is activated
        and linked.

        :returns: ``Ok(AuthResult)``; ``Err`` with ``ACCOUNT_SUSPENDED`` or
            ``INVALID_CREDENTIALS`` (deleted account).
        """
        return self._run("social_login", lambda: self._social_login(identity, device))

    def _social_login(self, identity: VerifiedIdentity, device: DeviceInfo | None) -> AuthResult:
        device = device or DeviceInfo()
        email = _normalize_email(identity.email)
        now = self.now_utc()
        created = False

        with self.ro_uow() as uow:
            existing = uow.users.get_by_email(email)
            status = existing.status if existing is not None else None
        if status == "suspended":
            raise AuthError(AuthErrorKind.ACCOUNT_SUSPENDED)
        if status == "deleted":
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                user = User(
                    tenant_id=self.policy.default_tenant_id,
                    email=email,
                    password_hash=None,
                    name=identity.name,
                    avatar_url=identity.avatar_url,
                    role="user",
                    status="active",
                    email_verified=True,
                    email_verified_at=now,
                )
                uow.users.add(user)
                created = True
            elif not user.email_verified or user.status == "pending_verification":
                uow.users.mark_email_verified(user, at=now)
            uow.users.mark_login(user, at=now)
            subject = self._subject(user)
            user_out = _user_out(user)
        self._forget(email)

        if created:
            self.events.publish(
                "user.registered",
                {
                    "userId": subject.user_id,
                    "email": email,
                    "name": identity.name,
                    "is_social": True,
                    "provider": identity.provider,
                },
            )

        session, tokens = self._open_session(subject, device, remember_me=False)
        self._audit(email, device, success=True, user_id=subject.user_id)
        self.events.publish(
            "user.login",
            {
                "userId": subject.user_id,
                "sessionId": session.id,
                "provider": identity.provider,
                "metadata": {"ipAddress": device.ip_address, "deviceType": session.device_type},
            },
        )
        return AuthResult(user=user_out, tokens=tokens, session=session)

    # ------------------------------------------------------------------ #
    # Users
    # ------------------------------------------------------------------ #

    def get_current_user(self, user_id: str) -> Result[UserPublicOut]:
        return self._run("get_current_user", lambda: self._get_user(user_id))

    def _get_user(self, user_id: str) -> UserPublicOut:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None or user.status == "deleted":
                raise AuthError(AuthErrorKind.NOT_FOUND)
            return _user_out(user)

    def suspend_user(self, user_id: str) -> Result[int]:
        """Suspend an account, revoke its sessions and void its tokens."""
        return self._run("suspend_user", lambda: self._suspend_user(user_id))

    def _suspend_user(self, user_id: str) -> int:
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise AuthError(AuthErrorKind.NOT_FOUND)
            uow.users.set_status(user, "suspended")
            email = user.email
        self._forget(email)
        revoked = self.registry.revoke_all(user_id)
        self._invalidate_tokens(user_id)
        self.events.publish("user.suspended", {"userId": user_id})
        log.info("auth.user_suspended", extra={"user_id": user_id, "count": revoked})
        return revoked

    def activate_user(self, email: str) -> Result[UserPublicOut]:
        """Operator activation: status ``active`` and email marked verified."""
        return self._run("activate_user", lambda: self._activate_user(email))

    def _activate_user(self, email: str) -> UserPublicOut:
        email = _normalize_email(email)
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                raise AuthError(AuthErrorKind.NOT_FOUND)
            uow.users.set_status(user, "active")
            if not user.email_verified:
                uow.users.mark_email_verified(user, at=self.now_utc())
            out = _user_out(user)
        self._forget(email)
        return out

    def clear_rate_limit(self, email: str, ip_address: str | None = None) -> None:
        """Drop the login counter of an email/IP pair (operator tool)."""
        self.limiter.reset(f"login_attempts:{_normalize_email(email)}:{ip_address or 'unknown'}")

    # ------------------------------------------------------------------ #
    # Tokens
    # ------------------------------------------------------------------ #

    def introspect(self, token: str) -> IntrospectionOut:
        """Verdict on an access token; never raises."""
        return self.authority.introspect(token)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _subject(user: User) -> TokenSubject:
        return TokenSubject(
            user_id=user.id, email=user.email, role=user.role, tenant_id=user.tenant_id
        )

    def _open_session(
        self, subject: TokenSubject, device: DeviceInfo, remember_me: bool
    ) -> tuple[SessionOut, TokenPair]:
        session = self.registry.create(subject.user_id, device, remember_me)
        try:
            tokens = self.authority.issue(subject, session.id, remember_me)
        except StoreUnavailableError:
            # Without a family pointer the session could never refresh
            self.registry.revoke(subject.user_id, session.id)
            raise
        self.registry.attach_tokens(session.id, tokens)
        return session, tokens

    def _discard_user(self, user_id: str) -> None:
        with self.rw_uow() as uow:
            uow.sessions.delete_for_user(user_id)
            user = uow.users.get(user_id)
            if user is not None:
                uow.users.delete(user)
        log.info("auth.registration_discarded", extra={"user_id": user_id})

    def _credentials(self, email: str) -> dict[str, Any] | None:
        try:
            cached = self.cache.get(email)
        except StoreUnavailableError:
            cached = None
        if cached is not None:
            return cached

        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            snap = _snapshot(user) if user is not None else None
        if snap is not None:
            try:
                self.cache.put(
                    email, snap, ttl_seconds=int(self.policy.user_cache_ttl.total_seconds())
                )
            except StoreUnavailableError:
                log.debug("auth.user_cache_put_failed")
        return snap

    def _forget(self, email: str) -> None:
        try:
            self.cache.invalidate(email)
        except StoreUnavailableError:
            log.warning("auth.user_cache_invalidate_failed")

    def _limit_reached(self, key: str, maximum: int) -> bool:
        try:
            return self.limiter.count(key) >= maximum
        except StoreUnavailableError:
            log.warning("auth.rate_limit_unavailable", extra={"event": key.split(":", 1)[0]})
            return False

    def _hit(self, key: str, window_seconds: float) -> None:
        try:
            self.limiter.hit(key, window_seconds=int(window_seconds))
        except StoreUnavailableError:
            log.warning("auth.rate_limit_unavailable", extra={"event": key.split(":", 1)[0]})

    def _reset(self, key: str) -> None:
        try:
            self.limiter.reset(key)
        except StoreUnavailableError:
            log.warning("auth.rate_limit_unavailable", extra={"event": key.split(":", 1)[0]})

    def _invalidate_tokens(self, user_id: str) -> None:
        try:
            self.authority.invalidate_all_for_user(user_id)
        except StoreUnavailableError:
            log.error("auth.version_bump_failed", extra={"user_id": user_id})

    def _audit(
        self,
        email: str,
        device: DeviceInfo,
        *,
        success: bool,
        reason: str | None = None,
        user_id: str | None = None,
    ) -> None:
        try:
            with self.rw_uow() as uow:
                uow.login_attempts.record(
                    email=email,
                    success=success,
                    ip_address=device.ip_address,
                    user_agent=device.user_agent,
                    device_type=detect_device_type(device.user_agent, device.device_type),
                    failure_reason=reason,
                    user_id=user_id,
                )
        except SQLAlchemyError:
            log.warning(
                "auth.audit_failed",
                extra={"user_id": user_id, "kind": reason},
                exc_info=True,
            )
        log.debug(
            "auth.attempt_recorded",
            extra={"user_id": user_id, "kind": reason or "success"},
        )
