"""End-to-end behaviour of :class:`authcore.services.auth.AuthService`.

Runs the service against the transactional SQLite session and a fresh
fakeredis per test.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from authcore.infra.redis import RedisTokenVersionStore
from authcore.models.login_attempt import LoginAttempt
from authcore.services._shared.errors import AuthError, AuthErrorKind
from authcore.services._shared.result import Err, Ok
from authcore.services.auth import LoginIn, RegisterIn
from authcore.services.sessions import DeviceInfo
from tests.factories.session import SessionFactory
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

DESKTOP = DeviceInfo(
    ip_address="198.51.100.10",
    user_agent="Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0",
)
PHONE = DeviceInfo(
    ip_address="198.51.100.20",
    user_agent=(
        "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
    ),
)


def _login(svc, email, password=DEFAULT_PASSWORD, device=DESKTOP, remember_me=False):
    return svc.login(LoginIn(email=email, password=password, device=device,
                             remember_me=remember_me))


class TestRegister:
    def test_register_returns_user_tokens_and_session(self, auth_service, events):
        res = auth_service.register(
            RegisterIn(email=" Alice@Example.com", password="Str0ngPass!", name="Alice",
                       device=DESKTOP)
        )

        assert isinstance(res, Ok)
        out = res.unwrap()
        assert out.user.email == "alice@example.com"
        assert out.user.status == "active"
        assert out.user.email_verified is False
        assert out.tokens.expires_in == 900
        assert out.tokens.session_id == out.session.id
        assert out.session.device_name == "Firefox on Linux"
        assert events.types() == ["user.registered", "auth.verification_requested"]
        claims = auth_service.authority.verify_access(out.tokens.access_token)
        assert claims.user_id == out.user.id

    def test_duplicate_email(self, auth_service):
        UserFactory(email="taken@example.com")

        res = auth_service.register(RegisterIn(email="TAKEN@example.com", password="x1234567"))

        assert isinstance(res, Err)
        assert res.kind is AuthErrorKind.USER_EXISTS

    def test_registration_is_throttled_per_ip(self, auth_service):
        device = DeviceInfo(ip_address="192.0.2.1")
        for i in range(5):
            assert auth_service.register(
                RegisterIn(email=f"r{i}@example.com", password="pw-123456", device=device)
            ).ok

        res = auth_service.register(
            RegisterIn(email="r5@example.com", password="pw-123456", device=device)
        )

        assert res.kind is AuthErrorKind.RATE_LIMITED


class TestLogin:
    def test_success_updates_login_and_audit(self, auth_service, events, session):
        user = UserFactory(email="bob@example.com")

        res = _login(auth_service, "BOB@example.com", remember_me=True)

        out = res.unwrap()
        assert out.user.id == user.id
        assert out.user.last_login_at is not None
        assert out.session.remember_me is True
        assert out.tokens.refresh_expires_at - out.tokens.access_expires_at == (
            timedelta(days=30) - timedelta(minutes=15)
        )
        assert events.last("user.login")["sessionId"] == out.session.id
        attempts = session.query(LoginAttempt).filter_by(email="bob@example.com").all()
        assert [(a.success, a.device_type) for a in attempts] == [(True, "desktop")]

    @pytest.mark.parametrize("email", ["bob@example.com", "nobody@example.com"])
    def test_wrong_password_and_unknown_email_look_the_same(self, auth_service, email):
        UserFactory(email="bob@example.com")

        res = _login(auth_service, email, password="wrong-password")

        assert res.kind is AuthErrorKind.INVALID_CREDENTIALS
        assert res.message == "Invalid email or password"

    def test_failures_are_audited_with_reason(self, auth_service, session):
        UserFactory(email="bob@example.com")

        _login(auth_service, "bob@example.com", password="wrong")
        _login(auth_service, "ghost@example.com")

        reasons = {
            a.email: a.failure_reason
            for a in session.query(LoginAttempt).filter(LoginAttempt.success.is_(False))
        }
        assert reasons == {
            "bob@example.com": "invalid_password",
            "ghost@example.com": "user_not_found",
        }

    def test_eleventh_attempt_is_rate_limited_even_with_right_password(self, auth_service):
        UserFactory(email="alice@example.com")
        for _ in range(10):
            res = _login(auth_service, "alice@example.com", password="wrong")
            assert res.kind is AuthErrorKind.INVALID_CREDENTIALS

        res = _login(auth_service, "alice@example.com")

        assert res.kind is AuthErrorKind.RATE_LIMITED
        # Counter is keyed by email and IP
        assert _login(auth_service, "alice@example.com", device=PHONE).ok
        auth_service.clear_rate_limit("alice@example.com", DESKTOP.ip_address)
        assert _login(auth_service, "alice@example.com").ok

    def test_success_resets_failure_counter(self, auth_service):
        UserFactory(email="alice@example.com")
        for _ in range(9):
            _login(auth_service, "alice@example.com", password="wrong")

        assert _login(auth_service, "alice@example.com").ok
        for _ in range(9):
            _login(auth_service, "alice@example.com", password="wrong")
        assert _login(auth_service, "alice@example.com").ok


class TestRefresh:
    def test_rotation_then_replay_invalidates_everything(self, auth_service, redis_client):
        user = UserFactory(email="alice@example.com")

        with freeze_time("2024-06-01 09:00:00") as clock:
            first = _login(auth_service, "alice@example.com").unwrap().tokens
            clock.tick(timedelta(minutes=1))

            rotated = auth_service.refresh(first.refresh_token).unwrap()
            assert rotated.session_id == first.session_id
            assert rotated.refresh_token != first.refresh_token
            clock.tick(timedelta(seconds=5))

            replay = auth_service.refresh(first.refresh_token)
            assert replay.kind is AuthErrorKind.INVALID_TOKEN

            assert RedisTokenVersionStore(r=redis_client).get(user.id) == 1
            for token in (first.access_token, rotated.access_token):
                with pytest.raises(AuthError) as ei:
                    auth_service.authority.verify_access(token)
                assert ei.value.kind is AuthErrorKind.VERSION_INVALIDATED

    def test_rotation_keeps_remember_me_lifetime(self, auth_service):
        UserFactory(email="carol@example.com")
        with freeze_time("2024-06-01 09:00:00") as clock:
            first = _login(auth_service, "carol@example.com", remember_me=True).unwrap().tokens
            clock.tick(timedelta(hours=1))

            rotated = auth_service.refresh(first.refresh_token).unwrap()

        assert rotated.refresh_expires_at - rotated.access_expires_at == (
            timedelta(days=30) - timedelta(minutes=15)
        )

    def test_revoked_session_refuses_refresh_without_version_bump(
        self, auth_service, redis_client
    ):
        user = UserFactory(email="dan@example.com")
        out = _login(auth_service, "dan@example.com").unwrap()
        assert auth_service.revoke_session(user.id, out.session.id).unwrap() is True

        res = auth_service.refresh(out.tokens.refresh_token)

        assert res.kind is AuthErrorKind.INVALID_TOKEN
        assert RedisTokenVersionStore(r=redis_client).get(user.id) == 0

    def test_access_token_is_not_a_refresh_token(self, auth_service):
        UserFactory(email="erin@example.com")
        out = _login(auth_service, "erin@example.com").unwrap()

        assert auth_service.refresh(out.tokens.access_token).kind is AuthErrorKind.INVALID_TOKEN
        assert auth_service.refresh("garbage").kind is AuthErrorKind.INVALID_TOKEN

    def test_suspended_user_cannot_refresh(self, auth_service):
        user = UserFactory(email="fay@example.com")
        out = _login(auth_service, "fay@example.com").unwrap()

        assert auth_service.suspend_user(user.id).unwrap() == 1

        assert auth_service.refresh(out.tokens.refresh_token).kind is AuthErrorKind.INVALID_TOKEN
        assert _login(auth_service, "fay@example.com").kind is AuthErrorKind.ACCOUNT_SUSPENDED


class TestSessions:
    def test_revoking_the_phone_leaves_the_desktop(self, auth_service, events):
        user = UserFactory(email="alice@example.com")
        with freeze_time("2024-06-01 09:00:00") as clock:
            phone = _login(auth_service, "alice@example.com", device=PHONE).unwrap()
            clock.tick(timedelta(seconds=10))
            desk = _login(auth_service, "alice@example.com", device=DESKTOP).unwrap()

            listed = auth_service.list_sessions(user.id, desk.session.id).unwrap()
            assert {s.device_type for s in listed} == {"mobile", "desktop"}

            assert auth_service.revoke_session(user.id, phone.session.id).unwrap() is True
            assert events.last("auth.session_revoked")["sessionId"] == phone.session.id

            listed = auth_service.list_sessions(user.id, desk.session.id).unwrap()
            assert [(s.id, s.is_current) for s in listed] == [(desk.session.id, True)]
            assert auth_service.refresh(phone.tokens.refresh_token).kind is (
                AuthErrorKind.INVALID_TOKEN
            )
            assert auth_service.refresh(desk.tokens.refresh_token).ok

    def test_foreign_session_is_not_found(self, auth_service):
        mine = UserFactory()
        theirs = SessionFactory()

        res = auth_service.revoke_session(mine.id, theirs.id)

        assert res.kind is AuthErrorKind.NOT_FOUND_OR_FORBIDDEN
        assert auth_service.registry.is_valid(theirs.id) is True

    def test_sweep(self, auth_service):
        SessionFactory(is_active=False, last_activity_at=auth_service.now_utc() - timedelta(days=30))

        assert auth_service.sweep_sessions().unwrap() == 1

    def test_touch_session(self, auth_service):
        s = SessionFactory(last_activity_at=auth_service.now_utc() - timedelta(minutes=5))

        assert auth_service.touch_session(s.id) is True
        assert auth_service.touch_session(s.id) is False


def test_introspect(auth_service):
    UserFactory(email="gus@example.com", role="admin")
    out = _login(auth_service, "gus@example.com").unwrap()

    verdict = auth_service.introspect(out.tokens.access_token)

    assert verdict.active is True
    assert verdict.claims["role"] == "admin"
    assert "admin:users" in verdict.claims["permissions"]
    assert auth_service.introspect("nope").active is False
