"""Unit tests for :class:`authcore.services.tokens.TokenAuthority`."""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from authcore.infra.jwt.pyjwt_token_provider import PyJWTTokenProvider
from authcore.infra.redis import RedisTokenFamilyStore, RedisTokenVersionStore
from authcore.services._shared.errors import AuthError, AuthErrorKind
from authcore.services.tokens import TokenConfig, TokenSubject, hash_token
from tests.helpers.constants import ACCESS_SECRET, AUDIENCE, ISSUER, REFRESH_SECRET

SUBJECT = TokenSubject(
    user_id="user-1", email="alice@example.com", role="user", tenant_id="tenant-1"
)


def _kind(excinfo) -> AuthErrorKind:
    return excinfo.value.kind


class TestIssue:
    def test_pair_is_bound_to_session_and_family(self, authority, redis_client):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)

        claims = authority.verify_access(pair.access_token)
        refresh = authority.decode_refresh(pair.refresh_token)

        assert pair.expires_in == 900
        assert pair.token_type == "Bearer"
        assert pair.session_id == "sess-1"
        assert claims.user_id == "user-1"
        assert claims.session_id == "sess-1"
        assert claims.version == 0
        assert claims.has_permission("read:profile")
        assert not claims.has_permission("admin:users")
        assert refresh.family == RedisTokenFamilyStore(r=redis_client).get("sess-1")

    @pytest.mark.parametrize(("remember_me", "days"), [(False, 7), (True, 30)])
    def test_refresh_lifetime(self, authority, redis_client, remember_me, days):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=remember_me)

        lifetime = pair.refresh_expires_at - pair.access_expires_at + timedelta(minutes=15)
        assert lifetime == timedelta(days=days)
        assert redis_client.ttl("token_family:sess-1") > (days - 1) * 86400

    def test_superadmin_wildcard(self, authority):
        admin = TokenSubject(user_id="root", email="r@example.com", role="superadmin",
                             tenant_id="t")

        claims = authority.verify_access(authority.issue(admin, "s", False).access_token)

        assert claims.permissions == ("*",)
        assert claims.has_permission("anything:at-all")

    def test_refresh_token_is_not_an_access_token(self, authority):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)

        with pytest.raises(AuthError) as ei:
            authority.verify_access(pair.refresh_token)
        assert _kind(ei) is AuthErrorKind.INVALID_TOKEN


class TestAccessVerification:
    def test_expired_access_token(self, authority):
        with freeze_time("2024-01-01 12:00:00"):
            pair = authority.issue(SUBJECT, "sess-1", remember_me=False)
        with freeze_time("2024-01-01 12:15:01"):
            with pytest.raises(AuthError) as ei:
                authority.verify_access(pair.access_token)
        assert _kind(ei) is AuthErrorKind.INVALID_TOKEN

    def test_blacklisted_token_is_rejected_until_it_expires(self, authority, redis_client):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)

        assert authority.blacklist(pair.access_token) is True

        with pytest.raises(AuthError) as ei:
            authority.verify_access(pair.access_token)
        assert _kind(ei) is AuthErrorKind.BLACKLISTED
        assert 0 < redis_client.ttl(f"blacklist:{hash_token(pair.access_token)}") <= 900

    def test_blacklist_covers_the_verifier_leeway(self, build_authority, redis_client):
        provider = PyJWTTokenProvider(
            access_secret=ACCESS_SECRET,
            refresh_secret=REFRESH_SECRET,
            issuer=ISSUER,
            audience=AUDIENCE,
            leeway_seconds=5,
        )
        authority = build_authority(
            redis_client, provider=provider, config=TokenConfig(leeway=timedelta(seconds=5))
        )
        with freeze_time("2024-01-01 12:00:00"):
            pair = authority.issue(SUBJECT, "sess-1", remember_me=False)
            authority.blacklist(pair.access_token)
            assert redis_client.ttl(f"blacklist:{hash_token(pair.access_token)}") == 905

        # Past exp but inside the leeway: still a valid signature, still denied
        with freeze_time("2024-01-01 12:15:02"):
            with pytest.raises(AuthError) as ei:
                authority.verify_access(pair.access_token)
        assert _kind(ei) is AuthErrorKind.BLACKLISTED

    def test_blacklist_skips_garbage_and_expired(self, authority, redis_client):
        with freeze_time("2024-01-01 12:00:00"):
            old = authority.issue(SUBJECT, "sess-1", remember_me=False).access_token

        assert authority.blacklist("garbage") is False
        assert authority.blacklist(old) is False
        assert redis_client.keys("blacklist:*") == []

    def test_version_bump_invalidates_every_access_token(self, authority):
        a = authority.issue(SUBJECT, "sess-1", remember_me=False)
        b = authority.issue(SUBJECT, "sess-2", remember_me=False)

        assert authority.invalidate_all_for_user("user-1") == 1

        for pair in (a, b):
            with pytest.raises(AuthError) as ei:
                authority.verify_access(pair.access_token)
            assert _kind(ei) is AuthErrorKind.VERSION_INVALIDATED

        fresh = authority.issue(SUBJECT, "sess-3", remember_me=False)
        assert authority.verify_access(fresh.access_token).version == 1

    def test_store_outage_fails_closed(self, authority, build_authority, down_redis):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)
        offline = build_authority(down_redis)

        with pytest.raises(AuthError) as ei:
            offline.verify_access(pair.access_token)
        assert _kind(ei) is AuthErrorKind.INVALID_TOKEN


class TestRefresh:
    def test_verify_refresh_accepts_current_family(self, authority):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)

        claims = authority.verify_refresh(pair.refresh_token)

        assert claims.session_id == "sess-1"

    def test_rotation_replaces_family(self, authority):
        with freeze_time("2024-01-01 12:00:00"):
            first = authority.issue(SUBJECT, "sess-1", remember_me=False)
        with freeze_time("2024-01-01 12:05:00"):
            claims = authority.verify_refresh(first.refresh_token)
            second = authority.rotate(claims, SUBJECT, remember_me=False)

            assert second.session_id == "sess-1"
            assert authority.verify_refresh(second.refresh_token).family != claims.family

    def test_replayed_refresh_token_bumps_version(self, authority, redis_client):
        with freeze_time("2024-01-01 12:00:00"):
            first = authority.issue(SUBJECT, "sess-1", remember_me=False)
        with freeze_time("2024-01-01 12:05:00"):
            authority.rotate(authority.verify_refresh(first.refresh_token), SUBJECT, False)

            with pytest.raises(AuthError) as ei:
                authority.verify_refresh(first.refresh_token)

            assert _kind(ei) is AuthErrorKind.REUSE_DETECTED
            assert RedisTokenVersionStore(r=redis_client).get("user-1") == 1
            with pytest.raises(AuthError) as ei:
                authority.verify_access(first.access_token)
            assert _kind(ei) is AuthErrorKind.VERSION_INVALIDATED

    def test_cleared_family_counts_as_reuse(self, authority, redis_client):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)
        RedisTokenFamilyStore(r=redis_client).clear("sess-1")

        with pytest.raises(AuthError) as ei:
            authority.verify_refresh(pair.refresh_token)
        assert _kind(ei) is AuthErrorKind.REUSE_DETECTED

    def test_only_one_concurrent_rotation_wins(self, authority):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)
        a = authority.verify_refresh(pair.refresh_token)
        b = authority.verify_refresh(pair.refresh_token)

        authority.rotate(a, SUBJECT, remember_me=False)
        with pytest.raises(AuthError) as ei:
            authority.rotate(b, SUBJECT, remember_me=False)
        assert _kind(ei) is AuthErrorKind.REUSE_DETECTED

    def test_refresh_with_store_down_is_invalid_token(self, authority, build_authority,
                                                      down_redis):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)

        with pytest.raises(AuthError) as ei:
            build_authority(down_redis).verify_refresh(pair.refresh_token)
        assert _kind(ei) is AuthErrorKind.INVALID_TOKEN

    def test_expired_refresh_token(self, authority):
        with freeze_time("2024-01-01 12:00:00"):
            pair = authority.issue(SUBJECT, "sess-1", remember_me=False)
        with freeze_time("2024-01-08 12:00:01"):
            with pytest.raises(AuthError) as ei:
                authority.decode_refresh(pair.refresh_token)
        assert _kind(ei) is AuthErrorKind.INVALID_TOKEN


class TestIntrospection:
    def test_active_token(self, authority):
        pair = authority.issue(SUBJECT, "sess-1", remember_me=False)

        out = authority.introspect(pair.access_token)

        assert out.active is True
        assert out.claims["sub"] == "user-1"
        assert out.claims["email"] == "alice@example.com"
        assert "read:profile" in out.claims["scope"].split()
        assert out.claims["exp"] - out.claims["iat"] == 900

    def test_inactive_token_never_raises(self, authority):
        out = authority.introspect("garbage")

        assert out.active is False
        assert out.claims is None


def test_custom_lifetimes(build_authority, redis_client):
    authority = build_authority(
        redis_client, config=TokenConfig(access_ttl=timedelta(minutes=5))
    )

    assert authority.issue(SUBJECT, "s", False).expires_in == 300
