"""Composition root: build the auth services once per process."""

from __future__ import annotations

from datetime import timedelta

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app

from authcore.infra.jwt.pyjwt_token_provider import PyJWTTokenProvider
from authcore.infra.redis import (
    RedisEventPublisher,
    RedisOneTimeTokenStore,
    RedisRateLimiter,
    RedisTokenDenylistStore,
    RedisTokenFamilyStore,
    RedisTokenVersionStore,
    RedisUserCache,
)
from authcore.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from authcore.services.auth import AuthPolicy, AuthService
from authcore.services.sessions import SessionRegistry
from authcore.services.tokens import TokenAuthority, TokenConfig

EXTENSION_KEY = "auth_service"


def token_config_from(config) -> TokenConfig:
    return TokenConfig(
        access_ttl=timedelta(seconds=int(config["ACCESS_TOKEN_TTL_SECONDS"])),
        refresh_ttl=timedelta(days=int(config["REFRESH_TOKEN_TTL_DAYS"])),
        remember_ttl=timedelta(days=int(config["REFRESH_TOKEN_REMEMBER_TTL_DAYS"])),
        leeway=timedelta(seconds=int(config["JWT_LEEWAY_SECONDS"])),
    )


def auth_policy_from(config) -> AuthPolicy:
    return AuthPolicy(
        login_max_attempts=int(config["LOGIN_RATE_LIMIT_MAX"]),
        login_window=timedelta(seconds=int(config["LOGIN_RATE_LIMIT_WINDOW_SECONDS"])),
        register_max_attempts=int(config["REGISTER_RATE_LIMIT_MAX"]),
        register_window=timedelta(seconds=int(config["REGISTER_RATE_LIMIT_WINDOW_SECONDS"])),
        reset_max_requests=int(config["PASSWORD_RESET_RATE_LIMIT_MAX"]),
        user_cache_ttl=timedelta(seconds=int(config["USER_CACHE_TTL_SECONDS"])),
        strict_device_policy=bool(config["STRICT_DEVICE_POLICY"]),
        auto_activate_pending=bool(config["AUTO_ACTIVATE_PENDING_ON_LOGIN"]),
        default_tenant_id=str(config["DEFAULT_TENANT_ID"]),
    )


def build_auth_service(app: Flask, r: redis.Redis) -> AuthService:
    """
    Assemble :class:`AuthService` and its collaborators from app config.

    :param app: Configured Flask application.
    :param r: Redis client shared by every fast-store adapter.
    :returns: Ready-to-use service.
    :raises ValueError: On missing or shared signing secrets.
    """
    cfg = app.config
    token_cfg = token_config_from(cfg)
    families = RedisTokenFamilyStore(r=r)

    provider = PyJWTTokenProvider(
        access_secret=cfg["JWT_ACCESS_SECRET"],
        refresh_secret=cfg["JWT_REFRESH_SECRET"],
        issuer=cfg["JWT_ISSUER"],
        audience=cfg["JWT_AUDIENCE"],
        leeway_seconds=int(token_cfg.leeway.total_seconds()),
    )
    authority = TokenAuthority(
        provider=provider,
        families=families,
        versions=RedisTokenVersionStore(r=r),
        denylist=RedisTokenDenylistStore(r),
        config=token_cfg,
    )
    registry = SessionRegistry(
        families=families,
        token_config=token_cfg,
        retention_days=int(cfg["SESSION_RETENTION_DAYS"]),
        touch_interval_seconds=int(cfg["SESSION_TOUCH_INTERVAL_SECONDS"]),
    )
    return AuthService(
        authority=authority,
        registry=registry,
        hasher=WerkzeugPasswordHasher(default_cost=int(cfg["PASSWORD_HASH_COST"])),
        limiter=RedisRateLimiter(r=r),
        cache=RedisUserCache(r=r),
        one_time_tokens=RedisOneTimeTokenStore(r=r),
        events=RedisEventPublisher(r=r, channel=cfg["EVENT_CHANNEL"], source=cfg["APP_NAME"]),
        policy=auth_policy_from(cfg),
    )


def init_app(app: Flask, redis_client: redis.Redis | None = None) -> None:
    """
    Validate config and register the service on ``app.extensions``.

    :param redis_client: Explicit client (tests pass ``fakeredis``); the
        client created by :mod:`authcore.core.extensions` otherwise. Without
        either the service is not registered.
    """
    validate = getattr(app.config.get("CONFIG_CLASS"), "validate", None)
    if callable(validate):
        validate()

    r = redis_client or app.extensions.get("redis_client")
    if r is None:
        app.logger.warning("wiring.auth_service_disabled", extra={"event": "startup"})
        return
    app.extensions["redis_client"] = r
    app.extensions[EXTENSION_KEY] = build_auth_service(app, r)


def get_auth_service() -> AuthService:
    """Return the service registered on the current app."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("Auth service is not configured (no Redis client).") from None
