"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Redis-backed
ports run on ``fakeredis``; a fresh fake is created for every test.
"""

from __future__ import annotations

import os

import fakeredis
import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from authcore.core.config import TestingConfig
from authcore.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authcore.factory import create_app  # application factory under test
from authcore.infra.jwt.pyjwt_token_provider import PyJWTTokenProvider
from authcore.infra.redis import (
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

from tests.helpers.constants import ACCESS_SECRET, AUDIENCE, ISSUER, REFRESH_SECRET


class RecordingPublisher:
    """Event publisher double keeping every published event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def publish(self, event_type: str, data: dict) -> None:
        self.events.append((event_type, data))

    def types(self) -> list[str]:
        return [t for t, _ in self.events]

    def last(self, event_type: str) -> dict:
        return next(d for t, d in reversed(self.events) if t == event_type)


@pytest.fixture(scope="session")
def app_redis():
    """Fake Redis shared by the session-scoped application."""
    return fakeredis.FakeRedis()


@pytest.fixture(scope="session")
def app(app_redis):
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestingConfig` applied and the
        auth service wired to a fake Redis.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig, redis_client=app_redis)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session.

    pysqlite manages transactions on its own and would turn the release of
    the outermost SAVEPOINT into a commit; hand BEGIN over to SQLAlchemy so
    the per-test rollback really discards everything.
    """
    conn = db.engine.connect()
    if conn.dialect.name == "sqlite":
        conn.connection.dbapi_connection.isolation_level = None
        event.listen(conn, "begin", lambda c: c.exec_driver_sql("BEGIN"))
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    The outer transaction is rolled back after the test. The session joins
    it through its own SAVEPOINT, so service-level ``commit()`` calls only
    release that SAVEPOINT and nothing reaches the database for real.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    scoped = scoped_session(SessionFactory)

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


# -- Fast store ---------------------------------------------------------------


@pytest.fixture
def redis_client():
    """Fresh in-memory Redis per test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def down_redis():
    """Redis client whose server refuses every command."""
    server = fakeredis.FakeServer()
    server.connected = False
    return fakeredis.FakeRedis(server=server)


# -- Services -------------------------------------------------------------------


@pytest.fixture
def hasher():
    return WerkzeugPasswordHasher(default_cost=1_000)


@pytest.fixture
def token_provider():
    return PyJWTTokenProvider(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        issuer=ISSUER,
        audience=AUDIENCE,
    )


@pytest.fixture
def events():
    return RecordingPublisher()


@pytest.fixture
def build_authority(token_provider):
    """Factory building a :class:`TokenAuthority` over a given Redis client."""

    def _build(r, **overrides) -> TokenAuthority:
        return TokenAuthority(
            provider=overrides.get("provider") or token_provider,
            families=overrides.get("families") or RedisTokenFamilyStore(r=r),
            versions=overrides.get("versions") or RedisTokenVersionStore(r=r),
            denylist=overrides.get("denylist") or RedisTokenDenylistStore(r),
            config=overrides.get("config") or TokenConfig(),
        )

    return _build


@pytest.fixture
def authority(build_authority, redis_client):
    return build_authority(redis_client)


@pytest.fixture
def registry(redis_client):
    return SessionRegistry(families=RedisTokenFamilyStore(r=redis_client))


@pytest.fixture
def build_auth_service(build_authority, hasher, events):
    """Factory building an :class:`AuthService` wired to one Redis client."""

    def _build(r, *, policy: AuthPolicy | None = None, authority=None) -> AuthService:
        families = RedisTokenFamilyStore(r=r)
        return AuthService(
            authority=authority or build_authority(r, families=families),
            registry=SessionRegistry(families=families),
            hasher=hasher,
            limiter=RedisRateLimiter(r=r),
            cache=RedisUserCache(r=r),
            one_time_tokens=RedisOneTimeTokenStore(r=r),
            events=events,
            policy=policy or AuthPolicy(),
        )

    return _build


@pytest.fixture
def auth_service(build_auth_service, redis_client):
    return build_auth_service(redis_client)
