"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

MIN_SECRET_LENGTH: Final[int] = 32

# Loads .env in development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def env_float(name: str, default: float) -> float:
    """Parse a float from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return float(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Not used for token signing.
    JWT_ACCESS_SECRET: str
        HMAC secret signing access tokens.
    JWT_REFRESH_SECRET: str
        HMAC secret signing refresh tokens. Must differ from the access one.
    JWT_ISSUER / JWT_AUDIENCE: str
        ``iss`` / ``aud`` claims stamped on and required from access tokens.
    JWT_LEEWAY_SECONDS: int
        Clock skew tolerated when validating ``exp`` and ``iat``.
    ACCESS_TOKEN_TTL_SECONDS: int
        Access token lifetime (15 minutes).
    REFRESH_TOKEN_TTL_DAYS / REFRESH_TOKEN_REMEMBER_TTL_DAYS: int
        Refresh token and session lifetime without / with remember-me.
    REDIS_URL: str
        Connection string of the shared fast store.
    REDIS_SOCKET_TIMEOUT: float
        Socket and connect timeout (seconds) applied to every Redis call.
    PASSWORD_HASH_COST: int
        PBKDF2 iteration count handed to the password hasher.
    LOGIN_RATE_LIMIT_MAX / LOGIN_RATE_LIMIT_WINDOW_SECONDS: int
        Failed login attempts tolerated per email and IP inside the window.
    REGISTER_RATE_LIMIT_MAX / REGISTER_RATE_LIMIT_WINDOW_SECONDS: int
        Registrations tolerated per IP inside the window.
    PASSWORD_RESET_RATE_LIMIT_MAX: int
        Password reset requests tolerated per user per hour.
    USER_CACHE_TTL_SECONDS: int
        Lifetime of the read-through user credential cache.
    STRICT_DEVICE_POLICY: bool
        When ``True`` a new login revokes every other session of the account.
    AUTO_ACTIVATE_PENDING_ON_LOGIN: bool
        When ``True`` a successful password login activates a pending account.
    SESSION_RETENTION_DAYS: int
        Inactive sessions older than this are removed by the sweep.
    SESSION_TOUCH_INTERVAL_SECONDS: int
        Minimum gap between two activity bumps of the same session.
    EVENT_CHANNEL: str
        Redis pub/sub channel receiving domain events.
    DEFAULT_TENANT_ID: str
        Tenant assigned to accounts created without an explicit one.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_NAME = "authcore"

    # Secrets / signing
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me-0123456789")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me-0123456789")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authcore")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authcore-api")
    JWT_LEEWAY_SECONDS = env_int("JWT_LEEWAY_SECONDS", 5)

    # Token lifetimes
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 900)
    REFRESH_TOKEN_TTL_DAYS = env_int("REFRESH_TOKEN_TTL_DAYS", 7)
    REFRESH_TOKEN_REMEMBER_TTL_DAYS = env_int("REFRESH_TOKEN_REMEMBER_TTL_DAYS", 30)

    # Fast store
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT = env_float("REDIS_SOCKET_TIMEOUT", 0.25)

    # Credentials & throttling
    PASSWORD_HASH_COST = env_int("PASSWORD_HASH_COST", 600_000)
    LOGIN_RATE_LIMIT_MAX = env_int("LOGIN_RATE_LIMIT_MAX", 10)
    LOGIN_RATE_LIMIT_WINDOW_SECONDS = env_int("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
    REGISTER_RATE_LIMIT_MAX = env_int("REGISTER_RATE_LIMIT_MAX", 5)
    REGISTER_RATE_LIMIT_WINDOW_SECONDS = env_int("REGISTER_RATE_LIMIT_WINDOW_SECONDS", 60 * 60)
    PASSWORD_RESET_RATE_LIMIT_MAX = env_int("PASSWORD_RESET_RATE_LIMIT_MAX", 3)
    USER_CACHE_TTL_SECONDS = env_int("USER_CACHE_TTL_SECONDS", 300)

    # Session policy
    STRICT_DEVICE_POLICY = env_bool("STRICT_DEVICE_POLICY", False)
    AUTO_ACTIVATE_PENDING_ON_LOGIN = env_bool("AUTO_ACTIVATE_PENDING_ON_LOGIN", False)
    SESSION_RETENTION_DAYS = env_int("SESSION_RETENTION_DAYS", 7)
    SESSION_TOUCH_INTERVAL_SECONDS = env_int("SESSION_TOUCH_INTERVAL_SECONDS", 60)

    # Events & tenancy
    EVENT_CHANNEL = os.getenv("EVENT_CHANNEL", "auth:events")
    DEFAULT_TENANT_ID = os.getenv("DEFAULT_TENANT_ID", "00000000-0000-0000-0000-000000000000")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Hook for environment specific startup checks (no-op by default)."""


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and lets pending accounts log in without
    going through email verification.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    AUTO_ACTIVATE_PENDING_ON_LOGIN = env_bool("AUTO_ACTIVATE_PENDING_ON_LOGIN", True)
    PASSWORD_HASH_COST = env_int("PASSWORD_HASH_COST", 10_000)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Leaves ``REDIS_URL`` empty; tests inject ``fakeredis`` clients.
    - Keeps password hashing cheap.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    REDIS_URL = ""
    PASSWORD_HASH_COST = 1_000


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled and refuses to boot with missing or
    weak signing secrets.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "")

    @classmethod
    def validate(cls) -> None:
        """Reject missing, short or shared signing secrets.

        :raises RuntimeError: When the signing configuration is unsafe.
        """
        for name in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
            value = getattr(cls, name) or ""
            if len(value) < MIN_SECRET_LENGTH:
                raise RuntimeError(f"{name} must be at least {MIN_SECRET_LENGTH} characters.")
        if cls.JWT_ACCESS_SECRET == cls.JWT_REFRESH_SECRET:
            raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ.")


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
