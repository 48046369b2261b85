"""Application factory wiring Flask extensions, blueprints and services."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask

from authcore.core.config import CONFIG_MAP, BaseConfig, get_config
from authcore.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    redis_client: redis.Redis | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config class/object, a ``CONFIG_MAP`` name, or ``None`` to
        resolve from ``APP_ENV``.
    :param redis_client: Pre-built Redis client (tests pass ``fakeredis``).
    :returns: Configured application with the auth service registered.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    if config is None:
        config = get_config()
    elif isinstance(config, str):
        config = CONFIG_MAP[config.strip().lower()]
    app.config.from_object(config)
    app.config["CONFIG_CLASS"] = config if isinstance(config, type) else None
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authcore.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from authcore.api import init_app as init_api

    init_api(app)

    from authcore.core import errors

    errors.init_app(app)

    from authcore.core import wiring

    wiring.init_app(app, redis_client=redis_client)

    from authcore import cli as app_cli

    app_cli.init_app(app)

    return app
