"""Application factory wiring Flask extensions, the request pipeline and blueprints."""

from __future__ import annotations

from flask import Flask, request
from flask.typing import ResponseReturnValue

from football_network.core.config import BaseConfig, ensure_secrets, get_config
from football_network.core.logger import configure_logging, init_app as init_logging
from football_network.services._shared.ports import InMemoryRefreshTokenStore, RefreshTokenStore


class FootballNetworkApp(Flask):
    """Flask application that dispatches views through the request pipeline.

    Notes
    -----
    ``before_request``/``after_request`` hooks keep running around
    :meth:`dispatch_request`; routing errors surface inside the pipeline
    because Flask raises them from the view dispatch.
    """

    def dispatch_request(self) -> ResponseReturnValue:
        pipeline = self.extensions.get("request_pipeline")
        if pipeline is None:
            return super().dispatch_request()
        return pipeline(request._get_current_object())  # type: ignore[attr-defined]


def build_refresh_token_store(app: Flask) -> RefreshTokenStore:
    """Select the refresh-token backend named by ``REFRESH_TOKEN_BACKEND``."""

    backend = str(app.config.get("REFRESH_TOKEN_BACKEND", "memory")).lower()
    if backend == "memory":
        return InMemoryRefreshTokenStore()
    if backend == "redis":
        from football_network.core.extensions import get_redis
        from football_network.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore

        return RedisRefreshTokenStore(get_redis(app))
    raise RuntimeError(f"Unknown REFRESH_TOKEN_BACKEND {backend!r} (expected 'memory' or 'redis')")


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> FootballNetworkApp:
    """Build and configure the Flask application.

    :raises RuntimeError: When the configuration enforces secrets and
        ``SECRET_KEY`` or ``JWT_SECRET_KEY`` is missing or a placeholder.
    """

    app = FootballNetworkApp(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)
    if app.config.get("ENFORCE_SECRETS"):
        ensure_secrets(app.config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # ProxyFix only when PROXY_FIX_X_* trusts an upstream proxy
    from football_network.core import proxy

    proxy.init_app(app)

    from football_network.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from football_network.infra.jwt.flask_jwt_token_codec import FlaskJWTTokenCodec

    app.extensions["refresh_token_store"] = build_refresh_token_store(app)
    app.extensions["token_codec"] = FlaskJWTTokenCodec()

    from football_network.core import cors

    cors.init_app(app)

    from football_network.api import init_app as init_api

    init_api(app)

    from football_network import middleware

    middleware.init_app(app)

    from football_network.core import errors

    errors.init_app(app)

    from football_network import cli as app_cli

    app_cli.init_app(app)

    return app
