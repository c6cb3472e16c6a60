"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Loads .env during development (no-op when missing)
load_dotenv()

#: Development defaults that must never sign anything in production.
PLACEHOLDER_SECRETS: Final[Mapping[str, str]] = {
    "SECRET_KEY": "CHANGE_ME",
    "JWT_SECRET_KEY": "CHANGE_ME_JWT_SECRET_AT_LEAST_32_BYTES",
}


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
    """Parse an integer from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Value returned when the variable is unset, blank or not a number.

    Returns
    -------
    int
        Parsed integer or ``default``.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing. Defaults to a development-safe
        placeholder and should be overridden in production.
    JWT_SECRET_KEY: str
        Symmetric key used by ``flask-jwt-extended`` to sign access tokens
        (HS256).
    JWT_ENCODE_ISSUER / JWT_DECODE_ISSUER: str
        Issuer written into and required from every access token.
    JWT_ENCODE_AUDIENCE / JWT_DECODE_AUDIENCE: str
        Audience written into and required from every access token.
    JWT_ACCESS_TOKEN_EXPIRES: timedelta
        Access-token lifetime (60 minutes by default).
    JWT_REFRESH_TOKEN_EXPIRES: timedelta
        Refresh-token lifetime (7 days by default).
    JWT_DECODE_LEEWAY: int
        Clock-skew tolerance in seconds applied when validating ``exp``/``nbf``.
    REFRESH_TOKEN_BACKEND: str
        ``"memory"`` (process-local) or ``"redis"`` (requires ``REDIS_URL``).
    AUTH_RATE_LIMIT_*:
        Sliding-window limiter for failed authentication attempts.
    REQUEST_LOG_*:
        Request/response logging options.
    PERFORMANCE_*:
        Thresholds driving slow-request, large-response and memory alerts.
    SECURITY_*:
        Security-header preset and HSTS tuning.
    EXPOSE_STACK_TRACES: bool
        Include ``stackTrace`` in error bodies (development only).
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    PROXY_FIX_X_FOR / _X_PROTO / _X_HOST / _X_PREFIX: int
        Reverse proxies trusted to set each ``X-Forwarded-*`` header. Zero
        means forwarded headers are ignored and the socket address is the
        client address.
    ENFORCE_SECRETS: bool
        Refuse to build the app while ``SECRET_KEY`` or ``JWT_SECRET_KEY``
        is unset or still a placeholder.
    APP_ENV: str
        Environment name; ``flask seed fresh`` only runs in ``development``
        or ``testing``.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", PLACEHOLDER_SECRETS["SECRET_KEY"])
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", PLACEHOLDER_SECRETS["JWT_SECRET_KEY"])
    ENFORCE_SECRETS = False
    JWT_ALGORITHM = "HS256"
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ENCODE_ISSUER = os.getenv("JWT_ISSUER", "PolishFootballNetwork")
    JWT_DECODE_ISSUER = JWT_ENCODE_ISSUER
    JWT_ENCODE_AUDIENCE = os.getenv("JWT_AUDIENCE", "PolishFootballNetwork.Client")
    JWT_DECODE_AUDIENCE = JWT_ENCODE_AUDIENCE
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=env_int("JWT_ACCESS_TOKEN_MINUTES", 60))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=env_int("JWT_REFRESH_TOKEN_DAYS", 7))
    JWT_DECODE_LEEWAY = env_int("JWT_LEEWAY_SECONDS", 30)
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Refresh-token persistence
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "memory")
    REDIS_URL = os.getenv("REDIS_URL")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Reverse proxy: trusted hops per X-Forwarded-* header (0 = clients connect directly)
    PROXY_FIX_X_FOR = env_int("PROXY_FIX_X_FOR", 0)
    PROXY_FIX_X_PROTO = env_int("PROXY_FIX_X_PROTO", 0)
    PROXY_FIX_X_HOST = env_int("PROXY_FIX_X_HOST", 0)
    PROXY_FIX_X_PREFIX = env_int("PROXY_FIX_X_PREFIX", 0)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Auth rate limiting
    AUTH_RATE_LIMIT_ENABLED = env_bool("AUTH_RATE_LIMIT_ENABLED", True)
    AUTH_RATE_LIMIT_PATH_PREFIX = os.getenv("AUTH_RATE_LIMIT_PATH_PREFIX", "/api/v1/auth")
    AUTH_RATE_LIMIT_WINDOW_SECONDS = env_int("AUTH_RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
    AUTH_RATE_LIMIT_MAX_ATTEMPTS = env_int("AUTH_RATE_LIMIT_MAX_ATTEMPTS", 5)

    # Request logging
    REQUEST_LOG_REQUEST_BODY = env_bool("REQUEST_LOG_REQUEST_BODY", False)
    REQUEST_LOG_RESPONSE_BODY = env_bool("REQUEST_LOG_RESPONSE_BODY", False)
    REQUEST_LOG_SUCCESSFUL_BODIES = env_bool("REQUEST_LOG_SUCCESSFUL_BODIES", False)
    REQUEST_LOG_MAX_BODY_SIZE = env_int("REQUEST_LOG_MAX_BODY_SIZE", 4096)
    REQUEST_LOG_SLOW_MS = env_int("REQUEST_LOG_SLOW_MS", 2000)
    REQUEST_LOG_SKIP_HEALTH_CHECKS = env_bool("REQUEST_LOG_SKIP_HEALTH_CHECKS", True)

    # Performance monitoring
    PERFORMANCE_SLOW_MS = env_int("PERFORMANCE_SLOW_MS", 1000)
    PERFORMANCE_VERY_SLOW_MS = env_int("PERFORMANCE_VERY_SLOW_MS", 5000)
    PERFORMANCE_LARGE_RESPONSE_BYTES = env_int("PERFORMANCE_LARGE_RESPONSE_BYTES", 1024 * 1024)
    PERFORMANCE_MEMORY_DELTA_BYTES = env_int("PERFORMANCE_MEMORY_DELTA_BYTES", 10 * 1024 * 1024)
    PERFORMANCE_TRACK_MEMORY = env_bool("PERFORMANCE_TRACK_MEMORY", False)
    PERFORMANCE_DETAILED_LOGGING = env_bool("PERFORMANCE_DETAILED_LOGGING", False)
    PERFORMANCE_NOTIFICATIONS = env_bool("PERFORMANCE_NOTIFICATIONS", True)

    # Security headers
    SECURITY_HEADERS_PRESET = os.getenv("SECURITY_HEADERS_PRESET", "production")
    SECURITY_HSTS_ENABLED = env_bool("SECURITY_HSTS_ENABLED", True)
    SECURITY_HSTS_MAX_AGE = env_int("SECURITY_HSTS_MAX_AGE", 31536000)
    SECURITY_HSTS_INCLUDE_SUBDOMAINS = env_bool("SECURITY_HSTS_INCLUDE_SUBDOMAINS", True)
    SECURITY_HSTS_PRELOAD = env_bool("SECURITY_HSTS_PRELOAD", False)
    SECURITY_CACHE_CONTROL = env_bool("SECURITY_CACHE_CONTROL", True)
    SECURITY_CUSTOM_HEADERS: dict[str, str] = {}
    REQUIRE_HTTPS = env_bool("REQUIRE_HTTPS", True)

    # Error bodies
    EXPOSE_STACK_TRACES = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:4200")

    # Flask built-ins
    APP_ENV = "base"
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode, stack traces in error bodies and the relaxed
    security-header preset (no HSTS, ``SAMEORIGIN`` framing, websocket CSP).
    """

    APP_ENV = "development"
    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes
    SECURITY_HEADERS_PRESET = os.getenv("SECURITY_HEADERS_PRESET", "development")
    REQUIRE_HTTPS = env_bool("REQUIRE_HTTPS", False)
    EXPOSE_STACK_TRACES = True


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Zero token leeway so expiry assertions are exact.
    """

    APP_ENV = "testing"
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    JWT_SECRET_KEY = "testing-secret-key-with-enough-entropy-0123456789"
    JWT_DECODE_LEEWAY = 0
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    REFRESH_TOKEN_BACKEND = "memory"
    REDIS_URL = None


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug, SQL echoing and stack traces disabled; HSTS preload is
    switched on together with the strict security-header preset. Signing
    secrets must come from the environment, and one reverse proxy is
    trusted for the client address and scheme.
    """

    APP_ENV = "production"
    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    SECURITY_HEADERS_PRESET = "production"
    SECURITY_HSTS_PRELOAD = env_bool("SECURITY_HSTS_PRELOAD", True)
    EXPOSE_STACK_TRACES = False
    ENFORCE_SECRETS = True
    PROXY_FIX_X_FOR = env_int("PROXY_FIX_X_FOR", 1)
    PROXY_FIX_X_PROTO = env_int("PROXY_FIX_X_PROTO", 1)


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


def ensure_secrets(config: Mapping[str, Any]) -> None:
    """Reject missing or placeholder signing secrets.

    Parameters
    ----------
    config: Mapping[str, Any]
        Loaded application configuration.

    Raises
    ------
    RuntimeError
        Naming every secret that is unset, blank or still equal to its
        development placeholder.
    """
    weak = [
        name
        for name, placeholder in PLACEHOLDER_SECRETS.items()
        if not str(config.get(name) or "").strip() or config.get(name) == placeholder
    ]
    if weak:
        raise RuntimeError(
            f"Refusing to start without real secrets; set {', '.join(weak)} in the environment"
        )
