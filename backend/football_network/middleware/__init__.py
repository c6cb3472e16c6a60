"""Request pipeline: ordered cross-cutting stages around view dispatch.

Stages run outermost first::

    SecurityHeaders -> ExceptionHandling -> RequestLogging
        -> PerformanceMonitoring -> ExceptionTranslation -> AuthRateLimit -> view

Security headers wrap the exception handler so error bodies carry them too.
The exception handler sits outside logging and metrics so both observe the
original failure before it is rendered.
"""

from __future__ import annotations

from flask import Flask, Request, Response
from prometheus_client import CollectorRegistry

from football_network.services._shared.ports import AlertSink, LoggingAlertSink

from .auth_rate_limit import AuthRateLimitMiddleware, FailedAttemptLimiter
from .base import Handler, Middleware, client_ip, compose, normalize_endpoint
from .exception_handling import ExceptionHandlingMiddleware
from .exception_translation import ExceptionTranslationMiddleware
from .performance import HttpMetrics, PerformanceMiddleware, PerformanceThresholds
from .request_logging import RequestLoggingMiddleware, RequestLoggingOptions, redact_headers
from .security_headers import SecurityHeadersMiddleware, SecurityHeadersOptions


def build_pipeline(app: Flask) -> list[Middleware]:
    """Instantiate the stages from ``app.config`` and register shared state."""
    config = app.config

    registry = app.extensions.get("metrics_registry") or CollectorRegistry()
    metrics = HttpMetrics(registry)
    alert_sink: AlertSink = app.extensions.get("alert_sink") or LoggingAlertSink()
    rate_limit = AuthRateLimitMiddleware.from_config(config)

    app.extensions["metrics_registry"] = registry
    app.extensions["metrics"] = metrics
    app.extensions["alert_sink"] = alert_sink
    app.extensions["auth_rate_limiter"] = rate_limit.limiter

    return [
        SecurityHeadersMiddleware(SecurityHeadersOptions.from_config(config)),
        ExceptionHandlingMiddleware(
            expose_stack_trace=bool(config.get("EXPOSE_STACK_TRACES", False))
        ),
        RequestLoggingMiddleware(RequestLoggingOptions.from_config(config)),
        PerformanceMiddleware(
            metrics,
            alert_sink=alert_sink,
            thresholds=PerformanceThresholds.from_config(config),
            track_memory=bool(config.get("PERFORMANCE_TRACK_MEMORY", False)),
            detailed_logging=bool(config.get("PERFORMANCE_DETAILED_LOGGING", False)),
            notifications=bool(config.get("PERFORMANCE_NOTIFICATIONS", True)),
        ),
        ExceptionTranslationMiddleware(),
        rate_limit,
    ]


def init_app(app: Flask) -> None:
    """
    Compose the pipeline around the view dispatch of ``app``.

    The composed handler is stored in ``app.extensions["request_pipeline"]``
    (the stages in ``request_pipeline_stages``);
    :class:`football_network.factory.FootballNetworkApp` runs it from
    ``dispatch_request``.
    """
    stages = build_pipeline(app)

    def endpoint(_req: Request) -> Response:
        return app.make_response(Flask.dispatch_request(app))

    app.extensions["request_pipeline_stages"] = stages
    app.extensions["request_pipeline"] = compose(stages, endpoint)


__all__ = [
    "AuthRateLimitMiddleware",
    "ExceptionHandlingMiddleware",
    "ExceptionTranslationMiddleware",
    "FailedAttemptLimiter",
    "Handler",
    "HttpMetrics",
    "Middleware",
    "PerformanceMiddleware",
    "PerformanceThresholds",
    "RequestLoggingMiddleware",
    "RequestLoggingOptions",
    "SecurityHeadersMiddleware",
    "SecurityHeadersOptions",
    "build_pipeline",
    "client_ip",
    "compose",
    "init_app",
    "normalize_endpoint",
    "redact_headers",
]
