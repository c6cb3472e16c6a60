"""Request timing, size and memory metrics with threshold alerting."""

from __future__ import annotations

import logging
import time
import tracemalloc
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from flask import Request, Response, g
from prometheus_client import CollectorRegistry, Counter, Histogram

from football_network.core.errors import status_for
from football_network.core.logger import ensure_request_id
from football_network.services._shared.ports import (
    AlertKind,
    AlertSink,
    LoggingAlertSink,
    PerformanceAlert,
)

from .base import Handler, normalize_endpoint

logger = logging.getLogger(__name__)

DURATION_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)
SIZE_BUCKETS = (256, 1024, 4096, 16384, 65536, 262144, 1048576, 4194304)


class HttpMetrics:
    """
    Prometheus instruments for HTTP traffic, bound to ``registry``.

    A registry per application keeps repeated ``create_app`` calls (tests)
    from colliding on the global default registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.requests = Counter(
            "http_requests_total",
            "Total HTTP requests",
            [
                "method",
                "endpoint",
                "status_code",
                "status_class",
                "user_authenticated",
                "has_exception",
            ],
            registry=self.registry,
        )
        self.duration = Histogram(
            "http_request_duration_ms",
            "HTTP request duration in milliseconds",
            ["method", "endpoint", "status_class"],
            buckets=DURATION_BUCKETS_MS,
            registry=self.registry,
        )
        self.slow_requests = Counter(
            "http_slow_requests_total",
            "HTTP requests slower than the slow threshold",
            ["method", "endpoint"],
            registry=self.registry,
        )
        self.request_size = Histogram(
            "http_request_size_bytes",
            "HTTP request body size in bytes",
            ["method", "endpoint"],
            buckets=SIZE_BUCKETS,
            registry=self.registry,
        )
        self.response_size = Histogram(
            "http_response_size_bytes",
            "HTTP response body size in bytes",
            ["method", "endpoint"],
            buckets=SIZE_BUCKETS,
            registry=self.registry,
        )


@dataclass(frozen=True, slots=True)
class PerformanceThresholds:
    """Alerting limits (``PERFORMANCE_*``)."""

    slow_ms: int = 1000
    very_slow_ms: int = 5000
    large_response_bytes: int = 1024 * 1024
    memory_delta_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> PerformanceThresholds:
        return cls(
            slow_ms=int(config.get("PERFORMANCE_SLOW_MS", 1000)),
            very_slow_ms=int(config.get("PERFORMANCE_VERY_SLOW_MS", 5000)),
            large_response_bytes=int(config.get("PERFORMANCE_LARGE_RESPONSE_BYTES", 1024 * 1024)),
            memory_delta_bytes=int(
                config.get("PERFORMANCE_MEMORY_DELTA_BYTES", 10 * 1024 * 1024)
            ),
        )


class PerformanceMiddleware:
    """
    Measure every request, record metrics and raise alerts on breaches.

    :param metrics: Prometheus instruments.
    :param alert_sink: Notified on slow / large / memory-heavy requests.
    :param thresholds: Alerting limits.
    :param track_memory: Sample ``tracemalloc`` before/after the request.
    :param detailed_logging: Log a debug line for every request.
    :param notifications: Forward breaches to ``alert_sink``.
    """

    def __init__(
        self,
        metrics: HttpMetrics,
        *,
        alert_sink: AlertSink | None = None,
        thresholds: PerformanceThresholds | None = None,
        track_memory: bool = False,
        detailed_logging: bool = False,
        notifications: bool = True,
    ) -> None:
        self.metrics = metrics
        self.alert_sink = alert_sink or LoggingAlertSink()
        self.thresholds = thresholds or PerformanceThresholds()
        self.track_memory = track_memory
        self.detailed_logging = detailed_logging
        self.notifications = notifications
        if track_memory and not tracemalloc.is_tracing():
            tracemalloc.start()

    def __call__(self, request: Request, call_next: Handler) -> Response:
        mem_before = tracemalloc.get_traced_memory()[0] if self.track_memory else 0
        start = time.perf_counter()
        status = 500
        has_exception = False
        response_size = 0
        try:
            response = call_next(request)
            status = response.status_code
            if response.is_streamed:
                response_size = response.content_length or 0
            else:
                response_size = len(response.get_data())
            return response
        except Exception as exc:
            has_exception = True
            status = status_for(exc)
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            mem_delta = tracemalloc.get_traced_memory()[0] - mem_before if self.track_memory else 0
            self._observe(request, status, elapsed_ms, response_size, mem_delta, has_exception)

    # ------------------------------------------------------------------ #

    def _observe(
        self,
        request: Request,
        status: int,
        elapsed_ms: float,
        response_size: int,
        mem_delta: int,
        has_exception: bool,
    ) -> None:
        endpoint = normalize_endpoint(request.path)
        method = request.method
        status_class = f"{status // 100}xx"
        authenticated = g.get("principal") is not None

        m = self.metrics
        m.requests.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status),
            status_class=status_class,
            user_authenticated=str(authenticated).lower(),
            has_exception=str(has_exception).lower(),
        ).inc()
        m.duration.labels(method=method, endpoint=endpoint, status_class=status_class).observe(
            elapsed_ms
        )
        m.request_size.labels(method=method, endpoint=endpoint).observe(request.content_length or 0)
        m.response_size.labels(method=method, endpoint=endpoint).observe(response_size)

        label = f"{method} {endpoint}"
        context = {"status_code": status, "user_authenticated": authenticated}
        t = self.thresholds
        if elapsed_ms > t.slow_ms:
            m.slow_requests.labels(method=method, endpoint=endpoint).inc()
        if elapsed_ms > t.very_slow_ms:
            logger.error(
                "Very slow request %s took %.2fms",
                label,
                elapsed_ms,
                extra={"endpoint": label, "elapsed_ms": round(elapsed_ms, 2)},
            )
            self._alert(AlertKind.VERY_SLOW_REQUEST, label, elapsed_ms, t.very_slow_ms, context)
        elif elapsed_ms > t.slow_ms:
            logger.warning(
                "Slow request %s took %.2fms",
                label,
                elapsed_ms,
                extra={"endpoint": label, "elapsed_ms": round(elapsed_ms, 2)},
            )
            self._alert(AlertKind.SLOW_REQUEST, label, elapsed_ms, t.slow_ms, context)
        if response_size > t.large_response_bytes:
            logger.warning(
                "Large response %s: %d bytes",
                label,
                response_size,
                extra={"endpoint": label, "response_size": response_size},
            )
            self._alert(
                AlertKind.LARGE_RESPONSE, label, response_size, t.large_response_bytes, context
            )
        if mem_delta > t.memory_delta_bytes:
            logger.warning(
                "High memory usage %s: %d bytes",
                label,
                mem_delta,
                extra={"endpoint": label, "memory_delta": mem_delta},
            )
            self._alert(AlertKind.HIGH_MEMORY, label, mem_delta, t.memory_delta_bytes, context)
        if self.detailed_logging:
            logger.debug(
                "perf %s status=%s elapsed_ms=%.2f size=%d",
                label,
                status,
                elapsed_ms,
                response_size,
                extra={"endpoint": label, "elapsed_ms": round(elapsed_ms, 2)},
            )

    def _alert(
        self,
        kind: AlertKind,
        endpoint: str,
        value: float,
        threshold: float,
        context: dict[str, Any],
    ) -> None:
        if not self.notifications:
            return
        alert = PerformanceAlert(
            kind=kind,
            endpoint=endpoint,
            value=float(value),
            threshold=float(threshold),
            request_id=ensure_request_id(),
            context=context,
        )
        try:
            self.alert_sink.notify(alert)
        except Exception:
            # A broken sink must not fail the request it reports on.
            logger.exception("performance.alert_sink_failed kind=%s", kind.value)
