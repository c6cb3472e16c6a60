"""Structured request/response logging with header redaction."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from flask import Request, Response

from football_network.core.errors import status_for

from .base import Handler, client_ip

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = frozenset(
    {"authorization", "cookie", "x-api-key", "x-auth-token", "authentication"}
)
HEALTH_CHECK_PATHS = ("/health", "/health/ready", "/health/live", "/healthz")
REDACTED = "[REDACTED]"
TEXTUAL_TYPES = ("application/json", "application/problem+json", "text/", "application/xml")


def redact_headers(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Return headers with sensitive values replaced by ``[REDACTED]``."""
    return {
        name: (REDACTED if name.lower() in SENSITIVE_HEADERS else value) for name, value in headers
    }


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... [truncated {len(text) - limit} chars]"


def _is_textual(mimetype: str | None) -> bool:
    return bool(mimetype) and any(str(mimetype).startswith(t) for t in TEXTUAL_TYPES)


@dataclass(frozen=True, slots=True)
class RequestLoggingOptions:
    """Knobs for :class:`RequestLoggingMiddleware` (``REQUEST_LOG_*``)."""

    log_request_body: bool = False
    log_response_body: bool = False
    log_successful_bodies: bool = False
    max_body_size: int = 4096
    slow_ms: int = 2000
    skip_health_checks: bool = True
    health_paths: tuple[str, ...] = field(default=HEALTH_CHECK_PATHS)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> RequestLoggingOptions:
        api_health = f"{config.get('API_BASE_PREFIX', '/api')}/v1/health"
        return cls(
            log_request_body=bool(config.get("REQUEST_LOG_REQUEST_BODY", False)),
            log_response_body=bool(config.get("REQUEST_LOG_RESPONSE_BODY", False)),
            log_successful_bodies=bool(config.get("REQUEST_LOG_SUCCESSFUL_BODIES", False)),
            max_body_size=int(config.get("REQUEST_LOG_MAX_BODY_SIZE", 4096)),
            slow_ms=int(config.get("REQUEST_LOG_SLOW_MS", 2000)),
            skip_health_checks=bool(config.get("REQUEST_LOG_SKIP_HEALTH_CHECKS", True)),
            health_paths=(*HEALTH_CHECK_PATHS, api_health),
        )


class RequestLoggingMiddleware:
    """
    Log request start and completion.

    Completion is logged at ERROR for 5xx, WARNING for 4xx or slow requests,
    INFO otherwise. Exceptions are logged with their resolved status and
    re-raised for the exception-handling stage.
    """

    def __init__(self, options: RequestLoggingOptions | None = None) -> None:
        self.options = options or RequestLoggingOptions()

    def is_health_check(self, path: str) -> bool:
        lowered = path.lower().rstrip("/") or "/"
        return any(
            lowered == p or lowered.startswith(p + "/") for p in self.options.health_paths
        )

    def __call__(self, request: Request, call_next: Handler) -> Response:
        if self.options.skip_health_checks and self.is_health_check(request.path):
            return call_next(request)

        base: dict[str, Any] = {
            "method": request.method,
            "path": request.path,
            "query": request.query_string.decode("latin-1") or None,
            "client_ip": client_ip(request),
            "user_agent": request.user_agent.string or None,
        }
        start_extra = dict(base, headers=redact_headers(request.headers.items()))
        if self.options.log_request_body and _is_textual(request.mimetype):
            body = request.get_data(cache=True, as_text=True)
            if body:
                start_extra["request_body"] = _truncate(body, self.options.max_body_size)
        logger.info("HTTP %s %s started", request.method, request.path, extra=start_extra)

        start = time.perf_counter()
        try:
            response = call_next(request)
        except Exception as exc:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            status = status_for(exc)
            level = logging.ERROR if status >= 500 else logging.WARNING
            logger.log(
                level,
                "HTTP %s %s failed with %s in %.2fms",
                request.method,
                request.path,
                type(exc).__name__,
                elapsed_ms,
                extra=dict(base, status_code=status, elapsed_ms=elapsed_ms),
            )
            raise

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        status = response.status_code
        end_extra = dict(base, status_code=status, elapsed_ms=elapsed_ms)
        end_extra["response_size"] = self._response_size(response)
        if self._should_log_response_body(response):
            end_extra["response_body"] = _truncate(
                response.get_data(as_text=True), self.options.max_body_size
            )

        if status >= 500:
            level = logging.ERROR
        elif status >= 400 or elapsed_ms > self.options.slow_ms:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "HTTP %s %s responded %s in %.2fms",
            request.method,
            request.path,
            status,
            elapsed_ms,
            extra=end_extra,
        )
        return response

    @staticmethod
    def _response_size(response: Response) -> int | None:
        if response.is_streamed:
            return response.content_length
        return len(response.get_data())

    def _should_log_response_body(self, response: Response) -> bool:
        if not self.options.log_response_body or response.is_streamed:
            return False
        if not _is_textual(response.mimetype):
            return False
        return response.status_code >= 400 or self.options.log_successful_bodies
