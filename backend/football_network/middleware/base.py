"""Shared types and helpers for request-pipeline stages."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Protocol

from flask import Request, Response, current_app, has_app_context

from football_network.core import proxy

Handler = Callable[[Request], Response]


class Middleware(Protocol):
    """A pipeline stage: wraps ``call_next`` and returns the response."""

    def __call__(self, request: Request, call_next: Handler) -> Response: ...


_GUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def normalize_endpoint(path: str) -> str:
    """
    Replace id-like path segments with placeholders.

    ``/api/v1/users/42`` -> ``/api/v1/users/{id}``; UUID segments become
    ``{guid}``. Keeps metric label cardinality bounded.
    """
    segments = path.split("/")
    for i, segment in enumerate(segments):
        if segment.isdigit():
            segments[i] = "{id}"
        elif _GUID.match(segment):
            segments[i] = "{guid}"
    return "/".join(segments) or "/"


def client_ip(request: Request, *, trusted_hops: int | None = None) -> str:
    """
    Resolve the caller address.

    Behind trusted proxies: the first ``X-Forwarded-For`` entry those proxies
    vouch for, then ``X-Real-IP``. Then the socket address, else
    ``"unknown"``. Without a trusted proxy forwarded headers are ignored.

    :param trusted_hops: Proxies trusted to append ``X-Forwarded-For``.
        Defaults to the application's ``PROXY_FIX_X_FOR`` setting.
    """
    if trusted_hops is None:
        trusted_hops = proxy.trusted_hops(current_app.config) if has_app_context() else 0
    if trusted_hops > 0:
        chain = [hop.strip() for hop in request.headers.get("X-Forwarded-For", "").split(",")]
        chain = [hop for hop in chain if hop]
        if chain:
            # Entries left of the trusted proxies are client-supplied.
            return chain[max(0, len(chain) - trusted_hops)]
        real_ip = request.headers.get("X-Real-IP", "").strip()
        if real_ip:
            return real_ip
    return request.remote_addr or "unknown"


def compose(stages: list[Middleware], endpoint: Handler) -> Handler:
    """Chain ``stages`` (outermost first) around ``endpoint``."""
    handler = endpoint
    for stage in reversed(stages):
        handler = _bind(stage, handler)
    return handler


def _bind(stage: Middleware, call_next: Handler) -> Handler:
    def handler(request: Request) -> Response:
        return stage(request, call_next)

    return handler
