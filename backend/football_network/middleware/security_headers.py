"""Browser-hardening response headers (outermost pipeline stage)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from flask import Request, Response

from .base import Handler

logger = logging.getLogger(__name__)

PRODUCTION_CSP = (
    "default-src 'self'; "
    "script-src 'self' https://cdn.jsdelivr.net; "
    "style-src 'self' https://fonts.googleapis.com; "
    "font-src 'self' https://fonts.gstatic.com; "
    "img-src 'self' data: https:; "
    "connect-src 'self'; "
    "frame-ancestors 'none'; "
    "form-action 'self'; "
    "base-uri 'self'"
)

# Relaxed for dev tooling: inline scripts, blob images, websocket hot reload.
DEVELOPMENT_CSP = (
    "default-src 'self' 'unsafe-inline' 'unsafe-eval'; "
    "script-src 'self' 'unsafe-inline' 'unsafe-eval' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
    "font-src 'self' https://fonts.gstatic.com; "
    "img-src 'self' data: https: blob:; "
    "connect-src 'self' ws: wss:; "
    "frame-ancestors 'self'; "
    "form-action 'self'"
)

PERMISSIONS_POLICY = (
    "camera=(), microphone=(), geolocation=(), payment=(), "
    "usb=(), magnetometer=(), gyroscope=(), accelerometer=()"
)

SERVER_IDENTIFYING_HEADERS = ("Server", "X-Powered-By")


@dataclass(frozen=True, slots=True)
class SecurityHeadersOptions:
    """
    Which headers to add and with what values.

    Use :meth:`for_production` / :meth:`for_development` as starting points
    and :meth:`from_config` to apply ``SECURITY_*`` settings.
    """

    require_https: bool = True
    hsts: bool = True
    hsts_max_age: int = 31536000
    hsts_include_subdomains: bool = True
    hsts_preload: bool = False
    x_frame_options: str = "DENY"
    x_xss_protection: str = "1; mode=block"
    content_security_policy: str = PRODUCTION_CSP
    referrer_policy: str = "strict-origin-when-cross-origin"
    permissions_policy: str = PERMISSIONS_POLICY
    cross_origin_opener_policy: str | None = "same-origin"
    cross_origin_embedder_policy: str | None = None
    cross_origin_resource_policy: str | None = "same-origin"
    remove_server_headers: bool = True
    cache_control: str | None = "no-cache, no-store, must-revalidate"
    custom_headers: Mapping[str, str] = field(default_factory=dict)
    log_headers: bool = False

    @classmethod
    def for_production(cls) -> SecurityHeadersOptions:
        return cls(hsts_preload=True)

    @classmethod
    def for_development(cls) -> SecurityHeadersOptions:
        return cls(
            require_https=False,
            hsts=False,
            x_frame_options="SAMEORIGIN",
            content_security_policy=DEVELOPMENT_CSP,
            cross_origin_resource_policy="cross-origin",
            cache_control=None,
            log_headers=True,
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SecurityHeadersOptions:
        """Select the preset named by ``SECURITY_HEADERS_PRESET`` and apply overrides."""
        preset = str(config.get("SECURITY_HEADERS_PRESET", "production")).lower()
        if preset == "development":
            return replace(
                cls.for_development(),
                custom_headers=dict(config.get("SECURITY_CUSTOM_HEADERS") or {}),
            )
        base = cls.for_production()
        return replace(
            base,
            require_https=bool(config.get("REQUIRE_HTTPS", base.require_https)),
            hsts=bool(config.get("SECURITY_HSTS_ENABLED", base.hsts)),
            hsts_max_age=int(config.get("SECURITY_HSTS_MAX_AGE", base.hsts_max_age)),
            hsts_include_subdomains=bool(
                config.get("SECURITY_HSTS_INCLUDE_SUBDOMAINS", base.hsts_include_subdomains)
            ),
            hsts_preload=bool(config.get("SECURITY_HSTS_PRELOAD", base.hsts_preload)),
            cache_control=base.cache_control if config.get("SECURITY_CACHE_CONTROL", True) else None,
            custom_headers=dict(config.get("SECURITY_CUSTOM_HEADERS") or {}),
        )

    def hsts_value(self) -> str:
        value = f"max-age={self.hsts_max_age}"
        if self.hsts_include_subdomains:
            value += "; includeSubDomains"
        if self.hsts_preload:
            value += "; preload"
        return value


class SecurityHeadersMiddleware:
    """
    Add security headers to every response without overriding values a
    handler already set. Never blocks the request.
    """

    def __init__(self, options: SecurityHeadersOptions | None = None) -> None:
        self.options = options or SecurityHeadersOptions.for_production()

    def __call__(self, request: Request, call_next: Handler) -> Response:
        response = call_next(request)
        self.apply(request, response)
        return response

    def headers_for(self, request: Request) -> dict[str, str]:
        """Headers this stage wants on ``request``'s response."""
        opts = self.options
        headers = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": opts.x_frame_options,
            "X-XSS-Protection": opts.x_xss_protection,
            "Content-Security-Policy": opts.content_security_policy,
            "Referrer-Policy": opts.referrer_policy,
            "Permissions-Policy": opts.permissions_policy,
        }
        if opts.hsts and (opts.require_https or request.is_secure):
            headers["Strict-Transport-Security"] = opts.hsts_value()
        if opts.cross_origin_opener_policy:
            headers["Cross-Origin-Opener-Policy"] = opts.cross_origin_opener_policy
        if opts.cross_origin_embedder_policy:
            headers["Cross-Origin-Embedder-Policy"] = opts.cross_origin_embedder_policy
        if opts.cross_origin_resource_policy:
            headers["Cross-Origin-Resource-Policy"] = opts.cross_origin_resource_policy
        if opts.cache_control:
            headers["Cache-Control"] = opts.cache_control
            headers["Pragma"] = "no-cache"
            headers["Expires"] = "0"
        headers.update(opts.custom_headers)
        return headers

    def apply(self, request: Request, response: Response) -> None:
        applied: dict[str, str] = {}
        for name, value in self.headers_for(request).items():
            if name not in response.headers:
                response.headers[name] = value
                applied[name] = value
        if self.options.remove_server_headers:
            for name in SERVER_IDENTIFYING_HEADERS:
                response.headers.pop(name, None)
        if self.options.log_headers:
            logger.debug(
                "Applied security headers for %s %s: %s",
                request.method,
                request.path,
                ", ".join(applied),
            )
