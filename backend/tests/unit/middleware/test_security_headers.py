"""Tests for the security-headers stage."""

from __future__ import annotations

from flask import Response, request

from football_network.middleware import SecurityHeadersMiddleware, SecurityHeadersOptions
from football_network.middleware.security_headers import DEVELOPMENT_CSP, PRODUCTION_CSP


def _ok(_req):
    resp = Response("ok")
    resp.headers["Server"] = "Werkzeug/3.0"
    resp.headers["X-Powered-By"] = "Flask"
    return resp


def test_production_headers(app):
    stage = SecurityHeadersMiddleware(SecurityHeadersOptions.for_production())
    with app.test_request_context("/"):
        resp = stage(request, _ok)

    h = resp.headers
    assert h["X-Content-Type-Options"] == "nosniff"
    assert h["X-Frame-Options"] == "DENY"
    assert h["X-XSS-Protection"] == "1; mode=block"
    assert h["Content-Security-Policy"] == PRODUCTION_CSP
    assert h["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "camera=()" in h["Permissions-Policy"]
    assert h["Strict-Transport-Security"] == "max-age=31536000; includeSubDomains; preload"
    assert h["Cross-Origin-Opener-Policy"] == "same-origin"
    assert h["Cross-Origin-Resource-Policy"] == "same-origin"
    assert h["Cache-Control"] == "no-cache, no-store, must-revalidate"
    assert h["Pragma"] == "no-cache"
    assert "Server" not in h
    assert "X-Powered-By" not in h


def test_handler_values_are_not_overridden(app):
    def framed(_req):
        resp = Response("ok")
        resp.headers["X-Frame-Options"] = "SAMEORIGIN"
        return resp

    stage = SecurityHeadersMiddleware()
    with app.test_request_context("/"):
        resp = stage(request, framed)
    assert resp.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_hsts_only_over_https_when_https_not_required(app):
    opts = SecurityHeadersOptions(require_https=False)
    stage = SecurityHeadersMiddleware(opts)

    with app.test_request_context("/", base_url="http://localhost"):
        assert "Strict-Transport-Security" not in stage(request, _ok).headers
    with app.test_request_context("/", base_url="https://localhost"):
        assert "Strict-Transport-Security" in stage(request, _ok).headers


def test_development_preset(app):
    stage = SecurityHeadersMiddleware(SecurityHeadersOptions.for_development())
    with app.test_request_context("/", base_url="https://localhost"):
        h = stage(request, _ok).headers

    assert "Strict-Transport-Security" not in h
    assert h["X-Frame-Options"] == "SAMEORIGIN"
    assert h["Content-Security-Policy"] == DEVELOPMENT_CSP
    assert h["Cross-Origin-Resource-Policy"] == "cross-origin"
    assert "Cache-Control" not in h


def test_from_config_overrides():
    opts = SecurityHeadersOptions.from_config(
        {
            "SECURITY_HEADERS_PRESET": "production",
            "SECURITY_HSTS_MAX_AGE": 60,
            "SECURITY_HSTS_INCLUDE_SUBDOMAINS": False,
            "SECURITY_HSTS_PRELOAD": False,
            "SECURITY_CACHE_CONTROL": False,
            "SECURITY_CUSTOM_HEADERS": {"X-Team": "Legia"},
        }
    )
    assert opts.hsts_value() == "max-age=60"
    assert opts.cache_control is None
    assert opts.custom_headers == {"X-Team": "Legia"}

    dev = SecurityHeadersOptions.from_config({"SECURITY_HEADERS_PRESET": "Development"})
    assert dev.hsts is False
