"""Trusted reverse-proxy settings shared by ProxyFix and client-address resolution."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

#: ``ProxyFix`` keyword -> config key holding its trusted hop count.
HOP_SETTINGS: Mapping[str, str] = {
    "x_for": "PROXY_FIX_X_FOR",
    "x_proto": "PROXY_FIX_X_PROTO",
    "x_host": "PROXY_FIX_X_HOST",
    "x_prefix": "PROXY_FIX_X_PREFIX",
}


def proxy_hops(config: Mapping[str, Any]) -> dict[str, int]:
    """Trusted hop count per ``X-Forwarded-*`` header; negatives count as 0."""
    return {kw: max(0, int(config.get(key) or 0)) for kw, key in HOP_SETTINGS.items()}


def trusted_hops(config: Mapping[str, Any]) -> int:
    """Proxies allowed to append ``X-Forwarded-For``; 0 when clients connect directly."""
    return proxy_hops(config)["x_for"]


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` behind trusted proxies.

    Parameters
    ----------
    app: flask.Flask
        Application whose WSGI pipeline should respect upstream proxy headers.

    Notes
    -----
    Driven by the ``PROXY_FIX_X_*`` hop counts. With every count at zero the
    WSGI app is left untouched and forwarded headers are never trusted, so
    ``request.remote_addr`` stays the socket peer.
    """
    hops = proxy_hops(app.config)
    if any(hops.values()):
        app.wsgi_app = ProxyFix(app.wsgi_app, **hops)
