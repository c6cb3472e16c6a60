"""
football_network.services._shared.ports
=======================================

Collection of *ports* (hexagonal interfaces) the service layer depends on.

Modules
-------
- :mod:`token_codec`:
    :class:`~.TokenCodec`, signing and validating bearer access tokens.
- :mod:`refresh_token_store`:
    :class:`~.RefreshTokenStore` and :class:`~.RefreshTokenRecord`, refresh
    token persistence with atomic compare-and-remove, plus the in-memory
    implementation.
- :mod:`user_lookup`:
    :class:`~.UserLookup`, read access to users for authentication.
- :mod:`alert_sink`:
    :class:`~.AlertSink`, notification hook for performance alerts.

Concrete adapters (Redis, SQLAlchemy, flask-jwt-extended) live under
``football_network.infra``.
"""

from __future__ import annotations

from .alert_sink import AlertKind, AlertSink, InMemoryAlertSink, LoggingAlertSink, PerformanceAlert
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenRecord,
    RefreshTokenStore,
    new_refresh_token,
)
from .token_codec import TokenCodec
from .user_lookup import InMemoryUserLookup, UserLookup, UserRecord

__all__ = [
    "AlertKind",
    "AlertSink",
    "InMemoryAlertSink",
    "InMemoryRefreshTokenStore",
    "InMemoryUserLookup",
    "LoggingAlertSink",
    "PerformanceAlert",
    "RefreshTokenRecord",
    "RefreshTokenStore",
    "TokenCodec",
    "UserLookup",
    "UserRecord",
    "new_refresh_token",
]
