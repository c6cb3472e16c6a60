"""Security audit trail written through stdlib logging.

Events go to the ``football_network.audit`` logger with ``audit=True`` so
the JSON formatter emits them as a distinct, filterable stream. Handlers
(file, syslog, log shipper) are configured by the deployment, not here.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from football_network.services._shared.base import ServiceContext

AUDIT_LOGGER_NAME = "football_network.audit"


class AuditEvent(str, Enum):
    """Audited authentication events."""

    LOGIN_SUCCEEDED = "auth.login.succeeded"
    LOGIN_FAILED = "auth.login.failed"
    TOKEN_REFRESHED = "auth.token.refreshed"
    REFRESH_REJECTED = "auth.refresh.rejected"
    LOGOUT = "auth.logout"
    SESSIONS_REVOKED = "auth.sessions.revoked"
    USER_DEACTIVATED = "user.deactivated"


class AuditLogger:
    """
    Emit one structured log record per security-relevant event.

    :param logger_name: Target logger; defaults to :data:`AUDIT_LOGGER_NAME`.
    """

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME) -> None:
        self.logger = logging.getLogger(logger_name)

    def record(
        self,
        event: AuditEvent,
        *,
        user_id: int | None = None,
        reason: str | None = None,
        ctx: ServiceContext | None = None,
        level: int = logging.INFO,
        **details: Any,
    ) -> None:
        """
        Log ``event`` with the acting user and request context.

        :param event: What happened.
        :param user_id: Subject of the event, when known.
        :param reason: Short machine-readable cause (failures only).
        :param ctx: Request context supplying client ip and user agent.
        :param level: Logging level; failures are usually ``WARNING``.
        :param details: Extra key/values appended to the message.
        """
        ctx = ctx or ServiceContext()
        suffix = "".join(f" {k}={v}" for k, v in sorted(details.items()))
        self.logger.log(
            level,
            "%s user_id=%s reason=%s client_ip=%s%s",
            event.value,
            user_id,
            reason,
            ctx.client_ip,
            suffix,
            extra={
                "audit": True,
                "event": event.value,
                "user_id": user_id,
                "reason": reason,
                "client_ip": ctx.client_ip,
                "user_agent": ctx.user_agent,
            },
        )
