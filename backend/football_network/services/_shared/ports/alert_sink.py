from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

log = logging.getLogger(__name__)


class AlertKind(str, Enum):
    """Performance threshold that was breached."""

    SLOW_REQUEST = "slow_request"
    VERY_SLOW_REQUEST = "very_slow_request"
    LARGE_RESPONSE = "large_response"
    HIGH_MEMORY = "high_memory"


@dataclass(frozen=True, slots=True)
class PerformanceAlert:
    """
    A single threshold breach.

    :ivar kind: Which threshold.
    :ivar endpoint: Normalized endpoint (``GET /api/v1/users/{id}``).
    :ivar value: Observed value (ms or bytes).
    :ivar threshold: Configured limit.
    :ivar request_id: Correlation id.
    :ivar context: Extra tags (status code, user, ...).
    """

    kind: AlertKind
    endpoint: str
    value: float
    threshold: float
    request_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)


class AlertSink(Protocol):
    """Notification hook invoked on performance threshold breaches."""

    def notify(self, alert: PerformanceAlert) -> None: ...


class LoggingAlertSink(AlertSink):
    """Default sink: one structured warning per alert."""

    def notify(self, alert: PerformanceAlert) -> None:
        log.warning(
            "performance.alert kind=%s endpoint=%s value=%.1f threshold=%.1f",
            alert.kind.value,
            alert.endpoint,
            alert.value,
            alert.threshold,
            extra={"event": alert.kind.value, "endpoint": alert.endpoint},
        )


class InMemoryAlertSink(AlertSink):
    """Collects alerts; handy for tests and debugging."""

    def __init__(self) -> None:
        self.alerts: list[PerformanceAlert] = []

    def notify(self, alert: PerformanceAlert) -> None:
        self.alerts.append(alert)
