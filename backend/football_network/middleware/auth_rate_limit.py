"""Sliding-window limiter for failed authentication attempts."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from flask import Request, Response

from football_network.core.errors import TooManyRequests, status_for
from football_network.services._shared.locks import KeyedLocks

from .base import Handler, client_ip

logger = logging.getLogger(__name__)


class FailedAttemptLimiter:
    """
    Per-client log of failed-attempt timestamps within a sliding window.

    A request reserves a slot with :meth:`acquire` before it reaches the
    handler and gives it back with :meth:`release`. In-flight reservations
    count against the limit together with recorded failures, so concurrent
    attempts from one client never exceed ``max_attempts``.

    Stale entries of a key are purged whenever that key is touched; every
    ``sweep_every`` releases a sweep drops the keys of clients that went
    quiet. Keys are guarded by striped locks so unrelated clients do not
    serialize.

    :param max_attempts: Failures tolerated within the window.
    :param window_seconds: Window length.
    :param clock: Monotonic seconds source (injectable for tests).
    :param sweep_every: Releases between two sweeps of the whole map.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
        stripes: int = 64,
        sweep_every: int = 256,
    ) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.sweep_every = max(1, sweep_every)
        self._clock = clock
        self._attempts: dict[str, list[float]] = {}
        self._in_flight: dict[str, int] = {}
        self._locks = KeyedLocks(stripes)
        self._since_sweep = 0
        self._sweep_lock = threading.Lock()

    def _purge_locked(self, key: str, now: float) -> list[float]:
        attempts = self._attempts.get(key)
        if attempts is None:
            return []
        cutoff = now - self.window_seconds
        attempts[:] = [t for t in attempts if t > cutoff]
        if not attempts:
            del self._attempts[key]
        return attempts

    def _retry_after_locked(self, key: str, now: float) -> int | None:
        attempts = self._purge_locked(key, now)
        if len(attempts) + self._in_flight.get(key, 0) < self.max_attempts:
            return None
        if len(attempts) < self.max_attempts:
            # Blocked only by attempts still in progress.
            return 1
        oldest = attempts[-self.max_attempts]
        return max(1, math.ceil(oldest + self.window_seconds - now))

    def check(self, key: str) -> int | None:
        """
        Purge stale entries and report whether ``key`` is blocked.

        :returns: Seconds until the oldest counted failure leaves the window
            when blocked, else ``None``.
        """
        now = self._clock()
        with self._locks.for_key(key):
            return self._retry_after_locked(key, now)

    def acquire(self, key: str) -> int | None:
        """
        Reserve an attempt for ``key`` unless it is blocked.

        :returns: ``None`` when a slot was reserved (pair it with
            :meth:`release`), else the seconds to wait.
        """
        now = self._clock()
        with self._locks.for_key(key):
            retry_after = self._retry_after_locked(key, now)
            if retry_after is None:
                self._in_flight[key] = self._in_flight.get(key, 0) + 1
            return retry_after

    def release(self, key: str, *, failed: bool) -> int:
        """
        Give back a slot taken by :meth:`acquire`, recording it when it failed.

        :returns: Failures currently in the window.
        """
        now = self._clock()
        with self._locks.for_key(key):
            pending = self._in_flight.get(key, 0) - 1
            if pending > 0:
                self._in_flight[key] = pending
            else:
                self._in_flight.pop(key, None)
            count = self._append_locked(key, now) if failed else len(self._purge_locked(key, now))
        self._maybe_sweep()
        return count

    def _append_locked(self, key: str, now: float) -> int:
        self._purge_locked(key, now)
        attempts = self._attempts.setdefault(key, [])
        attempts.append(now)
        return len(attempts)

    def record_failure(self, key: str) -> int:
        """Add a failure for ``key``. :returns: Failures currently in the window."""
        now = self._clock()
        with self._locks.for_key(key):
            count = self._append_locked(key, now)
        self._maybe_sweep()
        return count

    def attempts(self, key: str) -> int:
        with self._locks.for_key(key):
            return len(self._purge_locked(key, self._clock()))

    def _maybe_sweep(self) -> None:
        with self._sweep_lock:
            self._since_sweep += 1
            if self._since_sweep < self.sweep_every:
                return
            self._since_sweep = 0
        self.sweep()

    def sweep(self) -> int:
        """Drop every key whose failures all left the window. :returns: Keys dropped."""
        now = self._clock()
        dropped = 0
        for key in list(self._attempts):
            with self._locks.for_key(key):
                if key in self._attempts and not self._purge_locked(key, now):
                    dropped += 1
        return dropped

    def reset(self, key: str | None = None) -> None:
        """Forget one client, or everyone when ``key`` is ``None``."""
        if key is None:
            self._attempts.clear()
            self._in_flight.clear()
            return
        with self._locks.for_key(key):
            self._attempts.pop(key, None)
            self._in_flight.pop(key, None)

    def __len__(self) -> int:
        return len(self._attempts)


class AuthRateLimitMiddleware:
    """
    Reject clients with too many recent failed authentication attempts.

    Applies only to paths under ``path_prefix``. Downstream 4xx outcomes
    (responses or exceptions resolving to 4xx) count as failures; blocked
    requests never reach the handler and are not recorded again. Each
    admitted request holds a limiter slot until its handler returns.
    """

    def __init__(
        self,
        limiter: FailedAttemptLimiter,
        *,
        path_prefix: str = "/api/v1/auth",
        enabled: bool = True,
    ) -> None:
        self.limiter = limiter
        self.path_prefix = path_prefix.rstrip("/")
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> AuthRateLimitMiddleware:
        limiter = FailedAttemptLimiter(
            max_attempts=int(config.get("AUTH_RATE_LIMIT_MAX_ATTEMPTS", 5)),
            window_seconds=float(config.get("AUTH_RATE_LIMIT_WINDOW_SECONDS", 15 * 60)),
        )
        return cls(
            limiter,
            path_prefix=str(config.get("AUTH_RATE_LIMIT_PATH_PREFIX", "/api/v1/auth")),
            enabled=bool(config.get("AUTH_RATE_LIMIT_ENABLED", True)),
        )

    def applies_to(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    def __call__(self, request: Request, call_next: Handler) -> Response:
        if not self.enabled or not self.applies_to(request.path):
            return call_next(request)

        client = client_ip(request)
        retry_after = self.limiter.acquire(client)
        if retry_after is not None:
            logger.warning(
                "Rate limit exceeded for client %s on endpoint %s",
                client,
                request.path,
                extra={"client_ip": client, "path": request.path},
            )
            raise TooManyRequests(retry_after)

        failed = False
        try:
            response = call_next(request)
            failed = 400 <= response.status_code < 500
            return response
        except Exception as exc:
            failed = 400 <= status_for(exc) < 500
            raise
        finally:
            count = self.limiter.release(client, failed=failed)
            if failed:
                self._log_failure(client, request.path, count)

    @staticmethod
    def _log_failure(client: str, path: str, count: int) -> None:
        logger.info(
            "auth.failed_attempt client=%s count=%d path=%s",
            client,
            count,
            path,
            extra={"client_ip": client, "path": path},
        )
