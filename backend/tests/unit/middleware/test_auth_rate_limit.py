"""Tests for the failed-authentication sliding window and its pipeline stage."""

from __future__ import annotations

import threading
import time

import pytest
from flask import Response, request

from football_network.core.errors import TooManyRequests
from football_network.middleware import AuthRateLimitMiddleware, FailedAttemptLimiter
from football_network.services._shared.errors import InvalidCredentialsError

LOCAL = {"REMOTE_ADDR": "127.0.0.1"}


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture()
def limiter(clock) -> FailedAttemptLimiter:
    return FailedAttemptLimiter(max_attempts=5, window_seconds=900, clock=clock)


class TestFailedAttemptLimiter:
    def test_blocks_after_max_attempts(self, limiter):
        for i in range(4):
            assert limiter.record_failure("1.2.3.4") == i + 1
            assert limiter.check("1.2.3.4") is None
        limiter.record_failure("1.2.3.4")

        assert limiter.check("1.2.3.4") == 900
        assert limiter.check("5.6.7.8") is None

    def test_retry_after_counts_down_from_oldest_failure(self, limiter, clock):
        for _ in range(5):
            limiter.record_failure("c")
            clock.now += 10
        # Oldest failure at t=1000; now t=1050.
        assert limiter.check("c") == 850

    def test_window_expiry_unblocks(self, limiter, clock):
        for _ in range(5):
            limiter.record_failure("c")
        clock.now += 900

        assert limiter.check("c") is None
        assert limiter.attempts("c") == 0

    def test_retry_after_is_at_least_one_second(self, limiter, clock):
        for _ in range(5):
            limiter.record_failure("c")
        clock.now += 899.9
        assert limiter.check("c") == 1

    def test_reservations_count_against_the_limit(self, limiter):
        for _ in range(5):
            assert limiter.acquire("c") is None
        assert limiter.acquire("c") == 1
        assert limiter.check("c") == 1

        assert limiter.release("c", failed=False) == 0
        assert limiter.acquire("c") is None

    def test_release_records_failures(self, limiter):
        for _ in range(5):
            limiter.acquire("c")
        for i in range(5):
            assert limiter.release("c", failed=True) == i + 1
        assert limiter.check("c") == 900

    def test_sweep_drops_quiet_clients(self, limiter, clock):
        for i in range(50):
            limiter.record_failure(f"10.0.0.{i}")
        assert len(limiter) == 50
        clock.now += 901

        assert limiter.sweep() == 50
        assert len(limiter) == 0

    def test_failures_trigger_periodic_sweep(self, clock):
        limiter = FailedAttemptLimiter(
            max_attempts=5, window_seconds=900, clock=clock, sweep_every=10
        )
        for i in range(9):
            limiter.record_failure(f"10.0.0.{i}")
        clock.now += 901
        assert len(limiter) == 9

        limiter.record_failure("10.0.1.1")

        assert len(limiter) == 1
        assert limiter.attempts("10.0.1.1") == 1

    def test_reset(self, limiter):
        limiter.record_failure("a")
        limiter.record_failure("b")
        limiter.reset("a")
        assert limiter.attempts("a") == 0
        assert limiter.attempts("b") == 1
        limiter.reset()
        assert limiter.attempts("b") == 0


class TestAuthRateLimitMiddleware:
    @pytest.fixture()
    def stage(self, limiter) -> AuthRateLimitMiddleware:
        return AuthRateLimitMiddleware(limiter, path_prefix="/api/v1/auth")

    @staticmethod
    def _respond(status: int):
        return lambda _req: Response("{}", status=status, mimetype="application/json")

    def test_prefix_matching(self, stage):
        assert stage.applies_to("/api/v1/auth")
        assert stage.applies_to("/api/v1/auth/login")
        assert not stage.applies_to("/api/v1/authors")
        assert not stage.applies_to("/api/v1/users/me")

    def test_unauthorized_responses_are_counted_until_blocked(self, app, stage, limiter):
        for _ in range(5):
            with app.test_request_context("/api/v1/auth/login", method="POST", environ_base=LOCAL):
                assert stage(request, self._respond(401)).status_code == 401

        called = []
        with app.test_request_context("/api/v1/auth/login", method="POST", environ_base=LOCAL):
            with pytest.raises(TooManyRequests) as exc:
                stage(request, lambda r: called.append(r))
        assert called == []
        assert exc.value.retry_after == 900
        assert exc.value.headers["Retry-After"] == "900"
        assert limiter.attempts("127.0.0.1") == 5

    def test_successes_are_not_counted(self, app, stage, limiter):
        with app.test_request_context("/api/v1/auth/login", method="POST", environ_base=LOCAL):
            stage(request, self._respond(200))
        assert limiter.attempts("127.0.0.1") == 0

    def test_raised_client_errors_are_counted(self, app, stage, limiter):
        def fail(_req):
            raise InvalidCredentialsError()

        with app.test_request_context("/api/v1/auth/login", method="POST", environ_base=LOCAL):
            with pytest.raises(InvalidCredentialsError):
                stage(request, fail)
        assert limiter.attempts("127.0.0.1") == 1

    def test_server_errors_are_not_counted(self, app, stage, limiter):
        def crash(_req):
            raise RuntimeError("db down")

        with app.test_request_context("/api/v1/auth/login", method="POST", environ_base=LOCAL):
            with pytest.raises(RuntimeError):
                stage(request, crash)
        assert limiter.attempts("127.0.0.1") == 0

    def test_other_paths_pass_through(self, app, stage, limiter):
        with app.test_request_context("/api/v1/users/1", environ_base=LOCAL):
            stage(request, self._respond(401))
        assert limiter.attempts("127.0.0.1") == 0

    def test_forwarded_headers_are_ignored_without_trusted_proxy(self, app, stage, limiter):
        for i in range(5):
            headers = {"X-Forwarded-For": f"203.0.113.{i}", "X-Real-IP": f"198.51.100.{i}"}
            with app.test_request_context(
                "/api/v1/auth/login", method="POST", headers=headers, environ_base=LOCAL
            ):
                stage(request, self._respond(401))
        assert limiter.attempts("127.0.0.1") == 5

        headers = {"X-Forwarded-For": "203.0.113.99"}
        with app.test_request_context(
            "/api/v1/auth/login", method="POST", headers=headers, environ_base=LOCAL
        ):
            with pytest.raises(TooManyRequests):
                stage(request, self._respond(401))

    def test_trusted_proxy_keys_by_the_address_it_appended(
        self, app, stage, limiter, monkeypatch
    ):
        monkeypatch.setitem(app.config, "PROXY_FIX_X_FOR", 1)
        headers = {"X-Forwarded-For": "6.6.6.6, 203.0.113.7"}
        with app.test_request_context(
            "/api/v1/auth/login", method="POST", headers=headers, environ_base=LOCAL
        ):
            stage(request, self._respond(401))
        assert limiter.attempts("203.0.113.7") == 1
        assert limiter.attempts("6.6.6.6") == 0

    def test_concurrent_attempts_never_exceed_the_limit(self, app, stage, limiter):
        gate = threading.Event()
        lock = threading.Lock()
        entered: list[int] = []
        rejected: list[int] = []

        def handler(_req):
            with lock:
                entered.append(1)
            gate.wait(timeout=5)
            return Response("{}", status=401, mimetype="application/json")

        def worker():
            with app.test_request_context(
                "/api/v1/auth/login", method="POST", environ_base=LOCAL
            ):
                try:
                    stage(request, handler)
                except TooManyRequests:
                    with lock:
                        rejected.append(1)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        deadline = time.monotonic() + 5
        while len(entered) + len(rejected) < 20 and time.monotonic() < deadline:
            time.sleep(0.01)
        gate.set()
        for t in threads:
            t.join()

        assert len(entered) == 5
        assert len(rejected) == 15
        assert limiter.attempts("127.0.0.1") == 5

    def test_disabled(self, app, limiter):
        stage = AuthRateLimitMiddleware(limiter, enabled=False)
        with app.test_request_context("/api/v1/auth/login", method="POST", environ_base=LOCAL):
            stage(request, self._respond(401))
        assert limiter.attempts("127.0.0.1") == 0

    def test_from_config(self):
        stage = AuthRateLimitMiddleware.from_config(
            {
                "AUTH_RATE_LIMIT_MAX_ATTEMPTS": 3,
                "AUTH_RATE_LIMIT_WINDOW_SECONDS": 60,
                "AUTH_RATE_LIMIT_PATH_PREFIX": "/auth/",
            }
        )
        assert stage.limiter.max_attempts == 3
        assert stage.limiter.window_seconds == 60
        assert stage.path_prefix == "/auth"
        assert stage.enabled is True
