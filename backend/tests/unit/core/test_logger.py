"""Tests for correlation ids and the JSON log formatter."""

from __future__ import annotations

import json
import logging
import uuid

from football_network.core.logger import JSONFormatter, ensure_request_id


def test_correlation_header_wins(app):
    headers = {"X-Correlation-ID": "corr-1", "X-Request-ID": "req-1"}
    with app.test_request_context("/", headers=headers):
        assert ensure_request_id() == "corr-1"


def test_request_id_header_is_fallback(app):
    with app.test_request_context("/", headers={"X-Request-ID": "req-1"}):
        assert ensure_request_id() == "req-1"


def test_generated_id_is_cached_for_the_request(app):
    with app.test_request_context("/"):
        first = ensure_request_id()
        assert ensure_request_id() == first
        uuid.UUID(first)


def test_outside_request_a_fresh_id_is_returned():
    assert ensure_request_id() != ensure_request_id()


def test_json_formatter_includes_known_extras():
    record = logging.LogRecord(
        "football_network.test", logging.WARNING, __file__, 1, "hi %s", ("there",), None
    )
    record.status_code = 429
    record.client_ip = "203.0.113.1"
    record.request_id = "corr-9"
    record.unrelated = "dropped"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "hi there"
    assert payload["level"] == "WARNING"
    assert payload["request_id"] == "corr-9"
    assert payload["status_code"] == 429
    assert payload["client_ip"] == "203.0.113.1"
    assert "unrelated" not in payload
