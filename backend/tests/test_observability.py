"""
Unit Tests for Logging and Error Tracking Helpers

Run with: pytest backend/tests/test_observability.py -v
"""

import json
import logging

from logging_config import (
    JSONFormatter,
    RequestContextFilter,
    set_request_context,
    clear_request_context,
    get_request_id,
)
from sentry_integration import redact_dict, filter_sensitive_data, init_sentry


def _record(msg="hello", **extra):
    record = logging.LogRecord("campaign.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestContext:

    def test_filter_adds_request_id(self):
        token = set_request_context("req-1")
        try:
            record = _record()
            assert RequestContextFilter().filter(record) is True
            assert record.request_id == "req-1"
            assert get_request_id() == "req-1"
        finally:
            clear_request_context(token)

        assert get_request_id() is None


class TestJSONFormatter:

    def test_output_is_one_json_object(self):
        record = _record("Email sent", request_id="req-9", template_id=3)

        data = json.loads(JSONFormatter(service_name="campaign-mail").format(record))

        assert data["message"] == "Email sent"
        assert data["level"] == "INFO"
        assert data["service"] == "campaign-mail"
        assert data["request_id"] == "req-9"
        assert data["extra"] == {"template_id": 3}


class TestSentryHelpers:

    def test_redact_nested_keys(self):
        redacted = redact_dict({
            "X-Postmark-Server-Token": "abc",
            "body": {"password": "p", "to": "a@example.com"},
            "items": [{"api_key": "k"}, "plain"],
        })

        assert redacted["X-Postmark-Server-Token"] == "[REDACTED]"
        assert redacted["body"] == {"password": "[REDACTED]", "to": "a@example.com"}
        assert redacted["items"] == [{"api_key": "[REDACTED]"}, "plain"]

    def test_filter_event_headers(self):
        event = {"request": {"headers": {"Authorization": "Bearer x", "Accept": "json"}}}

        filtered = filter_sensitive_data(event, {})

        assert filtered["request"]["headers"] == {"Authorization": "[REDACTED]", "Accept": "json"}

    def test_init_without_dsn_is_disabled(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        assert init_sentry(dsn="") is False
