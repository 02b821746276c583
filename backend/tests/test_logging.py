"""Tests for JSON log formatting and audit events."""

import json
import logging
from types import SimpleNamespace

import pytest
from starlette.requests import Request
from app.core.logging_config import (
    AUDIT_LOGGER_NAME,
    AuditJsonFormatter,
    correlation_id_var,
    CorrelationIdFilter,
    get_client_ip,
    log_admin_action,
    log_security_event,
    request_audit_fields,
)


def _request(headers=None, client=("10.0.0.5", 5000)):
    scope = {
        "type": "http",
        "method": "DELETE",
        "path": "/api/generation/schedule/7",
        "query_string": b"",
        "headers": [
            (name.lower().encode(), value.encode())
            for name, value in (headers or {}).items()
        ],
        "client": client,
    }
    return Request(scope)


@pytest.mark.unit
class TestClientIp:
    def test_prefers_first_forwarded_hop(self):
        request = _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
        assert get_client_ip(request) == "203.0.113.9"

    def test_real_ip_header(self):
        request = _request({"X-Real-IP": "198.51.100.4"})
        assert get_client_ip(request) == "198.51.100.4"

    def test_socket_address(self):
        assert get_client_ip(_request()) == "10.0.0.5"

    def test_unknown_without_client(self):
        assert get_client_ip(_request(client=None)) == "unknown"


@pytest.mark.unit
class TestAuditEvents:
    def test_request_audit_fields(self):
        request = _request({"User-Agent": "cron-job/1.0"})

        assert request_audit_fields(request) == {
            "ip_address": "10.0.0.5",
            "user_agent": "cron-job/1.0",
            "request_method": "DELETE",
            "request_path": "/api/generation/schedule/7",
        }

    def test_log_security_event_drops_empty_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
            log_security_event(
                event_type="cron.denied",
                message="Cron request rejected",
                level=logging.WARNING,
                user_id=None,
                ip_address="10.0.0.5",
                event_category="cron",
                secret_configured=False,
            )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.event_type == "cron.denied"
        assert record.event_category == "cron"
        assert record.ip_address == "10.0.0.5"
        assert record.secret_configured is False
        assert not hasattr(record, "user_id")

    def test_log_admin_action(self, caplog):
        admin = SimpleNamespace(id=3, username="admin")

        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
            log_admin_action(
                _request(),
                admin,
                "generation.schedule.cancelled",
                "Generation schedule 7 cancelled",
                schedule_id=7,
            )

        record = caplog.records[-1]
        assert record.event_category == "admin"
        assert record.user_id == "3"
        assert record.username == "admin"
        assert record.request_path == "/api/generation/schedule/7"
        assert record.schedule_id == 7


@pytest.mark.unit
class TestJsonFormatter:
    def test_formats_audit_record(self):
        record = logging.makeLogRecord(
            {
                "name": AUDIT_LOGGER_NAME,
                "levelno": logging.INFO,
                "levelname": "INFO",
                "msg": "User logged in",
                "event_type": "auth.login.success",
                "user_id": "12",
                "request_method": "POST",
                "request_path": "/api/auth/login",
            }
        )
        token = correlation_id_var.set("req-42")
        try:
            CorrelationIdFilter().filter(record)
        finally:
            correlation_id_var.reset(token)

        line = json.loads(AuditJsonFormatter("%(message)s").format(record))

        assert line["message"] == "User logged in"
        assert line["level"] == "INFO"
        assert line["logger"] == AUDIT_LOGGER_NAME
        assert line["correlation_id"] == "req-42"
        assert line["event_type"] == "auth.login.success"
        assert line["user_id"] == "12"
        assert line["request"] == {"method": "POST", "path": "/api/auth/login"}
        assert "request_method" not in line

    def test_correlation_id_defaults_to_none_marker(self):
        record = logging.makeLogRecord({"msg": "background"})
        CorrelationIdFilter().filter(record)
        assert record.correlation_id == "none"
