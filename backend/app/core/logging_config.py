"""
JSON logging for the blog API.

Every line carries the request's correlation id. Audit events (logins,
cron runs, admin schedule changes) go to the ``ledgerline.audit`` logger with
their fields lifted to the top level so they can be filtered downstream.
"""

import logging
import sys
import uuid
from typing import Optional
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

AUDIT_LOGGER_NAME = "ledgerline.audit"
CORRELATION_HEADER = "X-Correlation-ID"

correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)

AUDIT_FIELDS = (
    "event_type",
    "event_category",
    "user_id",
    "username",
    "ip_address",
    "user_agent",
)


class CorrelationIdFilter(logging.Filter):
    def filter(self, record):
        record.correlation_id = correlation_id_var.get() or "none"
        return True


class AuditJsonFormatter(jsonlogger.JsonFormatter):
    """Adds timestamp, level, correlation id and audit fields to each line."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["correlation_id"] = getattr(record, "correlation_id", "none")
        log_record["source"] = f"{record.module}:{record.lineno}"

        for field in AUDIT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        method = log_record.pop("request_method", None)
        path = log_record.pop("request_path", None)
        if method or path:
            log_record["request"] = {"method": method, "path": path}


def setup_logging(debug: bool = False) -> logging.Logger:
    """Send all application and uvicorn logs to stdout as JSON."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(AuditJsonFormatter("%(message)s"))
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False

    # The OpenAI client logs every HTTP call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.setLevel(logging.INFO)
    return audit_logger


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Correlation-ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        request.state.correlation_id = correlation_id
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def log_security_event(
    event_type: str,
    message: str,
    level: int = logging.INFO,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    request_method: Optional[str] = None,
    request_path: Optional[str] = None,
    event_category: str = "security",
    **extra_fields
):
    """
    Write one audit event.

    Args:
        event_type: Dotted event name, e.g. "auth.login.success" or "cron.denied"
        message: Human-readable summary
        level: Logging level
        event_category: Grouping such as "authentication", "cron" or "admin"
        **extra_fields: Event-specific values (schedule_id, processed, ...)
    """
    extra = {"event_type": event_type, "event_category": event_category}
    optional = {
        "user_id": str(user_id) if user_id else None,
        "username": username,
        "ip_address": ip_address,
        "user_agent": user_agent,
        "request_method": request_method,
        "request_path": request_path,
    }
    extra.update({key: value for key, value in optional.items() if value})
    extra.update(extra_fields)

    logging.getLogger(AUDIT_LOGGER_NAME).log(level, message, extra=extra)


def log_admin_action(request: Request, admin, event_type: str, message: str, **extra_fields):
    """Audit an action taken by an administrator through the API."""
    log_security_event(
        event_type=event_type,
        message=message,
        user_id=admin.id,
        username=admin.username,
        event_category="admin",
        **request_audit_fields(request),
        **extra_fields,
    )


def get_client_ip(request: Request) -> str:
    """Client address, preferring the first X-Forwarded-For hop behind a proxy."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def request_audit_fields(request: Request) -> dict:
    """Caller and route details of a request, as log_security_event keywords."""
    return {
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "request_method": request.method,
        "request_path": request.url.path,
    }
