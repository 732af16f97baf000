"""
Structured JSON logging for the orders service.

Every record carries the service identity plus the request and user that
produced it, so a single checkout can be followed from the HTTP request
through pricing and the database transaction.
"""

import json
import logging
import logging.handlers
import re
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)


class StructuredFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def __init__(self, service: str, environment: str, version: str):
        super().__init__()
        self.service = service
        self.environment = environment
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "@timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "environment": self.environment,
            "version": self.version,
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        trace = {
            key: value
            for key, value in (("request_id", request_id_var.get()), ("user_id", user_id_var.get()))
            if value
        }
        if trace:
            log_obj["trace"] = trace

        if record.exc_info:
            log_obj["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        if hasattr(record, 'extra_fields'):
            log_obj["custom"] = record.extra_fields

        if hasattr(record, 'duration_ms'):
            log_obj["performance"] = {"duration_ms": record.duration_ms}

        return json.dumps(log_obj, default=str)


class SecurityFilter(logging.Filter):
    """Mask credentials that end up in log messages (DSNs, bearer tokens)."""

    PATTERNS = [
        (re.compile(r'(://[^:/\s]+:)[^@\s]+(@)'), r'\1***REDACTED***\2'),
        (re.compile(r'(?i)(bearer\s+)[\w\-.]+'), r'\1***REDACTED***'),
        (re.compile(r'(?i)((?:password|token|secret)\s*[=:]\s*)\S+'), r'\1***REDACTED***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern, replacement in self.PATTERNS:
            redacted = pattern.sub(replacement, redacted)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def setup_logging(
    service_name: str,
    level: str = "INFO",
    environment: str = "development",
    version: str = "1.0.0",
    log_file: Optional[str] = None,
) -> None:
    """
    Install the JSON formatter on the root logger.

    Args:
        service_name: Reported as ``service`` on every record
        level: Log level name (DEBUG, INFO, WARNING, ...)
        environment: Deployment environment reported on every record
        version: Service version reported on every record
        log_file: Optional path for an additional rotating file handler
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = []

    formatter = StructuredFormatter(service_name, environment, version)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SecurityFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(SecurityFilter())
        root_logger.addHandler(file_handler)

    logging.getLogger('uvicorn').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialized",
        extra={'extra_fields': {'service': service_name, 'level': level, 'file': bool(log_file)}},
    )


class LoggerAdapter(logging.LoggerAdapter):
    """Copies the current request/user ids into ``extra`` of each call."""

    def process(self, msg, kwargs):
        extra = kwargs.get('extra', {})

        request_id = request_id_var.get()
        if request_id:
            extra['request_id'] = request_id

        user_id = user_id_var.get()
        if user_id:
            extra['user_id'] = user_id

        kwargs['extra'] = extra
        return msg, kwargs


def get_logger(name: str) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), {})


def set_request_context(request_id: Optional[str] = None, user_id: Optional[str] = None) -> None:
    request_id_var.set(request_id)
    user_id_var.set(user_id)


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request with its outcome and duration.

    Reuses the gateway's ``X-Request-ID`` when present and echoes it back.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get('X-Request-ID') or generate_request_id()
        set_request_context(
            request_id=request_id,
            user_id=request.headers.get('X-User-ID'),
        )

        logger = get_logger(__name__)
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={'extra_fields': {'method': request.method, 'path': request.url.path}},
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                exc_info=True,
                extra={'duration_ms': (time.perf_counter() - start_time) * 1000},
            )
            raise

        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                'extra_fields': {
                    'method': request.method,
                    'path': request.url.path,
                    'status_code': response.status_code,
                },
                'duration_ms': (time.perf_counter() - start_time) * 1000,
            },
        )
        response.headers['X-Request-ID'] = request_id
        return response
