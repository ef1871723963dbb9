"""
ValueDesk - Centralized Logging Configuration
Plain text in development, JSON lines in production.

Every line carries the trace context of the work that produced it: the
gateway call (request id), the signed-in user and the record being exported.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from valuedesk.core.config import settings


_request_id: ContextVar[str] = ContextVar("request_id", default="")
_username: ContextVar[str] = ContextVar("username", default="")
_record_id: ContextVar[str] = ContextVar("record_id", default="")


def bind_request(username: Optional[str] = None) -> str:
    """Start tracing one gateway call; returns its new request id"""
    request_id = uuid.uuid4().hex[:8]
    _request_id.set(request_id)
    if username:
        _username.set(username)
    return request_id


def set_record_id(record_id: str) -> None:
    """Tag subsequent lines with the valuation record being processed"""
    _record_id.set(record_id)


def log_context() -> Dict[str, str]:
    return {
        "request_id": _request_id.get(),
        "username": _username.get(),
        "record_id": _record_id.get(),
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log aggregation"""

    RESERVED_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
        'message', 'taskName',
    }

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        data.update({key: value for key, value in log_context().items() if value})

        if record.exc_info and record.exc_info[0]:
            data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in self.RESERVED_ATTRS and not key.startswith('_') and key not in data:
                data[key] = value

        return json.dumps(data, default=str)


class ContextualFormatter(logging.Formatter):
    """Readable lines with the trace context filled in ('-' when unset)"""

    def format(self, record: logging.LogRecord) -> str:
        for key, value in log_context().items():
            setattr(record, key, value or '-')
        return super().format(record)


class ValueDeskLogger(logging.Logger):
    """
    Logger with structured helpers for the events this client produces
    """

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        """One gateway round trip"""
        self.info(
            f"[Gateway] {method} {path} -> {status_code} ({duration_ms:.0f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, username: str = None,
                       reason: str = None, **kwargs) -> None:
        level = logging.INFO if success else logging.WARNING
        outcome = "ok" if success else "failed"
        self.log(
            level,
            f"[Auth] {event} {outcome}" +
            (f" for {username}" if username else "") +
            (f": {reason}" if reason else ""),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_export_event(self, doc_type: str, event: str,
                         pages: int = 0, **kwargs) -> None:
        self.info(
            f"[Export] {doc_type} {event}" + (f" ({pages} pages)" if pages else ""),
            extra={
                "event_type": "export",
                "doc_type": doc_type,
                "export_event": event,
                "pages": pages,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: str,
                               **kwargs) -> None:
        """Error with traceback, tagged with where it happened"""
        self.error(
            f"[{context}] {type(error).__name__}: {error}",
            exc_info=error,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            }
        )

    def log_performance(self, operation: str, duration_ms: float,
                        threshold_ms: float = 1000, **kwargs) -> None:
        """DEBUG normally, WARNING once ``threshold_ms`` is exceeded"""
        slow = duration_ms > threshold_ms
        self.log(
            logging.WARNING if slow else logging.DEBUG,
            f"[Performance] {operation} took {duration_ms:.0f}ms" +
            (f" (threshold {threshold_ms:.0f}ms)" if slow else ""),
            extra={
                "event_type": "performance",
                "operation": operation,
                "duration_ms": duration_ms,
                "exceeded_threshold": slow,
                **kwargs
            }
        )


def setup_logging() -> ValueDeskLogger:
    """Configure the ``valuedesk`` logger for the current environment"""
    logging.setLoggerClass(ValueDeskLogger)

    logger = logging.getLogger("valuedesk")
    logger.__class__ = ValueDeskLogger  # Ensure it's our custom class
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    if settings.is_production:
        console_formatter = file_formatter = JSONFormatter()
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | "
            "[%(request_id)s] [%(username)s] [%(record_id)s] | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=10485760, backupCount=5)  # 10MB
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Suppress noisy loggers
    for name in ("httpx", "httpcore", "PIL"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


logger: ValueDeskLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'bind_request',
    'set_record_id',
    'log_context',
    'JSONFormatter',
    'ContextualFormatter',
    'ValueDeskLogger',
]
