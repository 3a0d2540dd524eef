"""Structured logging configuration for the dashboard API."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Request context and structured fields passed via ``extra``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class RequestLogger:
    """Logger bound to one request id and one component."""

    def __init__(self, request_id: str, component: str = "router"):
        """Initialize request logger.

        Args:
            request_id: Identifier of the request being served
            component: Component name (e.g., 'news', 'proxy.weather')
        """
        self.request_id = request_id
        self.component = component
        self.logger = logging.getLogger(f"dashboard_api.{component}")

    def _log_with_context(self, level: int, message: str, **kwargs) -> None:
        extra = {
            "request_id": self.request_id,
            "component": self.component,
            **kwargs,
        }
        self.logger.log(level, message, extra=extra)

    def info(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def exception(self, message: str, **kwargs) -> None:
        """Log an error with the traceback of the exception being handled."""
        extra = {"request_id": self.request_id, "component": self.component, **kwargs}
        self.logger.error(message, exc_info=True, extra=extra)

    def log_upstream_call(self, upstream: str, status: int | None, elapsed_ms: int) -> None:
        """Log the outcome of a single upstream request."""
        level = logging.INFO if status is not None and status < 400 else logging.WARNING
        self._log_with_context(
            level,
            f"Upstream {upstream} responded",
            upstream=upstream,
            status_code=status,
            elapsed_ms=elapsed_ms,
        )

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        self.info("Request metrics", metrics=metrics)


def setup_structured_logging(log_level: str = "INFO") -> None:
    """Setup structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    logging.getLogger("dashboard_api").setLevel(level)
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def create_request_logger(component: str, request_id: str | None = None) -> RequestLogger:
    """Create a request logger for a component.

    Args:
        component: Component name
        request_id: Optional request ID (will generate one if not provided)

    Returns:
        RequestLogger instance
    """
    if not request_id:
        request_id = f"req_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"

    return RequestLogger(request_id, component)
