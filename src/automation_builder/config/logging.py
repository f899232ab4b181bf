"""Logging for the builder, CLI, and dashboard.

Log calls attach context through ``extra=``: ``flow_id`` and ``step_id``
name what an event is about, and the API client adds ``method``, ``path``,
``status_code`` and ``duration_ms``. Both formatters render that context,
so a line about a step always says which flow and step it concerns.

Only the ``automation_builder`` logger tree is configured. Streamlit and
the host application keep their own root handlers.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from automation_builder.utils.validation import sanitize_log_message

PACKAGE_LOGGER = "automation_builder"

CONTEXT_FIELDS = ("flow_id", "step_id")
REQUEST_FIELDS = ("method", "path", "status_code", "duration_ms")

# (record attribute, text label)
_TEXT_TAGS = (
    ("flow_id", "flow"),
    ("step_id", "step"),
    ("status_code", "status"),
    ("duration_ms", "ms"),
)


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Context fields set on ``record``, in a stable order."""
    return {
        name: getattr(record, name)
        for name in (*CONTEXT_FIELDS, *REQUEST_FIELDS)
        if getattr(record, name, None) is not None
    }


class SanitizingFilter(logging.Filter):
    """Redact bearer tokens and API secrets.

    Covers the rendered message and the request ``path``, which can carry
    credentials in its query string.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = sanitize_log_message(record.getMessage())
        record.args = None
        path = getattr(record, "path", None)
        if isinstance(path, str):
            record.path = sanitize_log_message(path)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """``2024-05-01 10:00:00 INFO automation_builder.builder [flow=f1 step=s2] message``."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s%(context)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        tags = [
            f"{label}={getattr(record, name)}"
            for name, label in _TEXT_TAGS
            if getattr(record, name, None) is not None
        ]
        record.context = f" [{' '.join(tags)}]" if tags else ""
        return super().format(record)


def configure_logging(
    level: str = "INFO", format: str = "text", sanitize_logs: bool = True
) -> logging.Logger:
    """Send ``automation_builder`` logs to stdout.

    Calling it again replaces the previous handler, so the CLI callback and
    Streamlit reruns do not stack duplicate output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: ``text`` or ``json``
        sanitize_logs: Redact bearer tokens and secrets
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.propagate = False

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if format.lower() == "json" else TextFormatter())
    if sanitize_logs:
        handler.addFilter(SanitizingFilter())

    package_logger.addHandler(handler)
    return package_logger
