"""Automation builder utility modules."""

from automation_builder.utils.concurrency import gather_all
from automation_builder.utils.validation import (
    sanitize_log_message,
    safe_storage_name,
)

__all__ = [
    "gather_all",
    "sanitize_log_message",
    "safe_storage_name",
]
