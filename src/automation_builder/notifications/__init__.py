"""Toast notification sink."""

from .notifier import (
    LogChannel,
    MemoryChannel,
    Notifier,
    Toast,
    ToastChannel,
    ToastLevel,
)

__all__ = [
    "LogChannel",
    "MemoryChannel",
    "Notifier",
    "Toast",
    "ToastChannel",
    "ToastLevel",
]
