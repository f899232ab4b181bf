"""Toast notifications for editor events."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from automation_builder.config.logging import CONTEXT_FIELDS

logger = logging.getLogger(__name__)


class ToastLevel(str, Enum):
    """Severity of a toast."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Toast:
    """A short message for the user."""

    message: str
    level: ToastLevel = ToastLevel.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "level": self.level.value,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


class ToastChannel(ABC):
    """Base class for toast sinks."""

    @abstractmethod
    def send(self, toast: Toast) -> bool:
        """Deliver a toast.

        Args:
            toast: The toast to deliver

        Returns:
            True if delivered
        """
        pass

    @abstractmethod
    def name(self) -> str:
        """Get channel name."""
        pass


class LogChannel(ToastChannel):
    """Write toasts to the application log."""

    _LEVELS = {
        ToastLevel.INFO: logging.INFO,
        ToastLevel.SUCCESS: logging.INFO,
        ToastLevel.WARNING: logging.WARNING,
        ToastLevel.ERROR: logging.ERROR,
    }

    def __init__(self, logger_name: str = "automation_builder.toasts"):
        self._logger = logging.getLogger(logger_name)

    def name(self) -> str:
        return "log"

    def send(self, toast: Toast) -> bool:
        context = {k: v for k, v in toast.details.items() if k in CONTEXT_FIELDS}
        self._logger.log(self._LEVELS[toast.level], toast.message, extra=context)
        return True


class MemoryChannel(ToastChannel):
    """Keep recent toasts in memory for a UI to render and drain."""

    def __init__(self, max_items: int = 50):
        self._items: deque[Toast] = deque(maxlen=max_items)

    def name(self) -> str:
        return "memory"

    def send(self, toast: Toast) -> bool:
        self._items.append(toast)
        return True

    @property
    def items(self) -> list[Toast]:
        return list(self._items)

    def drain(self) -> list[Toast]:
        """Return and forget all pending toasts."""
        items = list(self._items)
        self._items.clear()
        return items


class Notifier:
    """Central toast dispatcher.

    Usage:
        notifier = Notifier()
        notifier.add_channel(MemoryChannel())

        notifier.show_success("Step added (draft)")
        notifier.show_error("Failed to load steps")
    """

    def __init__(self, channels: list[ToastChannel] | None = None):
        self._channels: list[ToastChannel] = list(channels or [])

    def add_channel(self, channel: ToastChannel) -> None:
        """Add a toast channel."""
        self._channels.append(channel)
        logger.debug(f"Added toast channel: {channel.name()}")

    def remove_channel(self, channel_name: str) -> bool:
        """Remove a channel by name."""
        for i, ch in enumerate(self._channels):
            if ch.name() == channel_name:
                self._channels.pop(i)
                return True
        return False

    def get_channel(self, channel_name: str) -> ToastChannel | None:
        return next((ch for ch in self._channels if ch.name() == channel_name), None)

    def notify(self, toast: Toast) -> dict[str, bool]:
        """Send a toast to all channels.

        Returns:
            Dict of channel_name -> success status
        """
        results = {}
        for channel in self._channels:
            try:
                results[channel.name()] = channel.send(toast)
            except Exception as e:
                logger.error(f"Channel {channel.name()} failed: {e}")
                results[channel.name()] = False
        return results

    # Convenience methods

    def show_info(self, message: str, **details) -> dict[str, bool]:
        return self.notify(Toast(message, ToastLevel.INFO, details=details))

    def show_success(self, message: str, **details) -> dict[str, bool]:
        return self.notify(Toast(message, ToastLevel.SUCCESS, details=details))

    def show_warning(self, message: str, **details) -> dict[str, bool]:
        return self.notify(Toast(message, ToastLevel.WARNING, details=details))

    def show_error(self, message: str, **details) -> dict[str, bool]:
        return self.notify(Toast(message, ToastLevel.ERROR, details=details))
