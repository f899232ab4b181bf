"""Configuration module for the automation builder."""

from .settings import Settings, get_settings
from .logging import configure_logging, JSONFormatter, TextFormatter

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "JSONFormatter",
    "TextFormatter",
]
