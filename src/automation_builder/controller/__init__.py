"""Page controller and stats formatting."""

from .page import UNSAVED_CHANGES_PROMPT, PageController
from .stats import StatItem, format_stats, humanize_key

__all__ = [
    "UNSAVED_CHANGES_PROMPT",
    "PageController",
    "StatItem",
    "format_stats",
    "humanize_key",
]
