"""Automation Builder - visual step editor for marketing automations."""

__version__ = "0.4.0"

from .config import Settings, get_settings
from .api_clients import WorkFlowClient
from .builder import StepBuilder, DropDirection, reorder
from .commit import CommitEngine, CommitResult, StepDiff, diff_steps
from .controller import PageController
from .drafts import Draft, DraftStore
from .notifications import Notifier
from .steps import Step, from_server, to_server

__all__ = [
    "Settings",
    "get_settings",
    "WorkFlowClient",
    "StepBuilder",
    "DropDirection",
    "reorder",
    "CommitEngine",
    "CommitResult",
    "StepDiff",
    "diff_steps",
    "PageController",
    "Draft",
    "DraftStore",
    "Notifier",
    "Step",
    "from_server",
    "to_server",
]
