"""Canvas state, reorder math, and form options."""

from .options import OptionsCatalog, SelectOption
from .reorder import DropDirection, compute_insert_index, drop_direction, reorder
from .state import (
    AddStep,
    DeleteStep,
    EditStep,
    HistoryEntry,
    MoveStep,
    PendingStep,
    StepBuilder,
    StepCommand,
    normalize_patch,
)

__all__ = [
    "OptionsCatalog",
    "SelectOption",
    "DropDirection",
    "compute_insert_index",
    "drop_direction",
    "reorder",
    "AddStep",
    "DeleteStep",
    "EditStep",
    "HistoryEntry",
    "MoveStep",
    "PendingStep",
    "StepBuilder",
    "StepCommand",
    "normalize_patch",
]
