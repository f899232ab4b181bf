"""Diff and commit of step edits."""

from .engine import CommitEngine, CommitResult, StepDiff, diff_steps

__all__ = ["CommitEngine", "CommitResult", "StepDiff", "diff_steps"]
