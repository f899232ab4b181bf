"""Exception hierarchy for the automation builder."""

from __future__ import annotations

from typing import Any


class AutomationBuilderError(Exception):
    """Base class for all automation builder errors."""


class ApiError(AutomationBuilderError):
    """A REST call failed or returned ``success: false``."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.endpoint = endpoint

    def __str__(self) -> str:
        return self.message


class LoadError(AutomationBuilderError):
    """The automation shell, its steps, or the option lists could not be loaded."""


class StepDecodeError(AutomationBuilderError):
    """A server step record has a ``stepType`` with no UI counterpart."""

    def __init__(self, step_type: Any, record: dict | None = None):
        super().__init__(f"Unknown step type: {step_type!r}")
        self.step_type = step_type
        self.record = record or {}


class ValidationError(AutomationBuilderError):
    """A local edit was rejected before reaching the server."""


class ProcessingError(AutomationBuilderError):
    """A save was requested while another save is still running."""


class StorageError(AutomationBuilderError):
    """A key-value backend could not read or write a value."""


class CommitError(AutomationBuilderError):
    """A step commit aborted part way through.

    Calls issued before the failure are not rolled back. Retrying the
    commit re-diffs against the server and reconciles the remainder.
    """

    def __init__(
        self,
        message: str,
        phase: str,
        cause: Exception | None = None,
        id_map: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.cause = cause
        self.id_map = dict(id_map or {})

    def __str__(self) -> str:
        return self.message
