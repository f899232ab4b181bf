"""API client integrations."""

from .workflow_client import WorkFlowClient

__all__ = [
    "WorkFlowClient",
]
