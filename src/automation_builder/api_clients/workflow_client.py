"""Async client for the automation REST API.

Every endpoint answers with a JSON envelope::

    {"success": true, "data": {...}}
    {"success": false, "message": "Flow not found"}

``success: false``, a non-JSON body, or a transport failure all raise
``ApiError``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from automation_builder.config import Settings
from automation_builder.errors import ApiError
from automation_builder.http import get_async_client

logger = logging.getLogger(__name__)

FLOW_PATH = "/api/work-flow/flow"
STEPS_PATH = "/api/work-flow/steps"
LISTS_PATH = "/api/list"
TEMPLATES_PATH = "/api/templates"
SERVERS_PATH = "/api/servers"
CONTACT_PATH = "/api/contact"


class WorkFlowClient:
    """Wrapper for the automation, step, and option endpoints.

    Usage:
        async with WorkFlowClient() as client:
            shell = await client.get_automation(flow_id)
            records = await client.list_steps(flow_id)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._owns_client = http_client is None
        self._client = http_client or get_async_client(settings)

    async def __aenter__(self) -> WorkFlowClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        error_message: str = "Request failed",
    ) -> Any:
        """Send a request and unwrap the ``success``/``data`` envelope."""
        started = time.monotonic()
        try:
            response = await self._client.request(
                method, path, params=params, json=payload
            )
        except httpx.TimeoutException as e:
            raise ApiError(f"{error_message}: request timed out", endpoint=path) from e
        except httpx.RequestError as e:
            raise ApiError(f"{error_message}: {e}", endpoint=path) from e

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug(
            f"{method} {path} -> {response.status_code}",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        try:
            body = response.json()
        except ValueError:
            raise ApiError(
                f"{error_message}: HTTP {response.status_code}",
                status_code=response.status_code,
                endpoint=path,
            ) from None

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(
                message or error_message,
                status_code=response.status_code,
                endpoint=path,
            )
        return body.get("data")

    # -------------------------------------------------------------------------
    # Automation shell
    # -------------------------------------------------------------------------

    async def get_automation(self, automation_id: str) -> Dict[str, Any]:
        """Fetch ``{automation, websiteData, connectedList}`` for a flow."""
        data = await self._request(
            "GET",
            FLOW_PATH,
            params={"automationId": automation_id},
            error_message="Failed to load automation",
        )
        return data or {}

    async def update_automation(
        self, automation_id: str, status: str, update_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Apply a ``statusChange`` or ``nameChange`` update."""
        data = await self._request(
            "PUT",
            FLOW_PATH,
            payload={
                "automationId": automation_id,
                "status": status,
                "updateData": update_data,
            },
            error_message="Status update failed"
            if status == "statusChange"
            else "Rename failed",
        )
        return data or {}

    async def delete_automation(self, automation_id: str) -> None:
        await self._request(
            "DELETE",
            FLOW_PATH,
            params={"automationId": automation_id},
            error_message="Delete failed",
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def list_steps(self, flow_id: str) -> List[Dict[str, Any]]:
        """Fetch raw step records (unordered; callers sort by ``stepCount``)."""
        data = await self._request(
            "GET",
            STEPS_PATH,
            params={"flowId": flow_id},
            error_message="Failed to load steps",
        )
        return list((data or {}).get("steps") or [])

    async def create_step(self, flow_id: str, step: Dict[str, Any]) -> Dict[str, Any]:
        """Create a step; the returned record carries the server ``_id``."""
        data = await self._request(
            "POST",
            STEPS_PATH,
            payload={"flowId": flow_id, "step": step},
            error_message="Failed to create step",
        )
        if not data or not data.get("_id"):
            raise ApiError("Failed to create step: no id returned", endpoint=STEPS_PATH)
        return data

    async def update_step(
        self, flow_id: str, step_id: str, step_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        data = await self._request(
            "PUT",
            STEPS_PATH,
            payload={"flowId": flow_id, "stepId": step_id, "stepData": step_data},
            error_message="Failed to update step",
        )
        return data or {}

    async def delete_step(self, flow_id: str, step_id: str) -> None:
        await self._request(
            "DELETE",
            STEPS_PATH,
            params={"flowId": flow_id, "stepId": step_id},
            error_message="Failed to delete step",
        )

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    async def list_lists(self, website_id: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            LISTS_PATH,
            params={"websiteId": website_id},
            error_message="Failed to load lists",
        )
        return data if isinstance(data, list) else []

    async def list_templates(self) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", TEMPLATES_PATH, error_message="Failed to load templates"
        )
        return data if isinstance(data, list) else []

    async def list_servers(self) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", SERVERS_PATH, error_message="Failed to load servers"
        )
        return data if isinstance(data, list) else []

    # -------------------------------------------------------------------------
    # Subscribers
    # -------------------------------------------------------------------------

    async def add_subscriber(
        self, email: str, list_id: str, full_name: str = "", source: str = ""
    ) -> Dict[str, Any]:
        """Add a subscriber to a list."""
        data = await self._request(
            "POST",
            CONTACT_PATH,
            payload={
                "email": email,
                "fullName": full_name,
                "source": source,
                "listId": list_id,
            },
            error_message="Failed to add subscriber",
        )
        return data or {}
