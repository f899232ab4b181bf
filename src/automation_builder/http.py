"""Shared HTTP client factory."""

from __future__ import annotations

import httpx

from automation_builder.config import Settings, get_settings


def get_async_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` bound to the configured API.

    Args:
        settings: Settings to read base URL, token and timeout from
        transport: Optional transport override (tests use ``httpx.MockTransport``)
    """
    settings = settings or get_settings()
    headers = {"Accept": "application/json", **settings.auth_headers}
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        headers=headers,
        timeout=httpx.Timeout(settings.request_timeout_seconds),
        transport=transport,
    )
