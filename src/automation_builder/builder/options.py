"""Dropdown options for the step configuration form."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from automation_builder.api_clients import WorkFlowClient
from automation_builder.utils.concurrency import gather_all

logger = logging.getLogger(__name__)


class SelectOption(BaseModel):
    value: str
    label: str


def _to_options(records: list[dict[str, Any]]) -> list[SelectOption]:
    return [
        SelectOption(value=str(r.get("_id", "")), label=str(r.get("name") or r.get("_id", "")))
        for r in records
        if r.get("_id")
    ]


class OptionsCatalog(BaseModel):
    """Lists, mail templates, and sending servers for one website."""

    website_id: str | None = None
    lists: list[SelectOption] = Field(default_factory=list)
    templates: list[SelectOption] = Field(default_factory=list)
    servers: list[SelectOption] = Field(default_factory=list)

    @classmethod
    async def load(cls, client: WorkFlowClient, website_id: str | None) -> OptionsCatalog:
        """Fetch all three option sets concurrently.

        Lists are scoped to the website, so without a website id only
        templates and servers are loaded.
        """
        if website_id:
            lists, templates, servers = await gather_all(
                client.list_lists(website_id),
                client.list_templates(),
                client.list_servers(),
            )
        else:
            lists = []
            templates, servers = await gather_all(
                client.list_templates(), client.list_servers()
            )

        logger.debug(
            f"Loaded options: {len(lists)} lists, {len(templates)} templates, "
            f"{len(servers)} servers"
        )
        return cls(
            website_id=website_id,
            lists=_to_options(lists),
            templates=_to_options(templates),
            servers=_to_options(servers),
        )

    def move_targets(self, connected_list_id: str | None) -> list[SelectOption]:
        """Lists a subscriber can be moved to, excluding the current one."""
        return [o for o in self.lists if o.value != (connected_list_id or "")]

    def label_for(self, kind: str, value: str) -> str | None:
        options = getattr(self, kind, [])
        return next((o.label for o in options if o.value == value), None)
