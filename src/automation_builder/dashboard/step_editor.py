"""Step editor page for the Streamlit dashboard.

Renders one automation as a vertical list of step cards with a palette of
step types beside it. Edits are kept as a local draft until Save pushes
them to the API; Discard throws them away.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import streamlit as st

from automation_builder.api_clients import WorkFlowClient
from automation_builder.builder import OptionsCatalog, SelectOption, StepBuilder
from automation_builder.controller import PageController
from automation_builder.drafts import create_draft_store
from automation_builder.errors import AutomationBuilderError, LoadError, ValidationError
from automation_builder.notifications import MemoryChannel, Notifier, ToastLevel
from automation_builder.steps import (
    AVAILABLE_TOKENS,
    PALETTE_ITEMS,
    DelayUnit,
    HttpMethod,
    Step,
    StepData,
)

logger = logging.getLogger(__name__)

_TOAST_ICONS = {
    ToastLevel.INFO: "ℹ️",
    ToastLevel.SUCCESS: "✅",
    ToastLevel.WARNING: "⚠️",
    ToastLevel.ERROR: "❌",
}


def _init_session_state():
    """Initialize session state for the step editor."""
    if "editor_flow_id" not in st.session_state:
        st.session_state.editor_flow_id = None
    if "editor_controller" not in st.session_state:
        st.session_state.editor_controller = None
    if "editor_toasts" not in st.session_state:
        st.session_state.editor_toasts = MemoryChannel()
    if "editor_pending" not in st.session_state:
        st.session_state.editor_pending = None  # PendingStep from the palette
    if "editor_editing" not in st.session_state:
        st.session_state.editor_editing = None  # id of the step being edited
    if "editor_deleting" not in st.session_state:
        st.session_state.editor_deleting = None  # id awaiting delete confirmation


def _reset_editor(flow_id: str | None) -> None:
    """Forget the loaded automation and point the editor at ``flow_id``."""
    st.session_state.editor_flow_id = flow_id
    st.session_state.editor_controller = None
    st.session_state.editor_pending = None
    st.session_state.editor_editing = None
    st.session_state.editor_deleting = None


def _notifier() -> Notifier:
    return Notifier([st.session_state.editor_toasts])


def _run(action: Callable[[PageController], Awaitable[Any]]) -> Any:
    """Run an async controller action on a fresh API client.

    Each Streamlit rerun has no running event loop, so every call gets its
    own loop and client; the controller is rebound to that client.
    """

    async def _call():
        async with WorkFlowClient() as client:
            controller = st.session_state.editor_controller
            if controller is None:
                controller = PageController(
                    st.session_state.editor_flow_id,
                    client,
                    create_draft_store(),
                    notifier=_notifier(),
                )
                st.session_state.editor_controller = controller
            else:
                controller.bind_client(client)
            return await action(controller)

    try:
        return asyncio.run(_call())
    except LoadError:
        return None
    except AutomationBuilderError as e:
        logger.error(f"Editor action failed: {e}")
        _notifier().show_error(str(e))
        return None


def _render_toasts() -> None:
    for toast in st.session_state.editor_toasts.drain():
        st.toast(toast.message, icon=_TOAST_ICONS[toast.level])


def _select_index(options: list[SelectOption], value: str | None) -> int | None:
    """Position of ``value`` in ``options``, or None when it is not offered."""
    for i, option in enumerate(options):
        if option.value == value:
            return i
    return None


def _option_select(
    label: str, options: list[SelectOption], value: str | None, key: str
) -> str:
    chosen = st.selectbox(
        label,
        options,
        index=_select_index(options, value),
        format_func=lambda o: o.label,
        key=key,
        placeholder="Select…",
    )
    return chosen.value if chosen else ""


def _step_caption(step: Step) -> str:
    data = step.data
    if data.kind == "delay":
        amount = int(data.amount) if float(data.amount).is_integer() else data.amount
        return f"Wait {amount} {data.unit.value}"
    if data.action_kind == "http_request":
        return f"{data.method.value} {data.url or '(no url)'}"
    if data.action_kind == "send_email":
        return data.subject or "(no subject)"
    if data.action_kind == "move_to_list":
        return f"Move to {data.target_list_id or '(no list)'}"
    return PALETTE_ITEMS[data.action_kind]["description"]


def _palette_key(step: Step) -> str:
    return "wait" if step.data.kind == "delay" else step.data.action_kind


# -----------------------------------------------------------------------------
# Configuration form
# -----------------------------------------------------------------------------


def _render_step_form(
    data: StepData,
    key: str,
    options: OptionsCatalog,
    connected_list_id: str | None,
) -> dict[str, Any] | None:
    """Render the kind-specific form; return the patch once submitted."""
    patch: dict[str, Any] = {}

    with st.form(key=f"form_{key}"):
        patch["title"] = st.text_input("Title", value=data.title, key=f"{key}_title")

        if data.kind == "delay":
            col1, col2 = st.columns(2)
            with col1:
                patch["amount"] = st.number_input(
                    "Wait for", min_value=0.0, value=float(data.amount), key=f"{key}_amount"
                )
            with col2:
                units = [u.value for u in DelayUnit]
                patch["unit"] = st.selectbox(
                    "Unit", units, index=units.index(data.unit.value), key=f"{key}_unit"
                )

        elif data.action_kind == "send_email":
            patch["template_id"] = _option_select(
                "Template", options.templates, data.template_id, f"{key}_template"
            )
            patch["subject"] = st.text_input("Subject", value=data.subject, key=f"{key}_subject")
            patch["sending_service_id"] = _option_select(
                "Sending server", options.servers, data.sending_service_id, f"{key}_server"
            )
            patch["raw_html"] = st.text_area(
                "Custom HTML (optional)", value=data.raw_html, key=f"{key}_html", height=160
            )
            st.caption("Placeholders: " + "  ".join(AVAILABLE_TOKENS))
            if data.raw_html_summary and data.raw_html_summary.placeholders:
                st.caption(
                    f"Uses {', '.join(data.raw_html_summary.placeholders)} "
                    f"({data.raw_html_summary.length} chars)"
                )

        elif data.action_kind == "http_request":
            methods = [m.value for m in HttpMethod]
            col1, col2 = st.columns([1, 3])
            with col1:
                patch["method"] = st.selectbox(
                    "Method", methods, index=methods.index(data.method.value), key=f"{key}_method"
                )
            with col2:
                patch["url"] = st.text_input("URL", value=data.url, key=f"{key}_url")
            patch["query"] = st.text_input(
                "Query", value=data.query, key=f"{key}_query", help="key=value&key2=value2"
            )
            patch["headers"] = st.text_area("Headers", value=data.headers, key=f"{key}_headers")
            patch["body"] = st.text_area("Body", value=data.body, key=f"{key}_body")
            col1, col2 = st.columns(2)
            with col1:
                patch["retry_attempts"] = st.number_input(
                    "Retry attempts", value=int(data.retry_attempts), step=1, key=f"{key}_retries",
                    help="1 to 7",
                )
            with col2:
                patch["retry_delay_seconds"] = st.number_input(
                    "Retry delay (s)", value=int(data.retry_delay_seconds), step=1,
                    key=f"{key}_delay", help="1 to 300",
                )

        elif data.action_kind == "move_to_list":
            patch["target_list_id"] = _option_select(
                "Target list",
                options.move_targets(connected_list_id),
                data.target_list_id,
                f"{key}_list",
            )

        elif data.action_kind == "delete_subscriber":
            patch["reason"] = st.text_input("Reason (optional)", value=data.reason, key=f"{key}_reason")

        col1, col2 = st.columns(2)
        with col1:
            submitted = st.form_submit_button("Save step", type="primary", use_container_width=True)
        with col2:
            cancelled = st.form_submit_button("Cancel", use_container_width=True)

    if cancelled:
        return {}
    return patch if submitted else None


# -----------------------------------------------------------------------------
# Page sections
# -----------------------------------------------------------------------------


def _render_header(controller: PageController) -> None:
    automation = controller.automation
    name = automation.get("name") or "Untitled automation"
    marker = " *" if controller.has_unsaved_changes else ""
    st.subheader(f"{name}{marker}")

    if controller.connected_list:
        st.caption(f"List: {controller.connected_list.get('name', '-')}")

    stats = controller.stats
    if stats:
        st.markdown("  ".join(f"`{item.text}`" for item in stats))

    col1, col2, col3, col4 = st.columns([3, 1, 1, 1])
    with col1:
        with st.form("rename_form", border=False):
            new_name = st.text_input("Name", value=name, label_visibility="collapsed")
            if st.form_submit_button("Rename") and new_name != name:
                try:
                    controller.stage_rename(new_name)
                except ValidationError as e:
                    st.error(str(e))
                else:
                    st.rerun()
    with col2:
        active = st.toggle("Active", value=bool(automation.get("isActive")))
        if active != bool(automation.get("isActive")):
            controller.stage_status(active)
            st.rerun()
    with col3:
        if st.button(
            "Save",
            type="primary",
            use_container_width=True,
            disabled=controller.is_processing or not controller.has_unsaved_changes,
        ):
            _run(lambda c: c.save_all())
            st.rerun()
    with col4:
        with st.popover("Discard", use_container_width=True):
            confirmed = st.checkbox("Discard all unsaved changes?")
            if st.button("Discard", disabled=not confirmed, key="discard_btn"):
                _run(lambda c: c.discard_all(confirmed=True))
                st.rerun()


def _render_palette(builder: StepBuilder) -> None:
    """Render the step palette; a click opens the configuration form."""
    st.markdown("### Steps")
    st.caption("Click to add a step to the end of the flow")

    for group in ("Actions", "Delays"):
        st.markdown(f"**{group}**")
        for palette_key, item in PALETTE_ITEMS.items():
            if item["group"] != group:
                continue
            if st.button(
                f"{item['icon']} {item['label']}",
                key=f"palette_{palette_key}",
                help=item["description"],
                use_container_width=True,
            ):
                st.session_state.editor_pending = builder.begin_add(palette_key)
                st.session_state.editor_editing = None
                st.rerun()


def _render_step_card(builder: StepBuilder, step: Step, position: int) -> None:
    item = PALETTE_ITEMS[_palette_key(step)]
    with st.container(border=True):
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            st.markdown(f"**{position}. {item['icon']} {step.title}**")
            st.caption(_step_caption(step) + ("  · draft" if step.is_temporary else ""))
        with col2:
            if st.button("✏️ Edit", key=f"edit_{step.id}", use_container_width=True):
                st.session_state.editor_editing = step.id
                st.session_state.editor_pending = None
                st.rerun()
        with col3:
            if st.button("🗑️ Delete", key=f"delete_{step.id}", use_container_width=True):
                st.session_state.editor_deleting = step.id
                st.rerun()

        if st.session_state.editor_deleting == step.id:
            st.warning(builder.delete_prompt(step))
            yes, no = st.columns(2)
            if yes.button("Delete", key=f"confirm_delete_{step.id}", type="primary"):
                builder.delete_step(step.id, confirmed=True)
                st.session_state.editor_deleting = None
                st.rerun()
            if no.button("Keep", key=f"cancel_delete_{step.id}"):
                st.session_state.editor_deleting = None
                st.rerun()


def _render_reorder(builder: StepBuilder) -> None:
    if len(builder.steps) < 2:
        return

    labels = [f"{i + 1}. {s.title}" for i, s in enumerate(builder.steps)]
    col1, col2, col3 = st.columns([2, 2, 1])
    with col1:
        from_index = st.selectbox(
            "Move", range(len(labels)), format_func=lambda i: labels[i], key="reorder_from"
        )
    with col2:
        target_index = st.selectbox(
            "Drop onto", range(len(labels)), format_func=lambda i: labels[i], key="reorder_to"
        )
    with col3:
        st.write("")
        if st.button("Move", use_container_width=True, key="reorder_btn"):
            builder.move_step(from_index, target_index)
            st.rerun()


def _render_canvas(controller: PageController) -> None:
    builder = controller.builder
    if not builder.steps:
        st.info("No steps yet. Pick one from the palette to start the flow.")
        return

    for position, step in enumerate(builder.steps, start=1):
        _render_step_card(builder, step, position)
    st.divider()
    _render_reorder(builder)


def _render_config(controller: PageController) -> None:
    """Render the add or edit form, whichever is open."""
    builder = controller.builder
    pending = st.session_state.editor_pending
    editing = st.session_state.editor_editing

    if pending is not None:
        st.markdown(f"### New: {PALETTE_ITEMS[pending.palette_key]['label']}")
        patch = _render_step_form(
            pending.data, "new", controller.options, controller.connected_list_id
        )
        if patch is None:
            return
        if patch:
            try:
                builder.confirm_add(pending, patch)
            except ValidationError as e:
                st.error(str(e))
                return
        st.session_state.editor_pending = None
        st.rerun()

    elif editing is not None:
        try:
            step = builder.get(editing)
        except ValidationError:
            st.session_state.editor_editing = None
            return
        st.markdown(f"### Edit: {step.title}")
        patch = _render_step_form(
            step.data, f"edit_{step.id}", controller.options, controller.connected_list_id
        )
        if patch is None:
            return
        if patch:
            try:
                builder.edit_step(step.id, patch)
            except ValidationError as e:
                st.error(str(e))
                return
        st.session_state.editor_editing = None
        st.rerun()


def _resolve_flow_id() -> str | None:
    query_id = st.query_params.get("automationId")
    typed = st.text_input("Automation ID", value=query_id or st.session_state.editor_flow_id or "")
    return (typed or "").strip() or None


def render_step_editor():
    """Main entry point for the automation step editor."""
    st.title("🧩 Automation Step Editor")

    _init_session_state()

    flow_id = _resolve_flow_id()
    if flow_id != st.session_state.editor_flow_id:
        _reset_editor(flow_id)

    if not flow_id:
        st.info("Enter an automation ID to start editing.")
        return

    controller: PageController | None = st.session_state.editor_controller
    if controller is None or not controller.loaded:
        with st.spinner("Loading automation..."):
            _run(lambda c: c.load())
        controller = st.session_state.editor_controller

    _render_toasts()

    if controller is None or controller.load_error:
        st.error(controller.load_error if controller else "Failed to load automation")
        if st.button("Retry"):
            _run(lambda c: c.retry())
            st.rerun()
        return

    _render_header(controller)
    if controller.has_unsaved_changes:
        st.warning("You have unsaved changes. Save or discard them before leaving.")
    st.divider()

    palette, main = st.columns([1, 3])
    with palette:
        _render_palette(controller.builder)
    with main:
        _render_canvas(controller)
        _render_config(controller)
