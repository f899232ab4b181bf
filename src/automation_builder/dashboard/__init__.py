"""Streamlit dashboard."""

from .step_editor import render_step_editor

__all__ = ["render_step_editor"]
