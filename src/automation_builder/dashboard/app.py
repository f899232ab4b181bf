"""Streamlit entry point: ``streamlit run automation_builder/dashboard/app.py``."""

import streamlit as st

from automation_builder.config import configure_logging, get_settings
from automation_builder.dashboard.step_editor import render_step_editor

settings = get_settings()
configure_logging(settings.log_level, settings.log_format, settings.sanitize_logs)

st.set_page_config(page_title=settings.app_name, page_icon="🧩", layout="wide")
render_step_editor()
