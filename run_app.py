"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_app.py

Settings come from a ``[jira_report]`` section of ``.streamlit/secrets.toml``
(``DATA_DIR``, ``BROWSE_URL``, ``LOG_LEVEL``, ``LIVE_SAVE_DELAY``) or from the
matching ``JIRA_REPORT_*`` environment variables. Every module in
``jira_report/pages`` is imported so each ``@register_page`` page registers
itself.
"""

import logging
import os
from importlib import import_module
from pathlib import Path

import streamlit as st

from jira_report.app import main
from jira_report.core.config import AppSettings

st.set_page_config(page_title="Jira Report", layout="wide")


def _init_settings():
    """Build AppSettings once per session; secrets win over the environment."""
    if "settings" in st.session_state:
        return
    values = {
        key: os.environ[f"JIRA_REPORT_{key}"]
        for key in ("DATA_DIR", "BROWSE_URL", "LOG_LEVEL", "LIVE_SAVE_DELAY")
        if f"JIRA_REPORT_{key}" in os.environ
    }
    try:
        values.update(st.secrets.get("jira_report", {}))
    except Exception as e:  # no secrets.toml
        logging.getLogger(__name__).debug("No Streamlit secrets available: %s", e)
    settings = AppSettings.from_mapping(values)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    st.session_state["settings"] = settings


_init_settings()

PAGES_DIR = Path(__file__).parent / "jira_report" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"jira_report.pages.{py.stem}"
    try:
        import_module(mod_name)
    except Exception as e:
        logging.getLogger(__name__).error("Failed importing page %s: %s", mod_name, e)

if __name__ == "__main__":
    main()
