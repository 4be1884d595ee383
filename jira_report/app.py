"""Application entry point: page registry, router and per-session services."""

from __future__ import annotations

import logging

import streamlit as st

from jira_report.core.config import AppSettings
from jira_report.core.errors import JiraReportError
from jira_report.core.persistence import LiveSaver, load_snapshot
from jira_report.core.service import ImportService
from jira_report.core.store import TaskStore
from jira_report.core.user_config import UserConfig

logger = logging.getLogger(__name__)

PAGES = {}


def register_page(label):
    def decorator(func):
        PAGES[label] = func
        return func

    return decorator


def get_settings() -> AppSettings:
    settings = st.session_state.get("settings")
    if settings is None:
        settings = AppSettings.from_env()
        st.session_state["settings"] = settings
    return settings


def get_store() -> TaskStore:
    """The session's single TaskStore, created (and loaded from disk) on first use."""
    store = st.session_state.get("task_store")
    if store is not None:
        return store
    settings = get_settings()
    store = TaskStore(UserConfig(settings.user_config_path))
    if settings.snapshot_path.exists():
        try:
            count = load_snapshot(store, settings.snapshot_path)
            logger.info("Restored %s task(s) from %s", count, settings.snapshot_path)
        except (JiraReportError, OSError) as exc:
            logger.error("Could not restore snapshot %s: %s", settings.snapshot_path, exc)
            st.session_state["startup_error"] = str(exc)
    st.session_state["task_store"] = store
    return store


def get_import_service() -> ImportService:
    service = st.session_state.get("import_service")
    if service is None or service.store is not get_store():
        service = ImportService(get_store())
        st.session_state["import_service"] = service
    return service


def get_live_saver() -> LiveSaver:
    saver = st.session_state.get("live_saver")
    if saver is None:
        settings = get_settings()
        saver = LiveSaver(get_store(), settings.snapshot_path, delay=settings.live_save_delay)
        st.session_state["live_saver"] = saver
    return saver


def main():
    st.sidebar.title("Jira Report")
    pages = list(PAGES.keys())
    if not pages:
        st.write("No pages registered yet.")
        return
    preferred_order = ["Tasks", "Import", "Configuration"]
    ordered = [name for name in preferred_order if name in pages]
    trailing = sorted(name for name in pages if name not in preferred_order)
    pages = ordered + trailing

    store = get_store()
    if "startup_error" in st.session_state:
        st.sidebar.error(f"Saved data could not be loaded: {st.session_state.pop('startup_error')}")
    # Nothing to show yet: start on the import page
    default = pages.index("Import") if not len(store) and "Import" in pages else 0
    page = st.sidebar.selectbox("Page", pages, index=default)
    if store.has_unsaved_changes:
        st.sidebar.caption("● Unsaved changes")
    PAGES[page]()


if __name__ == "__main__":
    main()
