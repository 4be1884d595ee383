"""Configuration page: tags, project rules, blacklist, snapshot and live save."""

from __future__ import annotations

import streamlit as st

from jira_report.app import get_import_service, get_live_saver, get_settings, get_store, register_page
from jira_report.core.errors import InvalidFormatError
from jira_report.core.persistence import save_snapshot
from jira_report.core.user_config import UserConfig


def _report(result) -> None:
    if result:
        st.success(result.message or "Done")
    else:
        st.error(result.message or "Operation failed")


def _render_tags(config: UserConfig) -> None:
    st.subheader("Custom tags")
    tags = config.custom_tags
    st.write(", ".join(tags) if tags else "No custom tags.")
    col1, col2 = st.columns(2)
    with col1:
        tag = st.text_input("New tag", key="cfg_new_tag")
        if st.button("Add tag") and tag:
            _report(config.add_custom_tag(tag))
    with col2:
        if tags:
            victim = st.selectbox("Tag to remove", tags, key="cfg_remove_tag")
            if st.button("Remove tag"):
                _report(config.remove_custom_tag(victim))


def _render_rules(config: UserConfig) -> None:
    st.subheader("Project rules")
    st.caption(
        "A ticket whose title contains one of the patterns is assigned to the project. "
        "Bracketed words like [ALPHA] are checked first."
    )
    for rule in config.project_rules:
        with st.expander(f"{rule.name} ({len(rule.patterns)} pattern(s))"):
            patterns = st.text_input(
                "Patterns (comma separated)", ", ".join(rule.patterns), key=f"rule_patterns_{rule.name}"
            )
            new_name = st.text_input("Name", rule.name, key=f"rule_name_{rule.name}")
            c1, c2 = st.columns(2)
            if c1.button("Save", key=f"rule_save_{rule.name}"):
                _report(config.update_project_rule(rule.name, patterns.split(",")))
                if new_name.strip() != rule.name:
                    _report(config.rename_project_rule(rule.name, new_name))
            if c2.button("Delete", key=f"rule_delete_{rule.name}"):
                _report(config.remove_project_rule(rule.name))

    with st.form("new_rule", clear_on_submit=True):
        name = st.text_input("Project name")
        patterns = st.text_input("Patterns (comma separated)")
        if st.form_submit_button("Add rule"):
            _report(config.add_project_rule(name, patterns.split(",")))

    if st.button("Re-apply rules to stored tasks"):
        _report(get_import_service().refresh_project_detection())


def _render_blacklist(config: UserConfig) -> None:
    st.subheader("Blacklist")
    st.caption("Blacklisted tickets are hidden everywhere and excluded from counts.")
    keys = config.blacklist
    if keys:
        victim = st.selectbox("Blacklisted tickets", keys, key="cfg_unblacklist")
        if st.button("Remove from blacklist"):
            _report(config.remove_from_blacklist(victim))
    else:
        st.write("No blacklisted ticket.")
    key = st.text_input("Ticket key to blacklist", key="cfg_blacklist_key")
    if st.button("Blacklist") and key:
        _report(config.add_to_blacklist(key))


def _render_data() -> None:
    store = get_store()
    settings = get_settings()
    saver = get_live_saver()
    st.subheader("Data")
    st.caption(f"Snapshot file: {settings.snapshot_path}")

    live = st.toggle("Live save", value=saver.enabled, help="Save automatically shortly after each change.")
    if live and not saver.enabled:
        saver.enable()
    elif not live and saver.enabled:
        saver.disable()
    if saver.last_error is not None:
        st.warning(f"Last live save failed: {saver.last_error}")

    c1, c2 = st.columns(2)
    if c1.button("Save now", type="primary"):
        try:
            save_snapshot(store, settings.snapshot_path)
            st.success(f"Saved {len(store)} task(s).")
        except OSError as exc:
            st.error(f"Save failed: {exc}")
    c2.download_button(
        "Download snapshot",
        store.to_json().encode("utf-8"),
        file_name=settings.snapshot_name,
        mime="application/json",
    )

    uploaded = st.file_uploader("Open a snapshot", type=["json"], key="cfg_snapshot_upload")
    if uploaded is not None and st.button("Load snapshot"):
        try:
            store.from_json(uploaded.getvalue())
            st.success(f"Loaded {len(store)} task(s).")
        except InvalidFormatError as exc:
            st.error(str(exc))

    st.markdown("#### Configuration only")
    st.download_button(
        "Export configuration",
        store.config.export_config().encode("utf-8"),
        file_name="jira-report-config.json",
        mime="application/json",
    )
    config_file = st.file_uploader("Import configuration", type=["json"], key="cfg_config_upload")
    if config_file is not None and st.button("Apply configuration"):
        _report(store.config.import_config(config_file.getvalue().decode("utf-8", errors="replace")))

    with st.expander("Danger zone"):
        if st.button("Reset configuration"):
            store.config.reset()
            st.success("Configuration cleared.")
        if st.button("Clear all tasks"):
            store.reset()
            st.success("All tasks removed.")


@register_page("Configuration")
def settings_page():
    st.title("Configuration")
    config = get_store().config
    tabs = st.tabs(["Tags", "Project rules", "Blacklist", "Data"])
    with tabs[0]:
        _render_tags(config)
    with tabs[1]:
        _render_rules(config)
    with tabs[2]:
        _render_blacklist(config)
    with tabs[3]:
        _render_data()
