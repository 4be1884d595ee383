"""Import page: paste or upload a Jira XML export, preview it, then merge it."""

from __future__ import annotations

import streamlit as st

from jira_report.app import get_import_service, get_settings, register_page
from jira_report.core.config import MERGEABLE_FIELDS
from jira_report.core.errors import MalformedInputError
from jira_report.core.reconcile import MergePolicy
from jira_report.visual.progress import ProgressReporter
from jira_report.visual.tables import render_task_table

POLICY_LABELS = {
    MergePolicy.ADD_ONLY: "Add new tickets only",
    MergePolicy.SELECTIVE: "Update selected tickets",
    MergePolicy.REPLACE: "Replace everything",
}

FIELD_LABELS = {
    "summary": "Title",
    "status": "Status",
    "priority": "Priority",
    "due_date": "Due date",
    "labels": "Labels",
    "project": "Project",
    "assignee": "Assignee",
}


@register_page("Import")
def import_page():
    st.title("Import")
    st.caption("Import a Jira RSS/XML export (Issues > Export > XML).")
    service = get_import_service()
    settings = get_settings()

    uploaded = st.file_uploader("XML file", type=["xml"])
    pasted = st.text_area("...or paste the XML", height=150)
    xml_text = uploaded.getvalue().decode("utf-8", errors="replace") if uploaded is not None else pasted

    if st.button("Preview", disabled=not xml_text.strip()):
        try:
            st.session_state["import_preview"] = service.preview(xml_text)
            st.session_state["import_xml"] = xml_text
        except MalformedInputError as exc:
            st.session_state.pop("import_preview", None)
            st.error(str(exc))

    preview = st.session_state.get("import_preview")
    if preview is None:
        return
    if not preview.tickets:
        st.warning("No tickets found in the XML.")
        return

    c1, c2, c3 = st.columns(3)
    c1.metric("Tickets", preview.classification.total)
    c2.metric("New", len(preview.classification.new))
    c3.metric("Already present", len(preview.classification.existing))
    meta = preview.metadata
    if meta.get("projects"):
        st.caption(f"Projects: {', '.join(meta['projects'])}")
    render_task_table(preview.tickets, settings.browse_url, set_name="import_preview", key="import_preview_table")

    policy = st.radio(
        "Import mode",
        list(POLICY_LABELS),
        format_func=POLICY_LABELS.get,
        horizontal=True,
    )
    fields: list[str] = []
    selected: list[str] = []
    if policy is MergePolicy.SELECTIVE:
        if not preview.existing_keys:
            st.info("None of these tickets exist yet; nothing to update.")
        fields = st.multiselect(
            "Fields to update",
            sorted(MERGEABLE_FIELDS),
            default=["status", "priority", "due_date"],
            format_func=FIELD_LABELS.get,
        )
        selected = st.multiselect("Tickets to update", preview.existing_keys, default=preview.existing_keys)
    elif policy is MergePolicy.REPLACE:
        st.warning("All stored tasks will be replaced by this export.")

    if st.button("Import", type="primary"):
        reporter = ProgressReporter("Importing tickets")
        try:
            result = service.import_xml(
                st.session_state["import_xml"],
                policy,
                fields=fields,
                selected_keys=selected,
                progress=reporter.callback,
            )
        except MalformedInputError as exc:
            reporter.error(str(exc))
            return
        if result:
            reporter.complete(
                f"{result.message}: {result.added} added, {result.updated} updated, {result.total} in total."
            )
            st.session_state.pop("import_preview", None)
        else:
            reporter.error(result.message)
