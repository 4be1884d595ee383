"""Column labels and hover help for task tables."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import streamlit as st

# Raw column key -> (label, help text, format key)
# format key: "int" -> integer, "date" -> dd/mm/YYYY, "bool" -> checkbox, None -> text
COLUMN_METADATA: dict[str, tuple[str, str, str | None]] = {
    "summary": ("Summary", "Ticket title from the export.", None),
    "type": ("Type", "Jira issue type.", None),
    "status": ("Status", "Raw Jira workflow status.", None),
    "status_label": ("Status", "Normalized workflow status.", None),
    "priority": ("Priority", "Raw Jira priority.", None),
    "priority_text": ("Priority", "Normalized priority.", None),
    "priority_value": ("Priority Level", "Priority from 1 (minimal) to 5 (critical).", "int"),
    "project": ("Project", "Project key or the project detected by your rules.", None),
    "components": ("Components", "Jira components; also usable as project filters.", None),
    "reporter": ("Reporter", "Person who reported the ticket.", None),
    "assignee": ("Assignee", "Person currently assigned.", None),
    "labels": ("Labels", "Jira labels and tags added locally.", None),
    "created": ("Created", "Creation date.", "date"),
    "updated": ("Updated", "Last update in Jira.", "date"),
    "due_date": ("Due", "Due date.", "date"),
    "done": ("Done", "Completed, by status or by manual toggle.", "bool"),
}


def apply_column_metadata(
    columns: Iterable[str],
    existing: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return a column_config dictionary with human labels and hover help."""

    config: dict[str, Any] = dict(existing or {})
    for col in columns:
        if col in config:
            continue
        meta = COLUMN_METADATA.get(col)
        if not meta:
            continue
        label, help_text, fmt = meta
        if fmt == "int":
            config[col] = st.column_config.NumberColumn(label, help=help_text, format="%d")
        elif fmt == "date":
            config[col] = st.column_config.DatetimeColumn(label, help=help_text, format="DD/MM/YYYY")
        elif fmt == "bool":
            config[col] = st.column_config.CheckboxColumn(label, help=help_text)
        else:
            config[col] = st.column_config.Column(label, help=help_text)
    return config
