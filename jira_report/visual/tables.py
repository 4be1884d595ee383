"""Task tables: DataFrame conversion and Streamlit rendering helpers."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd
import streamlit as st

from jira_report.core.column_config import get_columns
from jira_report.core.dates import to_local
from jira_report.core.models import Ticket
from jira_report.core.status import is_done, status_sort_order

from .column_metadata import apply_column_metadata


def tasks_to_dataframe(tasks: Iterable[Ticket]) -> pd.DataFrame:
    """One row per ticket; dates in the display timezone, list fields joined."""
    rows = []
    for t in tasks:
        rows.append(
            {
                "key": t.key,
                "summary": t.summary,
                "type": t.type,
                "status": t.status,
                "status_key": t.status_key,
                "status_label": f"{t.status_icon} {t.status_label}".strip(),
                "status_order": status_sort_order(t.status_key),
                "priority": t.priority,
                "priority_value": t.priority_value,
                "priority_text": t.priority_text,
                "project": t.project,
                "components": ", ".join(t.components),
                "reporter": t.reporter,
                "assignee": t.assignee,
                "created": to_local(t.created),
                "updated": to_local(t.updated),
                "due_date": to_local(t.due_date),
                "labels": ", ".join(t.labels),
                "done": is_done(t),
                "link": t.link,
            }
        )
    return pd.DataFrame(rows)


def add_ticket_link(df: pd.DataFrame, browse_url: str, key_col: str = "key", label: str = "Ticket"):
    """Add a ``label`` link column: the exported link, else ``browse_url`` + key."""
    if df.empty or key_col not in df.columns:
        return df, {}
    out = df.copy()
    base = browse_url.rstrip("/")

    def _url(row) -> str:
        link = row.get("link") or ""
        if link:
            return link
        key = str(row[key_col] or "")
        return f"{base}/{key}" if key else ""

    out[label] = out.apply(_url, axis=1)
    cfg = {
        label: st.column_config.LinkColumn(
            label,
            display_text=r"browse/(.*)$",
            help="Open in Jira",
            width="small",
        )
    }
    return out, cfg


def prepare_task_table(
    df: pd.DataFrame,
    browse_url: str,
    *,
    set_name: str = "task_list",
    extra_columns: list[str] | None = None,
) -> tuple[pd.DataFrame, list[str], dict[str, object]]:
    if df.empty:
        return df, [], {}

    table, cfg = add_ticket_link(df, browse_url)
    display_cols = [col for col in get_columns(set_name) if col in table.columns]
    for col in extra_columns or []:
        if col in table.columns and col not in display_cols:
            display_cols.append(col)
    if not display_cols:
        display_cols = [col for col in table.columns if col != "key"]
    return table, display_cols, apply_column_metadata(display_cols, cfg)


def render_task_table(
    tasks: Iterable[Ticket],
    browse_url: str,
    *,
    limit: int = 1000,
    set_name: str = "task_list",
    key: str | None = None,
) -> None:
    df = tasks_to_dataframe(tasks)
    if df.empty:
        st.info("No tasks to display.")
        return
    table, cols, cfg = prepare_task_table(df, browse_url, set_name=set_name)
    st.dataframe(table[cols].head(limit), hide_index=True, column_config=cfg, key=key)
