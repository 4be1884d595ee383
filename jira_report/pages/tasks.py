"""Tasks page.

Filters the stored collection (project, reporter, tag, status, done
visibility, search), shows facet counts and renders the tasks grouped by
project or sorted by due date. Single-task actions live in an expander.
"""

from __future__ import annotations

import streamlit as st

from jira_report.app import get_settings, get_store, register_page
from jira_report.core.config import ALL_PROJECTS, NO_PEOPLE, NO_PROJECT, STATUS_DISPLAY, STATUS_KEYS
from jira_report.core.store import TaskStore
from jira_report.visual.tables import render_task_table


def _with_count(label: str, count: int) -> str:
    return f"{label} ({count})"


def _render_filters(store: TaskStore) -> None:
    st.sidebar.markdown("### Filters")
    filters = store.filters

    project_counts = store.get_project_counts()
    projects = [ALL_PROJECTS] + sorted(p for p in project_counts if p != NO_PROJECT)
    if project_counts.get(NO_PROJECT):
        projects.append(NO_PROJECT)
    project = st.sidebar.selectbox(
        "Project",
        projects,
        index=projects.index(filters.project) if filters.project in projects else 0,
        format_func=lambda p: "All projects"
        if p == ALL_PROJECTS
        else _with_count("No project" if p == NO_PROJECT else p, project_counts.get(p, 0)),
    )

    people = store.get_people_counts()
    persons = ["", *sorted(people.counts)] + ([NO_PEOPLE] if people.no_reporter else [])
    person = st.sidebar.selectbox(
        "Reporter",
        persons,
        index=persons.index(filters.person) if filters.person in persons else 0,
        format_func=lambda p: "Everyone"
        if not p
        else _with_count("No reporter", people.no_reporter)
        if p == NO_PEOPLE
        else _with_count(p, people.counts.get(p, 0)),
    )

    tag_counts = store.get_tag_counts()
    tags_lower = {t.lower(): t for t in tag_counts}
    tag_options = ["", *sorted(tags_lower)]
    tag = st.sidebar.selectbox(
        "Tag",
        tag_options,
        index=tag_options.index(filters.tag) if filters.tag in tag_options else 0,
        format_func=lambda t: "All tags" if not t else _with_count(tags_lower[t], tag_counts[tags_lower[t]]),
    )

    status_counts = store.get_status_counts()
    statuses = ["", *STATUS_KEYS]
    status = st.sidebar.selectbox(
        "Status",
        statuses,
        index=statuses.index(filters.status) if filters.status in statuses else 0,
        format_func=lambda s: "All statuses"
        if not s
        else _with_count(f"{STATUS_DISPLAY[s][1]} {STATUS_DISPLAY[s][0]}", status_counts.get(s, 0)),
    )

    show_done = st.sidebar.checkbox("Show done tasks", value=filters.show_done)
    show_label_done = st.sidebar.checkbox("Show tasks labelled 'done'", value=filters.show_label_done)
    search = st.sidebar.text_input("Search titles", value=filters.search)

    wanted = {
        "project": project,
        "person": person or None,
        "tag": tag or None,
        "status": status or None,
        "show_done": show_done,
        "show_label_done": show_label_done,
        "search": search.strip(),
    }
    for name, value in wanted.items():
        if getattr(filters, name) != value:
            store.set_filter(name, value)

    if st.sidebar.button("Reset filters"):
        store.reset_filters()
        st.rerun()


def _render_actions(store: TaskStore) -> None:
    keys = [t.key for t in store.get_filtered_tasks()]
    with st.expander("Edit a task", expanded=False):
        if not keys:
            st.caption("No task matches the current filters.")
            return
        key = st.selectbox("Task", keys, key="edit_task_key")
        task = store.get_task(key)
        if task is None:
            return
        st.write(f"**{task.key}** {task.summary}")

        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button("Toggle done", key="toggle_done"):
                _report(store.toggle_done(key))
            if st.button("Blacklist", key="blacklist_task"):
                _report(store.config.add_to_blacklist(key))
        with col2:
            new_label = st.text_input("Add label", key="new_label")
            if st.button("Add", key="add_label") and new_label:
                _report(store.add_label(key, new_label))
            if task.labels:
                label = st.selectbox("Remove label", list(task.labels), key="remove_label_choice")
                if st.button("Remove", key="remove_label"):
                    _report(store.remove_label(key, label))
        with col3:
            current = task.due_date.date() if task.due_date else None
            due = st.date_input("Due date", value=current, key="due_date", format="DD/MM/YYYY")
            if st.button("Set due date", key="set_due"):
                _report(store.set_due_date(key, due.isoformat() if due else None))
            if st.button("Delete task", key="delete_task"):
                _report(store.remove_task(key))


def _report(result) -> None:
    if result:
        st.success(result.message or "Done")
    else:
        st.error(result.message or "Operation failed")


@register_page("Tasks")
def tasks_page():
    st.title("Tasks")
    store = get_store()
    settings = get_settings()
    if not len(store):
        st.info("No tasks yet. Import a Jira XML export from the Import page.")
        return

    _render_filters(store)

    stats = store.get_stats()
    c1, c2, c3 = st.columns(3)
    c1.metric("Tasks", stats["total_tasks"])
    c2.metric("Projects", stats["total_projects"])
    c3.metric("People", stats["total_people"])

    modes = {"project": "By project", "date": "By due date"}
    mode = st.radio(
        "View",
        list(modes),
        index=list(modes).index(store.view_mode),
        format_func=modes.get,
        horizontal=True,
    )
    if mode != store.view_mode:
        store.set_view_mode(mode)

    _render_actions(store)
    st.markdown("---")

    if store.view_mode == "date":
        render_task_table(store.get_tasks_by_date(), settings.browse_url, limit=settings.max_table_rows)
        return
    grouped = store.get_tasks_by_project()
    if not grouped:
        st.info("No task matches the current filters.")
    for project in sorted(grouped, key=lambda p: (p == NO_PROJECT, p.lower())):
        tasks = grouped[project]
        title = "No project" if project == NO_PROJECT else project
        st.subheader(f"{title} ({len(tasks)})")
        render_task_table(tasks, settings.browse_url, limit=settings.max_table_rows, key=f"tasks_{project}")
