import json
from datetime import UTC, datetime

import pytest

from jira_report.core.errors import InvalidFormatError
from jira_report.core.models import Ticket
from jira_report.core.parser import parse_jira_xml
from jira_report.core.store import StoreState, TaskStore


def _tasks():
    return [
        Ticket(
            key="A-1",
            summary="Fix login",
            reporter="Alice",
            project="Web",
            labels=("urgent", "Done"),
            status_key="inprogress",
        ),
        Ticket(key="A-2", summary="Write docs", reporter="bob", project="Docs", labels=("Urgent",), status_key="done"),
        Ticket(key="A-3", summary="Login audit", components=("Security",), labels=("alice",)),
        Ticket(key="A-4", summary="Secret", reporter="Alice", project="Web", labels=("urgent",)),
    ]


def test_state_machine(store):
    assert store.state is StoreState.EMPTY
    store.load(_tasks())
    assert store.state is StoreState.LOADED
    assert not store.has_unsaved_changes
    store.set_done("A-1", True)
    assert store.state is StoreState.MUTATED
    assert store.has_unsaved_changes
    store.mark_saved()
    assert store.state is StoreState.LOADED
    assert not store.has_unsaved_changes
    store.reset()
    assert store.state is StoreState.EMPTY
    assert store.tasks == []


def test_derived_indices(store):
    store.load(_tasks())
    assert store.projects == ["docs", "security", "web"]
    assert store.people == ["alice", "bob"]
    # "alice" is a person, not a tag; labels group case-insensitively
    assert store.tags == {"urgent": 3, "Done": 1}


def test_filters_are_case_insensitive_and_combined(store):
    store.load(_tasks())
    assert store.set_filter("project", "WEB")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1", "A-4"]
    store.set_filter("search", "LOGIN")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1"]
    store.reset_filters()
    store.set_filter("project", "security")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-3"]


def test_person_and_nopeople_filters(store):
    store.load(_tasks())
    store.set_filter("person", "ALICE")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1", "A-4"]
    store.set_filter("person", "nopeople")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-3"]


def test_tag_status_and_done_filters(store):
    store.load(_tasks())
    store.set_filter("tag", "URGENT")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1", "A-2", "A-4"]
    store.set_filter("show_done", False)
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1", "A-4"]
    store.set_filter("show_label_done", False)
    assert [t.key for t in store.get_filtered_tasks()] == ["A-4"]
    store.reset_filters()
    store.set_filter("status", "inprogress")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1"]


def test_invalid_filter_and_view_mode(store):
    assert store.set_filter("colour", "red").error == "validation"
    assert store.set_filter("status", "bogus").error == "validation"
    assert store.set_view_mode("timeline").error == "validation"
    assert store.set_view_mode("date")
    assert store.view_mode == "date"


def test_done_toggle_overrides_status(store):
    store.load(_tasks())
    store.set_filter("show_done", False)
    store.toggle_done("A-2")
    assert store.get_task("A-2").done is False
    assert "A-2" in [t.key for t in store.get_filtered_tasks()]
    store.toggle_done("a-1")
    assert "A-1" not in [t.key for t in store.get_filtered_tasks()]


def test_blacklist_dominates_every_query(store):
    store.load(_tasks())
    store.config.add_to_blacklist("a-4")
    store.config.add_to_blacklist("A-3")
    store.set_filter("project", "web")
    store.set_filter("person", "alice")
    store.set_filter("tag", "urgent")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-1"]
    assert store.get_project_counts() == {"web": 1, "docs": 1}
    people = store.get_people_counts()
    assert people.counts == {"alice": 1, "bob": 1}
    assert people.no_reporter == 0
    assert store.get_tag_counts() == {"urgent": 2, "Done": 1}
    assert store.get_status_counts() == {"inprogress": 1, "done": 1}


def test_counts_ignore_active_filters(store):
    store.load(_tasks())
    store.config.add_custom_tag("later")
    store.set_filter("project", "docs")
    assert store.get_project_counts() == {"web": 2, "docs": 1, "security": 1}
    people = store.get_people_counts()
    assert people.counts == {"alice": 2, "bob": 1}
    assert people.no_reporter == 1
    tags = store.get_tag_counts()
    assert tags["later"] == 0
    assert tags["urgent"] == 3


def test_mutations_return_results(store):
    store.load(_tasks())
    assert store.add_task(Ticket(key="a-1")).error == "duplicate"
    assert store.add_task(Ticket(key="B-1", summary="new"))
    assert store.remove_task("missing").error == "not_found"
    assert store.remove_task("b-1")
    assert store.update_task("missing", summary="x").error == "not_found"
    assert store.update_task("A-1", colour="red").error == "validation"
    assert store.update_task("A-1", key="a-2").error == "duplicate"
    assert len(store) == 4


def test_update_task_can_rename_key(store):
    store.load(_tasks())
    assert store.update_task("a-3", key="a-30")
    assert store.get_task("A-3") is None
    assert store.get_task("A-30").summary == "Login audit"
    assert len(store) == 4


def test_update_task_recomputes_status_and_priority(store):
    store.load(_tasks())
    assert store.update_task("a-1", status="Resolved", priority="Highest", labels=["x"])
    task = store.get_task("A-1")
    assert (task.status, task.status_key, task.status_label) == ("Resolved", "done", "Done")
    assert (task.priority_value, task.priority_text) == (5, "Critical")
    assert task.labels == ("x",)


def test_labels_and_due_date(store):
    store.load(_tasks())
    assert store.add_label("A-3", "backend")
    assert store.add_label("A-3", "BACKEND").error == "duplicate"
    assert store.remove_label("A-3", "Backend")
    assert store.remove_label("A-3", "backend").error == "not_found"
    assert store.update_labels("A-3", ["b", " a ", "b", ""])
    assert store.get_task("A-3").labels == ("b", "a")
    assert store.set_due_date("A-3", "2024-03-01T00:00:00+00:00")
    assert store.get_task("A-3").due_date == datetime(2024, 3, 1, tzinfo=UTC)
    assert store.set_due_date("A-3", "garbage").error == "validation"
    assert store.set_due_date("A-3", None)
    assert store.get_task("A-3").due_date is None


def test_notifications_after_recompute_and_isolated(store):
    seen = []

    def broken(s):
        raise RuntimeError("listener failure")

    store.subscribe("tasks", broken)
    store.subscribe("tasks", lambda s: seen.append(s.projects))
    store.subscribe("unsavedChanges", lambda s: seen.append(s.has_unsaved_changes))
    store.add_task(Ticket(key="A-1", project="Web"))
    assert seen == [["web"], True]


def test_config_changes_mark_unsaved(store):
    store.load(_tasks())
    topics = []
    store.subscribe("userConfig", lambda s: topics.append("userConfig"))
    store.config.add_custom_tag("later")
    assert topics == ["userConfig"]
    assert store.has_unsaved_changes


def test_grouping_and_date_order(store):
    store.load(
        [
            Ticket(key="A-1", project="Web", due_date=datetime(2024, 5, 1, tzinfo=UTC)),
            Ticket(key="A-2"),
            Ticket(key="A-3", project="Web", due_date=datetime(2024, 1, 1, tzinfo=UTC)),
        ]
    )
    grouped = store.get_tasks_by_project()
    assert [t.key for t in grouped["Web"]] == ["A-1", "A-3"]
    assert [t.key for t in grouped["noproject"]] == ["A-2"]
    assert [t.key for t in store.get_tasks_by_date()] == ["A-3", "A-1", "A-2"]
    assert store.get_stats() == {"total_tasks": 3, "total_projects": 1, "total_people": 0}


def test_snapshot_round_trip(two_items_xml, full_item_xml):
    source = TaskStore()
    source.load(parse_jira_xml(two_items_xml) + parse_jira_xml(full_item_xml))
    source.set_done("A-1", True)
    source.config.add_project_rule("Alpha", ["alpha"])
    source.config.add_to_blacklist("A-2")

    snapshot = json.loads(source.to_json())
    assert snapshot["version"] == "1.1"
    assert snapshot["metadata"]["people"] == ["alice", "bob", "jane doe"]
    assert snapshot["tasks"][0]["statusKey"] == "backlog"

    target = TaskStore()
    target.from_json(source.to_json())
    assert target.tasks == source.tasks
    assert target.projects == source.projects
    assert target.people == source.people
    assert target.tags == source.tags
    assert target.config.to_dict() == source.config.to_dict()
    assert target.state is StoreState.LOADED
    assert not target.has_unsaved_changes


def test_from_dict_defaults_and_errors(store):
    store.config.add_custom_tag("stale")
    with pytest.raises(InvalidFormatError):
        store.from_dict({"version": "1.1"})
    with pytest.raises(InvalidFormatError):
        store.from_json("{broken")
    store.from_dict({"tasks": [{"key": "x-1", "status": "Done"}, {"summary": "no key"}]})
    task = store.get_task("X-1")
    assert task.status_key == "done"
    assert task.priority_value == 3
    assert len(store) == 1
    assert store.config.custom_tags == []


def test_noproject_filter_matches_its_count(store):
    store.load([*_tasks(), Ticket(key="A-5", summary="Orphan"), Ticket(key="A-6", summary="Orphan too")])
    counts = store.get_project_counts()
    assert counts["noproject"] == 2
    assert store.set_filter("project", "noproject")
    assert [t.key for t in store.get_filtered_tasks()] == ["A-5", "A-6"]
    for facet, count in counts.items():
        store.set_filter("project", facet)
        assert len(store.get_filtered_tasks()) == count


def test_stats_people_excludes_blacklisted_reporters(store):
    store.load(_tasks())
    assert store.get_stats()["total_people"] == 2
    store.config.add_to_blacklist("A-2")
    assert store.get_stats()["total_people"] == 1


def test_mark_saved_with_stale_revision_keeps_unsaved(store):
    store.load(_tasks())
    store.set_done("A-1", True)
    _, revision = store.snapshot()
    store.add_label("A-1", "late")
    assert store.mark_saved(revision) is False
    assert store.has_unsaved_changes
    assert store.state is StoreState.MUTATED
    _, revision = store.snapshot()
    assert store.mark_saved(revision) is True
    assert not store.has_unsaved_changes
