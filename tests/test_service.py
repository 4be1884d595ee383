import pytest

from jira_report.core.errors import MalformedInputError
from jira_report.core.reconcile import MergePolicy
from jira_report.core.service import ImportService


def test_two_item_scenario(store, two_items_xml):
    service = ImportService(store)
    result = service.import_xml(two_items_xml, MergePolicy.ADD_ONLY)
    assert result.success
    assert (result.added, result.total) == (2, 2)
    first = store.tasks
    assert [t.status_key for t in first] == ["backlog", "done"]

    again = service.import_xml(two_items_xml, MergePolicy.ADD_ONLY)
    assert (again.added, again.updated, again.total) == (0, 0, 2)
    assert store.tasks == first


def test_preview_does_not_touch_store(store, two_items_xml, full_item_xml):
    service = ImportService(store)
    service.import_xml(two_items_xml)
    preview = service.preview(two_items_xml)
    assert preview.existing_keys == ["A-1", "A-2"]
    assert preview.new_keys == []
    preview = service.preview(full_item_xml)
    assert preview.new_keys == ["PROJ-123"]
    assert preview.metadata["projects"] == ["PROJ"]
    assert len(store) == 2


def test_project_rules_applied_on_import(store, full_item_xml):
    store.config.add_project_rule("Alpha", ["alpha"])
    ImportService(store).import_xml(full_item_xml)
    assert store.get_task("PROJ-123").project == "Alpha"


def test_selective_import(store, two_items_xml):
    service = ImportService(store)
    service.import_xml(two_items_xml)
    store.update_task("A-1", status="Closed", summary="Edited locally")
    result = service.import_xml(
        two_items_xml, MergePolicy.SELECTIVE, fields=["status"], selected_keys=["A-1"]
    )
    assert result.updated == 1
    task = store.get_task("A-1")
    assert task.status_key == "backlog"
    assert task.summary == "Edited locally"


def test_replace_import(store, two_items_xml, full_item_xml):
    service = ImportService(store)
    service.import_xml(two_items_xml)
    result = service.import_xml(full_item_xml, MergePolicy.REPLACE)
    assert result.total == 1
    assert [t.key for t in store.tasks] == ["PROJ-123"]


def test_malformed_or_empty_import_leaves_store_untouched(store, two_items_xml):
    service = ImportService(store)
    service.import_xml(two_items_xml)
    store.mark_saved()
    with pytest.raises(MalformedInputError):
        service.import_xml("<rss><item>")
    empty = service.import_xml("<rss><channel/></rss>")
    assert not empty
    assert len(store) == 2
    assert not store.has_unsaved_changes


def test_refresh_project_detection(store, two_items_xml):
    service = ImportService(store)
    assert service.refresh_project_detection().error == "validation"
    service.import_xml(two_items_xml)
    store.config.add_project_rule("Seconds", ["second"])
    result = service.refresh_project_detection()
    assert result.success
    assert store.get_task("A-2").project == "Seconds"
    assert result.message.startswith("1 of 2")


def test_progress_callback(store, two_items_xml):
    messages = []
    ImportService(store).import_xml(two_items_xml, progress=lambda msg, cur, tot: messages.append(msg))
    assert messages[0] == "Parsing XML export"
    assert messages[-1] == "Import complete"
