from datetime import UTC, datetime

import pytest

from jira_report.core.errors import JiraReportError, MalformedInputError
from jira_report.core.models import Ticket
from jira_report.core.parser import extract_metadata, parse_jira_xml, validate_ticket


def test_parse_two_items(two_items_xml):
    tickets = parse_jira_xml(two_items_xml)
    assert [t.key for t in tickets] == ["A-1", "A-2"]
    assert tickets[0].status_key == "backlog"
    assert tickets[1].status_key == "done"
    assert tickets[0].priority_value == 4
    assert tickets[0].jira_id == "10001"
    assert tickets[0].status_id == "1"


def test_parse_full_item(full_item_xml):
    tickets = parse_jira_xml(full_item_xml)
    # the item without a key is dropped
    assert len(tickets) == 1
    t = tickets[0]
    assert t.key == "PROJ-123"
    assert t.summary == "[Alpha] Fix the login page"
    assert t.description == "<p>Details</p>"
    assert t.type == "Bug"
    assert t.status == "En développement"
    assert t.status_key == "inprogress"
    assert t.status_label == "En développement"
    assert (t.priority_value, t.priority_text) == (5, "Critical")
    assert t.assignee == "jdoe"
    assert t.reporter == "Jane Doe"
    assert t.project == "PROJ"
    assert t.project_name == "Project Name"
    assert t.created == datetime(2024, 1, 15, 9, 0, tzinfo=UTC)
    assert t.updated == datetime(2024, 1, 20, 14, 30, tzinfo=UTC)
    assert t.due_date is None
    assert t.labels == ("frontend", "urgent")
    assert t.components == ("Web", "Auth")
    assert t.fix_versions == ("1.0",)
    assert t.resolution == "Unresolved"
    assert t.link == "https://jira.example.com/browse/PROJ-123"
    assert t.done is None


def test_missing_lists_default_to_empty(two_items_xml):
    t = parse_jira_xml(two_items_xml)[0]
    assert t.labels == ()
    assert t.components == ()
    assert t.fix_versions == ()
    assert t.due_date is None


def test_malformed_xml_raises():
    with pytest.raises(MalformedInputError):
        parse_jira_xml("<rss><channel><item></channel>")
    assert issubclass(MalformedInputError, JiraReportError)


def test_document_without_items():
    assert parse_jira_xml("<rss><channel/></rss>") == []


def test_validate_ticket():
    result = validate_ticket(Ticket(key="A-1"))
    assert result.valid
    assert "Missing summary" in result.warnings
    assert not validate_ticket(Ticket(key="")).valid


def test_extract_metadata(two_items_xml, full_item_xml):
    tickets = parse_jira_xml(two_items_xml) + parse_jira_xml(full_item_xml)
    meta = extract_metadata(tickets)
    assert meta["projects"] == ["PROJ"]
    assert meta["people"] == ["Alice", "Bob", "Jane Doe", "jdoe"]
    assert meta["statuses"] == ["Open", "Resolved", "En développement"]
    assert meta["labels"]["frontend"] == 1
    assert meta["components"] == ["Auth", "Web"]
