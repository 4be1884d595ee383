"""Parse Jira RSS/XML exports into normalized Ticket records.

Expected structure::

    <rss>
      <channel>
        <item>
          <key id="10001">PROJECT-123</key>
          <summary>Ticket title</summary>
          <type>Bug</type>
          <status id="1">Open</status>
          <priority id="3">Medium</priority>
          <assignee username="john">John Doe</assignee>
          <reporter username="jane">Jane Doe</reporter>
          <created>Mon, 15 Jan 2024 10:00:00 +0100</created>
          <updated>Mon, 20 Jan 2024 15:30:00 +0100</updated>
          <due>Mon, 01 Feb 2024 00:00:00 +0100</due>
          <resolution>Fixed</resolution>
          <labels><label>label1</label></labels>
          <component>Component Name</component>
          <fixVersion>1.0</fixVersion>
          <project key="PROJ">Project Name</project>
          <link>https://jira.example.com/browse/PROJECT-123</link>
        </item>
      </channel>
    </rss>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import Counter
from collections.abc import Iterable
from typing import Any

from .dates import parse_jira_date
from .errors import MalformedInputError
from .models import Ticket, TicketValidation, normalize_key
from .status import normalize_priority, normalize_status

logger = logging.getLogger(__name__)


def parse_jira_xml(xml_text: str) -> list[Ticket]:
    """Parse a Jira XML export and return one Ticket per ``<item>``.

    Items without a key are skipped. Raises ``MalformedInputError`` when the
    document is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MalformedInputError(f"Invalid XML: {exc}") from exc

    tickets: list[Ticket] = []
    dropped = 0
    for item in root.iter("item"):
        ticket = _parse_item(item)
        if ticket is None:
            dropped += 1
            continue
        tickets.append(ticket)
    if dropped:
        logger.debug("Dropped %s item(s) without a key", dropped)
    logger.info("Parsed %s ticket(s) from XML export", len(tickets))
    return tickets


def _text(item: ET.Element, tag: str) -> str:
    el = item.find(tag)
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def _attr(item: ET.Element, tag: str, name: str) -> str:
    el = item.find(tag)
    if el is None:
        return ""
    return (el.get(name) or "").strip()


def _texts(elements: Iterable[ET.Element]) -> tuple[str, ...]:
    out: list[str] = []
    for el in elements:
        text = "".join(el.itertext()).strip()
        if text:
            out.append(text)
    return tuple(out)


def _parse_item(item: ET.Element) -> Ticket | None:
    key = normalize_key(_text(item, "key"))
    if not key:
        return None

    labels = _texts(item.iterfind("labels/label"))
    raw_status = _text(item, "status")
    raw_priority = _text(item, "priority")
    status = normalize_status(raw_status, labels)
    priority = normalize_priority(raw_priority)

    return Ticket(
        key=key,
        jira_id=_attr(item, "key", "id"),
        summary=_text(item, "summary"),
        description=_text(item, "description"),
        type=_text(item, "type"),
        status=raw_status,
        status_id=_attr(item, "status", "id"),
        status_key=status.key,
        status_label=status.label,
        status_icon=status.icon,
        status_css_class=status.css_class,
        priority=raw_priority,
        priority_id=_attr(item, "priority", "id"),
        priority_value=priority.value,
        priority_text=priority.text,
        priority_css_class=priority.css_class,
        assignee=_text(item, "assignee") or _attr(item, "assignee", "username"),
        reporter=_text(item, "reporter") or _attr(item, "reporter", "username"),
        project=_attr(item, "project", "key") or _text(item, "project"),
        project_name=_text(item, "project"),
        created=parse_jira_date(_text(item, "created")),
        updated=parse_jira_date(_text(item, "updated")),
        due_date=parse_jira_date(_text(item, "due")),
        resolution=_text(item, "resolution"),
        labels=labels,
        components=_texts(item.iterfind("component")),
        fix_versions=_texts(item.iterfind("fixVersion")),
        link=_text(item, "link"),
    )


def validate_ticket(ticket: Ticket) -> TicketValidation:
    errors: list[str] = []
    warnings: list[str] = []
    if not ticket.key:
        errors.append("Missing key")
    if not ticket.summary:
        warnings.append("Missing summary")
    if not ticket.status:
        warnings.append("Missing status, default status used")
    return TicketValidation(valid=not errors, errors=errors, warnings=warnings)


def extract_metadata(tickets: Iterable[Ticket]) -> dict[str, Any]:
    """Summarize a ticket batch for import previews.

    Returns sorted projects, people (assignees and reporters), components,
    first-seen statuses and priorities, and a label -> count ``Counter``.
    """
    projects: set[str] = set()
    people: set[str] = set()
    components: set[str] = set()
    statuses: list[str] = []
    priorities: list[str] = []
    labels: Counter[str] = Counter()
    for t in tickets:
        if t.project:
            projects.add(t.project)
        if t.assignee:
            people.add(t.assignee)
        if t.reporter:
            people.add(t.reporter)
        if t.status and t.status not in statuses:
            statuses.append(t.status)
        if t.priority and t.priority not in priorities:
            priorities.append(t.priority)
        labels.update(t.labels)
        components.update(t.components)
    return {
        "projects": sorted(projects),
        "people": sorted(people),
        "statuses": statuses,
        "priorities": priorities,
        "labels": labels,
        "components": sorted(components),
    }
