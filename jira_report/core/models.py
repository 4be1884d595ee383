"""Domain data models for imported tickets, project rules, and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .config import DEFAULT_STATUS_KEY, STATUS_DISPLAY, STATUS_KEYS
from .dates import parse_jira_date, to_iso


def normalize_key(key: str | None) -> str:
    return (key or "").strip().upper()


@dataclass(slots=True, frozen=True)
class StatusInfo:
    key: str
    label: str
    icon: str
    css_class: str

    @classmethod
    def canonical(cls, key: str, label: str | None = None) -> StatusInfo:
        """Display attributes for ``key``, optionally keeping a custom label."""
        default_label, icon, css_class = STATUS_DISPLAY[key]
        return cls(key=key, label=label or default_label, icon=icon, css_class=css_class)


@dataclass(slots=True, frozen=True)
class PriorityInfo:
    value: int
    text: str
    css_class: str


@dataclass(slots=True, frozen=True)
class Ticket:
    key: str
    summary: str = ""
    description: str = ""
    type: str = ""
    jira_id: str = ""

    status: str = ""
    status_id: str = ""
    status_key: str = DEFAULT_STATUS_KEY
    status_label: str = STATUS_DISPLAY[DEFAULT_STATUS_KEY][0]
    status_icon: str = STATUS_DISPLAY[DEFAULT_STATUS_KEY][1]
    status_css_class: str = STATUS_DISPLAY[DEFAULT_STATUS_KEY][2]

    priority: str = ""
    priority_id: str = ""
    priority_value: int = 3
    priority_text: str = "Medium"
    priority_css_class: str = "medium"

    assignee: str = ""
    reporter: str = ""
    project: str = ""
    project_name: str = ""

    created: datetime | None = None
    updated: datetime | None = None
    due_date: datetime | None = None
    resolution: str = ""

    labels: tuple[str, ...] = ()
    components: tuple[str, ...] = ()
    fix_versions: tuple[str, ...] = ()

    link: str = ""
    # User override of status-derived completion; None means "not set"
    done: bool | None = None

    @property
    def key_upper(self) -> str:
        return normalize_key(self.key)

    def matches_key(self, key: str | None) -> bool:
        return self.key_upper == normalize_key(key)

    def labels_lower(self) -> list[str]:
        return [label.lower() for label in self.labels]

    def with_status(self, info: StatusInfo, raw: str | None = None) -> Ticket:
        return replace(
            self,
            status=self.status if raw is None else raw,
            status_key=info.key,
            status_label=info.label,
            status_icon=info.icon,
            status_css_class=info.css_class,
        )

    def with_priority(self, info: PriorityInfo, raw: str | None = None) -> Ticket:
        return replace(
            self,
            priority=self.priority if raw is None else raw,
            priority_value=info.value,
            priority_text=info.text,
            priority_css_class=info.css_class,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the snapshot representation (camelCase keys, ISO dates)."""
        data: dict[str, Any] = {
            "key": self.key,
            "id": self.jira_id,
            "summary": self.summary,
            "description": self.description,
            "type": self.type,
            "status": self.status,
            "statusId": self.status_id,
            "statusKey": self.status_key,
            "statusLabel": self.status_label,
            "statusIcon": self.status_icon,
            "statusCssClass": self.status_css_class,
            "priority": self.priority,
            "priorityId": self.priority_id,
            "priorityValue": self.priority_value,
            "priorityText": self.priority_text,
            "priorityCssClass": self.priority_css_class,
            "assignee": self.assignee,
            "reporter": self.reporter,
            "project": self.project,
            "projectName": self.project_name,
            "created": to_iso(self.created),
            "updated": to_iso(self.updated),
            "dueDate": to_iso(self.due_date),
            "resolution": self.resolution,
            "labels": list(self.labels),
            "components": list(self.components),
            "fixVersions": list(self.fix_versions),
            "link": self.link,
        }
        if self.done is not None:
            data["done"] = self.done
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ticket:
        """Create a Ticket from a snapshot entry, defaulting absent fields.

        Derived status/priority attributes are recomputed when the stored ones
        are missing or out of range. Raises ``ValueError`` when the key is absent.
        """
        from .status import normalize_priority, normalize_status

        key = normalize_key(data.get("key"))
        if not key:
            raise ValueError("ticket entry has no key")

        def text(name: str) -> str:
            value = data.get(name)
            return "" if value is None else str(value)

        def str_list(name: str) -> tuple[str, ...]:
            value = data.get(name) or []
            if isinstance(value, str):
                value = [value]
            return tuple(str(v) for v in value if v)

        labels = str_list("labels")
        status_key = data.get("statusKey")
        if status_key in STATUS_KEYS:
            status = StatusInfo(
                key=status_key,
                label=data.get("statusLabel") or STATUS_DISPLAY[status_key][0],
                icon=data.get("statusIcon") or STATUS_DISPLAY[status_key][1],
                css_class=data.get("statusCssClass") or STATUS_DISPLAY[status_key][2],
            )
        else:
            status = normalize_status(text("status"), list(labels))

        priority_value = data.get("priorityValue")
        if isinstance(priority_value, int) and 1 <= priority_value <= 5:
            fallback = normalize_priority(text("priority"))
            priority = PriorityInfo(
                value=priority_value,
                text=data.get("priorityText") or fallback.text,
                css_class=data.get("priorityCssClass") or fallback.css_class,
            )
        else:
            priority = normalize_priority(text("priority"))

        done = data.get("done")
        return cls(
            key=key,
            summary=text("summary"),
            description=text("description"),
            type=text("type"),
            jira_id=text("id"),
            status=text("status"),
            status_id=text("statusId"),
            status_key=status.key,
            status_label=status.label,
            status_icon=status.icon,
            status_css_class=status.css_class,
            priority=text("priority"),
            priority_id=text("priorityId"),
            priority_value=priority.value,
            priority_text=priority.text,
            priority_css_class=priority.css_class,
            assignee=text("assignee"),
            reporter=text("reporter"),
            project=text("project"),
            project_name=text("projectName"),
            created=parse_jira_date(data.get("created")),
            updated=parse_jira_date(data.get("updated")),
            due_date=parse_jira_date(data.get("dueDate")),
            resolution=text("resolution"),
            labels=labels,
            components=str_list("components"),
            fix_versions=str_list("fixVersions"),
            link=text("link"),
            done=done if isinstance(done, bool) else None,
        )


@dataclass(slots=True)
class ProjectRule:
    name: str
    patterns: list[str] = field(default_factory=list)

    def copy(self) -> ProjectRule:
        return ProjectRule(name=self.name, patterns=list(self.patterns))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "patterns": list(self.patterns)}


@dataclass(slots=True)
class ImportClassification:
    new: list[Ticket] = field(default_factory=list)
    existing: list[Ticket] = field(default_factory=list)
    total: int = 0


@dataclass(slots=True)
class TicketValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class OperationResult:
    """Outcome of a store or config mutation.

    ``error`` is one of ``"validation"``, ``"not_found"``, ``"duplicate"`` or
    ``None`` on success.
    """

    success: bool
    message: str = ""
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "") -> OperationResult:
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, error: str, message: str = "") -> OperationResult:
        return cls(success=False, message=message, error=error)
