"""Reactive task store: the ticket collection, its derived indices and filters.

Every mutation recomputes the derived indices (projects, people, tags) in full
before subscribers are notified, so a subscriber always observes a consistent
store. Notification runs synchronously in registration order.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, NamedTuple

from .config import (
    ALL_PROJECTS,
    DEFAULT_STATUS_KEY,
    DONE_LABEL,
    NO_PEOPLE,
    NO_PROJECT,
    SNAPSHOT_VERSION,
    STATUS_KEYS,
    STORE_TOPICS,
    TOPIC_FILTERS,
    TOPIC_TASKS,
    TOPIC_UNSAVED,
    TOPIC_USER_CONFIG,
    TOPIC_VIEW_MODE,
    VIEW_MODES,
)
from .dates import parse_jira_date
from .errors import InvalidFormatError
from .events import EventEmitter
from .models import OperationResult, Ticket, normalize_key
from .reconcile import dedupe_by_key
from .status import is_done, normalize_priority, normalize_status
from .user_config import UserConfig

logger = logging.getLogger(__name__)

_TICKET_FIELDS = frozenset(f.name for f in fields(Ticket))
_DATE_FIELDS = ("created", "updated", "due_date")
_TUPLE_FIELDS = ("labels", "components", "fix_versions")
_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class StoreState(Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    MUTATED = "mutated"


@dataclass(slots=True)
class FilterState:
    project: str = ALL_PROJECTS
    person: str | None = None
    tag: str | None = None
    status: str | None = None
    show_done: bool = True
    show_label_done: bool = True
    search: str = ""


FILTER_NAMES = frozenset(f.name for f in fields(FilterState))


class PeopleCounts(NamedTuple):
    counts: dict[str, int]
    no_reporter: int


class TaskStore:
    """Single-writer store of imported tickets.

    Parameters
    ----------
    config : UserConfig | None
        Tags, project rules and blacklist. A fresh in-memory configuration is
        created when omitted.
    """

    def __init__(self, config: UserConfig | None = None):
        self.config = config if config is not None else UserConfig()
        self._lock = threading.RLock()
        self._events = EventEmitter(STORE_TOPICS)
        self._tasks: list[Ticket] = []
        self._projects: set[str] = set()
        self._people: set[str] = set()
        self._tags: dict[str, int] = {}
        self._filters = FilterState()
        self._view_mode = VIEW_MODES[0]
        self._state = StoreState.EMPTY
        self._unsaved = False
        # Bumped by every change that makes the store unsaved
        self._revision = 0
        self._loading_config = False
        self._unsubscribe_config = self.config.subscribe(self._on_config_changed)

    # ------------------ Read-only accessors ------------------
    @property
    def tasks(self) -> list[Ticket]:
        with self._lock:
            return list(self._tasks)

    @property
    def projects(self) -> list[str]:
        with self._lock:
            return sorted(self._projects)

    @property
    def people(self) -> list[str]:
        with self._lock:
            return sorted(self._people)

    @property
    def tags(self) -> dict[str, int]:
        with self._lock:
            return dict(self._tags)

    @property
    def filters(self) -> FilterState:
        return replace(self._filters)

    @property
    def view_mode(self) -> str:
        return self._view_mode

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def has_unsaved_changes(self) -> bool:
        return self._unsaved

    def __len__(self) -> int:
        return len(self._tasks)

    def get_task(self, key: str) -> Ticket | None:
        index = self._index_of(key)
        return None if index is None else self._tasks[index]

    # ------------------ Subscriptions ------------------
    def subscribe(self, topic: str, callback: Callable[[TaskStore], Any]) -> Callable[[], bool]:
        """Register ``callback(store)`` for ``topic``; returns an unsubscribe function."""
        return self._events.subscribe(topic, callback)

    def unsubscribe(self, topic: str, callback: Callable[[TaskStore], Any]) -> bool:
        return self._events.unsubscribe(topic, callback)

    def close(self) -> None:
        self._unsubscribe_config()
        self._events.clear()

    def _notify(self, *topics: str) -> None:
        for topic in topics:
            self._events.emit(topic, self)

    # ------------------ Lifecycle ------------------
    def load(self, tasks: Iterable[Ticket]) -> OperationResult:
        """Replace the collection with a saved one; the store becomes clean."""
        with self._lock:
            self._tasks = dedupe_by_key(tasks)
            self._recompute()
            self._state = StoreState.LOADED
            self._unsaved = False
            count = len(self._tasks)
        self._notify(TOPIC_TASKS, TOPIC_UNSAVED)
        return OperationResult.ok(f"{count} task(s) loaded")

    def mark_saved(self, revision: int | None = None) -> bool:
        """Mark the store clean.

        With ``revision`` (as returned by ``snapshot``), the store stays unsaved
        when it changed after that snapshot was taken. Returns whether it is clean.
        """
        with self._lock:
            if revision is not None and revision != self._revision:
                logger.debug("Store changed since revision %s; still unsaved", revision)
                return False
            self._unsaved = False
            if self._state is StoreState.MUTATED:
                self._state = StoreState.LOADED
        self._notify(TOPIC_UNSAVED)
        return True

    def mark_modified(self) -> None:
        with self._lock:
            self._unsaved = True
            self._revision += 1
            self._state = StoreState.MUTATED
        self._notify(TOPIC_UNSAVED)

    def reset(self) -> None:
        with self._lock:
            self._tasks = []
            self._recompute()
            self._filters = FilterState()
            self._state = StoreState.EMPTY
            self._unsaved = False
        self._notify(TOPIC_TASKS, TOPIC_FILTERS, TOPIC_UNSAVED)

    # ------------------ Task mutations ------------------
    def set_tasks(self, tasks: Iterable[Ticket]) -> OperationResult:
        with self._lock:
            self._tasks = dedupe_by_key(tasks)
            count = len(self._tasks)
            self._mutated()
        self._notify(TOPIC_TASKS, TOPIC_UNSAVED)
        return OperationResult.ok(f"{count} task(s) set")

    def add_task(self, ticket: Ticket) -> OperationResult:
        with self._lock:
            if self._index_of(ticket.key) is not None:
                return OperationResult.fail("duplicate", f"{ticket.key_upper} already exists")
            self._tasks.append(ticket)
            self._mutated()
        self._notify(TOPIC_TASKS, TOPIC_UNSAVED)
        return OperationResult.ok(f"{ticket.key_upper} added")

    def update_task(self, key: str, /, **changes: Any) -> OperationResult:
        """Apply ``changes`` (Ticket field names) to the ticket identified by ``key``.

        A new raw ``status`` or ``priority`` recomputes the derived display
        attributes unless those are supplied explicitly.
        """
        unknown = set(changes) - _TICKET_FIELDS
        if unknown:
            return OperationResult.fail("validation", f"Unknown field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            index = self._index_of(key)
            if index is None:
                logger.warning("Task not found for update: %s", key)
                return OperationResult.fail("not_found", f"Task {key} not found")
            current = self._tasks[index]
            try:
                updated = self._apply_changes(current, changes)
            except ValueError as exc:
                return OperationResult.fail("validation", str(exc))
            if not updated.key:
                return OperationResult.fail("validation", "Ticket key is empty")
            other = self._index_of(updated.key)
            if other is not None and other != index:
                return OperationResult.fail("duplicate", f"{updated.key} already exists")
            self._tasks[index] = updated
            self._mutated()
        logger.debug("Task updated: %s %s", key, sorted(changes))
        self._notify(TOPIC_TASKS, TOPIC_UNSAVED)
        return OperationResult.ok(f"{updated.key} updated")

    def remove_task(self, key: str) -> OperationResult:
        with self._lock:
            index = self._index_of(key)
            if index is None:
                return OperationResult.fail("not_found", f"Task {key} not found")
            removed = self._tasks.pop(index)
            self._mutated()
        self._notify(TOPIC_TASKS, TOPIC_UNSAVED)
        return OperationResult.ok(f"{removed.key} removed")

    def update_labels(self, key: str, labels: Iterable[str]) -> OperationResult:
        cleaned: list[str] = []
        for label in labels:
            text = (label or "").strip()
            if text and text not in cleaned:
                cleaned.append(text)
        return self._replace_task(key, labels=tuple(cleaned))

    def add_label(self, key: str, label: str) -> OperationResult:
        text = (label or "").strip()
        if not text:
            return OperationResult.fail("validation", "Label is empty")
        task = self.get_task(key)
        if task is None:
            return OperationResult.fail("not_found", f"Task {key} not found")
        if text.lower() in task.labels_lower():
            return OperationResult.fail("duplicate", f"{task.key} already has label '{text}'")
        return self._replace_task(key, labels=task.labels + (text,))

    def remove_label(self, key: str, label: str) -> OperationResult:
        task = self.get_task(key)
        if task is None:
            return OperationResult.fail("not_found", f"Task {key} not found")
        wanted = (label or "").strip().lower()
        remaining = tuple(lb for lb in task.labels if lb.lower() != wanted)
        if len(remaining) == len(task.labels):
            return OperationResult.fail("not_found", f"{task.key} has no label '{label}'")
        return self._replace_task(key, labels=remaining)

    def set_due_date(self, key: str, due_date: datetime | str | None) -> OperationResult:
        if due_date in (None, ""):
            parsed = None
        else:
            parsed = parse_jira_date(due_date)
            if parsed is None:
                return OperationResult.fail("validation", f"Invalid due date: {due_date!r}")
        return self._replace_task(key, due_date=parsed)

    def set_done(self, key: str, done: bool | None) -> OperationResult:
        return self._replace_task(key, done=done)

    def toggle_done(self, key: str) -> OperationResult:
        task = self.get_task(key)
        if task is None:
            return OperationResult.fail("not_found", f"Task {key} not found")
        return self._replace_task(key, done=not is_done(task))

    # ------------------ Filters & view ------------------
    def set_filter(self, name: str, value: Any) -> OperationResult:
        if name not in FILTER_NAMES:
            return OperationResult.fail("validation", f"Unknown filter: {name}")
        if name == "project":
            value = (value or ALL_PROJECTS).strip().lower()
        elif name in ("person", "tag"):
            value = (value or "").strip().lower() or None
        elif name == "status":
            value = value or None
            if value is not None and value not in STATUS_KEYS:
                return OperationResult.fail("validation", f"Unknown status: {value}")
        elif name == "search":
            value = (value or "").strip()
        else:
            value = bool(value)
        with self._lock:
            setattr(self._filters, name, value)
        self._notify(TOPIC_FILTERS)
        return OperationResult.ok()

    def reset_filters(self) -> None:
        with self._lock:
            self._filters = FilterState()
        self._notify(TOPIC_FILTERS)

    def set_view_mode(self, mode: str) -> OperationResult:
        if mode not in VIEW_MODES:
            return OperationResult.fail("validation", f"Unknown view mode: {mode}")
        self._view_mode = mode
        self._notify(TOPIC_VIEW_MODE)
        return OperationResult.ok()

    # ------------------ Queries ------------------
    def get_filtered_tasks(self) -> list[Ticket]:
        with self._lock:
            filters = replace(self._filters)
            return [t for t in self._tasks if self._passes(t, filters)]

    def _passes(self, task: Ticket, f: FilterState) -> bool:
        # Blacklist first: blacklisted keys never reach any other predicate
        if self.config.is_blacklisted(task.key):
            return False
        if f.project == NO_PROJECT:
            if task.project or task.components:
                return False
        elif f.project != ALL_PROJECTS:
            if (task.project or "").lower() != f.project and f.project not in (c.lower() for c in task.components):
                return False
        if f.person:
            if f.person == NO_PEOPLE:
                if task.reporter:
                    return False
            elif (task.reporter or "").lower() != f.person:
                return False
        if f.tag and f.tag not in task.labels_lower():
            return False
        if f.status and task.status_key != f.status:
            return False
        if not f.show_done and is_done(task):
            return False
        if not f.show_label_done and DONE_LABEL in task.labels_lower():
            return False
        if f.search and f.search.lower() not in (task.summary or "").lower():
            return False
        return True

    def _visible(self) -> list[Ticket]:
        return [t for t in self._tasks if not self.config.is_blacklisted(t.key)]

    def get_project_counts(self) -> dict[str, int]:
        """Tasks per project facet (project and components, lower-cased).

        A task counts once under each distinct facet it would match; tasks
        with neither project nor component count under ``noproject``.
        """
        counts: dict[str, int] = {}
        with self._lock:
            for task in self._visible():
                facets = {c.lower() for c in task.components}
                if task.project:
                    facets.add(task.project.lower())
                for facet in facets or {NO_PROJECT}:
                    counts[facet] = counts.get(facet, 0) + 1
        return counts

    def get_people_counts(self) -> PeopleCounts:
        counts: dict[str, int] = {}
        no_reporter = 0
        with self._lock:
            for task in self._visible():
                if task.reporter:
                    person = task.reporter.lower()
                    counts[person] = counts.get(person, 0) + 1
                else:
                    no_reporter += 1
        return PeopleCounts(counts, no_reporter)

    def get_tag_counts(self) -> dict[str, int]:
        """Label counts, seeded with the custom tags at zero.

        Labels naming a known project or person are not tags.
        """
        with self._lock:
            return self._count_tags(self._visible(), seed=self.config.custom_tags)

    def get_status_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._lock:
            for task in self._visible():
                key = task.status_key or DEFAULT_STATUS_KEY
                counts[key] = counts.get(key, 0) + 1
        return counts

    def get_stats(self) -> dict[str, int]:
        filtered = self.get_filtered_tasks()
        with self._lock:
            people = {t.reporter.lower() for t in self._visible() if t.reporter}
        return {
            "total_tasks": len(filtered),
            "total_projects": len({t.project for t in filtered if t.project}),
            "total_people": len(people),
        }

    def get_tasks_by_project(self) -> dict[str, list[Ticket]]:
        grouped: dict[str, list[Ticket]] = {}
        for task in self.get_filtered_tasks():
            grouped.setdefault(task.project or NO_PROJECT, []).append(task)
        return grouped

    def get_tasks_by_date(self) -> list[Ticket]:
        """Filtered tasks by ascending due date; undated tasks last."""
        return sorted(self.get_filtered_tasks(), key=lambda t: t.due_date or _FAR_FUTURE)

    # ------------------ Serialization ------------------
    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "exportDate": datetime.now(timezone.utc).isoformat(),
                "tasks": [t.to_dict() for t in self._tasks],
                "config": self.config.to_dict(),
                "metadata": {
                    "projects": sorted(self._projects),
                    "people": sorted(self._people),
                },
            }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def snapshot(self, indent: int | None = 2) -> tuple[str, int]:
        """JSON snapshot together with the revision it reflects, taken atomically."""
        with self._lock:
            return self.to_json(indent), self._revision

    def from_dict(self, data: Any) -> None:
        """Load a snapshot; raises ``InvalidFormatError`` when ``tasks`` is missing."""
        if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
            raise InvalidFormatError("Invalid snapshot: missing 'tasks' list")

        tickets: list[Ticket] = []
        for entry in data["tasks"]:
            if not isinstance(entry, dict):
                logger.warning("Skipping snapshot entry that is not an object")
                continue
            try:
                tickets.append(Ticket.from_dict(entry))
            except ValueError as exc:
                logger.warning("Skipping snapshot entry: %s", exc)

        config = data.get("config")
        with self._lock:
            self._loading_config = True
            try:
                self.config.load_dict(config if isinstance(config, dict) else {})
            finally:
                self._loading_config = False
            self._tasks = dedupe_by_key(tickets)
            self._recompute()
            self._state = StoreState.LOADED
            self._unsaved = False
            count = len(self._tasks)
        logger.info("Loaded %s task(s) from snapshot version %s", count, data.get("version", "?"))
        self._notify(TOPIC_TASKS, TOPIC_USER_CONFIG, TOPIC_UNSAVED)

    def from_json(self, text: str | bytes) -> None:
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as exc:
            raise InvalidFormatError(f"Invalid snapshot JSON: {exc}") from exc
        self.from_dict(data)

    # ------------------ Internal Helpers ------------------
    def _index_of(self, key: str | None) -> int | None:
        wanted = normalize_key(key)
        for idx, task in enumerate(self._tasks):
            if task.key_upper == wanted:
                return idx
        return None

    def _replace_task(self, key: str, /, **changes: Any) -> OperationResult:
        with self._lock:
            index = self._index_of(key)
            if index is None:
                return OperationResult.fail("not_found", f"Task {key} not found")
            task = replace(self._tasks[index], **changes)
            self._tasks[index] = task
            self._mutated()
        self._notify(TOPIC_TASKS, TOPIC_UNSAVED)
        return OperationResult.ok(f"{task.key} updated")

    @staticmethod
    def _apply_changes(task: Ticket, changes: dict[str, Any]) -> Ticket:
        values = dict(changes)
        if "key" in values:
            values["key"] = normalize_key(values["key"])
        for name in _TUPLE_FIELDS:
            if name in values:
                values[name] = tuple(values[name] or ())
        for name in _DATE_FIELDS:
            value = values.get(name)
            if isinstance(value, str):
                parsed = parse_jira_date(value) if value else None
                if value and parsed is None:
                    raise ValueError(f"Invalid date for {name}: {value!r}")
                values[name] = parsed

        updated = replace(task, **values)
        if "status" in values and "status_key" not in values:
            updated = updated.with_status(normalize_status(updated.status, list(updated.labels)))
        if "priority" in values and "priority_value" not in values:
            updated = updated.with_priority(normalize_priority(updated.priority))
        return updated

    def _mutated(self) -> None:
        self._recompute()
        self._state = StoreState.MUTATED
        self._unsaved = True
        self._revision += 1

    def _recompute(self) -> None:
        projects: set[str] = set()
        people: set[str] = set()
        for task in self._tasks:
            if task.project:
                projects.add(task.project.lower())
            projects.update(c.lower() for c in task.components)
            if task.reporter:
                people.add(task.reporter.lower())
        self._projects = projects
        self._people = people
        self._tags = self._count_tags(self._tasks)

    def _count_tags(self, tasks: Iterable[Ticket], seed: Iterable[str] = ()) -> dict[str, int]:
        # Grouped case-insensitively; the first casing seen is displayed
        display: dict[str, str] = {}
        counts: dict[str, int] = {}
        for tag in seed:
            lower = tag.lower()
            if lower not in display:
                display[lower] = tag
                counts[lower] = 0
        for task in tasks:
            for label in task.labels:
                lower = label.lower()
                if lower in self._people or lower in self._projects:
                    continue
                display.setdefault(lower, label)
                counts[lower] = counts.get(lower, 0) + 1
        return {display[lower]: count for lower, count in counts.items()}

    def _on_config_changed(self, config: UserConfig) -> None:
        if self._loading_config:
            return
        with self._lock:
            self._unsaved = True
            self._revision += 1
            self._state = StoreState.MUTATED
        self._notify(TOPIC_USER_CONFIG, TOPIC_UNSAVED)
