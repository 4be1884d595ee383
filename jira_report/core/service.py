"""ImportService: orchestrates parsing, project detection and reconciliation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from .models import ImportClassification, OperationResult, Ticket
from .parser import extract_metadata, parse_jira_xml
from .reconcile import MergePolicy, classify, count_changed, merge
from .rules import apply_project_rules
from .store import TaskStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]


@dataclass(slots=True)
class ImportPreview:
    tickets: list[Ticket]
    classification: ImportClassification
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def new_keys(self) -> list[str]:
        return [t.key for t in self.classification.new]

    @property
    def existing_keys(self) -> list[str]:
        return [t.key for t in self.classification.existing]


@dataclass(slots=True)
class ImportResult:
    success: bool
    message: str = ""
    policy: MergePolicy | None = None
    imported: int = 0
    added: int = 0
    updated: int = 0
    total: int = 0

    def __bool__(self) -> bool:
        return self.success


class ImportService:
    def __init__(self, store: TaskStore):
        self.store = store

    def _prepare(self, xml_text: str, progress: ProgressCallback | None) -> list[Ticket]:
        if progress:
            progress("Parsing XML export", None, None)
        tickets = parse_jira_xml(xml_text)
        if progress:
            progress("Applying project rules", None, len(tickets))
        return apply_project_rules(tickets, self.store.config.project_rules)

    def preview(self, xml_text: str, *, progress: ProgressCallback | None = None) -> ImportPreview:
        """Parse ``xml_text`` and classify it against the store without changing anything.

        Raises ``MalformedInputError`` when the XML is not well-formed.
        """
        tickets = self._prepare(xml_text, progress)
        classification = classify(tickets, self.store.tasks)
        return ImportPreview(tickets=tickets, classification=classification, metadata=extract_metadata(tickets))

    def import_xml(
        self,
        xml_text: str,
        policy: MergePolicy = MergePolicy.ADD_ONLY,
        *,
        fields: Iterable[str] | None = None,
        selected_keys: Iterable[str] | None = None,
        progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """Import a Jira XML export into the store using ``policy``.

        The store is left untouched when the XML is malformed (the
        ``MalformedInputError`` propagates) or contains no ticket.
        """
        tickets = self._prepare(xml_text, progress)
        if not tickets:
            return ImportResult(success=False, message="No tickets found in the XML", policy=policy)
        return self.import_tickets(
            tickets, policy, fields=fields, selected_keys=selected_keys, progress=progress
        )

    def import_tickets(
        self,
        tickets: list[Ticket],
        policy: MergePolicy = MergePolicy.ADD_ONLY,
        *,
        fields: Iterable[str] | None = None,
        selected_keys: Iterable[str] | None = None,
        progress: ProgressCallback | None = None,
    ) -> ImportResult:
        existing = self.store.tasks
        if progress:
            progress("Merging with existing tasks", None, len(existing))
        merged = merge(tickets, existing, policy, fields=fields, selected_keys=selected_keys)

        if policy is MergePolicy.REPLACE:
            added, updated = len(merged), 0
        else:
            known = {t.key_upper for t in existing}
            added = sum(1 for t in merged if t.key_upper not in known)
            updated = count_changed(existing, merged)

        self.store.set_tasks(merged)
        if progress:
            progress("Import complete", len(merged), len(merged))
        logger.info(
            "Imported %s ticket(s) with policy %s: %s added, %s updated, %s total",
            len(tickets),
            policy.value,
            added,
            updated,
            len(merged),
        )
        return ImportResult(
            success=True,
            message=f"{len(tickets)} ticket(s) imported",
            policy=policy,
            imported=len(tickets),
            added=added,
            updated=updated,
            total=len(merged),
        )

    def refresh_project_detection(self) -> OperationResult:
        """Re-run the project rules over the stored tasks."""
        current = self.store.tasks
        if not current:
            return OperationResult.fail("validation", "No tasks to refresh")
        refreshed = apply_project_rules(current, self.store.config.project_rules)
        changed = count_changed(current, refreshed)
        self.store.set_tasks(refreshed)
        return OperationResult.ok(f"{changed} of {len(refreshed)} task(s) updated")
