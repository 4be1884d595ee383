"""Classify and merge imported tickets against the stored collection."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from enum import Enum

from .config import MERGEABLE_FIELDS
from .models import ImportClassification, Ticket, normalize_key

logger = logging.getLogger(__name__)


class MergePolicy(Enum):
    ADD_ONLY = "add"
    SELECTIVE = "update"
    REPLACE = "replace"


def dedupe_by_key(tickets: Iterable[Ticket]) -> list[Ticket]:
    """Keep the first ticket seen for each (case-insensitive) key."""
    seen: set[str] = set()
    out: list[Ticket] = []
    for t in tickets:
        key = t.key_upper
        if key in seen:
            continue
        seen.add(key)
        out.append(t)
    return out


def classify(imported: Sequence[Ticket], existing: Sequence[Ticket]) -> ImportClassification:
    """Partition ``imported`` into new and already-present tickets by key."""
    existing_keys = {t.key_upper for t in existing}
    result = ImportClassification(total=len(imported))
    for ticket in imported:
        if ticket.key_upper in existing_keys:
            result.existing.append(ticket)
        else:
            result.new.append(ticket)
    return result


def apply_fields(target: Ticket, source: Ticket, fields: Iterable[str]) -> Ticket:
    """Copy the masked ``fields`` from ``source`` onto ``target``.

    Summary, status, priority and project are only copied when the imported
    value is non-empty; labels, due date and assignee are copied as-is, so an
    import can clear them. Status and priority bring their derived display
    attributes along.
    """
    changes: dict[str, object] = {}
    fields = set(fields)
    if "summary" in fields and source.summary:
        changes["summary"] = source.summary
    if "status" in fields and source.status:
        changes.update(
            status=source.status,
            status_key=source.status_key,
            status_label=source.status_label,
            status_icon=source.status_icon,
            status_css_class=source.status_css_class,
        )
    if "priority" in fields and source.priority:
        changes.update(
            priority=source.priority,
            priority_value=source.priority_value,
            priority_text=source.priority_text,
            priority_css_class=source.priority_css_class,
        )
    if "due_date" in fields:
        changes["due_date"] = source.due_date
    if "labels" in fields:
        changes["labels"] = source.labels
    if "project" in fields and source.project:
        changes["project"] = source.project
    if "assignee" in fields:
        changes["assignee"] = source.assignee
    if not changes:
        return target
    return replace(target, **changes)


def merge(
    imported: Sequence[Ticket],
    existing: Sequence[Ticket],
    policy: MergePolicy = MergePolicy.ADD_ONLY,
    *,
    fields: Iterable[str] | None = None,
    selected_keys: Iterable[str] | None = None,
) -> list[Ticket]:
    """Reconcile an imported batch with the existing collection.

    Parameters
    ----------
    imported : Sequence[Ticket]
        Freshly parsed tickets. Duplicate keys keep their first occurrence.
    existing : Sequence[Ticket]
        Current collection; never mutated.
    policy : MergePolicy
        ``ADD_ONLY`` appends unknown keys, ``SELECTIVE`` overwrites the masked
        ``fields`` of ``selected_keys`` only, ``REPLACE`` discards ``existing``.
    fields : Iterable[str] | None
        Field mask for ``SELECTIVE`` (subset of ``MERGEABLE_FIELDS``).
    selected_keys : Iterable[str] | None
        Keys to update for ``SELECTIVE``; compared case-insensitively.

    Returns
    -------
    list[Ticket]
        The new collection.
    """
    batch = dedupe_by_key(imported)
    if len(batch) != len(imported):
        logger.debug("Ignored %s duplicate key(s) in import batch", len(imported) - len(batch))

    if policy is MergePolicy.REPLACE:
        return batch

    if policy is MergePolicy.ADD_ONLY:
        result = list(existing)
        known = {t.key_upper for t in existing}
        for ticket in batch:
            if ticket.key_upper not in known:
                result.append(ticket)
                known.add(ticket.key_upper)
        return result

    if policy is MergePolicy.SELECTIVE:
        mask = set(fields or ())
        unknown = mask - MERGEABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown merge field(s): {', '.join(sorted(unknown))}")
        selected = {normalize_key(k) for k in selected_keys or ()}
        updates = {t.key_upper: t for t in batch if t.key_upper in selected}
        if not mask or not updates:
            return list(existing)
        return [apply_fields(t, updates[t.key_upper], mask) if t.key_upper in updates else t for t in existing]

    raise ValueError(f"Unsupported merge policy: {policy!r}")


def count_changed(before: Sequence[Ticket], after: Sequence[Ticket]) -> int:
    """Number of tickets present in both collections whose content differs."""
    previous = {t.key_upper: t for t in before}
    return sum(1 for t in after if t.key_upper in previous and previous[t.key_upper] != t)
