"""Status and priority normalization utilities.

This module maps raw tracker values to the canonical enumerations used across
the store, filters and pages. It uses the tables from config.py (STATUS_MAP,
STATUS_LABELS, STATUS_KEYWORDS, PRIORITY_MAPPING). All functions are pure.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS_KEY,
    PRIORITY_MAPPING,
    STATUS_KEYWORDS,
    STATUS_LABELS,
    STATUS_MAP,
    STATUS_ORDER,
)
from .models import PriorityInfo, StatusInfo, Ticket

# Lowercase lookup built once; keys of STATUS_MAP are case-insensitive
_STATUS_MAP_LOWER: dict[str, str] = {raw.lower(): key for raw, key in STATUS_MAP.items()}


def normalize_status(raw_status: str | None, labels: Iterable[str] | None = None) -> StatusInfo:
    """Map a raw tracker status to a canonical ``StatusInfo``.

    Resolution order:

    1. case-insensitive exact match in ``STATUS_MAP``;
    2. the first label (in ``STATUS_LABELS`` order) carrying a status;
    3. substring heuristics on the raw value, keeping it as display label
       (best effort, falls back to backlog);
    4. the default backlog status when there is no raw value.

    Examples
    --------
    >>> normalize_status("resolved").key
    'done'
    >>> normalize_status("Waiting", ["Livré"]).key
    'delivered'
    >>> normalize_status("En développement").label
    'En développement'
    """
    text = (raw_status or "").strip()
    if text:
        key = _STATUS_MAP_LOWER.get(text.lower())
        if key:
            return StatusInfo.canonical(key)

    labels_lower = {label.strip().lower() for label in labels or () if label}
    for label, key in STATUS_LABELS.items():
        if label in labels_lower:
            return StatusInfo.canonical(key)

    if text:
        lowered = text.lower()
        for keywords, key in STATUS_KEYWORDS:
            if any(word in lowered for word in keywords):
                return StatusInfo.canonical(key, label=text)
        return StatusInfo.canonical(DEFAULT_STATUS_KEY, label=text)

    return StatusInfo.canonical(DEFAULT_STATUS_KEY)


def normalize_priority(raw_priority: str | None) -> PriorityInfo:
    """Map a raw Jira priority name to a ``PriorityInfo``.

    The lookup is exact and case-sensitive; unknown or empty values map to
    Medium (3).
    """
    entry = PRIORITY_MAPPING.get(raw_priority or "") or PRIORITY_MAPPING[DEFAULT_PRIORITY]
    value, text, css_class = entry
    return PriorityInfo(value=value, text=text, css_class=css_class)


def is_done(ticket: Ticket) -> bool:
    """A ticket is done when the user flagged it, else when its status is done."""
    if ticket.done is not None:
        return ticket.done
    return ticket.status_key == "done"


def status_sort_order(status_key: str | None) -> int:
    return STATUS_ORDER.get(status_key or "", len(STATUS_ORDER) + 1)
