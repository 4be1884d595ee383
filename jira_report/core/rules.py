"""Keyword rules that assign a project to a ticket from its title."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .models import ProjectRule, Ticket

_BRACKET_RE = re.compile(r"\[([^\]]+)\]")


def normalize_pattern(pattern: str | None) -> str:
    return (pattern or "").strip().lower()


def normalize_rule_name(name: str | None) -> str:
    return (name or "").strip()


def normalize_patterns(patterns: Iterable[str] | str | None) -> list[str]:
    """Trim, lowercase and deduplicate patterns, keeping first-seen order."""
    out: list[str] = []
    if isinstance(patterns, str):
        patterns = [patterns]
    for p in patterns or ():
        normalized = normalize_pattern(p)
        if normalized and normalized not in out:
            out.append(normalized)
    return out


def bracket_tokens(title: str) -> list[str]:
    return [m.lower() for m in _BRACKET_RE.findall(title or "")]


def detect_project(title: str | None, rules: Sequence[ProjectRule]) -> str | None:
    """Return the name of the first rule matching ``title`` or ``None``.

    Bracketed tokens (``[TOKEN]``) take precedence: a pattern matches a token
    when either contains the other. Only when no bracket matches is each
    pattern searched in the full lower-cased title. Rules and patterns are
    scanned in their stored order.
    """
    if not title:
        return None
    tokens = bracket_tokens(title)
    if tokens:
        for rule in rules:
            for pattern in rule.patterns:
                if not pattern:
                    continue
                for token in tokens:
                    if pattern in token or token in pattern:
                        return rule.name

    title_lower = title.lower()
    for rule in rules:
        for pattern in rule.patterns:
            if pattern and pattern in title_lower:
                return rule.name
    return None


def apply_project_rules(tickets: Iterable[Ticket], rules: Sequence[ProjectRule]) -> list[Ticket]:
    """Overwrite each ticket's project with the detected one; keep it when nothing matches."""
    out: list[Ticket] = []
    for ticket in tickets:
        detected = detect_project(ticket.summary, rules)
        if detected and detected != ticket.project:
            ticket = replace(ticket, project=detected)
        out.append(ticket)
    return out
