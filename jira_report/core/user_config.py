"""User configuration: custom tags, project rules and ticket blacklist.

Every mutation is written to the YAML file (when a path is configured) before
subscribers are notified. Getters return copies.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .config import TOPIC_USER_CONFIG
from .events import EventEmitter
from .models import OperationResult, ProjectRule, normalize_key
from .rules import detect_project, normalize_pattern, normalize_patterns, normalize_rule_name

logger = logging.getLogger(__name__)

CONFIG_EXPORT_VERSION = "1.0"


def _as_list(value: Any) -> list[Any]:
    """A lone string counts as one entry; anything else that is not a list is ignored."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


class UserConfig:
    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._custom_tags: list[str] = []
        self._rules: list[ProjectRule] = []
        self._blacklist: list[str] = []
        self._blacklist_set: set[str] = set()
        self._events = EventEmitter({TOPIC_USER_CONFIG})
        self._load()

    # ------------------ Getters ------------------
    @property
    def custom_tags(self) -> list[str]:
        return list(self._custom_tags)

    @property
    def project_rules(self) -> list[ProjectRule]:
        return [r.copy() for r in self._rules]

    @property
    def blacklist(self) -> list[str]:
        return list(self._blacklist)

    def is_blacklisted(self, key: str | None) -> bool:
        if not key:
            return False
        return normalize_key(key) in self._blacklist_set

    def detect_project(self, title: str | None) -> str | None:
        return detect_project(title, self._rules)

    def _find_rule(self, name: str) -> ProjectRule | None:
        wanted = normalize_rule_name(name).lower()
        for rule in self._rules:
            if rule.name.lower() == wanted:
                return rule
        return None

    # ------------------ Custom tags ------------------
    def add_custom_tag(self, tag: str) -> OperationResult:
        normalized = (tag or "").strip()
        if not normalized:
            return OperationResult.fail("validation", "Tag is empty")
        if normalized.lower() in {t.lower() for t in self._custom_tags}:
            return OperationResult.fail("duplicate", f"Tag '{normalized}' already exists")
        self._custom_tags.append(normalized)
        self._commit()
        return OperationResult.ok(f"Tag '{normalized}' added")

    def remove_custom_tag(self, tag: str) -> OperationResult:
        wanted = (tag or "").strip().lower()
        remaining = [t for t in self._custom_tags if t.lower() != wanted]
        if len(remaining) == len(self._custom_tags):
            return OperationResult.fail("not_found", f"Tag '{tag}' not found")
        self._custom_tags = remaining
        self._commit()
        return OperationResult.ok(f"Tag '{tag}' removed")

    # ------------------ Project rules ------------------
    def add_project_rule(self, name: str, patterns: Iterable[str] | None = None) -> OperationResult:
        """Create a rule, or merge ``patterns`` into the rule with the same name."""
        normalized_name = normalize_rule_name(name)
        if not normalized_name:
            return OperationResult.fail("validation", "Project name is empty")
        new_patterns = normalize_patterns(patterns)
        rule = self._find_rule(normalized_name)
        if rule is None:
            self._rules.append(ProjectRule(name=normalized_name, patterns=new_patterns))
            message = f"Rule '{normalized_name}' created"
        else:
            rule.patterns.extend(p for p in new_patterns if p not in rule.patterns)
            message = f"Patterns merged into rule '{rule.name}'"
        self._commit()
        return OperationResult.ok(message)

    def update_project_rule(self, name: str, patterns: Iterable[str]) -> OperationResult:
        rule = self._find_rule(name)
        if rule is None:
            return OperationResult.fail("not_found", f"Rule '{name}' not found")
        rule.patterns = normalize_patterns(patterns)
        self._commit()
        return OperationResult.ok(f"Rule '{rule.name}' updated")

    def remove_project_rule(self, name: str) -> OperationResult:
        rule = self._find_rule(name)
        if rule is None:
            return OperationResult.fail("not_found", f"Rule '{name}' not found")
        self._rules.remove(rule)
        self._commit()
        return OperationResult.ok(f"Rule '{rule.name}' removed")

    def rename_project_rule(self, old_name: str, new_name: str) -> OperationResult:
        rule = self._find_rule(old_name)
        if rule is None:
            return OperationResult.fail("not_found", f"Rule '{old_name}' not found")
        normalized = normalize_rule_name(new_name)
        if not normalized:
            return OperationResult.fail("validation", "New project name is empty")
        other = self._find_rule(normalized)
        if other is not None and other is not rule:
            return OperationResult.fail("duplicate", f"Rule '{other.name}' already exists")
        rule.name = normalized
        self._commit()
        return OperationResult.ok(f"Rule renamed to '{normalized}'")

    def add_pattern(self, project_name: str, pattern: str) -> OperationResult:
        rule = self._find_rule(project_name)
        if rule is None:
            return OperationResult.fail("not_found", f"Rule '{project_name}' not found")
        normalized = normalize_pattern(pattern)
        if not normalized:
            return OperationResult.fail("validation", "Pattern is empty")
        if normalized in rule.patterns:
            return OperationResult.ok(f"Pattern '{normalized}' already present")
        rule.patterns.append(normalized)
        self._commit()
        return OperationResult.ok(f"Pattern '{normalized}' added to '{rule.name}'")

    def remove_pattern(self, project_name: str, pattern: str) -> OperationResult:
        rule = self._find_rule(project_name)
        if rule is None:
            return OperationResult.fail("not_found", f"Rule '{project_name}' not found")
        normalized = normalize_pattern(pattern)
        if normalized not in rule.patterns:
            return OperationResult.ok(f"Pattern '{normalized}' not present")
        rule.patterns.remove(normalized)
        self._commit()
        return OperationResult.ok(f"Pattern '{normalized}' removed from '{rule.name}'")

    # ------------------ Blacklist ------------------
    def add_to_blacklist(self, key: str) -> OperationResult:
        normalized = normalize_key(key)
        if not normalized:
            return OperationResult.fail("validation", "Ticket key is empty")
        if normalized in self._blacklist_set:
            return OperationResult.fail("duplicate", f"{normalized} is already blacklisted")
        self._blacklist.append(normalized)
        self._blacklist_set.add(normalized)
        self._commit()
        return OperationResult.ok(f"{normalized} blacklisted")

    def remove_from_blacklist(self, key: str) -> OperationResult:
        normalized = normalize_key(key)
        if normalized not in self._blacklist_set:
            return OperationResult.fail("not_found", f"{normalized} is not blacklisted")
        self._blacklist.remove(normalized)
        self._blacklist_set.discard(normalized)
        self._commit()
        return OperationResult.ok(f"{normalized} removed from blacklist")

    # ------------------ Bulk operations ------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "customTags": list(self._custom_tags),
            "projectRules": [r.to_dict() for r in self._rules],
            "blacklist": list(self._blacklist),
        }

    def load_dict(self, data: dict[str, Any] | None) -> None:
        """Replace the whole configuration (missing sections become empty), persist and notify."""
        self._apply(data or {})
        self._commit()

    def reset(self) -> None:
        self.load_dict({})

    def export_config(self) -> str:
        payload = {
            "version": CONFIG_EXPORT_VERSION,
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "config": self.to_dict(),
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def import_config(self, json_text: str) -> OperationResult:
        try:
            data = json.loads(json_text)
        except (TypeError, json.JSONDecodeError) as exc:
            return OperationResult.fail("validation", f"Invalid JSON: {exc}")
        if not isinstance(data, dict) or not isinstance(data.get("config"), dict):
            return OperationResult.fail("validation", "Invalid format: missing config")
        self.load_dict(data["config"])
        return OperationResult.ok("Configuration imported")

    # ------------------ Events ------------------
    def subscribe(self, callback: Callable[[UserConfig], Any]) -> Callable[[], bool]:
        return self._events.subscribe(TOPIC_USER_CONFIG, callback)

    def unsubscribe(self, callback: Callable[[UserConfig], Any]) -> bool:
        return self._events.unsubscribe(TOPIC_USER_CONFIG, callback)

    # ------------------ Internal Helpers ------------------
    def _apply(self, data: dict[str, Any]) -> None:
        tags: list[str] = []
        for tag in _as_list(data.get("customTags")):
            text = str(tag).strip()
            if text and text.lower() not in {t.lower() for t in tags}:
                tags.append(text)

        rules: list[ProjectRule] = []
        for raw in data.get("projectRules") or []:
            if not isinstance(raw, dict):
                continue
            name = normalize_rule_name(raw.get("name"))
            if not name:
                continue
            patterns = normalize_patterns(_as_list(raw.get("patterns")))
            existing = next((r for r in rules if r.name.lower() == name.lower()), None)
            if existing is None:
                rules.append(ProjectRule(name=name, patterns=patterns))
            else:
                existing.patterns.extend(p for p in patterns if p not in existing.patterns)

        blacklist: list[str] = []
        for key in _as_list(data.get("blacklist")):
            normalized = normalize_key(str(key))
            if normalized and normalized not in blacklist:
                blacklist.append(normalized)

        self._custom_tags = tags
        self._rules = rules
        self._blacklist = blacklist
        self._blacklist_set = set(blacklist)

    def _commit(self) -> None:
        self._save()
        self._events.emit(TOPIC_USER_CONFIG, self)

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load user config %s: %s", self.path, exc)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring user config %s: not a mapping", self.path)
            return
        self._apply(data)

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as fh:
                yaml.safe_dump(self.to_dict(), fh, sort_keys=False, allow_unicode=True)
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to save user config %s: %s", self.path, exc)
