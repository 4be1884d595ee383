"""Central configuration, constants, mapping tables, and application settings."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

# =============================================================================
# General Settings
# =============================================================================
TIMEZONE = "Europe/Paris"
SNAPSHOT_VERSION = "1.1"
DEFAULT_BROWSE_URL = "https://jira.example.com/browse/"
DEFAULT_FILENAME = "jira-report-data"

# Earliest accepted year for tracker dates; older values are placeholders.
MIN_VALID_YEAR = 1970

# =============================================================================
# Workflow Status Configuration
# =============================================================================
STATUS_KEYS: Sequence[str] = (
    "backlog",
    "inprogress",
    "review",
    "ready",
    "delivered",
    "done",
)

DEFAULT_STATUS_KEY = "backlog"

# Canonical display attributes per status key: (label, icon, css class)
STATUS_DISPLAY: dict[str, tuple[str, str, str]] = {
    "backlog": ("Backlog", "📋", "status-backlog"),
    "inprogress": ("In progress", "⏳", "status-inprogress"),
    "review": ("In review", "👀", "status-review"),
    "ready": ("Ready to ship", "🚀", "status-ready"),
    "delivered": ("Delivered", "📦", "status-delivered"),
    "done": ("Done", "✓", "status-done"),
}

# Raw tracker status -> canonical status key
# Keys are matched case-insensitively
STATUS_MAP: dict[str, str] = {
    # Standard Jira statuses
    "Open": "backlog",
    "To Do": "backlog",
    "Backlog": "backlog",
    "In Progress": "inprogress",
    "En cours": "inprogress",
    "In Review": "review",
    "Ready for Test": "ready",
    "Prêt à livrer": "ready",
    "Done": "done",
    "Terminé": "done",
    "Closed": "done",
    "Resolved": "done",
    "Livré": "delivered",
    "Delivered": "delivered",
}

# Labels that carry a status (lowercase, scanned in order)
STATUS_LABELS: dict[str, str] = {
    "terminé": "done",
    "done": "done",
    "livré": "delivered",
    "livre": "delivered",
    "prêt à livrer": "ready",
    "in progress": "inprogress",
    "en cours": "inprogress",
}

# Substring heuristics for unknown raw statuses, evaluated in order
STATUS_KEYWORDS: Sequence[tuple[tuple[str, ...], str]] = (
    (("progress", "cours", "développ"), "inprogress"),
    (("review", "revue"), "review"),
    (("livr", "deliver"), "delivered"),
    (("prêt", "ready", "test"), "ready"),
    (("done", "closed", "resolved"), "done"),
)

STATUS_ORDER: dict[str, int] = {key: idx for idx, key in enumerate(STATUS_KEYS, start=1)}

# =============================================================================
# Priority Configuration
# =============================================================================
# Raw Jira priority -> (value, display text, css class); exact, case-sensitive
PRIORITY_MAPPING: dict[str, tuple[int, str, str]] = {
    "Highest": (5, "Critical", "critical"),
    "High": (4, "High", "high"),
    "Medium": (3, "Medium", "medium"),
    "Low": (2, "Low", "low"),
    "Lowest": (1, "Minimal", "lowest"),
}

DEFAULT_PRIORITY = "Medium"

# =============================================================================
# Store Configuration
# =============================================================================
# Person filter value selecting tickets without a reporter
NO_PEOPLE = "nopeople"
# Bucket for tickets without project or component
NO_PROJECT = "noproject"
ALL_PROJECTS = "all"
# Label hidden by the "show label done" toggle
DONE_LABEL = "done"

VIEW_MODES: Sequence[str] = ("project", "date")

TOPIC_TASKS = "tasks"
TOPIC_FILTERS = "filters"
TOPIC_VIEW_MODE = "viewMode"
TOPIC_UNSAVED = "unsavedChanges"
TOPIC_USER_CONFIG = "userConfig"

STORE_TOPICS: frozenset[str] = frozenset(
    {TOPIC_TASKS, TOPIC_FILTERS, TOPIC_VIEW_MODE, TOPIC_UNSAVED, TOPIC_USER_CONFIG}
)

# Fields a selective import may overwrite
MERGEABLE_FIELDS: frozenset[str] = frozenset(
    {"summary", "status", "priority", "due_date", "labels", "project", "assignee"}
)

# Delay before a live save runs after the last modification (seconds)
LIVE_SAVE_DELAY = 1.5

# =============================================================================
# Display Columns
# =============================================================================
TASK_CORE_COLUMNS: Sequence[str] = (
    "key",
    "summary",
    "status_label",
    "priority_text",
    "project",
    "reporter",
    "assignee",
    "due_date",
    "labels",
)

DISPLAY_ORDER_TASK_LIST: Sequence[str] = (
    "Ticket",
    "summary",
    "status_label",
    "priority_text",
    "due_date",
    "reporter",
    "assignee",
    "labels",
    "project",
)

DISPLAY_ORDER_IMPORT_PREVIEW: Sequence[str] = (
    "Ticket",
    "project",
    "summary",
    "status",
    "priority",
    "due_date",
)


@dataclass(slots=True)
class AppSettings:
    data_dir: Path = field(default_factory=lambda: Path.home() / ".jira-report")
    snapshot_name: str = f"{DEFAULT_FILENAME}.json"
    user_config_name: str = "user-config.yaml"
    browse_url: str = DEFAULT_BROWSE_URL
    live_save_delay: float = LIVE_SAVE_DELAY
    log_level: str = "INFO"
    max_table_rows: int = 1000

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / self.snapshot_name

    @property
    def user_config_path(self) -> Path:
        return self.data_dir / self.user_config_name

    @classmethod
    def from_mapping(cls, values) -> AppSettings:
        """Build settings from a mapping (Streamlit secrets section or env-like dict).

        Unknown keys are ignored; missing keys fall back to defaults.
        """
        settings = cls()
        if not values:
            return settings
        data_dir = values.get("DATA_DIR")
        if data_dir:
            settings.data_dir = Path(data_dir).expanduser()
        if values.get("BROWSE_URL"):
            settings.browse_url = str(values["BROWSE_URL"])
        if values.get("LOG_LEVEL"):
            settings.log_level = str(values["LOG_LEVEL"]).upper()
        delay = values.get("LIVE_SAVE_DELAY")
        if delay is not None:
            settings.live_save_delay = float(delay)
        return settings

    @classmethod
    def from_env(cls) -> AppSettings:
        keys = ("DATA_DIR", "BROWSE_URL", "LOG_LEVEL", "LIVE_SAVE_DELAY")
        return cls.from_mapping({k: os.environ[f"JIRA_REPORT_{k}"] for k in keys if f"JIRA_REPORT_{k}" in os.environ})
