"""Load table column sets from YAML (with built-in fallbacks)."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import DISPLAY_ORDER_IMPORT_PREVIEW, DISPLAY_ORDER_TASK_LIST, TASK_CORE_COLUMNS

logger = logging.getLogger(__name__)

_CACHE: dict[str, list[str]] | None = None


def _defaults() -> dict[str, list[str]]:
    return {
        "core": list(TASK_CORE_COLUMNS),
        "task_list": list(DISPLAY_ORDER_TASK_LIST),
        "import_preview": list(DISPLAY_ORDER_IMPORT_PREVIEW),
    }


def load_column_sets(base_path: str | Path | None = None, *, refresh: bool = False) -> dict[str, list[str]]:
    """Column sets from ``columns.yaml``; each missing or empty set falls back to its default."""
    global _CACHE
    if _CACHE is not None and not refresh:
        return _CACHE
    sets = _defaults()
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / "columns.yaml"
    if yaml_path.exists():
        try:
            data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring %s: %s", yaml_path, exc)
        else:
            configured = data.get("sets") if isinstance(data, dict) else None
            for name, columns in (configured if isinstance(configured, dict) else {}).items():
                if isinstance(columns, list) and columns:
                    sets[name] = [str(c) for c in columns]
    _CACHE = sets
    return _CACHE


def get_columns(set_name: str) -> list[str]:
    return list(load_column_sets().get(set_name, []))
