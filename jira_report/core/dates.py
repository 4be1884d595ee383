"""Date parsing and formatting helpers for tracker timestamps."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pandas as pd
import pytz

from .config import MIN_VALID_YEAR, TIMEZONE


def parse_jira_date(value: Any, tz_name: str = TIMEZONE) -> datetime | None:
    """Parse a tracker date into a tz-aware UTC datetime.

    Accepts Jira RSS dates (``Mon, 15 Jan 2024 10:00:00 +0100``), ISO strings,
    ``datetime`` and pandas ``Timestamp`` values. Naive values are interpreted in
    ``tz_name``. Unparseable values and dates before 1970 (Jira placeholder
    dates) yield ``None``.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize(pytz.timezone(tz_name), ambiguous="NaT", nonexistent="NaT")
        if pd.isna(ts):
            return None
    ts = ts.tz_convert(pytz.UTC)
    if ts.year < MIN_VALID_YEAR:
        return None
    return ts.to_pydatetime()


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def to_local(value: datetime | None, tz_name: str = TIMEZONE) -> datetime | None:
    if value is None:
        return None
    return value.astimezone(pytz.timezone(tz_name))


def format_date(value: datetime | None, tz_name: str = TIMEZONE) -> str:
    """Format as ``dd/mm/YYYY`` in the display timezone; empty string when absent."""
    local = to_local(value, tz_name)
    if local is None:
        return ""
    return local.strftime("%d/%m/%Y")
