# backend/pomodoro_milestones/utils.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def to_date_obj(v: Any) -> date | None:
    """
    Accepts:
      - None / ''
      - datetime/date
      - ISO-8601 string ('YYYY-MM-DD' or a full timestamp)
    Returns:
      - date or None

    Time of day is dropped: milestones and due dates are calendar days.
    """
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        return date.fromisoformat(v.strip()[:10])
    raise ValueError(f"Invalid date value: {v!r}")


def utc_now() -> datetime:
    """Timezone-aware current time; stored timestamps are always UTC."""
    return datetime.now(timezone.utc)


def to_iso(d: date | None) -> str | None:
    return d.isoformat() if d is not None else None


def format_day(d: date) -> str:
    """Short axis label, e.g. 'Jun 1'."""
    return f"{d.strftime('%b')} {d.day}"


def sanitize_for_json(obj: Any) -> Any:
    """
    JSON-safe conversion:
      - datetime/date => isoformat string
      - dict/list => converted recursively
      - anything else => unchanged
    """
    if obj is None:
        return None
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [sanitize_for_json(x) for x in obj]
    return obj
