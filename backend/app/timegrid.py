from __future__ import annotations

import re
from datetime import date

MINUTES_PER_DAY = 24 * 60
LAST_MINUTE = MINUTES_PER_DAY - 1

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_time(value: object) -> int | None:
    """Strict "HH:mm" -> minute of day, or None when malformed."""
    if not isinstance(value, str):
        return None
    m = _TIME_RE.match(value.strip())
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_time(minute: int) -> str:
    minute = max(0, min(LAST_MINUTE, int(minute)))
    return f"{minute // 60:02d}:{minute % 60:02d}"


def snap_down(minute: int, step: int) -> int:
    if step <= 0:
        raise ValueError("grid step must be positive")
    return (minute // step) * step


def parse_date(value: object) -> date | None:
    """Strict "YYYY-MM-DD" -> date, or None when malformed."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def day_of_week(day: date) -> int:
    # 0 = Sunday .. 6 = Saturday; date.weekday() has Monday = 0
    return (day.weekday() + 1) % 7


def format_boundary(minute: int) -> str:
    """Like format_time, but end-of-day reads "24:00" instead of clamping."""
    return "24:00" if minute >= MINUTES_PER_DAY else format_time(minute)
