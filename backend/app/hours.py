from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from .timegrid import MINUTES_PER_DAY, day_of_week, parse_date, parse_time

logger = logging.getLogger(__name__)

# Applied to restaurants created before weekly schedules existed.
DEFAULT_WEEKLY_SCHEDULE: dict[int, dict[str, str]] = {
    0: {"open": "10:00", "close": "22:00"},
    1: {"open": "10:00", "close": "22:00"},
    2: {"open": "10:00", "close": "22:00"},
    3: {"open": "10:00", "close": "22:00"},
    4: {"open": "10:00", "close": "22:00"},
    5: {"open": "10:00", "close": "23:00"},
    6: {"open": "10:00", "close": "23:00"},
}

DAY_NAME_TO_INDEX: dict[str, int] = {
    "sunday": 0, "sun": 0,
    "monday": 1, "mon": 1,
    "tuesday": 2, "tue": 2,
    "wednesday": 3, "wed": 3,
    "thursday": 4, "thu": 4,
    "friday": 5, "fri": 5,
    "saturday": 6, "sat": 6,
}

_CLOCK_RE = re.compile(r"^(\d{1,2})[:.](\d{2})\s*([ap]m)?$", re.IGNORECASE)
_RANGE_RE = re.compile(r"^(\S+)\s*-\s*(\S+)$")


@dataclass(frozen=True, slots=True)
class OpeningRange:
    """Half-open [start, end) interval in minutes of the day."""

    start: int
    end: int

    def contains_span(self, start: int, end: int) -> bool:
        return start >= self.start and end <= self.end


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def resolve_opening_range(restaurant: Any, day: date | str) -> OpeningRange | None:
    """Opening interval for ``day``, or None when the restaurant is closed.

    Restaurants without any schedule fall back to DEFAULT_WEEKLY_SCHEDULE.
    A day missing from a configured schedule, or mapped to None, is closed.
    Windows whose close is not after open cross midnight; only the part up to
    24:00 is bookable on ``day``. Anything unparsable is treated as closed.
    """
    parsed = parse_date(day)
    if parsed is None:
        return None

    # plain records may carry raw owner input; models arrive already normalized
    schedule = normalize_weekly_schedule(_get(restaurant, "weekly_schedule"))
    if not schedule:
        schedule = DEFAULT_WEEKLY_SCHEDULE

    window = schedule.get(day_of_week(parsed))
    if window is None:
        return None

    start = parse_time(_get(window, "open"))
    end = parse_time(_get(window, "close"))
    if start is None or end is None:
        logger.warning(
            "Unparsable opening window %r for restaurant %s on %s",
            window,
            _get(restaurant, "id"),
            parsed.isoformat(),
        )
        return None
    if end <= start:
        end = MINUTES_PER_DAY
    return OpeningRange(start=start, end=end)


def normalize_clock(value: Any) -> str:
    """Best-effort "HH:mm" from owner input ("9:30", "9.30", "7:15 pm").

    Returns the stripped input unchanged when it cannot be understood, so the
    resolver later rejects it instead of guessing.
    """
    raw = str(value if value is not None else "").strip()
    m = _CLOCK_RE.match(raw)
    if not m:
        return raw
    hours, minutes, suffix = int(m.group(1)), int(m.group(2)), m.group(3)
    if suffix:
        if not 1 <= hours <= 12:
            return raw
        is_pm = suffix.lower() == "pm"
        if is_pm and hours < 12:
            hours += 12
        if not is_pm and hours == 12:
            hours = 0
    if hours > 23 or minutes > 59:
        return raw
    return f"{hours:02d}:{minutes:02d}"


def _day_index(key: Any) -> int | None:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if 0 <= key <= 6 else None
    token = str(key).strip().lower()
    if token in DAY_NAME_TO_INDEX:
        return DAY_NAME_TO_INDEX[token]
    if re.fullmatch(r"[0-6]", token):
        return int(token)
    return None


def _window_from(value: Any) -> dict[str, str] | None:
    if value is None or value is False or value == "":
        return None
    if isinstance(value, str):
        m = _RANGE_RE.match(value.strip())
        if not m:
            return None
        return {"open": normalize_clock(m.group(1)), "close": normalize_clock(m.group(2))}
    opening = _get(value, "open")
    closing = _get(value, "close")
    if not opening or not closing:
        return None
    return {"open": normalize_clock(opening), "close": normalize_clock(closing)}


def normalize_weekly_schedule(raw: Any) -> dict[int, dict[str, str] | None] | None:
    """Coerce owner-supplied weekly hours into ``{0..6: {"open","close"} | None}``.

    Accepts integer, digit or English day-name keys and values given as
    objects, "HH:mm-HH:mm" strings, or falsy markers for closed days. A string
    payload is parsed as JSON; one that does not parse closes every day.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else None
        except json.JSONDecodeError:
            logger.warning("Weekly schedule is not valid JSON; treating every day as closed")
            return {idx: None for idx in range(7)}
        if raw is None:
            return None
    if not isinstance(raw, Mapping):
        return {idx: None for idx in range(7)}

    out: dict[int, dict[str, str] | None] = {}
    for key, value in raw.items():
        idx = _day_index(key)
        if idx is None:
            continue
        out[idx] = _window_from(value)
    return out
