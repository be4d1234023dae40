from __future__ import annotations

import asyncio
from collections.abc import Iterator

from .availability import config_is_valid, evaluate_start, is_positive_int
from .hours import resolve_opening_range
from .logging_config import get_logger
from .occupancy import load_occupancy
from .storage import ReservationStore
from .timegrid import format_time, parse_date, parse_time, snap_down

logger = get_logger(__name__)

# Final answer never lists more than this many alternatives, whatever the
# caller's max_slots.
SUGGESTION_LIMIT = 4


def expanding_candidates(
    center: int, step: int, earliest: int, latest: int, window: int
) -> Iterator[int]:
    """Start minutes alternating center-d, center+d for d = step, 2*step, ... <= window."""
    delta = step
    while delta <= window:
        before, after = center - delta, center + delta
        if before < earliest and after > latest:
            return
        if before >= earliest:
            yield before
        if after <= latest:
            yield after
        delta += step


async def list_available_slots_around(
    store: ReservationStore,
    restaurant_id: str,
    day: str,
    center_time: str,
    people: int,
    window_minutes: int = 120,
    max_slots: int = 16,
) -> list[str]:
    """Closest feasible start times around ``center_time``, nearest first.

    Candidates are tested with the same rule as check_availability, against a
    single occupancy snapshot. Ties in distance sort by "HH:mm". Yields to the
    loop between candidates, so cancelling the task mid-search is safe.
    """
    parsed_day = parse_date(day)
    requested = parse_time(center_time)
    if (
        parsed_day is None
        or requested is None
        or not is_positive_int(people)
        or window_minutes < 0
        or max_slots <= 0
    ):
        return []

    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None or not config_is_valid(restaurant):
        return []
    opening = resolve_opening_range(restaurant, parsed_day)
    if opening is None:
        return []

    step = restaurant.slot_interval_minutes
    center = snap_down(requested, step)
    earliest = max(opening.start, center - window_minutes)
    latest = min(opening.end - restaurant.service_duration_minutes, center + window_minutes)
    occupancy = await load_occupancy(store, restaurant, parsed_day.isoformat())

    found: list[int] = []
    for candidate in expanding_candidates(center, step, earliest, latest, window_minutes):
        await asyncio.sleep(0)
        if evaluate_start(restaurant, opening, occupancy, candidate, people) is None:
            found.append(candidate)
            if len(found) >= max_slots:
                break

    ranked = sorted(set(found), key=lambda m: (abs(m - requested), format_time(m)))
    slots = [format_time(m) for m in ranked[: min(max_slots, SUGGESTION_LIMIT)]]
    logger.debug(
        "alternative_slots",
        restaurant_id=restaurant.id,
        date=parsed_day.isoformat(),
        center=center_time,
        people=people,
        slots=slots,
    )
    return slots
