from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from .hours import OpeningRange, resolve_opening_range
from .logging_config import get_logger
from .models import Restaurant
from .occupancy import load_occupancy
from .storage import ReservationStore
from .timegrid import format_boundary, format_time, parse_date, parse_time, snap_down

logger = get_logger(__name__)

RejectReason = Literal["not_found", "closed", "full", "invalid_input"]


@dataclass(frozen=True, slots=True)
class AvailabilityResult:
    ok: bool
    reason: RejectReason | None = None
    start: str | None = None
    end: str | None = None
    # versionstamp of the day guard, read before occupancy was listed
    day_version: int | None = None


def is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def config_is_valid(restaurant: Restaurant) -> bool:
    return (
        restaurant.capacity >= 0
        and restaurant.slot_interval_minutes > 0
        and restaurant.service_duration_minutes > 0
    )


def evaluate_start(
    restaurant: Restaurant,
    opening: OpeningRange,
    occupancy: dict[str, int],
    start: int,
    people: int,
) -> RejectReason | None:
    """The single feasibility rule for a grid-aligned start minute.

    The whole service span must sit inside the opening range, and every slot
    walked from ``start`` must have room for ``people`` more seats.
    """
    end = start + restaurant.service_duration_minutes
    if not opening.contains_span(start, end):
        return "closed"
    for slot in range(start, end, restaurant.slot_interval_minutes):
        if occupancy.get(format_time(slot), 0) + people > restaurant.capacity:
            return "full"
    return None


def seats_left(restaurant: Restaurant, occupancy: dict[str, int], start: int) -> int:
    end = start + restaurant.service_duration_minutes
    used = max(
        (occupancy.get(format_time(slot), 0) for slot in range(start, end, restaurant.slot_interval_minutes)),
        default=0,
    )
    return max(0, restaurant.capacity - used)


async def check_availability(
    store: ReservationStore,
    restaurant_id: str,
    day: str,
    time: str,
    people: int,
) -> AvailabilityResult:
    parsed_day = parse_date(day)
    minute = parse_time(time)
    if parsed_day is None or minute is None or not is_positive_int(people):
        return AvailabilityResult(ok=False, reason="invalid_input")
    day = parsed_day.isoformat()

    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        return AvailabilityResult(ok=False, reason="not_found")
    if not config_is_valid(restaurant):
        logger.warning("restaurant_config_invalid", restaurant_id=restaurant.id)
        return AvailabilityResult(ok=False, reason="invalid_input")

    opening = resolve_opening_range(restaurant, parsed_day)
    if opening is None:
        return AvailabilityResult(ok=False, reason="closed")

    start = snap_down(minute, restaurant.slot_interval_minutes)
    end = start + restaurant.service_duration_minutes
    span = {"start": format_time(start), "end": format_boundary(end)}
    if not opening.contains_span(start, end):
        return AvailabilityResult(ok=False, reason="closed", **span)

    day_version = await store.day_version(restaurant.id, day)
    occupancy = await load_occupancy(store, restaurant, day)
    reason = evaluate_start(restaurant, opening, occupancy, start, people)
    if reason is not None:
        return AvailabilityResult(ok=False, reason=reason, day_version=day_version, **span)
    return AvailabilityResult(ok=True, day_version=day_version, **span)


async def availability_for_day(
    store: ReservationStore, restaurant_id: str, day: str, party_size: int
) -> dict[str, Any] | None:
    """
    Returns: {"date": ..., "opening": {"open","close"} | None,
              "slots": [{"start","end","seats_left","available"}, ...]}
    One entry per grid start whose full service span fits the opening range.
    None when the restaurant does not exist.
    """
    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        return None
    payload: dict[str, Any] = {
        "date": day,
        "slot_interval_minutes": restaurant.slot_interval_minutes,
        "service_duration_minutes": restaurant.service_duration_minutes,
        "opening": None,
        "slots": [],
    }
    parsed_day = parse_date(day)
    if parsed_day is None or not config_is_valid(restaurant) or not is_positive_int(party_size):
        return payload
    opening = resolve_opening_range(restaurant, parsed_day)
    if opening is None:
        return payload
    payload["opening"] = {"open": format_time(opening.start), "close": format_boundary(opening.end)}

    occupancy = await load_occupancy(store, restaurant, parsed_day.isoformat())
    step = restaurant.slot_interval_minutes
    duration = restaurant.service_duration_minutes
    cur = -(-opening.start // step) * step  # first grid point at or after opening
    while cur + duration <= opening.end:
        payload["slots"].append(
            {
                "start": format_time(cur),
                "end": format_boundary(cur + duration),
                "seats_left": seats_left(restaurant, occupancy, cur),
                "available": evaluate_start(restaurant, opening, occupancy, cur, party_size) is None,
            }
        )
        cur += step
    return payload
