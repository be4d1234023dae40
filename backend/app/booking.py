"""Check-then-create booking flow.

Checking and committing are not serialized per restaurant/day. The commit
only guarantees the record and its day index are inserted together and never
overwrite an existing id; two bookings racing for the last seats can both pass
their checks and both commit. Setting STRICT_CAPACITY_GUARD makes the commit
also require that nothing was written to the same restaurant/day since the
check read it, turning the loser into a ``race`` that is retried from the
check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .availability import check_availability, is_positive_int
from .logging_config import get_logger
from .models import MANUAL_BLOCK_PREFIX, Reservation, ReservationStatus
from .settings import settings
from .storage import ReservationStore
from .suggestions import list_available_slots_around
from .timegrid import format_time, parse_date, parse_time, snap_down

logger = get_logger(__name__)

BookingFailure = Literal["not_found", "closed", "full", "invalid_input", "race"]


@dataclass(frozen=True, slots=True)
class BookingOutcome:
    ok: bool
    reservation: Reservation | None = None
    reason: BookingFailure | None = None
    suggestions: list[str] = field(default_factory=list)
    attempts: int = 0


async def book_table(
    store: ReservationStore,
    *,
    restaurant_id: str,
    day: str,
    time: str,
    people: int,
    user_id: str | None = None,
    note: str | None = None,
    status: ReservationStatus = "new",
) -> BookingOutcome:
    attempts = max(1, settings.BOOKING_MAX_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        check = await check_availability(store, restaurant_id, day, time, people)
        if not check.ok:
            suggestions: list[str] = []
            if check.reason in ("closed", "full"):
                suggestions = await list_available_slots_around(
                    store,
                    restaurant_id,
                    day,
                    time,
                    people,
                    window_minutes=settings.SUGGESTION_WINDOW_MINUTES,
                    max_slots=settings.SUGGESTION_MAX_SLOTS,
                )
            logger.info(
                "booking_rejected",
                restaurant_id=restaurant_id,
                date=day,
                time=time,
                people=people,
                reason=check.reason,
                suggestions=suggestions,
            )
            return BookingOutcome(
                ok=False, reason=check.reason, suggestions=suggestions, attempts=attempt
            )

        reservation = Reservation(
            restaurant_id=restaurant_id,
            user_id=user_id,
            date=str(parse_date(day)),
            time=check.start,
            people=people,
            note=note,
            status=status,
        )
        result = await store.create_reservation(
            reservation,
            expected_day_version=check.day_version,
            guard_day=settings.STRICT_CAPACITY_GUARD,
        )
        if result.ok:
            return BookingOutcome(ok=True, reservation=result.reservation, attempts=attempt)
        logger.warning(
            "booking_race_retry",
            restaurant_id=restaurant_id,
            date=day,
            time=time,
            attempt=attempt,
        )

    return BookingOutcome(ok=False, reason="race", attempts=attempts)


async def book_manual_block(
    store: ReservationStore,
    *,
    restaurant_id: str,
    day: str,
    time: str,
    people: int,
    staff_id: str,
    note: str | None = None,
) -> BookingOutcome:
    """Staff-entered seats with no guest behind them.

    Skips the capacity and opening-hours checks; the block then counts
    against capacity like any other reservation.
    """
    parsed_day = parse_date(day)
    minute = parse_time(time)
    if parsed_day is None or minute is None or not is_positive_int(people) or not staff_id:
        return BookingOutcome(ok=False, reason="invalid_input")
    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        return BookingOutcome(ok=False, reason="not_found")
    if restaurant.slot_interval_minutes <= 0:
        return BookingOutcome(ok=False, reason="invalid_input")

    block = Reservation(
        restaurant_id=restaurant.id,
        user_id=f"{MANUAL_BLOCK_PREFIX}{staff_id}",
        date=parsed_day.isoformat(),
        time=format_time(snap_down(minute, restaurant.slot_interval_minutes)),
        people=people,
        note=note,
        status="blocked",
    )
    result = await store.create_reservation(block)
    if not result.ok:
        return BookingOutcome(ok=False, reason=result.reason or "race", attempts=1)
    return BookingOutcome(ok=True, reservation=result.reservation, attempts=1)
