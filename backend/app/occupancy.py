from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .models import Reservation, Restaurant
from .timegrid import MINUTES_PER_DAY, format_time, parse_time, snap_down

if TYPE_CHECKING:
    from .storage import ReservationStore

logger = logging.getLogger(__name__)


def compute_occupancy(restaurant: Restaurant, reservations: Iterable[Reservation]) -> dict[str, int]:
    """Seats committed per grid slot ("HH:mm" -> seats).

    Every reservation given is counted, whatever its status; filtering is the
    listing's job. Each one occupies the slots in [snap_down(time), +duration)
    up to midnight.
    """
    step = restaurant.slot_interval_minutes
    duration = restaurant.service_duration_minutes
    if step <= 0 or duration <= 0:
        raise ValueError("slot interval and service duration must be positive")

    occupancy: dict[str, int] = {}
    for reservation in reservations:
        minute = parse_time(reservation.time)
        if minute is None:
            logger.warning(
                "Skipping reservation %s with unparsable time %r",
                reservation.id,
                reservation.time,
            )
            continue
        start = snap_down(minute, step)
        end = min(start + duration, MINUTES_PER_DAY)
        for slot in range(start, end, step):
            key = format_time(slot)
            occupancy[key] = occupancy.get(key, 0) + reservation.people
    return occupancy


async def load_occupancy(store: ReservationStore, restaurant: Restaurant, day: str) -> dict[str, int]:
    reservations = await store.list_reservations_for(restaurant.id, day)
    return compute_occupancy(restaurant, reservations)


@dataclass
class DaySummary:
    total_reservations: int = 0
    total_guests: int = 0
    manual_blocks: int = 0
    blocked_seats: int = 0
    canceled: int = 0
    peak_slot: str | None = None
    peak_seats: int = 0
    peak_occupancy_percent: int = 0
    occupancy: dict[str, int] = field(default_factory=dict)


def summarize_day(restaurant: Restaurant, reservations: Iterable[Reservation]) -> DaySummary:
    """Owner-facing figures for one day; canceled records are counted, not seated."""
    records = list(reservations)
    active = [r for r in records if r.is_active]
    guests = [r for r in active if not r.is_manual_block]
    blocks = [r for r in active if r.is_manual_block]

    occupancy = compute_occupancy(restaurant, active)
    summary = DaySummary(
        total_reservations=len(guests),
        total_guests=sum(r.people for r in guests),
        manual_blocks=len(blocks),
        blocked_seats=sum(r.people for r in blocks),
        canceled=len(records) - len(active),
        occupancy=dict(sorted(occupancy.items())),
    )
    for slot, seats in summary.occupancy.items():
        if seats > summary.peak_seats:
            summary.peak_slot = slot
            summary.peak_seats = seats

    if summary.peak_seats:
        capacity = max(restaurant.capacity, 0)
        percent = 100 if capacity == 0 else round(100 * summary.peak_seats / capacity)
        summary.peak_occupancy_percent = min(100, percent)
    return summary
