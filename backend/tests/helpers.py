"""Builders shared by the test modules (plain functions so hypothesis can use them)."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from backend.app.kv import MemoryKV
from backend.app.models import Reservation, Restaurant
from backend.app.storage import ReservationStore

RID = "trattoria"

# Calendar anchors (0 = Sunday in the restaurant schedule)
SUNDAY = "2026-10-18"
MONDAY = "2026-10-19"
FRIDAY = "2026-10-23"
SATURDAY = "2026-10-24"

EVERY_DAY_10_TO_22 = {day: {"open": "10:00", "close": "22:00"} for day in range(7)}


def run(coro):
    return asyncio.run(coro)


def make_restaurant(**overrides: Any) -> Restaurant:
    data: dict[str, Any] = {
        "id": RID,
        "name": "Trattoria",
        "capacity": 10,
        "slot_interval_minutes": 15,
        "service_duration_minutes": 120,
        "weekly_schedule": EVERY_DAY_10_TO_22,
    }
    data.update(overrides)
    return Restaurant(**data)


def make_reservation(time: str, people: int, *, day: str = SUNDAY, **extra: Any) -> Reservation:
    extra.setdefault("restaurant_id", RID)
    return Reservation(date=day, time=time, people=people, **extra)


async def seed(
    store: ReservationStore,
    restaurant: Restaurant | None = None,
    reservations: Iterable[Reservation] = (),
) -> ReservationStore:
    await store.save_restaurant(restaurant or make_restaurant())
    for reservation in reservations:
        result = await store.create_reservation(reservation)
        assert result.ok, result
    return store


def seeded_store(
    restaurant: Restaurant | None = None, reservations: Iterable[Reservation] = ()
) -> ReservationStore:
    return run(seed(ReservationStore(MemoryKV()), restaurant, reservations))
