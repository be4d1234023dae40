from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import ValidationError

from .kv import KeyValueStore
from .logging_config import get_logger
from .models import Reservation, ReservationStatus, Restaurant

logger = get_logger(__name__)

WriteFailure = Literal["race", "not_found"]


def restaurant_key(restaurant_id: str) -> tuple[str, str]:
    return ("restaurant", restaurant_id)


def reservation_key(reservation_id: str) -> tuple[str, str]:
    return ("reservation", reservation_id)


def day_index_key(restaurant_id: str, day: str, reservation_id: str) -> tuple[str, str, str, str]:
    return ("reservation_by_day", restaurant_id, day, reservation_id)


def day_guard_key(restaurant_id: str, day: str) -> tuple[str, str, str]:
    return ("reservation_day", restaurant_id, day)


@dataclass(frozen=True, slots=True)
class WriteResult:
    ok: bool
    reservation: Reservation | None = None
    reason: WriteFailure | None = None


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json")


class ReservationStore:
    """
    Restaurants and reservations over an injected key-value store.

    Keys:
      ("restaurant", id)                              -> Restaurant
      ("reservation", id)                             -> Reservation
      ("reservation_by_day", restaurant_id, date, id) -> 1
      ("reservation_day", restaurant_id, date)        -> id of the day's last write
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    # -------- restaurants --------
    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        entry = await self.kv.get(restaurant_key(str(restaurant_id)))
        if not entry.exists:
            return None
        try:
            return Restaurant.model_validate(entry.value)
        except ValidationError:
            logger.warning("restaurant_record_invalid", restaurant_id=str(restaurant_id))
            return None

    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant:
        await self.kv.atomic().set(restaurant_key(restaurant.id), _dump(restaurant)).commit()
        return restaurant

    async def create_restaurant(self, restaurant: Restaurant) -> Restaurant | None:
        """Insert ``restaurant`` unless its id is taken; None when it is."""
        key = restaurant_key(restaurant.id)
        committed = await self.kv.atomic().check(key, None).set(key, _dump(restaurant)).commit()
        if not committed:
            logger.warning("create_restaurant_conflict", restaurant_id=restaurant.id)
            return None
        logger.info("restaurant_created", restaurant_id=restaurant.id)
        return restaurant

    # -------- reservations --------
    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        entry = await self.kv.get(reservation_key(str(reservation_id)))
        if not entry.exists:
            return None
        return Reservation.model_validate(entry.value)

    async def list_reservations_for(
        self, restaurant_id: str, day: str, *, include_inactive: bool = False
    ) -> list[Reservation]:
        """A day's reservations ordered by start time.

        Canceled reservations are left out unless ``include_inactive`` is set,
        so callers aggregating occupancy never count them.
        """
        out: list[Reservation] = []
        for row in await self.kv.list(("reservation_by_day", str(restaurant_id), day)):
            reservation_id = str(row.key[-1])
            entry = await self.kv.get(reservation_key(reservation_id))
            if not entry.exists:
                continue
            try:
                reservation = Reservation.model_validate(entry.value)
            except ValidationError:
                logger.warning("reservation_record_invalid", reservation_id=reservation_id)
                continue
            if include_inactive or reservation.is_active:
                out.append(reservation)
        out.sort(key=lambda r: (r.time, r.created_at))
        return out

    async def day_version(self, restaurant_id: str, day: str) -> int | None:
        entry = await self.kv.get(day_guard_key(str(restaurant_id), day))
        return entry.versionstamp

    async def create_reservation(
        self,
        reservation: Reservation,
        *,
        expected_day_version: int | None = None,
        guard_day: bool = False,
    ) -> WriteResult:
        """Insert the record and its day index in one atomic commit.

        Fails with ``race`` when either key already exists, or, with
        ``guard_day``, when another write touched the same restaurant/day since
        ``expected_day_version`` was read. The caller restarts check-then-create.
        Without ``guard_day`` two concurrent bookings can both pass their
        capacity checks and both land here successfully.
        """
        rid, day = reservation.restaurant_id, reservation.date
        op = (
            self.kv.atomic()
            .check(reservation_key(reservation.id), None)
            .check(day_index_key(rid, day, reservation.id), None)
        )
        if guard_day:
            op.check(day_guard_key(rid, day), expected_day_version)
        op.set(reservation_key(reservation.id), _dump(reservation))
        op.set(day_index_key(rid, day, reservation.id), 1)
        # only the guard's versionstamp matters; it moves on every write
        op.set(day_guard_key(rid, day), reservation.id)

        if not await op.commit():
            logger.warning(
                "create_reservation_race",
                reservation_id=reservation.id,
                restaurant_id=rid,
                date=day,
            )
            return WriteResult(ok=False, reason="race")
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            restaurant_id=rid,
            date=day,
            time=reservation.time,
            people=reservation.people,
            status=reservation.status,
        )
        return WriteResult(ok=True, reservation=reservation)

    async def set_status(self, reservation_id: str, status: ReservationStatus) -> WriteResult:
        entry = await self.kv.get(reservation_key(str(reservation_id)))
        if not entry.exists:
            return WriteResult(ok=False, reason="not_found")
        current = Reservation.model_validate(entry.value)
        updated = current.model_copy(update={"status": status})
        committed = await (
            self.kv.atomic()
            .check(entry.key, entry.versionstamp)
            .set(entry.key, _dump(updated))
            .set(day_guard_key(current.restaurant_id, current.date), current.id)
            .commit()
        )
        if not committed:
            logger.warning("set_status_race", reservation_id=str(reservation_id), status=status)
            return WriteResult(ok=False, reason="race")
        logger.info("reservation_status_changed", reservation_id=current.id, status=status)
        return WriteResult(ok=True, reservation=updated)
