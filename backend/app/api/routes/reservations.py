from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ...booking import book_table
from ...models import Reservation, ReservationStatus
from ...schemas import ReservationRequest
from ..utils import StoreDep, raise_for_outcome

router = APIRouter(tags=["reservations"])

# status -> statuses it may move to through this API
TRANSITIONS: dict[str, set[str]] = {
    "new": {"confirmed", "canceled"},
    "confirmed": {"confirmed", "canceled"},
    "blocked": {"canceled"},
    "canceled": {"canceled"},
    "completed": set(),
}


async def _transition(store: StoreDep, resid: str, status: ReservationStatus) -> Reservation:
    current = await store.get_reservation(resid)
    if not current:
        raise HTTPException(404, "Reservation not found")
    if status not in TRANSITIONS.get(current.status, set()):
        raise HTTPException(409, f"Cannot move a {current.status} reservation to {status}")
    if current.status == status:
        return current
    result = await store.set_status(resid, status)
    if not result.ok:
        if result.reason == "not_found":
            raise HTTPException(404, "Reservation not found")
        raise HTTPException(409, detail={"reason": "race", "suggestions": []})
    return result.reservation


@router.post("/reservations", response_model=Reservation, status_code=201)
async def create_reservation(payload: ReservationRequest, store: StoreDep):
    outcome = await book_table(
        store,
        restaurant_id=payload.restaurant_id,
        day=payload.date,
        time=payload.time,
        people=payload.people,
        user_id=payload.user_id,
        note=payload.note,
    )
    if not outcome.ok:
        raise_for_outcome(outcome)
    return outcome.reservation


@router.get("/reservations/{resid}", response_model=Reservation)
async def get_reservation(resid: str, store: StoreDep):
    record = await store.get_reservation(resid)
    if not record:
        raise HTTPException(404, "Reservation not found")
    return record


@router.post("/reservations/{resid}/cancel", response_model=Reservation)
async def cancel_reservation(resid: str, store: StoreDep):
    return await _transition(store, resid, "canceled")


@router.post("/reservations/{resid}/confirm", response_model=Reservation)
async def confirm_reservation(resid: str, store: StoreDep):
    return await _transition(store, resid, "confirmed")
