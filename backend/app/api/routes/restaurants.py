from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query

from ...availability import availability_for_day, check_availability
from ...booking import book_manual_block
from ...hours import resolve_opening_range
from ...models import OpeningWindow, Reservation, Restaurant
from ...occupancy import summarize_day
from ...schemas import (
    AvailabilityCheckResponse,
    DaySummaryResponse,
    ManualBlockRequest,
    OpeningResponse,
    RestaurantCreate,
)
from ...settings import settings
from ...suggestions import list_available_slots_around
from ...timegrid import format_boundary, format_time
from ..types import DateQuery, PartySize, TimeQuery
from ..utils import STATUS_FOR_REASON, StoreDep, raise_for_outcome

router = APIRouter(tags=["restaurants"])


async def _require_restaurant(store: StoreDep, rid: str) -> Restaurant:
    record = await store.get_restaurant(rid)
    if not record:
        raise HTTPException(404, "Restaurant not found")
    return record


@router.post("/restaurants", response_model=Restaurant, status_code=201)
async def create_restaurant(payload: RestaurantCreate, store: StoreDep):
    created = await store.create_restaurant(payload.to_restaurant())
    if created is None:
        raise HTTPException(409, "Restaurant id already exists")
    return created


@router.get("/restaurants/{rid}", response_model=Restaurant)
async def get_restaurant(rid: str, store: StoreDep):
    return await _require_restaurant(store, rid)


@router.get("/restaurants/{rid}/opening", response_model=OpeningResponse)
async def get_opening(rid: str, date_: DateQuery, store: StoreDep):
    record = await _require_restaurant(store, rid)
    opening = resolve_opening_range(record, date_)
    window = None
    if opening is not None:
        window = OpeningWindow(open=format_time(opening.start), close=format_boundary(opening.end))
    return OpeningResponse(
        date=date_.isoformat(),
        opening=window,
        slot_interval_minutes=record.slot_interval_minutes,
    )


@router.get("/restaurants/{rid}/availability")
async def restaurant_availability(
    rid: str, date_: DateQuery, store: StoreDep, party_size: PartySize = 2
):
    payload = await availability_for_day(store, rid, date_.isoformat(), party_size)
    if payload is None:
        raise HTTPException(404, "Restaurant not found")
    return payload


@router.get("/restaurants/{rid}/availability/check", response_model=AvailabilityCheckResponse)
async def check_slot(
    rid: str, date_: DateQuery, time_: TimeQuery, people: PartySize, store: StoreDep
):
    day = date_.isoformat()
    result = await check_availability(store, rid, day, time_, people)
    if result.reason in ("not_found", "invalid_input"):
        raise HTTPException(STATUS_FOR_REASON[result.reason], detail={"reason": result.reason})
    suggestions: list[str] = []
    if not result.ok:
        suggestions = await list_available_slots_around(
            store,
            rid,
            day,
            time_,
            people,
            window_minutes=settings.SUGGESTION_WINDOW_MINUTES,
            max_slots=settings.SUGGESTION_MAX_SLOTS,
        )
    return AvailabilityCheckResponse(
        ok=result.ok,
        reason=result.reason,
        start=result.start,
        end=result.end,
        suggestions=suggestions,
    )


@router.get("/restaurants/{rid}/occupancy", response_model=DaySummaryResponse)
async def day_occupancy(rid: str, date_: DateQuery, store: StoreDep):
    record = await _require_restaurant(store, rid)
    if record.slot_interval_minutes <= 0 or record.service_duration_minutes <= 0:
        raise HTTPException(422, detail={"reason": "invalid_input"})
    day = date_.isoformat()
    reservations = await store.list_reservations_for(record.id, day, include_inactive=True)
    summary = summarize_day(record, reservations)
    return DaySummaryResponse(date=day, **asdict(summary))


@router.get("/restaurants/{rid}/reservations", response_model=list[Reservation])
async def list_day_reservations(
    rid: str,
    date_: DateQuery,
    store: StoreDep,
    include_inactive: bool = Query(False),
):
    record = await _require_restaurant(store, rid)
    return await store.list_reservations_for(
        record.id, date_.isoformat(), include_inactive=include_inactive
    )


@router.post("/restaurants/{rid}/blocks", response_model=Reservation, status_code=201)
async def create_manual_block(rid: str, payload: ManualBlockRequest, store: StoreDep):
    outcome = await book_manual_block(
        store,
        restaurant_id=rid,
        day=payload.date,
        time=payload.time,
        people=payload.people,
        staff_id=payload.staff_id,
        note=payload.note,
    )
    if not outcome.ok:
        raise_for_outcome(outcome)
    return outcome.reservation
