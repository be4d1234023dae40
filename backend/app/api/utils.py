from __future__ import annotations

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, Request

from ..booking import BookingOutcome
from ..storage import ReservationStore

STATUS_FOR_REASON = {
    "invalid_input": 422,
    "not_found": 404,
    "closed": 409,
    "full": 409,
    "race": 409,
}


def get_store(request: Request) -> ReservationStore:
    return request.app.state.store


StoreDep = Annotated[ReservationStore, Depends(get_store)]


def raise_for_outcome(outcome: BookingOutcome) -> NoReturn:
    reason = outcome.reason or "race"
    raise HTTPException(
        STATUS_FOR_REASON.get(reason, 409),
        detail={"reason": reason, "suggestions": list(outcome.suggestions)},
    )
