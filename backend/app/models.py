from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from .hours import normalize_weekly_schedule

ReservationStatus = Literal["new", "confirmed", "canceled", "completed", "blocked"]
INACTIVE_STATUSES = frozenset({"canceled"})
MANUAL_BLOCK_PREFIX = "manual-block:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class OpeningWindow(BaseModel):
    open: str
    close: str


class Restaurant(BaseModel):
    """Directory record. Loaded leniently: the checker validates the numbers."""

    id: str = Field(default_factory=_new_id)
    name: str
    city: str | None = None
    address: str | None = None
    capacity: int = 30
    slot_interval_minutes: int = 15
    service_duration_minutes: int = 120
    weekly_schedule: dict[int, OpeningWindow | None] | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("weekly_schedule", mode="before")
    @classmethod
    def _weekly_schedule(cls, value):  # type: ignore[override]
        return normalize_weekly_schedule(value)


class Reservation(BaseModel):
    id: str = Field(default_factory=_new_id)
    restaurant_id: str
    user_id: str | None = None
    date: str
    time: str
    people: int = Field(gt=0)
    note: str | None = None
    status: ReservationStatus = "new"
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    @property
    def is_manual_block(self) -> bool:
        return bool(self.user_id and self.user_id.startswith(MANUAL_BLOCK_PREFIX))
