from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .hours import normalize_weekly_schedule
from .models import OpeningWindow, Restaurant
from .settings import settings
from .timegrid import parse_date, parse_time


def _clean_note(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def _require_date(value: str) -> str:
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError("date must be YYYY-MM-DD")
    return parsed.isoformat()


def _require_time(value: str) -> str:
    if parse_time(value) is None:
        raise ValueError("time must be HH:mm")
    return value.strip()


# --- Restaurants ---
class RestaurantCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=120)
    city: str | None = None
    address: str | None = None
    capacity: int | None = Field(default=None, ge=0)
    slot_interval_minutes: int | None = Field(default=None, gt=0, le=240)
    service_duration_minutes: int | None = Field(default=None, gt=0, le=24 * 60)
    weekly_schedule: dict[int, OpeningWindow | None] | None = None

    @field_validator("weekly_schedule", mode="before")
    @classmethod
    def _weekly_schedule(cls, value):  # type: ignore[override]
        return normalize_weekly_schedule(value)

    @field_validator("weekly_schedule")
    @classmethod
    def _windows_parse(cls, value):  # type: ignore[override]
        for day, window in (value or {}).items():
            if window and (parse_time(window.open) is None or parse_time(window.close) is None):
                raise ValueError(f"opening window for day {day} must use HH:mm times")
        return value

    def to_restaurant(self) -> Restaurant:
        data = self.model_dump(exclude_none=True)
        data.setdefault("capacity", settings.DEFAULT_CAPACITY)
        data.setdefault("slot_interval_minutes", settings.DEFAULT_SLOT_INTERVAL_MINUTES)
        data.setdefault("service_duration_minutes", settings.DEFAULT_SERVICE_DURATION_MINUTES)
        # closed days are explicit Nones and must survive exclude_none
        data["weekly_schedule"] = (
            None
            if self.weekly_schedule is None
            else {
                day: (window.model_dump() if window else None)
                for day, window in self.weekly_schedule.items()
            }
        )
        return Restaurant(**data)


class OpeningResponse(BaseModel):
    date: str
    opening: OpeningWindow | None = None
    slot_interval_minutes: int


# --- Availability ---
class AvailabilityCheckResponse(BaseModel):
    ok: bool
    reason: str | None = None
    start: str | None = None
    end: str | None = None
    suggestions: list[str] = Field(default_factory=list)


class DaySummaryResponse(BaseModel):
    date: str
    total_reservations: int
    total_guests: int
    manual_blocks: int
    blocked_seats: int
    canceled: int
    peak_slot: str | None = None
    peak_seats: int
    peak_occupancy_percent: int
    occupancy: dict[str, int] = Field(default_factory=dict)


# --- Reservations ---
class ReservationRequest(BaseModel):
    restaurant_id: str
    date: str
    time: str
    people: int
    user_id: str | None = None
    note: str | None = Field(default=None, max_length=500)

    @field_validator("people")
    @classmethod
    def _people_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("people must be >= 1")
        return v

    @field_validator("date")
    @classmethod
    def _date(cls, value: str) -> str:
        return _require_date(value)

    @field_validator("time")
    @classmethod
    def _time(cls, value: str) -> str:
        return _require_time(value)

    @field_validator("note")
    @classmethod
    def _note(cls, value: str | None) -> str | None:
        return _clean_note(value)


class ManualBlockRequest(BaseModel):
    date: str
    time: str
    people: int = Field(ge=1)
    staff_id: str = Field(min_length=1, max_length=64)
    note: str | None = Field(default=None, max_length=500)

    @field_validator("date")
    @classmethod
    def _date(cls, value: str) -> str:
        return _require_date(value)

    @field_validator("time")
    @classmethod
    def _time(cls, value: str) -> str:
        return _require_time(value)

    @field_validator("note")
    @classmethod
    def _note(cls, value: str | None) -> str | None:
        return _clean_note(value)
