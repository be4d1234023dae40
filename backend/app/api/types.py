from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import Query

DateQuery = Annotated[date, Query(alias="date", description="YYYY-MM-DD")]
TimeQuery = Annotated[str, Query(alias="time", pattern=r"^\d{2}:\d{2}$", description="HH:mm")]
PartySize = Annotated[int, Query(ge=1, le=500)]
