from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class MealStatOut(BaseModel):
    meal_type: str
    total_count: int = 0
    used_count: int = 0


class EventStatsOut(BaseModel):
    event_id: str
    meals: list[MealStatOut]
    total_count: int = 0
    used_count: int = 0


class GlobalStatsOut(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    generated: int = 0
    redeemed: int = 0
    rate: float = 0.0
