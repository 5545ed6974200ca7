from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field


class EventCreateIn(BaseModel):
    title: str = Field(..., min_length=1)
    venue: str = Field(..., min_length=1)
    event_date: date
    start_time: time | None = None
    end_time: time | None = None
    coupon_expiry_time: datetime


class EventOut(BaseModel):
    id: UUID
    title: str
    venue: str
    event_date: date
    start_time: time | None = None
    end_time: time | None = None
    coupon_expiry_time: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class EventCouponCountsOut(BaseModel):
    total: int = 0
    used: int = 0


class EventListItemOut(EventOut):
    stats: EventCouponCountsOut


class EventListOut(BaseModel):
    events: list[EventListItemOut]


class RedemptionLogRowOut(BaseModel):
    id: UUID
    coupon_id: UUID
    ticket_number: int
    meal_type: str
    redeemed_by: UUID
    username: str | None = None
    email: str | None = None
    role: str
    redeemed_at: datetime


class RedemptionLogOut(BaseModel):
    redemptions: list[RedemptionLogRowOut]
