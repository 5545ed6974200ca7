# mealcoupons/schemas/coupons.py
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class GenerateCouponsIn(BaseModel):
    # validated by the service so the error text matches what the dashboard expects
    count: Any = None
    meal_type: Any = None


class GeneratedCouponOut(BaseModel):
    id: UUID
    event_id: UUID
    ticket_number: int

    class Config:
        from_attributes = True


class GenerateCouponsOut(BaseModel):
    success: bool = True
    coupons: list[GeneratedCouponOut]


class CouponOut(BaseModel):
    id: UUID
    event_id: UUID
    status: str
    created_at: datetime
    ticket_number: int
    meal_type: str
    expires_at: datetime

    class Config:
        from_attributes = True


class CouponListOut(BaseModel):
    coupons: list[CouponOut]
