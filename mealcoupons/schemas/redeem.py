from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class RedeemIn(BaseModel):
    # QR payload: {"id": "<uuid>"}; manual entry: {"ticket_number": 42}
    id: str | None = None
    ticket_number: int | None = None
    event_id: UUID | None = None


class RedemptionReceiptOut(BaseModel):
    coupon_id: UUID
    event_id: UUID
    ticket_number: int
    meal_type: str
    redeemed_at: datetime

    class Config:
        from_attributes = True


class RedeemOut(BaseModel):
    success: bool = True
    message: str = "Coupon Redeemed!"
    receipt: RedemptionReceiptOut
