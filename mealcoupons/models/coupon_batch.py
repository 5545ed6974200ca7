# mealcoupons/models/coupon_batch.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from mealcoupons.core.db import Base
from mealcoupons.core.timeutil import utc_now


class CouponBatch(Base):
    """
    One row per generated (event, meal_type) batch.
    The unique constraint is the guard that keeps a pair from being generated twice.
    """

    __tablename__ = "coupon_batches"
    __table_args__ = (
        UniqueConstraint("event_id", "meal_type", name="coupon_batches_event_meal_uq"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False
    )
    meal_type: Mapped[str] = mapped_column(Text, nullable=False)

    count: Mapped[int] = mapped_column(Integer, nullable=False)
    first_ticket_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_ticket_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )


class TicketSequence(Base):
    """Per-event ticket counter. last_value is the highest ticket number handed out."""

    __tablename__ = "ticket_sequences"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True
    )
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
