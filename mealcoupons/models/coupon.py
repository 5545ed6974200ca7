# mealcoupons/models/coupon.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from mealcoupons.core.db import Base
from mealcoupons.core.timeutil import utc_now

MEAL_TYPES = ("breakfast", "lunch", "snacks", "dinner")

STATUS_UNUSED = "unused"
STATUS_USED = "used"
STATUS_EXPIRED = "expired"


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        UniqueConstraint("event_id", "ticket_number", name="coupons_event_ticket_uq"),
        CheckConstraint(
            "meal_type IN ('breakfast','lunch','snacks','dinner')",
            name="coupons_meal_type_check",
        ),
        CheckConstraint(
            "status IN ('unused','used','expired')",
            name="coupons_status_check",
        ),
        CheckConstraint("ticket_number > 0", name="coupons_ticket_number_check"),
        Index("coupons_event_meal_idx", "event_id", "meal_type"),
        Index("coupons_ticket_number_idx", "ticket_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    ticket_number: Mapped[int] = mapped_column(Integer, nullable=False)

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False
    )
    meal_type: Mapped[str] = mapped_column(Text, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(Text, nullable=False, server_default=STATUS_UNUSED)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
