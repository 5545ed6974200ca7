from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.timeutil import day_window
from mealcoupons.models.coupon import MEAL_TYPES, STATUS_USED, Coupon
from mealcoupons.models.event import Event
from mealcoupons.models.redemption import Redemption
from mealcoupons.services.errors import InvalidArgument, NotFound


def _meal_order(meal_type: str) -> int:
    try:
        return MEAL_TYPES.index(meal_type)
    except ValueError:
        return len(MEAL_TYPES)


def _rate(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


async def event_stats(db: AsyncSession, *, event_id: uuid.UUID) -> list[dict]:
    """
    Coupons of one event grouped by meal type: total_count and used_count.
    Meal types with no coupons are left out.
    """
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    used = func.sum(case((Coupon.status == STATUS_USED, 1), else_=0))

    res = await db.execute(
        select(Coupon.meal_type, func.count(Coupon.id), func.coalesce(used, 0))
        .where(Coupon.event_id == event_id)
        .group_by(Coupon.meal_type)
    )

    items = [
        {
            "meal_type": str(r[0]),
            "total_count": int(r[1]),
            "used_count": int(r[2]),
        }
        for r in res.all()
    ]
    items.sort(key=lambda x: _meal_order(x["meal_type"]))
    return items


async def global_stats(
    db: AsyncSession,
    *,
    date_from: date | None,
    date_to: date | None,
) -> dict:
    """
    Coupons generated (by created_at) and redemptions recorded (by redeemed_at)
    within an inclusive day window. Either bound may be open.
    """
    if date_from and date_to and date_from > date_to:
        raise InvalidArgument("date_from must not be after date_to")

    start, end = day_window(date_from, date_to)

    gen_stmt = select(func.count()).select_from(Coupon)
    red_stmt = select(func.count()).select_from(Redemption)
    if start is not None:
        gen_stmt = gen_stmt.where(Coupon.created_at >= start)
        red_stmt = red_stmt.where(Redemption.redeemed_at >= start)
    if end is not None:
        gen_stmt = gen_stmt.where(Coupon.created_at < end)
        red_stmt = red_stmt.where(Redemption.redeemed_at < end)

    generated = int((await db.execute(gen_stmt)).scalar_one())
    redeemed = int((await db.execute(red_stmt)).scalar_one())

    return {
        "date_from": date_from,
        "date_to": date_to,
        "generated": generated,
        "redeemed": redeemed,
        "rate": _rate(redeemed, generated),
    }
