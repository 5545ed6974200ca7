from __future__ import annotations

import uuid
from datetime import date, datetime, time

from sqlalchemy import case, func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.models.coupon import STATUS_USED, Coupon
from mealcoupons.models.event import Event
from mealcoupons.models.redemption import Redemption
from mealcoupons.models.user import User
from mealcoupons.services.errors import InvalidArgument, NotFound, Unavailable


async def create_event(
    db: AsyncSession,
    *,
    title: str,
    venue: str,
    event_date: date,
    start_time: time | None,
    end_time: time | None,
    coupon_expiry_time: datetime,
) -> Event:
    clean_title = (title or "").strip()
    clean_venue = (venue or "").strip()
    if not clean_title:
        raise InvalidArgument("title is required")
    if not clean_venue:
        raise InvalidArgument("venue is required")
    if start_time and end_time and end_time < start_time:
        raise InvalidArgument("end_time must not be before start_time")

    e = Event(
        title=clean_title,
        venue=clean_venue,
        event_date=event_date,
        start_time=start_time,
        end_time=end_time,
        coupon_expiry_time=coupon_expiry_time,
    )
    try:
        db.add(e)
        await db.commit()
        await db.refresh(e)
        return e
    except DBAPIError as ex:
        await db.rollback()
        raise Unavailable("Could not save event") from ex


async def get_event(db: AsyncSession, *, event_id: uuid.UUID) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


async def list_recent_events(db: AsyncSession, *, limit: int) -> list[dict]:
    """Newest events first, each with its coupon total and used count."""
    used = func.coalesce(func.sum(case((Coupon.status == STATUS_USED, 1), else_=0)), 0)

    stmt = (
        select(Event, func.count(Coupon.id), used)
        .outerjoin(Coupon, Coupon.event_id == Event.id)
        .group_by(Event.id)
        .order_by(Event.event_date.desc(), Event.created_at.desc())
        .limit(int(limit))
    )
    res = await db.execute(stmt)

    items: list[dict] = []
    for ev, total, used_count in res.all():
        items.append({"event": ev, "total": int(total), "used": int(used_count)})
    return items


async def recent_redemptions(db: AsyncSession, *, event_id: uuid.UUID, limit: int) -> list[dict]:
    """Latest redemption log rows for an event, with the staff member who scanned."""
    await get_event(db, event_id=event_id)

    stmt = (
        select(
            Redemption.id,
            Redemption.coupon_id,
            Coupon.ticket_number,
            Coupon.meal_type,
            Redemption.redeemed_by,
            User.username,
            User.email,
            Redemption.role,
            Redemption.redeemed_at,
        )
        .select_from(Redemption)
        .join(Coupon, Coupon.id == Redemption.coupon_id)
        .outerjoin(User, User.id == Redemption.redeemed_by)
        .where(Coupon.event_id == event_id)
        .order_by(Redemption.redeemed_at.desc(), Redemption.id.desc())
        .limit(int(limit))
    )
    res = await db.execute(stmt)

    items: list[dict] = []
    for r in res.all():
        items.append(
            {
                "id": r[0],
                "coupon_id": r[1],
                "ticket_number": int(r[2]),
                "meal_type": str(r[3]),
                "redeemed_by": r[4],
                "username": r[5],
                "email": r[6],
                "role": str(r[7]),
                "redeemed_at": r[8],
            }
        )
    return items
