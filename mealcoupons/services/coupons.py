# mealcoupons/services/coupons.py
from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.config import settings
from mealcoupons.models.coupon import MEAL_TYPES, STATUS_UNUSED, Coupon
from mealcoupons.models.coupon_batch import CouponBatch
from mealcoupons.models.event import Event
from mealcoupons.models.user import User
from mealcoupons.services.errors import (
    AlreadyExists,
    CouponError,
    Forbidden,
    InvalidArgument,
    NotFound,
    Unauthorized,
    Unavailable,
)
from mealcoupons.services.issuer import new_coupon_id, reserve_ticket_numbers

logger = logging.getLogger(__name__)


def _parse_count(count) -> int:
    # count arrives from a JSON body; accept "25" as well as 25, never 2.5 or True
    if isinstance(count, bool):
        raise InvalidArgument(f"Invalid count (max {settings.MAX_BATCH_SIZE})")
    try:
        n = int(str(count).strip())
    except (TypeError, ValueError):
        raise InvalidArgument(f"Invalid count (max {settings.MAX_BATCH_SIZE})")
    if n <= 0 or n > settings.MAX_BATCH_SIZE:
        raise InvalidArgument(f"Invalid count (max {settings.MAX_BATCH_SIZE})")
    return n


def _check_meal_type(meal_type) -> str:
    if meal_type not in MEAL_TYPES:
        raise InvalidArgument("Invalid meal type")
    return meal_type


async def generate_batch(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    meal_type: str,
    count: int,
    actor: User | None,
) -> list[Coupon]:
    """
    Issue `count` unused coupons for one (event, meal_type) pair, atomically.

    - only admins may generate
    - the event row is locked FOR UPDATE so batches of the same event take turns on the ticket counter
    - the coupon_batches unique (event_id, meal_type) row rejects a second batch for the pair,
      including one racing this call
    - everything is rolled back on failure; no partial batch is ever visible
    """
    if actor is None:
        raise Unauthorized("Unauthorized")
    if actor.role != "admin":
        raise Forbidden("Forbidden")

    n = _parse_count(count)
    meal = _check_meal_type(meal_type)
    actor_id = actor.id

    try:
        res = await db.execute(select(Event).where(Event.id == event_id).with_for_update())
        event = res.scalar_one_or_none()
        if not event:
            raise NotFound("Event not found")

        res = await db.execute(
            select(func.count())
            .select_from(Coupon)
            .where(Coupon.event_id == event_id, Coupon.meal_type == meal)
        )
        if int(res.scalar_one()) > 0:
            raise AlreadyExists(f"Coupons for {meal} already generated for this event.")

        batch = CouponBatch(event_id=event_id, meal_type=meal, count=n, created_by=actor_id)
        db.add(batch)
        try:
            await db.flush()
        except IntegrityError as e:
            raise AlreadyExists(f"Coupons for {meal} already generated for this event.") from e

        tickets = await reserve_ticket_numbers(db, event_id=event_id, count=n)
        batch.first_ticket_number = tickets.start
        batch.last_ticket_number = tickets.stop - 1

        created: list[Coupon] = []
        for ticket_number in tickets:
            c = Coupon(
                id=new_coupon_id(),
                ticket_number=ticket_number,
                event_id=event_id,
                meal_type=meal,
                expires_at=event.coupon_expiry_time,
                status=STATUS_UNUSED,
            )
            created.append(c)
        db.add_all(created)

        await db.commit()

    except CouponError:
        await db.rollback()
        raise
    except DBAPIError as e:
        await db.rollback()
        logger.exception("coupon batch failed event_id=%s meal_type=%s", event_id, meal)
        raise Unavailable("Coupon generation failed, nothing was saved. Try again.") from e

    logger.info(
        "generated %d %s coupons for event %s (tickets %d..%d)",
        n,
        meal,
        event_id,
        tickets.start,
        tickets.stop - 1,
    )
    return created


async def list_event_coupons(db: AsyncSession, *, event_id: uuid.UUID) -> list[Coupon]:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    res = await db.execute(
        select(Coupon).where(Coupon.event_id == event_id).order_by(Coupon.ticket_number.asc())
    )
    return list(res.scalars().all())
