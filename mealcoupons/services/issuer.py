# mealcoupons/services/issuer.py
from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.models.coupon import Coupon
from mealcoupons.models.coupon_batch import TicketSequence


def new_coupon_id() -> uuid.UUID:
    # uuid4 draws from os.urandom (CSPRNG); global uniqueness needs no coordination
    return uuid.uuid4()


async def _current_max_ticket(db: AsyncSession, event_id: uuid.UUID) -> int:
    res = await db.execute(
        select(func.coalesce(func.max(Coupon.ticket_number), 0)).where(Coupon.event_id == event_id)
    )
    return int(res.scalar_one())


async def reserve_ticket_numbers(db: AsyncSession, *, event_id: uuid.UUID, count: int) -> range:
    """
    Reserve `count` contiguous ticket numbers for an event and return them as a range.

    Must run inside the caller's transaction, after the event row is locked.
    The counter is advanced with a single UPDATE so the row stays locked until commit;
    the first batch of an event seeds it from the highest ticket already stored.
    """
    if count <= 0:
        raise ValueError("count must be positive")

    res = await db.execute(
        update(TicketSequence)
        .where(TicketSequence.event_id == event_id)
        .values(last_value=TicketSequence.last_value + count)
        .execution_options(synchronize_session=False)
    )

    if res.rowcount == 0:
        base = await _current_max_ticket(db, event_id)
        db.add(TicketSequence(event_id=event_id, last_value=base + count))
        await db.flush()
        return range(base + 1, base + count + 1)

    res2 = await db.execute(select(TicketSequence.last_value).where(TicketSequence.event_id == event_id))
    last_value = int(res2.scalar_one())
    return range(last_value - count + 1, last_value + 1)
