from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from mealcoupons.models.coupon import Coupon
from mealcoupons.models.coupon_batch import CouponBatch, TicketSequence
from mealcoupons.services import coupons as coupons_service
from mealcoupons.services.coupons import generate_batch, list_event_coupons
from mealcoupons.services.errors import (
    AlreadyExists,
    Forbidden,
    InvalidArgument,
    NotFound,
    Unauthorized,
    Unavailable,
)
from mealcoupons.services.issuer import reserve_ticket_numbers


async def test_first_batch_numbers_from_one(db, admin, make_event):
    event = await make_event()

    coupons = await generate_batch(db, event_id=event.id, meal_type="lunch", count=10, actor=admin)

    assert [c.ticket_number for c in coupons] == list(range(1, 11))
    assert all(c.status == "unused" for c in coupons)
    assert all(c.meal_type == "lunch" for c in coupons)
    assert len({c.id for c in coupons}) == 10

    stored = await list_event_coupons(db, event_id=event.id)
    assert [c.ticket_number for c in stored] == list(range(1, 11))


async def test_expiry_copied_from_event(db, admin, make_event):
    expiry = datetime(2031, 5, 4, 18, 30, tzinfo=timezone.utc)
    event = await make_event(expiry=expiry)

    await generate_batch(db, event_id=event.id, meal_type="dinner", count=3, actor=admin)

    res = await db.execute(select(Coupon.expires_at).where(Coupon.event_id == event.id))
    for (expires_at,) in res.all():
        assert expires_at.replace(tzinfo=timezone.utc) == expiry


async def test_next_batch_continues_event_numbering(db, admin, make_event):
    event = await make_event()

    await generate_batch(db, event_id=event.id, meal_type="lunch", count=10, actor=admin)
    breakfast = await generate_batch(db, event_id=event.id, meal_type="breakfast", count=5, actor=admin)
    dinner = await generate_batch(db, event_id=event.id, meal_type="dinner", count=2, actor=admin)

    assert [c.ticket_number for c in breakfast] == [11, 12, 13, 14, 15]
    assert [c.ticket_number for c in dinner] == [16, 17]

    res = await db.execute(select(TicketSequence.last_value).where(TicketSequence.event_id == event.id))
    assert res.scalar_one() == 17


async def test_numbering_is_per_event(db, admin, make_event):
    first = await make_event(title="Day 1")
    second = await make_event(title="Day 2")

    await generate_batch(db, event_id=first.id, meal_type="lunch", count=4, actor=admin)
    other = await generate_batch(db, event_id=second.id, meal_type="lunch", count=3, actor=admin)

    assert [c.ticket_number for c in other] == [1, 2, 3]


async def test_batch_row_records_range(db, admin, make_event):
    event = await make_event()
    await generate_batch(db, event_id=event.id, meal_type="snacks", count=7, actor=admin)

    res = await db.execute(select(CouponBatch).where(CouponBatch.event_id == event.id))
    batch = res.scalar_one()
    assert (batch.meal_type, batch.count) == ("snacks", 7)
    assert (batch.first_ticket_number, batch.last_ticket_number) == (1, 7)
    assert batch.created_by == admin.id


async def test_second_batch_for_same_pair_rejected(db, session_factory, admin, make_event):
    event = await make_event()
    event_id = event.id
    await generate_batch(db, event_id=event_id, meal_type="lunch", count=10, actor=admin)

    async with session_factory() as s:
        with pytest.raises(AlreadyExists):
            await generate_batch(s, event_id=event_id, meal_type="lunch", count=1, actor=admin)

    res = await db.execute(select(func.count()).select_from(Coupon).where(Coupon.event_id == event_id))
    assert res.scalar_one() == 10


@pytest.mark.parametrize("count", [0, -1, 1001, "abc", None, 2.5, True])
async def test_invalid_count(db, admin, make_event, count):
    event = await make_event()
    with pytest.raises(InvalidArgument):
        await generate_batch(db, event_id=event.id, meal_type="lunch", count=count, actor=admin)


async def test_count_accepts_numeric_string_and_bounds(db, admin, make_event):
    event = await make_event()
    one = await generate_batch(db, event_id=event.id, meal_type="lunch", count="1", actor=admin)
    full = await generate_batch(db, event_id=event.id, meal_type="dinner", count=1000, actor=admin)

    assert len(one) == 1
    assert len(full) == 1000
    assert full[-1].ticket_number == 1001


async def test_invalid_meal_type(db, admin, make_event):
    event = await make_event()
    with pytest.raises(InvalidArgument):
        await generate_batch(db, event_id=event.id, meal_type="brunch", count=5, actor=admin)


async def test_unknown_event(db, admin):
    with pytest.raises(NotFound):
        await generate_batch(db, event_id=uuid.uuid4(), meal_type="lunch", count=5, actor=admin)


@pytest.mark.parametrize("role", ["vendor", "volunteer", "none"])
async def test_only_admin_generates(db, make_user, make_event, role):
    event = await make_event()
    user = await make_user(role)
    with pytest.raises(Forbidden):
        await generate_batch(db, event_id=event.id, meal_type="lunch", count=5, actor=user)


async def test_concurrent_same_pair_exactly_one_wins(session_factory, admin, make_event):
    event = await make_event()

    async def attempt():
        async with session_factory() as s:
            return await generate_batch(s, event_id=event.id, meal_type="lunch", count=20, actor=admin)

    results = await asyncio.gather(attempt(), attempt(), attempt(), return_exceptions=True)

    wins = [r for r in results if isinstance(r, list)]
    losses = [r for r in results if isinstance(r, AlreadyExists)]
    assert len(wins) == 1
    assert len(losses) == 2

    async with session_factory() as s:
        res = await s.execute(select(func.count()).select_from(Coupon).where(Coupon.event_id == event.id))
        assert res.scalar_one() == 20


async def test_concurrent_meal_types_get_disjoint_runs(session_factory, admin, make_event):
    event = await make_event()

    async def batch(meal: str, n: int):
        async with session_factory() as s:
            return await generate_batch(s, event_id=event.id, meal_type=meal, count=n, actor=admin)

    results = await asyncio.gather(batch("breakfast", 30), batch("lunch", 40), batch("dinner", 25))

    numbers = sorted(c.ticket_number for r in results for c in r)
    assert numbers == list(range(1, 96))
    for r in results:
        run = [c.ticket_number for c in r]
        assert run == list(range(run[0], run[0] + len(run)))


async def test_sequence_seeded_from_existing_tickets(db, make_event):
    event = await make_event()
    db.add(
        Coupon(
            id=uuid.uuid4(),
            ticket_number=41,
            event_id=event.id,
            meal_type="lunch",
            expires_at=datetime.now(timezone.utc) + timedelta(days=1),
            status="unused",
        )
    )
    await db.commit()

    tickets = await reserve_ticket_numbers(db, event_id=event.id, count=3)
    await db.commit()

    assert list(tickets) == [42, 43, 44]


async def test_missing_identity(db, make_event):
    event = await make_event()
    with pytest.raises(Unauthorized):
        await generate_batch(db, event_id=event.id, meal_type="lunch", count=5, actor=None)


async def test_store_failure_rolls_back_whole_batch(db, session_factory, admin, make_event, monkeypatch):
    event = await make_event()
    event_id = event.id
    await generate_batch(db, event_id=event_id, meal_type="breakfast", count=5, actor=admin)

    real_reserve = coupons_service.reserve_ticket_numbers

    async def reserve_taken_numbers(session, *, event_id, count):
        # advance the counter, then hand back tickets breakfast already holds
        await real_reserve(session, event_id=event_id, count=count)
        return range(1, count + 1)

    monkeypatch.setattr(coupons_service, "reserve_ticket_numbers", reserve_taken_numbers)
    async with session_factory() as s:
        with pytest.raises(Unavailable):
            await generate_batch(s, event_id=event_id, meal_type="lunch", count=3, actor=admin)
    monkeypatch.undo()

    async with session_factory() as s:
        res = await s.execute(select(func.count()).select_from(Coupon).where(Coupon.event_id == event_id))
        assert res.scalar_one() == 5
        res = await s.execute(select(CouponBatch.meal_type).where(CouponBatch.event_id == event_id))
        assert res.scalars().all() == ["breakfast"]
        res = await s.execute(select(TicketSequence.last_value).where(TicketSequence.event_id == event_id))
        assert res.scalar_one() == 5

    # nothing was left behind for the pair, so it can be generated again
    async with session_factory() as s:
        lunch = await generate_batch(s, event_id=event_id, meal_type="lunch", count=3, actor=admin)
    assert [c.ticket_number for c in lunch] == [6, 7, 8]
