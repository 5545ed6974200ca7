from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.db import get_db
from mealcoupons.core.deps import require_admin
from mealcoupons.models.user import User
from mealcoupons.schemas.events import (
    EventCouponCountsOut,
    EventCreateIn,
    EventListItemOut,
    EventListOut,
    EventOut,
    RedemptionLogOut,
    RedemptionLogRowOut,
)
from mealcoupons.services.errors import CouponError
from mealcoupons.services.events import create_event, get_event, list_recent_events, recent_redemptions

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventOut, status_code=201)
async def create(
    body: EventCreateIn,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    try:
        return await create_event(
            db,
            title=body.title,
            venue=body.venue,
            event_date=body.event_date,
            start_time=body.start_time,
            end_time=body.end_time,
            coupon_expiry_time=body.coupon_expiry_time,
        )
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("", response_model=EventListOut)
async def list_events(
    limit: int = Query(default=5, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> EventListOut:
    rows = await list_recent_events(db, limit=limit)
    return EventListOut(
        events=[
            EventListItemOut(
                **EventOut.model_validate(r["event"]).model_dump(),
                stats=EventCouponCountsOut(total=r["total"], used=r["used"]),
            )
            for r in rows
        ]
    )


@router.get("/{event_id}", response_model=EventOut)
async def get_one(
    event_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    try:
        return await get_event(db, event_id=event_id)
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{event_id}/redemptions", response_model=RedemptionLogOut)
async def list_redemptions(
    event_id: UUID,
    limit: int = Query(default=20, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> RedemptionLogOut:
    try:
        rows = await recent_redemptions(db, event_id=event_id, limit=limit)
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return RedemptionLogOut(redemptions=[RedemptionLogRowOut(**r) for r in rows])
