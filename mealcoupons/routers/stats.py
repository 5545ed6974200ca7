from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.db import get_db
from mealcoupons.core.deps import require_admin
from mealcoupons.models.user import User
from mealcoupons.schemas.stats import EventStatsOut, GlobalStatsOut, MealStatOut
from mealcoupons.services.errors import CouponError
from mealcoupons.services.stats import event_stats, global_stats

router = APIRouter(tags=["Stats"])


@router.get("/events/{event_id}/stats", response_model=EventStatsOut)
async def get_event_stats(
    event_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> EventStatsOut:
    try:
        rows = await event_stats(db, event_id=event_id)
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return EventStatsOut(
        event_id=str(event_id),
        meals=[MealStatOut(**r) for r in rows],
        total_count=sum(r["total_count"] for r in rows),
        used_count=sum(r["used_count"] for r in rows),
    )


@router.get("/stats", response_model=GlobalStatsOut)
async def get_global_stats(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> GlobalStatsOut:
    try:
        data = await global_stats(db, date_from=date_from, date_to=date_to)
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return GlobalStatsOut(**data)
