# mealcoupons/routers/coupons.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.db import get_db
from mealcoupons.core.deps import get_current_user, require_admin
from mealcoupons.models.user import User
from mealcoupons.schemas.coupons import (
    CouponListOut,
    CouponOut,
    GenerateCouponsIn,
    GenerateCouponsOut,
    GeneratedCouponOut,
)
from mealcoupons.services.coupons import generate_batch, list_event_coupons
from mealcoupons.services.errors import CouponError

router = APIRouter(prefix="/events", tags=["Coupons"])


@router.post("/{event_id}/generate-coupons", response_model=GenerateCouponsOut)
async def generate_coupons(
    event_id: UUID,
    body: GenerateCouponsIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> GenerateCouponsOut:
    # role is checked by the service so non-admins get the same Forbidden as everywhere else
    try:
        coupons = await generate_batch(
            db,
            event_id=event_id,
            meal_type=body.meal_type,
            count=body.count,
            actor=current_user,
        )
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return GenerateCouponsOut(coupons=[GeneratedCouponOut.model_validate(c) for c in coupons])


@router.get("/{event_id}/coupons", response_model=CouponListOut)
async def list_coupons(
    event_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> CouponListOut:
    try:
        coupons = await list_event_coupons(db, event_id=event_id)
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return CouponListOut(coupons=[CouponOut.model_validate(c) for c in coupons])
