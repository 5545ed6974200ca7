from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.db import get_db
from mealcoupons.core.deps import get_current_user
from mealcoupons.models.user import User
from mealcoupons.schemas.redeem import RedeemIn, RedeemOut, RedemptionReceiptOut
from mealcoupons.services.errors import CouponError
from mealcoupons.services.redemption import RedeemLookup, redeem_coupon

router = APIRouter(tags=["Redeem"])


@router.post("/redeem", response_model=RedeemOut)
async def redeem(
    body: RedeemIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RedeemOut:
    try:
        receipt = await redeem_coupon(
            db,
            lookup=RedeemLookup(
                coupon_id=body.id,
                ticket_number=body.ticket_number,
                event_id=body.event_id,
            ),
            actor=current_user,
        )
    except CouponError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return RedeemOut(receipt=RedemptionReceiptOut.model_validate(receipt))
