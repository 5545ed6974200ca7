from __future__ import annotations

from fastapi import APIRouter, Depends

from mealcoupons.core.deps import get_current_user
from mealcoupons.models.user import User
from mealcoupons.schemas.auth import MeOut

router = APIRouter(tags=["Me"])


@router.get("/me", response_model=MeOut)
async def me(current_user: User = Depends(get_current_user)) -> MeOut:
    return MeOut(
        id=current_user.id,
        username=current_user.username,
        role=current_user.role,
        email=current_user.email,
        is_active=bool(current_user.is_active),
    )
