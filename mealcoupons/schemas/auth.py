from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class MeOut(BaseModel):
    id: UUID
    username: str
    role: str
    email: str | None = None
    is_active: bool
