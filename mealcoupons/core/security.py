from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from mealcoupons.core.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    pass


# -------------------------
# Staff passwords (bcrypt)
# -------------------------
def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# -------------------------
# JWT tokens
# -------------------------
def _encode(user_id: UUID, token_type: str, lifetime: timedelta, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
        **claims,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_access_token(*, user_id: UUID, role: str) -> str:
    # role rides along for the scanner/dashboard clients; the server re-reads it from users
    return _encode(user_id, ACCESS, timedelta(minutes=settings.JWT_ACCESS_MINUTES), role=role)


def create_refresh_token(*, user_id: UUID) -> str:
    return _encode(user_id, REFRESH, timedelta(days=settings.JWT_REFRESH_DAYS))


def decode_token(token: str, *, expected_type: str | None = None) -> dict:
    """Verify signature and expiry; with expected_type also the token kind."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e

    if expected_type is not None and payload.get("type") != expected_type:
        raise TokenError(f"{expected_type.capitalize()} token required")
    return payload
