# mealcoupons/services/redemption.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mealcoupons.core.timeutil import as_utc, utc_now
from mealcoupons.models.coupon import STATUS_EXPIRED, STATUS_UNUSED, STATUS_USED, Coupon
from mealcoupons.models.redemption import Redemption
from mealcoupons.models.user import SCANNER_ROLES, User
from mealcoupons.services.errors import (
    AlreadyRedeemed,
    CouponError,
    Expired,
    Forbidden,
    InvalidArgument,
    NotFound,
    Unauthorized,
    Unavailable,
)

logger = logging.getLogger(__name__)


@dataclass
class RedeemLookup:
    """What the scanner sent: a QR payload id, or a keyed-in ticket number."""

    coupon_id: str | uuid.UUID | None = None
    ticket_number: int | None = None
    event_id: uuid.UUID | None = None


@dataclass
class RedemptionReceipt:
    coupon_id: uuid.UUID
    event_id: uuid.UUID
    ticket_number: int
    meal_type: str
    redeemed_at: datetime


def _parse_coupon_id(raw) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw).strip())
    except ValueError:
        raise InvalidArgument("Invalid QR payload: Malformed ID")


def _validate_lookup(lookup: RedeemLookup) -> uuid.UUID | int:
    """Return the coupon id, or the ticket number when no id was sent. The id wins when both are."""
    if lookup.coupon_id is not None and str(lookup.coupon_id).strip():
        return _parse_coupon_id(lookup.coupon_id)

    if lookup.ticket_number is not None:
        if isinstance(lookup.ticket_number, bool) or int(lookup.ticket_number) <= 0:
            raise InvalidArgument("Invalid ticket number")
        return int(lookup.ticket_number)

    raise InvalidArgument("Invalid QR payload: Missing ID")


async def _resolve_ticket_number(
    db: AsyncSession,
    *,
    ticket_number: int,
    event_id: uuid.UUID | None,
) -> uuid.UUID:
    """
    Map a keyed-in ticket number to a coupon id.

    Ticket numbers are only unique per event. Without an event_id, a number shared
    by several events resolves to the one whose coupons are still valid. When all
    of them are past expiry the latest-expiring one is taken, so the caller is told
    the coupon expired. Several live matches need the event_id.
    """
    stmt = select(Coupon.id, Coupon.expires_at).where(Coupon.ticket_number == ticket_number)
    if event_id is not None:
        stmt = stmt.where(Coupon.event_id == event_id)

    res = await db.execute(stmt)
    rows = res.all()

    if not rows:
        raise NotFound(f"Ticket #{ticket_number} not found")
    if len(rows) == 1:
        return rows[0][0]

    now = utc_now()
    live = [r for r in rows if as_utc(r[1]) >= now]
    if len(live) == 1:
        return live[0][0]
    if not live:
        return max(rows, key=lambda r: as_utc(r[1]))[0]

    raise InvalidArgument(f"Ticket #{ticket_number} exists in several events; select the event first")


async def _status_failure(db: AsyncSession, coupon_id: uuid.UUID) -> CouponError:
    # a compare-and-swap lost: report whatever the winner left behind
    res = await db.execute(select(Coupon.status).where(Coupon.id == coupon_id))
    status = res.scalar_one_or_none()
    if status == STATUS_EXPIRED:
        return Expired("Coupon has expired")
    return AlreadyRedeemed("Coupon already redeemed")


async def redeem_coupon(
    db: AsyncSession,
    *,
    lookup: RedeemLookup,
    actor: User | None,
) -> RedemptionReceipt:
    """
    Move one coupon from unused to used, exactly once.

    Runs as one transaction: the coupon row is read FOR UPDATE, then flipped with
    UPDATE ... WHERE status = 'unused'. Of any number of concurrent callers only
    the one whose UPDATE matched a row inserts the redemption; the rest fail with
    AlreadyRedeemed (or Expired). A coupon past its expiry is marked expired in the
    same transaction and the call fails.

    Retrying after a committed success fails too: coupons are single use.
    """
    if actor is None:
        raise Unauthorized("Unauthorized")
    if actor.role not in SCANNER_ROLES:
        raise Forbidden("Forbidden: Only vendors/volunteers can redeem")

    key = _validate_lookup(lookup)

    # a rollback expires every instance in the session, actor included
    actor_id, actor_role = actor.id, actor.role

    try:
        if isinstance(key, uuid.UUID):
            coupon_id = key
        else:
            coupon_id = await _resolve_ticket_number(db, ticket_number=key, event_id=lookup.event_id)

        res = await db.execute(
            select(Coupon)
            .where(Coupon.id == coupon_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        coupon = res.scalar_one_or_none()

        if not coupon:
            raise NotFound("Coupon not found")
        if coupon.status == STATUS_USED:
            raise AlreadyRedeemed("Coupon already redeemed")
        if coupon.status == STATUS_EXPIRED:
            raise Expired("Coupon has expired")

        now = utc_now()

        if now > as_utc(coupon.expires_at):
            res = await db.execute(
                update(Coupon)
                .where(Coupon.id == coupon_id, Coupon.status == STATUS_UNUSED)
                .values(status=STATUS_EXPIRED)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise await _status_failure(db, coupon_id)
            await db.commit()
            logger.info("coupon %s expired on redemption attempt by %s", coupon_id, actor_id)
            raise Expired("Coupon has expired")

        res = await db.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.status == STATUS_UNUSED)
            .values(status=STATUS_USED)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise await _status_failure(db, coupon_id)

        db.add(
            Redemption(
                coupon_id=coupon_id,
                redeemed_by=actor_id,
                role=actor_role,
                redeemed_at=now,
            )
        )

        receipt = RedemptionReceipt(
            coupon_id=coupon.id,
            event_id=coupon.event_id,
            ticket_number=coupon.ticket_number,
            meal_type=coupon.meal_type,
            redeemed_at=now,
        )

        await db.commit()

    except CouponError:
        await db.rollback()
        raise
    except IntegrityError as e:
        # redemptions.coupon_id is unique
        await db.rollback()
        raise AlreadyRedeemed("Coupon already redeemed") from e
    except DBAPIError as e:
        await db.rollback()
        logger.exception("redemption failed lookup=%s actor=%s", lookup, actor_id)
        raise Unavailable("Redemption could not be recorded. Try again.") from e

    logger.info(
        "coupon %s (ticket #%d, %s) redeemed by %s [%s]",
        receipt.coupon_id,
        receipt.ticket_number,
        receipt.meal_type,
        actor_id,
        actor_role,
    )
    return receipt
