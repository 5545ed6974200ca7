# mealcoupons/services/errors.py
from __future__ import annotations


class CouponError(Exception):
    """Base for every failure the coupon services report to callers."""

    status_code = 400


class InvalidArgument(CouponError):
    status_code = 400


class Unauthorized(CouponError):
    status_code = 401


class Forbidden(CouponError):
    status_code = 403


class NotFound(CouponError):
    status_code = 404


# duplicates and expiry are client errors on the wire; the class keeps them apart
class AlreadyExists(CouponError):
    status_code = 400


class AlreadyRedeemed(CouponError):
    status_code = 400


class Expired(CouponError):
    status_code = 400


class Unavailable(CouponError):
    status_code = 500
