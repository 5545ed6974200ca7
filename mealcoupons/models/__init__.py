# mealcoupons/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from mealcoupons.models.user import User  # noqa: F401
from mealcoupons.models.event import Event  # noqa: F401

from mealcoupons.models.coupon import Coupon  # noqa: F401
from mealcoupons.models.coupon_batch import CouponBatch, TicketSequence  # noqa: F401
from mealcoupons.models.redemption import Redemption  # noqa: F401
