# Services package - Consolidated imports only

from .discounts import DiscountEngine
from .loyalty import LoyaltyService, MembershipTierEngine, LoyaltyPointsConverter
from .coupons import CouponService
from .settings import SettingsService
from .checkout import CheckoutService

__all__ = [
    "DiscountEngine",
    "LoyaltyService",
    "MembershipTierEngine",
    "LoyaltyPointsConverter",
    "CouponService",
    "SettingsService",
    "CheckoutService",
]
