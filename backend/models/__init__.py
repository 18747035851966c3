# Models package - Consolidated imports only
from .user import User
from .orders import Order, OrderItem
from .discounts import Coupon, Offer
from .loyalty import LoyaltyPoints
from .settings import SystemSettings

__all__ = [
    "User",
    "Order",
    "OrderItem",
    "Coupon",
    "Offer",
    "LoyaltyPoints",
    "SystemSettings",
]
