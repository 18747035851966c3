from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from datetime import date
from decimal import Decimal
from enum import Enum


class DiscountType(str, Enum):
    """Coupon and offer discount strategies"""
    PERCENTAGE = "percentage"
    FLAT = "flat"
    BOGO = "bogo"
    CATEGORY = "category"
    ITEM = "item"


class ValueType(str, Enum):
    """How a category or item scoped discount applies its value"""
    PERCENTAGE = "percentage"
    FLAT = "flat"


class PromotionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class OrderItem(BaseModel):
    """One line of an order. `id` is the menu item id."""
    id: str
    name: Optional[str] = None
    category_id: Optional[str] = None
    price: Decimal = Decimal("0")
    quantity: int = 1


class OrderSnapshot(BaseModel):
    id: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    total_amount: Optional[Decimal] = None


class BogoConfig(BaseModel):
    buy_item_id: str
    get_item_id: str
    get_discount_percent: Optional[Decimal] = None


class CouponSnapshot(BaseModel):
    """
    In-memory coupon record as loaded by the caller.
    Fields are deliberately lenient: a broken record degrades to a zero
    discount in the engine instead of failing validation here.
    """
    id: Optional[str] = None
    code: str = ""
    name: Optional[str] = None
    description: Optional[str] = None
    status: str = PromotionStatus.ACTIVE.value
    discount_type: str = DiscountType.PERCENTAGE.value
    discount_value: Decimal = Decimal("0")
    value_type: str = ValueType.FLAT.value
    max_discount_amount: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    per_user_limit: Optional[int] = None
    user_usage_count: Dict[str, int] = Field(default_factory=dict)
    first_time_only: bool = False
    bogo_config: Optional[BogoConfig] = None
    category_id: Optional[str] = None
    item_id: Optional[str] = None


class OfferSnapshot(BaseModel):
    """Storefront-wide promotion, applied without a code."""
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    status: str = PromotionStatus.ACTIVE.value
    offer_type: str = DiscountType.PERCENTAGE.value
    discount_value: Decimal = Decimal("0")
    value_type: str = ValueType.FLAT.value
    max_discount_amount: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    bogo_config: Optional[BogoConfig] = None
    category_id: Optional[str] = None
    item_id: Optional[str] = None


class CustomerSnapshot(BaseModel):
    id: str
    membership_tier: Optional[str] = None
    order_count: int = 0


class CouponValidationResult(BaseModel):
    valid: bool
    reason: str


class MembershipResolution(BaseModel):
    valid: bool
    discount_percent: Decimal = Decimal("0")
    tier: Optional[str] = None


class DiscountBreakdown(BaseModel):
    """Computed decomposition of an order's price. Never the source of truth."""
    subtotal: Decimal
    coupon_discount: Decimal = Decimal("0")
    membership_discount: Decimal = Decimal("0")
    points_discount: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    final_amount: Decimal
    applied_coupon: Optional[CouponSnapshot] = None
    applied_membership: Optional[MembershipResolution] = None
    points_redeemed: int = 0


class OfferOverlapResult(BaseModel):
    has_overlap: bool
    conflicting_offers: List[OfferSnapshot] = Field(default_factory=list)


# ============================================================================
# REQUEST / RESPONSE SCHEMAS
# ============================================================================

class DiscountPreviewRequest(BaseModel):
    """Price an order. Either an inline order or a stored order id is required."""
    order_id: Optional[str] = None
    order: Optional[OrderSnapshot] = None
    customer_id: Optional[str] = None
    coupon_code: Optional[str] = None
    apply_membership: bool = True
    points_to_redeem: int = Field(default=0, ge=0)


class CouponValidateRequest(BaseModel):
    coupon_code: str = Field(..., min_length=1)
    order_id: Optional[str] = None
    order: Optional[OrderSnapshot] = None
    customer_id: Optional[str] = None


class ApplyDiscountRequest(BaseModel):
    order_id: str
    customer_id: Optional[str] = None
    coupon_code: Optional[str] = None
    apply_membership: bool = True
    points_to_redeem: int = Field(default=0, ge=0)


class OfferValidateRequest(BaseModel):
    offer: OfferSnapshot


class FormValidationResponse(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    conflicting_offers: List[OfferSnapshot] = Field(default_factory=list)
