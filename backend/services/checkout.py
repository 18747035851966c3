"""
Checkout orchestration: loads the order, customer and promotions, runs the
discount engine and, on confirmation, records the chosen breakdown.
"""
import logging
from typing import Optional, Tuple, Dict, Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from schemas.discounts import (
    OrderSnapshot,
    CustomerSnapshot,
    CouponSnapshot,
    DiscountBreakdown,
    CouponValidationResult,
    DiscountPreviewRequest,
    CouponValidateRequest,
    ApplyDiscountRequest,
)
from services.coupons import CouponService
from services.discounts import DiscountEngine, calculate_order_total
from services.loyalty import LoyaltyService
from services.settings import SettingsService
from core.exceptions import ValidationException, NotFoundException
from core.utils.uuid_utils import parse_uuid

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.coupon_service = CouponService(db)
        self.loyalty_service = LoyaltyService(db)
        self.settings_service = SettingsService(db)

    async def _build_engine(self) -> DiscountEngine:
        return DiscountEngine(
            tier_engine=await self.settings_service.get_tier_engine(),
            points_converter=await self.settings_service.get_points_converter()
        )

    async def _load_order(self, order_id: Optional[str], order: Optional[OrderSnapshot]) -> OrderSnapshot:
        if order_id:
            return await self.coupon_service.get_order_snapshot(order_id)
        if order is None:
            raise ValidationException(
                message="An order is required",
                errors=["Provide either order_id or order"]
            )
        return order

    async def _load_customer(self, customer_id: Optional[str]) -> Tuple[Optional[UUID], Optional[CustomerSnapshot]]:
        if not customer_id:
            return None, None
        user_id = parse_uuid(customer_id, "customer")
        return user_id, await self.loyalty_service.get_customer(user_id)

    async def _redeemable_points(
        self,
        engine: DiscountEngine,
        user_id: Optional[UUID],
        requested: int,
        order: OrderSnapshot
    ) -> int:
        """Requested points clamped to the balance and the order subtotal; 0 without a customer."""
        if requested <= 0 or user_id is None:
            return 0
        balance = await self.loyalty_service.get_points_balance(user_id)
        points = engine.points_converter.clamp_points(requested, balance, calculate_order_total(order))
        if points != requested:
            logger.info(f"Clamped points redemption from {requested} to {points} for customer {user_id}")
        return points

    async def _validated_coupon(
        self,
        engine: DiscountEngine,
        code: str,
        order: OrderSnapshot,
        customer: Optional[CustomerSnapshot]
    ) -> CouponSnapshot:
        coupon = await self.coupon_service.get_coupon_snapshot(code)
        validation = engine.validate_coupon(coupon, order, customer)
        if not validation.valid:
            raise ValidationException(message=validation.reason, errors=[validation.reason])
        return coupon

    async def preview(self, request: DiscountPreviewRequest) -> DiscountBreakdown:
        """Breakdown for an explicitly chosen coupon, membership and points."""
        order = await self._load_order(request.order_id, request.order)
        user_id, customer = await self._load_customer(request.customer_id)
        engine = await self._build_engine()

        coupon = None
        if request.coupon_code:
            coupon = await self._validated_coupon(engine, request.coupon_code, order, customer)

        membership = engine.resolve_membership(customer) if request.apply_membership else None
        points = await self._redeemable_points(engine, user_id, request.points_to_redeem, order)

        return engine.compute_final_amount(order, coupon, membership, points)

    async def best(self, request: DiscountPreviewRequest) -> DiscountBreakdown:
        """
        Price the order with the best eligible active coupon.

        Auto-select only chooses the coupon; the returned breakdown always
        composes it with the customer's membership and the requested points.
        """
        order = await self._load_order(request.order_id, request.order)
        user_id, customer = await self._load_customer(request.customer_id)
        engine = await self._build_engine()

        coupons = await self.coupon_service.get_active_coupons()
        points = await self._redeemable_points(engine, user_id, request.points_to_redeem, order)

        selected = engine.auto_select(
            order,
            coupons,
            customer,
            points_to_redeem=points,
            apply_membership=request.apply_membership
        )
        coupon = selected.applied_coupon if selected is not None else None
        membership = engine.resolve_membership(customer) if request.apply_membership else None

        return engine.compute_final_amount(order, coupon, membership, points)

    async def validate_coupon(self, request: CouponValidateRequest) -> CouponValidationResult:
        order = await self._load_order(request.order_id, request.order)
        _, customer = await self._load_customer(request.customer_id)
        engine = await self._build_engine()

        try:
            coupon = await self.coupon_service.get_coupon_snapshot(request.coupon_code)
        except NotFoundException:
            return CouponValidationResult(valid=False, reason="Invalid coupon code")

        return engine.validate_coupon(coupon, order, customer)

    async def apply(self, request: ApplyDiscountRequest) -> Dict[str, Any]:
        """
        Recompute the breakdown against stored state and record it.

        The breakdown is rebuilt here rather than trusted from the client,
        so usage limits and balances are checked at confirmation time.
        """
        breakdown = await self.preview(
            DiscountPreviewRequest(
                order_id=request.order_id,
                customer_id=request.customer_id,
                coupon_code=request.coupon_code,
                apply_membership=request.apply_membership,
                points_to_redeem=request.points_to_redeem,
            )
        )
        customer_id = parse_uuid(request.customer_id, "customer") if request.customer_id else None
        order = await self.coupon_service.record_redemption(request.order_id, breakdown, customer_id)

        return {
            "order_id": str(order.id),
            "discount_amount": order.discount_amount,
            "final_amount": order.final_amount,
            "coupon_code": order.coupon_code,
            "membership_tier": order.membership_tier,
            "points_redeemed": order.points_redeemed,
            "breakdown": breakdown.model_dump(mode="json"),
        }
