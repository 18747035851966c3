"""
Discount Engine Service for the offers & rewards module
Implements order totals, coupon eligibility, coupon discount strategies,
discount composition and best-discount selection.

Everything here is pure: no storage reads or writes, no shared mutable
state. Callers load coupons, customers and orders first.
"""
import logging
import secrets
import string
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from core.utils.money import D, ZERO, HUNDRED, clamp
from schemas.discounts import (
    DiscountType,
    ValueType,
    PromotionStatus,
    OrderSnapshot,
    CouponSnapshot,
    CustomerSnapshot,
    CouponValidationResult,
    MembershipResolution,
    DiscountBreakdown,
)
from services.loyalty import MembershipTierEngine, LoyaltyPointsConverter

logger = logging.getLogger(__name__)

COUPON_CODE_ALPHABET = string.ascii_uppercase + string.digits


def calculate_order_total(order: Optional[OrderSnapshot]) -> Decimal:
    """Sum of price × quantity over the items, or the stored total when there are none."""
    if order is None:
        return ZERO
    if order.items:
        return sum((D(item.price) * item.quantity for item in order.items), ZERO)
    return D(order.total_amount)


def is_coupon_expired(coupon: CouponSnapshot, today: date) -> bool:
    return coupon.valid_until is not None and today > coupon.valid_until


def is_within_schedule(valid_from: Optional[date], valid_until: Optional[date], today: date) -> bool:
    """Missing bounds are unconstrained; both bounds are inclusive."""
    if valid_from is not None and today < valid_from:
        return False
    if valid_until is not None and today > valid_until:
        return False
    return True


def format_rupees(amount: Decimal) -> str:
    amount = D(amount)
    if amount == amount.to_integral_value():
        return f"₹{int(amount)}"
    return f"₹{amount:.2f}"


def select_best_discount(candidates: Iterable[DiscountBreakdown]) -> Optional[DiscountBreakdown]:
    """
    Pick the candidate with the strictly greatest total discount.

    Ties keep the first candidate seen. Returns None for an empty input.
    """
    best = None
    for candidate in candidates:
        if best is None or candidate.total_discount > best.total_discount:
            best = candidate
    return best


def generate_coupon_code(length: int = 8, existing_codes: Iterable[str] = ()) -> str:
    """Random A-Z0-9 code that does not collide (case-insensitively) with existing ones."""
    taken = {code.upper() for code in existing_codes}
    while True:
        code = "".join(secrets.choice(COUPON_CODE_ALPHABET) for _ in range(length))
        if code not in taken:
            return code


def validate_coupon_form(
    coupon: CouponSnapshot,
    existing_coupons: Sequence[CouponSnapshot] = ()
) -> List[str]:
    """
    Administrator form checks for creating or editing a coupon.
    Returns every problem found, in display order.
    """
    errors = []
    code = (coupon.code or "").strip()

    if not code:
        errors.append("Coupon code is required")
    if len(code) < 4:
        errors.append("Coupon code must be at least 4 characters")
    if code and any(
        other.code.upper() == code.upper() and other.id != coupon.id
        for other in existing_coupons
    ):
        errors.append("This coupon code already exists")

    if D(coupon.discount_value) <= 0:
        errors.append("Discount value must be greater than 0")
    if _is_percentage(coupon.discount_type, coupon.value_type) and D(coupon.discount_value) > 100:
        errors.append("Percentage discount cannot exceed 100%")

    if coupon.valid_from is None:
        errors.append("Start date is required")
    if coupon.valid_until is None:
        errors.append("End date is required")
    if coupon.valid_from and coupon.valid_until and coupon.valid_from >= coupon.valid_until:
        errors.append("End date must be after start date")

    return errors


def _is_percentage(discount_type: str, value_type: str) -> bool:
    if discount_type == DiscountType.PERCENTAGE.value:
        return True
    return (
        discount_type in (DiscountType.CATEGORY.value, DiscountType.ITEM.value)
        and value_type == ValueType.PERCENTAGE.value
    )


class DiscountEngine:
    """Engine for coupon validation, discount calculation and optimal discount selection"""

    def __init__(
        self,
        tier_engine: Optional[MembershipTierEngine] = None,
        points_converter: Optional[LoyaltyPointsConverter] = None
    ):
        self.tier_engine = tier_engine or MembershipTierEngine()
        self.points_converter = points_converter or LoyaltyPointsConverter()
        self._strategies: Dict[str, Callable[[OrderSnapshot, CouponSnapshot, Decimal], Decimal]] = {
            DiscountType.PERCENTAGE.value: self._percentage_discount,
            DiscountType.FLAT.value: self._flat_discount,
            DiscountType.BOGO.value: self._bogo_discount,
            DiscountType.CATEGORY.value: self._category_discount,
            DiscountType.ITEM.value: self._item_discount,
        }

    # ============================================================================
    # ELIGIBILITY
    # ============================================================================

    def validate_coupon(
        self,
        coupon: Optional[CouponSnapshot],
        order: Optional[OrderSnapshot],
        customer: Optional[CustomerSnapshot] = None,
        as_of: Optional[date] = None
    ) -> CouponValidationResult:
        """
        Decide whether a coupon applies to an order.

        Checks run in a fixed order and stop at the first failure, so an
        expired coupon always reports expiry before any window or
        minimum-order problem.

        Args:
            coupon: Coupon to check
            order: Order being priced
            customer: Optional customer for per-user and first-order rules
            as_of: Date to evaluate validity against (defaults to today)

        Returns:
            CouponValidationResult with a user-facing reason
        """
        if coupon is None or order is None:
            return CouponValidationResult(valid=False, reason="Invalid coupon or order")

        today = as_of or date.today()

        if coupon.status != PromotionStatus.ACTIVE.value:
            return CouponValidationResult(valid=False, reason="Coupon is not active")

        if is_coupon_expired(coupon, today):
            return CouponValidationResult(valid=False, reason="Coupon has expired")

        if not is_within_schedule(coupon.valid_from, coupon.valid_until, today):
            return CouponValidationResult(valid=False, reason="Coupon is not valid at this time")

        if coupon.min_order_amount and calculate_order_total(order) < D(coupon.min_order_amount):
            return CouponValidationResult(
                valid=False,
                reason=f"Minimum order amount of {format_rupees(coupon.min_order_amount)} required"
            )

        if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
            return CouponValidationResult(valid=False, reason="Coupon usage limit reached")

        if customer is not None and coupon.per_user_limit:
            used = coupon.user_usage_count.get(str(customer.id), 0)
            if used >= coupon.per_user_limit:
                return CouponValidationResult(
                    valid=False,
                    reason="You have reached the usage limit for this coupon"
                )

        if coupon.first_time_only and customer is not None and customer.order_count > 0:
            return CouponValidationResult(valid=False, reason="This coupon is only for first-time users")

        return CouponValidationResult(valid=True, reason="Coupon is valid")

    def get_eligible_coupons(
        self,
        coupons: Iterable[CouponSnapshot],
        order: OrderSnapshot,
        customer: Optional[CustomerSnapshot] = None,
        as_of: Optional[date] = None
    ) -> List[CouponSnapshot]:
        return [
            coupon for coupon in coupons or []
            if self.validate_coupon(coupon, order, customer, as_of).valid
        ]

    # ============================================================================
    # COUPON DISCOUNT STRATEGIES
    # ============================================================================

    def calculate_coupon_discount(self, order: Optional[OrderSnapshot], coupon: Optional[CouponSnapshot]) -> Decimal:
        """
        Rupee discount one coupon grants on an order.

        The result is never negative and never more than the order subtotal.
        Usage counters are not touched; recording a redemption belongs to
        the persistence layer.
        """
        if coupon is None or order is None:
            return ZERO

        subtotal = calculate_order_total(order)
        strategy = self._strategies.get(coupon.discount_type)
        if strategy is None:
            logger.warning(f"Unknown discount type {coupon.discount_type!r} on coupon {coupon.code}")
            return ZERO

        return clamp(strategy(order, coupon, subtotal), ZERO, subtotal)

    def _percentage_discount(self, order: OrderSnapshot, coupon: CouponSnapshot, subtotal: Decimal) -> Decimal:
        discount = subtotal * D(coupon.discount_value) / HUNDRED
        if coupon.max_discount_amount:
            discount = min(discount, D(coupon.max_discount_amount))
        return discount

    def _flat_discount(self, order: OrderSnapshot, coupon: CouponSnapshot, subtotal: Decimal) -> Decimal:
        return D(coupon.discount_value)

    def _bogo_discount(self, order: OrderSnapshot, coupon: CouponSnapshot, subtotal: Decimal) -> Decimal:
        config = coupon.bogo_config
        if not order.items or config is None:
            return ZERO

        buy_item = next((item for item in order.items if item.id == config.buy_item_id), None)
        get_item = next((item for item in order.items if item.id == config.get_item_id), None)
        if buy_item is None or get_item is None:
            return ZERO

        get_discount_percent = HUNDRED if config.get_discount_percent is None else D(config.get_discount_percent)
        free_quantity = min(buy_item.quantity, get_item.quantity)
        return free_quantity * (D(get_item.price) * get_discount_percent / HUNDRED)

    def _category_discount(self, order: OrderSnapshot, coupon: CouponSnapshot, subtotal: Decimal) -> Decimal:
        if not order.items or not coupon.category_id:
            return ZERO

        category_total = sum(
            (D(item.price) * item.quantity for item in order.items if item.category_id == coupon.category_id),
            ZERO
        )
        return self._scoped_discount(coupon, category_total)

    def _item_discount(self, order: OrderSnapshot, coupon: CouponSnapshot, subtotal: Decimal) -> Decimal:
        if not order.items or not coupon.item_id:
            return ZERO

        target = next((item for item in order.items if item.id == coupon.item_id), None)
        if target is None:
            return ZERO
        return self._scoped_discount(coupon, D(target.price) * target.quantity)

    def _scoped_discount(self, coupon: CouponSnapshot, scoped_total: Decimal) -> Decimal:
        # Scoped discounts clamp to their own line or category total
        if coupon.value_type == ValueType.PERCENTAGE.value:
            discount = scoped_total * D(coupon.discount_value) / HUNDRED
            if coupon.max_discount_amount:
                discount = min(discount, D(coupon.max_discount_amount))
        else:
            discount = D(coupon.discount_value)
        return clamp(discount, ZERO, scoped_total)

    # ============================================================================
    # COMPOSITION AND SELECTION
    # ============================================================================

    def resolve_membership(self, customer: Optional[CustomerSnapshot]) -> MembershipResolution:
        return self.tier_engine.resolve_membership_discount(customer)

    def compute_final_amount(
        self,
        order: Optional[OrderSnapshot],
        coupon: Optional[CouponSnapshot] = None,
        membership: Optional[MembershipResolution] = None,
        points_to_redeem: int = 0
    ) -> DiscountBreakdown:
        """
        Combine coupon, membership and points discounts into one breakdown.

        The coupon applies first; membership is a percentage of what is left
        after the coupon. The summed discount is capped at the subtotal and
        the payable amount never drops below zero.

        Args:
            order: Order being priced
            coupon: Coupon to apply (assumed already validated)
            membership: Result of membership resolution, applied only when valid
            points_to_redeem: Loyalty points to convert at the configured point value

        Returns:
            DiscountBreakdown recording every source and what was applied
        """
        points = max(int(points_to_redeem or 0), 0)
        subtotal = calculate_order_total(order)

        coupon_discount = self.calculate_coupon_discount(order, coupon) if coupon else ZERO
        points_discount = self.points_converter.points_to_rupees(points)

        membership_discount = ZERO
        if membership is not None and membership.valid:
            after_coupon = subtotal - coupon_discount
            membership_discount = after_coupon * D(membership.discount_percent) / HUNDRED

        total_discount = min(coupon_discount + membership_discount + points_discount, subtotal)
        final_amount = max(subtotal - total_discount, ZERO)

        return DiscountBreakdown(
            subtotal=subtotal,
            coupon_discount=coupon_discount,
            membership_discount=membership_discount,
            points_discount=points_discount,
            total_discount=total_discount,
            final_amount=final_amount,
            applied_coupon=coupon,
            applied_membership=membership,
            points_redeemed=points
        )

    def enumerate_candidates(
        self,
        order: OrderSnapshot,
        coupons: Sequence[CouponSnapshot],
        membership: Optional[MembershipResolution] = None,
        points_to_redeem: int = 0,
        include_all_sources: bool = False
    ) -> List[DiscountBreakdown]:
        """
        Build the breakdowns the auto-select path compares.

        Order of candidates: no discount, each coupon alone, each coupon with
        membership (when membership is valid), each coupon with points (when
        points are requested). Coupon + membership + points together is only
        added when include_all_sources is set.
        """
        candidates = [self.compute_final_amount(order)]

        candidates.extend(self.compute_final_amount(order, coupon) for coupon in coupons)

        has_membership = membership is not None and membership.valid
        if has_membership:
            candidates.extend(
                self.compute_final_amount(order, coupon, membership) for coupon in coupons
            )

        if points_to_redeem > 0:
            candidates.extend(
                self.compute_final_amount(order, coupon, None, points_to_redeem) for coupon in coupons
            )
            if include_all_sources and has_membership:
                candidates.extend(
                    self.compute_final_amount(order, coupon, membership, points_to_redeem)
                    for coupon in coupons
                )

        return candidates

    def auto_select(
        self,
        order: OrderSnapshot,
        coupons: Iterable[CouponSnapshot],
        customer: Optional[CustomerSnapshot] = None,
        points_to_redeem: int = 0,
        as_of: Optional[date] = None,
        include_all_sources: bool = False,
        apply_membership: bool = True
    ) -> Optional[DiscountBreakdown]:
        """Filter eligible coupons, enumerate candidates and return the best one."""
        eligible = self.get_eligible_coupons(coupons, order, customer, as_of)
        membership = self.resolve_membership(customer) if apply_membership else None
        candidates = self.enumerate_candidates(
            order, eligible, membership, points_to_redeem, include_all_sources
        )
        best = select_best_discount(candidates)

        if best is not None and best.applied_coupon is not None:
            logger.info(
                f"Selected coupon {best.applied_coupon.code} with total discount {best.total_discount} "
                f"from {len(candidates)} candidates"
            )
        return best
