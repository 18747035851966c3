"""
Property-based tests for discount composition
Covers the ceiling invariant, per-coupon clamping, membership ordering
and selector stability
"""
import pytest
from decimal import Decimal
from hypothesis import given, strategies as st, settings
from hypothesis.strategies import composite

from schemas.discounts import (
    OrderItem,
    OrderSnapshot,
    CouponSnapshot,
    BogoConfig,
    MembershipResolution,
    DiscountBreakdown,
)
from services.discounts import DiscountEngine, calculate_order_total, select_best_discount

ITEM_IDS = ["paneer", "naan", "lassi", "dosa", "chai"]
CATEGORY_IDS = ["mains", "breads", "drinks"]

money = st.decimals(min_value=Decimal("0"), max_value=Decimal("5000"), places=2)


@composite
def orders(draw):
    """Generate orders of one to five menu lines"""
    item_ids = draw(st.lists(st.sampled_from(ITEM_IDS), min_size=1, max_size=5, unique=True))
    items = [
        OrderItem(
            id=item_id,
            category_id=draw(st.sampled_from(CATEGORY_IDS)),
            price=draw(st.decimals(min_value=Decimal("1"), max_value=Decimal("1500"), places=2)),
            quantity=draw(st.integers(min_value=1, max_value=6)),
        )
        for item_id in item_ids
    ]
    return OrderSnapshot(id="order", items=items)


@composite
def coupons(draw):
    """Generate coupons of every strategy, including nonsense values"""
    discount_type = draw(st.sampled_from(["percentage", "flat", "bogo", "category", "item", "unknown"]))
    value = (
        draw(st.decimals(min_value=Decimal("1"), max_value=Decimal("100"), places=0))
        if discount_type == "percentage"
        else draw(st.decimals(min_value=Decimal("1"), max_value=Decimal("10000"), places=2))
    )
    bogo = None
    if discount_type == "bogo":
        bogo = BogoConfig(
            buy_item_id=draw(st.sampled_from(ITEM_IDS)),
            get_item_id=draw(st.sampled_from(ITEM_IDS)),
            get_discount_percent=draw(st.one_of(st.none(), st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=0))),
        )
    return CouponSnapshot(
        id=draw(st.text(alphabet="abcdef0123456789", min_size=4, max_size=8)),
        code="PROP" + draw(st.text(alphabet="ABCDEFGHIJ", min_size=2, max_size=6)),
        discount_type=discount_type,
        discount_value=value,
        value_type=draw(st.sampled_from(["flat", "percentage"])),
        max_discount_amount=draw(st.one_of(st.none(), money)),
        bogo_config=bogo,
        category_id=draw(st.sampled_from(CATEGORY_IDS)),
        item_id=draw(st.sampled_from(ITEM_IDS)),
    )


memberships = st.one_of(
    st.none(),
    st.builds(
        MembershipResolution,
        valid=st.booleans(),
        discount_percent=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=0),
        tier=st.sampled_from(["silver", "gold", "platinum"]),
    ),
)


@pytest.fixture(scope="module")
def engine():
    return DiscountEngine()


class TestDiscountProperties:

    @given(orders(), coupons())
    @settings(max_examples=200, deadline=None)
    def test_coupon_discount_is_clamped_to_subtotal(self, engine, order, coupon):
        """A single coupon never discounts below zero or beyond the order subtotal."""
        discount = engine.calculate_coupon_discount(order, coupon)
        assert Decimal("0") <= discount <= calculate_order_total(order)

    @given(orders(), st.one_of(st.none(), coupons()), memberships, st.integers(min_value=-100, max_value=100000))
    @settings(max_examples=200, deadline=None)
    def test_total_discount_never_exceeds_subtotal(self, engine, order, coupon, membership, points):
        """total_discount = min(sum of parts, subtotal) and the payable amount is never negative."""
        breakdown = engine.compute_final_amount(order, coupon, membership, points)

        parts = breakdown.coupon_discount + breakdown.membership_discount + breakdown.points_discount
        assert breakdown.total_discount == min(parts, breakdown.subtotal)
        assert breakdown.final_amount == breakdown.subtotal - breakdown.total_discount
        assert breakdown.final_amount >= 0

    @given(orders(), coupons(), st.decimals(min_value=Decimal("1"), max_value=Decimal("100"), places=0))
    @settings(max_examples=100, deadline=None)
    def test_membership_is_applied_to_the_post_coupon_amount(self, engine, order, coupon, percent):
        membership = MembershipResolution(valid=True, discount_percent=percent, tier="gold")
        breakdown = engine.compute_final_amount(order, coupon, membership)

        expected = (breakdown.subtotal - breakdown.coupon_discount) * percent / Decimal("100")
        assert breakdown.membership_discount == expected

    @given(st.lists(st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=1), min_size=1, max_size=12))
    @settings(max_examples=100, deadline=None)
    def test_selector_returns_first_maximum(self, totals):
        candidates = [
            DiscountBreakdown(subtotal=Decimal("100"), total_discount=total, final_amount=Decimal("100") - total)
            for total in totals
        ]
        best = select_best_discount(candidates)

        assert best is candidates[totals.index(max(totals))]

    @given(orders(), st.lists(coupons(), max_size=4), memberships, st.integers(min_value=0, max_value=2000))
    @settings(max_examples=100, deadline=None)
    def test_best_candidate_dominates_every_candidate(self, engine, order, coupon_list, membership, points):
        candidates = engine.enumerate_candidates(order, coupon_list, membership, points)
        best = select_best_discount(candidates)

        assert best is not None
        assert all(best.total_discount >= candidate.total_discount for candidate in candidates)
