from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, and_
from typing import Optional, List, Dict, Any, Iterable, Union
from uuid import UUID
from decimal import Decimal, ROUND_FLOOR

from models.user import User
from models.orders import Order
from models.loyalty import LoyaltyPoints
from schemas.discounts import CustomerSnapshot, MembershipResolution
from schemas.loyalty import (
    MembershipTier,
    RewardPointsConfig,
    PointsRedemptionResult,
    MembershipUpgradeCheck,
)
from core.exceptions import NotFoundException, ValidationException
from core.utils.logging import structured_logger
from core.config import settings
from core.utils.money import D, ZERO


TierInput = Union[MembershipTier, Dict[str, Any]]


def validate_tier_config(tiers: Iterable[Dict[str, Any]]) -> List[str]:
    """
    Check an administrator-submitted tier table.
    Returns human-readable problems; an empty list means the table is usable.
    """
    errors = []
    rows = list(tiers or [])
    if not rows:
        return ["At least one membership tier is required"]

    seen = set()
    for index, row in enumerate(rows, start=1):
        name = str(row.get("name") or "").strip()
        if not name:
            errors.append(f"Tier {index}: name is required")
        elif name.lower() in seen:
            errors.append(f"Tier name '{name}' is used more than once")
        else:
            seen.add(name.lower())

        threshold = row.get("threshold")
        if threshold is None or threshold == "" or D(threshold) < 0:
            errors.append(f"Tier {index}: spending threshold must be 0 or more")

        discount = row.get("discount")
        if discount is None or discount == "" or not (0 <= D(discount) <= 100):
            errors.append(f"Tier {index}: discount must be between 0 and 100")

    return errors


class MembershipTierEngine:
    """
    Threshold ladder mapping lifetime paid spend to a tier, and a tier to its
    percentage discount. One instance is the single source of truth for both
    checkout discounts and the tier batch job.
    """

    def __init__(self, tiers: Optional[Iterable[TierInput]] = None):
        raw = settings.DEFAULT_MEMBERSHIP_TIERS if tiers is None else tiers
        parsed = [tier if isinstance(tier, MembershipTier) else MembershipTier(**tier) for tier in raw]
        self.tiers: List[MembershipTier] = sorted(parsed, key=lambda tier: tier.threshold)
        self._discounts = {tier.name.lower(): tier.discount for tier in self.tiers}

    def resolve_tier(self, lifetime_spend: Any) -> Optional[str]:
        """Highest tier whose threshold the spend meets, or None."""
        spend = D(lifetime_spend)
        for tier in reversed(self.tiers):
            if spend >= tier.threshold:
                return tier.name
        return None

    def discount_for(self, tier_name: Optional[str]) -> Decimal:
        if not tier_name:
            return ZERO
        return self._discounts.get(tier_name.lower(), ZERO)

    def resolve_membership_discount(self, customer: Optional[CustomerSnapshot]) -> MembershipResolution:
        if customer is None or not customer.membership_tier:
            return MembershipResolution(valid=False, discount_percent=ZERO, tier=None)

        discount_percent = self.discount_for(customer.membership_tier)
        return MembershipResolution(
            valid=discount_percent > 0,
            discount_percent=discount_percent,
            tier=customer.membership_tier
        )

    def check_membership_upgrade(
        self,
        customer: Optional[CustomerSnapshot],
        lifetime_spend: Any
    ) -> MembershipUpgradeCheck:
        current = customer.membership_tier.lower() if customer and customer.membership_tier else None
        new_tier = self.resolve_tier(lifetime_spend)
        if new_tier is not None and new_tier.lower() != current:
            return MembershipUpgradeCheck(should_upgrade=True, new_tier=new_tier)
        return MembershipUpgradeCheck(should_upgrade=False, new_tier=current)

    def to_config(self) -> List[Dict[str, Any]]:
        return [tier.model_dump(mode="json") for tier in self.tiers]


class LoyaltyPointsConverter:
    """Converts between reward points and rupees at the configured rates"""

    def __init__(self, config: Optional[RewardPointsConfig] = None):
        if config is None:
            config = RewardPointsConfig(
                points_per_rupee=D(settings.POINTS_PER_RUPEE),
                points_value=D(settings.POINTS_VALUE),
                min_redeemable_points=settings.MIN_REDEEMABLE_POINTS,
            )
        self.config = config
        self.points_per_rupee = D(config.points_per_rupee)
        self.points_value = D(config.points_value)
        self.min_redeemable_points = config.min_redeemable_points

    def points_to_rupees(self, points: int) -> Decimal:
        return D(max(int(points or 0), 0)) * self.points_value

    def rupees_to_points(self, rupees: Any) -> int:
        return int((D(rupees) * self.points_per_rupee).to_integral_value(rounding=ROUND_FLOOR))

    def points_earned_for_order(self, amount: Any) -> int:
        """Points accrued on a paid order, rounded down."""
        return max(self.rupees_to_points(amount), 0)

    def max_redeemable_points(self, balance: int, subtotal: Any) -> int:
        if balance < self.min_redeemable_points:
            return 0
        covered = (D(subtotal) / self.points_value).to_integral_value(rounding=ROUND_FLOOR)
        return max(min(balance, int(covered)), 0)

    def clamp_points(self, requested: int, balance: int, subtotal: Any) -> int:
        return max(min(int(requested or 0), self.max_redeemable_points(balance, subtotal)), 0)

    def validate_redemption(self, points: int, balance: int, subtotal: Any) -> PointsRedemptionResult:
        max_redeemable = self.max_redeemable_points(balance, subtotal)

        def invalid(reason: str) -> PointsRedemptionResult:
            return PointsRedemptionResult(valid=False, reason=reason, points=points, max_redeemable=max_redeemable)

        if points < 0:
            return invalid("Points to redeem cannot be negative")
        if points == 0:
            return PointsRedemptionResult(valid=True, reason="No points redeemed", max_redeemable=max_redeemable)
        if balance < self.min_redeemable_points:
            return invalid(f"At least {self.min_redeemable_points} points are required to redeem")
        if points > balance:
            return invalid("Insufficient points balance")
        if points > max_redeemable:
            return invalid(f"At most {max_redeemable} points can be redeemed on this order")

        return PointsRedemptionResult(
            valid=True,
            reason="Points can be redeemed",
            points=points,
            max_redeemable=max_redeemable,
            rupee_value=self.points_to_rupees(points)
        )


class LoyaltyService:
    """Persistence side of the loyalty module: balances, spend and tier writes"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: UUID) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundException(message="Customer not found", resource="user")
        return user

    async def get_customer(self, user_id: UUID) -> CustomerSnapshot:
        user = await self.get_user(user_id)
        return CustomerSnapshot(**user.to_snapshot())

    async def get_points_balance(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(LoyaltyPoints.points_balance).where(LoyaltyPoints.user_id == user_id)
        )
        balance = result.scalar_one_or_none()
        return int(balance or 0)

    async def get_lifetime_paid_spend(self, user_id: UUID) -> Decimal:
        """Sum of final_amount over the customer's paid orders."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Order.final_amount), 0)).where(
                and_(
                    Order.user_id == user_id,
                    Order.payment_status == "paid"
                )
            )
        )
        return D(result.scalar())

    async def get_customer_ids_after(self, last_id: Optional[UUID], limit: int) -> List[UUID]:
        """Keyset page of customer ids, ordered by id."""
        query = select(User.id).order_by(User.id).limit(limit)
        if last_id is not None:
            query = query.where(User.id > last_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def set_membership_tier(self, user_id: UUID, tier: str) -> bool:
        """Write the tier; returns False when it was already set."""
        user = await self.get_user(user_id)
        if user.membership_tier == tier:
            return False
        old_tier = user.membership_tier
        user.membership_tier = tier
        structured_logger.info(
            message="Membership tier changed",
            customer_id=str(user_id),
            metadata={"old_tier": old_tier, "new_tier": tier}
        )
        return True

    async def redeem_points(self, user_id: UUID, points: int) -> int:
        """Deduct redeemed points and return the new balance. Caller commits."""
        if points <= 0:
            return await self.get_points_balance(user_id)

        result = await self.db.execute(
            select(LoyaltyPoints).where(LoyaltyPoints.user_id == user_id).with_for_update()
        )
        account = result.scalar_one_or_none()
        if not account or account.points_balance < points:
            raise ValidationException(
                message="Insufficient points balance",
                errors=[f"Requested {points} points"]
            )

        account.points_balance -= points
        account.points_redeemed_lifetime = (account.points_redeemed_lifetime or 0) + points
        return account.points_balance
