from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime
from decimal import Decimal


class MembershipTier(BaseModel):
    """One rung of the membership ladder"""
    name: str = Field(..., min_length=1, description="Tier name, matched case-insensitively")
    threshold: Decimal = Field(..., ge=0, description="Lifetime paid spend needed (₹)")
    discount: Decimal = Field(..., ge=0, le=100, description="Percent off every order")


class MembershipTierConfigUpdate(BaseModel):
    """Raw tier rows as submitted by an administrator; validated before use"""
    tiers: List[Dict[str, Any]]
    recalculate: bool = True


class RewardPointsConfig(BaseModel):
    points_per_rupee: Decimal = Field(default=Decimal("0.1"), ge=0, description="Points earned per rupee spent")
    points_value: Decimal = Field(default=Decimal("0.1"), gt=0, description="Rupee value of one point")
    min_redeemable_points: int = Field(default=100, ge=0)
    points_expiry_days: int = Field(default=365, ge=0)


class PointsRedemptionResult(BaseModel):
    valid: bool
    reason: str
    points: int = 0
    max_redeemable: int = 0
    rupee_value: Decimal = Decimal("0")


class MembershipUpgradeCheck(BaseModel):
    should_upgrade: bool
    new_tier: Optional[str] = None


class TierRecalculationResult(BaseModel):
    """Summary of one membership tier batch run"""
    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    no_tier: int = 0
    failed_customer_ids: List[str] = Field(default_factory=list)
    timed_out: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
