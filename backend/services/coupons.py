"""
Coupon and offer persistence for the offers & rewards module
Loads promotions and orders for the discount engine and records confirmed redemptions
"""
import logging
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.discounts import Coupon, Offer
from models.orders import Order
from schemas.discounts import (
    PromotionStatus,
    CouponSnapshot,
    OfferSnapshot,
    OrderSnapshot,
    DiscountBreakdown,
)
from services.discounts import validate_coupon_form
from services.offers import validate_offer_form
from services.loyalty import LoyaltyService
from core.exceptions import (
    APIException,
    NotFoundException,
    ValidationException,
    ConflictException,
    DatabaseException,
)
from core.utils.logging import structured_logger
from core.utils.money import round_money
from core.utils.uuid_utils import parse_uuid

logger = logging.getLogger(__name__)


def _column_values(data: Union[CouponSnapshot, OfferSnapshot], exclude: set) -> dict:
    # Date columns need date objects; the JSON column needs plain values
    values = data.model_dump(exclude=exclude | {"bogo_config"})
    values["bogo_config"] = data.bogo_config.model_dump(mode="json") if data.bogo_config else None
    return values


class CouponService:
    """Reads coupons, offers and orders; writes redemptions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_coupons(self) -> List[CouponSnapshot]:
        """Active coupons; date windows and limits are left to the engine."""
        result = await self.db.execute(
            select(Coupon).where(Coupon.status == PromotionStatus.ACTIVE.value).order_by(Coupon.created_at, Coupon.code)
        )
        return [CouponSnapshot(**coupon.to_dict()) for coupon in result.scalars().all()]

    async def get_coupon_by_code(self, code: str) -> Coupon:
        result = await self.db.execute(
            select(Coupon).where(func.upper(Coupon.code) == (code or "").strip().upper())
        )
        coupon = result.scalar_one_or_none()
        if not coupon:
            raise NotFoundException(message="Invalid coupon code", resource="coupon")
        return coupon

    async def get_coupon_snapshot(self, code: str) -> CouponSnapshot:
        coupon = await self.get_coupon_by_code(code)
        return CouponSnapshot(**coupon.to_dict())

    async def get_offers(self) -> List[OfferSnapshot]:
        result = await self.db.execute(select(Offer).order_by(Offer.created_at))
        return [OfferSnapshot(**offer.to_dict()) for offer in result.scalars().all()]

    async def get_active_offers(self) -> List[OfferSnapshot]:
        result = await self.db.execute(
            select(Offer).where(Offer.status == PromotionStatus.ACTIVE.value).order_by(Offer.created_at)
        )
        return [OfferSnapshot(**offer.to_dict()) for offer in result.scalars().all()]

    async def get_order(self, order_id: Union[str, UUID]) -> Order:
        result = await self.db.execute(
            select(Order).where(Order.id == parse_uuid(order_id, "order"))
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundException(message="Order not found", resource="order")
        return order

    async def get_order_snapshot(self, order_id: Union[str, UUID]) -> OrderSnapshot:
        order = await self.get_order(order_id)
        return OrderSnapshot(**order.to_snapshot())

    async def create_coupon(self, data: CouponSnapshot) -> Coupon:
        """
        Validate the administrator form and store a new coupon.
        The code is stored upper-cased.
        """
        existing = await self.db.execute(select(Coupon))
        existing_coupons = [CouponSnapshot(**coupon.to_dict()) for coupon in existing.scalars().all()]
        errors = validate_coupon_form(data, existing_coupons)
        if errors:
            raise ValidationException(message="Invalid coupon", errors=errors)

        values = _column_values(data, exclude={"id", "usage_count", "user_usage_count"})
        values["code"] = data.code.strip().upper()
        coupon = Coupon(**values, usage_count=0, user_usage_count={})

        try:
            self.db.add(coupon)
            await self.db.commit()
            await self.db.refresh(coupon)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating coupon {data.code}: {str(e)}")
            raise DatabaseException(message="Could not create coupon", metadata={"code": data.code})

        logger.info(f"Created coupon: {coupon.code}")
        return coupon

    async def create_offer(self, data: OfferSnapshot) -> Offer:
        errors = validate_offer_form(data, await self.get_offers())
        if errors:
            raise ValidationException(message="Invalid offer", errors=errors)

        offer = Offer(**_column_values(data, exclude={"id"}))
        try:
            self.db.add(offer)
            await self.db.commit()
            await self.db.refresh(offer)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating offer {data.name}: {str(e)}")
            raise DatabaseException(message="Could not create offer", metadata={"name": data.name})

        logger.info(f"Created offer: {offer.name}")
        return offer

    async def record_redemption(
        self,
        order_id: Union[str, UUID],
        breakdown: DiscountBreakdown,
        customer_id: Optional[UUID] = None
    ) -> Order:
        """
        Persist a confirmed breakdown in one transaction.

        Increments the coupon's global and per-customer usage, deducts the
        redeemed points and captures the amounts onto the order.
        An order that is paid or already carries a captured redemption is
        rejected with ConflictException.

        Args:
            order_id: Order being paid
            breakdown: Breakdown the cashier confirmed
            customer_id: Customer the order belongs to, if known

        Returns:
            The updated order
        """
        order = await self.get_order(order_id)
        if order.payment_status == "paid" or order.final_amount is not None:
            structured_logger.warning(
                message="Rejected repeat redemption",
                metadata={"order_id": str(order.id), "coupon_code": order.coupon_code}
            )
            raise ConflictException(message="A discount has already been applied to this order")

        try:
            coupon_code = None
            if breakdown.applied_coupon is not None:
                coupon = await self.get_coupon_by_code(breakdown.applied_coupon.code)
                coupon.usage_count = (coupon.usage_count or 0) + 1
                if customer_id is not None:
                    # Reassign so the JSON column is flagged dirty
                    usage = dict(coupon.user_usage_count or {})
                    usage[str(customer_id)] = usage.get(str(customer_id), 0) + 1
                    coupon.user_usage_count = usage
                coupon_code = coupon.code

            if breakdown.points_redeemed > 0 and customer_id is not None:
                await LoyaltyService(self.db).redeem_points(customer_id, breakdown.points_redeemed)

            membership = breakdown.applied_membership
            if customer_id is not None and order.user_id is None:
                order.user_id = customer_id
            order.discount_amount = round_money(breakdown.total_discount)
            order.final_amount = round_money(breakdown.final_amount)
            order.coupon_code = coupon_code
            order.membership_tier = membership.tier if membership and membership.valid else None
            order.points_redeemed = breakdown.points_redeemed

            await self.db.commit()
            await self.db.refresh(order)

        except APIException:
            await self.db.rollback()
            raise

        except SQLAlchemyError as e:
            await self.db.rollback()
            structured_logger.error(
                message="Failed to record discount redemption",
                customer_id=str(customer_id) if customer_id else None,
                metadata={"order_id": str(order_id)},
                exception=e
            )
            raise DatabaseException(
                message="Could not record discount redemption",
                metadata={"order_id": str(order_id)}
            )

        structured_logger.info(
            message="Discount redemption recorded",
            customer_id=str(customer_id) if customer_id else None,
            metadata={
                "order_id": str(order.id),
                "coupon_code": order.coupon_code,
                "discount_amount": order.discount_amount,
                "points_redeemed": order.points_redeemed,
            }
        )
        return order
