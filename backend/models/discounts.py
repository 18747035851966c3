"""
Coupon and offer models for the offers & rewards module
"""
from sqlalchemy import Column, String, Boolean, Date, Numeric, Text, Integer, Index, JSON
from core.database import BaseModel
from typing import Dict, Any


def _amount(value):
    return str(value) if value is not None else None


class Coupon(BaseModel):
    """User-entered discount codes with usage caps"""
    __tablename__ = "coupons"
    __table_args__ = (
        Index('idx_coupons_code', 'code'),
        Index('idx_coupons_status', 'status'),
        Index('idx_coupons_valid_until', 'valid_until'),
        Index('idx_coupons_status_valid', 'status', 'valid_from', 'valid_until'),
        {'extend_existing': True}
    )

    code = Column(String(50), unique=True, nullable=False)  # Stored upper-cased
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active, inactive
    discount_type = Column(String(20), nullable=False)  # percentage, flat, bogo, category, item
    discount_value = Column(Numeric(10, 2), nullable=False)  # 10 for 10% or ₹10
    value_type = Column(String(20), nullable=False, default="flat")  # For category/item coupons
    max_discount_amount = Column(Numeric(10, 2), nullable=True)
    min_order_amount = Column(Numeric(10, 2), nullable=True)
    valid_from = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    per_user_limit = Column(Integer, nullable=True)
    user_usage_count = Column(JSON, nullable=True)  # {customer_id: times_used}
    first_time_only = Column(Boolean, default=False, nullable=False)
    bogo_config = Column(JSON, nullable=True)  # {buy_item_id, get_item_id, get_discount_percent}
    category_id = Column(String(64), nullable=True)
    item_id = Column(String(64), nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert coupon to dictionary for API responses and engine snapshots"""
        return {
            "id": str(self.id),
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "discount_type": self.discount_type,
            "discount_value": _amount(self.discount_value),
            "value_type": self.value_type,
            "max_discount_amount": _amount(self.max_discount_amount),
            "min_order_amount": _amount(self.min_order_amount),
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "usage_limit": self.usage_limit,
            "usage_count": self.usage_count or 0,
            "per_user_limit": self.per_user_limit,
            "user_usage_count": dict(self.user_usage_count or {}),
            "first_time_only": bool(self.first_time_only),
            "bogo_config": self.bogo_config,
            "category_id": self.category_id,
            "item_id": self.item_id,
        }


class Offer(BaseModel):
    """Code-less storefront promotions scoped by category, item and date"""
    __tablename__ = "offers"
    __table_args__ = (
        Index('idx_offers_status', 'status'),
        Index('idx_offers_type', 'offer_type'),
        Index('idx_offers_status_valid', 'status', 'valid_from', 'valid_until'),
        {'extend_existing': True}
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active")
    offer_type = Column(String(20), nullable=False)  # percentage, flat, bogo, category, item
    discount_value = Column(Numeric(10, 2), nullable=False)
    value_type = Column(String(20), nullable=False, default="flat")
    max_discount_amount = Column(Numeric(10, 2), nullable=True)
    min_order_amount = Column(Numeric(10, 2), nullable=True)
    valid_from = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    bogo_config = Column(JSON, nullable=True)
    category_id = Column(String(64), nullable=True)
    item_id = Column(String(64), nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert offer to dictionary for API responses and engine snapshots"""
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "offer_type": self.offer_type,
            "discount_value": _amount(self.discount_value),
            "value_type": self.value_type,
            "max_discount_amount": _amount(self.max_discount_amount),
            "min_order_amount": _amount(self.min_order_amount),
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "bogo_config": self.bogo_config,
            "category_id": self.category_id,
            "item_id": self.item_id,
        }
