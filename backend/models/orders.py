"""
Order models
Includes: Order, OrderItem
"""
from sqlalchemy import Column, String, ForeignKey, Numeric, Text, Integer, Index
from sqlalchemy.orm import relationship
from core.database import BaseModel, GUID
from typing import Dict, Any


class Order(BaseModel):
    """Restaurant order with the discount captured at checkout"""
    __tablename__ = "orders"
    __table_args__ = (
        Index('idx_orders_user_payment', 'user_id', 'payment_status'),
        {'extend_existing': True}
    )

    user_id = Column(GUID(), ForeignKey("users.id"), nullable=True)
    # pending, paid, refunded
    payment_status = Column(String(20), nullable=False, default="pending")
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    final_amount = Column(Numeric(10, 2), nullable=True)

    # Captured from the chosen discount breakdown
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    coupon_code = Column(String(50), nullable=True)
    membership_tier = Column(String(50), nullable=True)
    points_redeemed = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Relationships with lazy loading
    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order",
                         cascade="all, delete-orphan", lazy="selectin")

    def to_snapshot(self) -> Dict[str, Any]:
        """Shape consumed by the discount engine"""
        return {
            "id": str(self.id),
            "items": [item.to_dict() for item in self.items],
            "total_amount": str(self.total_amount) if self.total_amount is not None else None,
        }


class OrderItem(BaseModel):
    """Individual menu items within an order"""
    __tablename__ = "order_items"
    __table_args__ = {'extend_existing': True}

    order_id = Column(GUID(), ForeignKey("orders.id"), nullable=False)
    menu_item_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=True)
    category_id = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.menu_item_id,
            "name": self.name,
            "category_id": self.category_id,
            "price": str(self.price),
            "quantity": self.quantity,
        }
