from sqlalchemy import Column, String, Integer, Boolean
from sqlalchemy.orm import relationship
from core.database import BaseModel, CHAR_LENGTH


class User(BaseModel):
    """Restaurant customer. The membership tier is written by the tier batch job."""
    __tablename__ = "users"
    __table_args__ = {'extend_existing': True}

    email = Column(String(CHAR_LENGTH), unique=True, index=True, nullable=True)
    name = Column(String(CHAR_LENGTH), nullable=True)
    phone = Column(String(20), nullable=True)
    role = Column(String(50), default="customer")  # customer, staff, manager
    active = Column(Boolean, default=True)
    membership_tier = Column(String(50), nullable=True, index=True)
    order_count = Column(Integer, nullable=False, default=0)

    # Relationships with lazy loading
    orders = relationship("Order", back_populates="user", lazy="noload")
    loyalty_points = relationship(
        "LoyaltyPoints", back_populates="user", uselist=False, lazy="selectin")

    def to_snapshot(self) -> dict:
        return {
            "id": str(self.id),
            "membership_tier": self.membership_tier,
            "order_count": self.order_count or 0,
        }
