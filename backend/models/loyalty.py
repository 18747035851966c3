from sqlalchemy import Column, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship
from core.database import BaseModel, GUID


class LoyaltyPoints(BaseModel):
    """Customer reward points balance"""
    __tablename__ = "loyalty_points"
    __table_args__ = (
        Index('idx_loyalty_points_user_id', 'user_id'),
        {'extend_existing': True}
    )

    user_id = Column(GUID(), ForeignKey("users.id"), nullable=False, unique=True)
    points_balance = Column(Integer, nullable=False, default=0)
    points_earned_lifetime = Column(Integer, nullable=False, default=0)
    points_redeemed_lifetime = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="loyalty_points")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "points_balance": self.points_balance,
            "points_earned_lifetime": self.points_earned_lifetime,
            "points_redeemed_lifetime": self.points_redeemed_lifetime,
        }
