from sqlalchemy import Column, String, Text, CheckConstraint

from core.database import BaseModel

SETTING_VALUE_TYPES = ("string", "integer", "float", "decimal", "boolean", "json")


class SystemSettings(BaseModel):
    """
    Administrator-editable configuration stored as text.

    The loyalty screens keep their whole configuration in one row each:
    the membership tier table under 'membership_tiers' and the reward
    points rules under 'reward_points_config', both as json.
    """
    __tablename__ = "system_settings"
    __table_args__ = (
        CheckConstraint(
            "value_type IN ('string', 'integer', 'float', 'decimal', 'boolean', 'json')",
            name="ck_system_settings_value_type"
        ),
        {'extend_existing': True}
    )

    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    value_type = Column(String(20), nullable=False, default="string")
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<SystemSettings(key='{self.key}', value_type='{self.value_type}')>"
