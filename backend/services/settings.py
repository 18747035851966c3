import json
from decimal import Decimal
from typing import Optional, Any, List, Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from models.settings import SystemSettings, SETTING_VALUE_TYPES
from schemas.settings import SystemSettingCreate, SystemSettingUpdate
from schemas.loyalty import RewardPointsConfig
from core.config import settings
from core.exceptions import ValidationException
from core.utils.logging import structured_logger
from core.utils.money import D
from services.loyalty import MembershipTierEngine, LoyaltyPointsConverter, validate_tier_config

MEMBERSHIP_TIERS_KEY = "membership_tiers"
REWARD_POINTS_CONFIG_KEY = "reward_points_config"


class SettingsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_setting(self, key: str) -> Optional[SystemSettings]:
        """Retrieve a system setting by its key."""
        result = await self.session.execute(
            select(SystemSettings).filter(SystemSettings.key == key)
        )
        return result.scalars().first()

    async def get_setting_value(self, key: str, default: Any = None) -> Any:
        """Retrieve the value of a system setting by its key, with a default fallback."""
        setting = await self.get_setting(key)
        if setting:
            return self._convert_value_from_db(setting.value, setting.value_type)
        return default

    async def create_setting(self, setting_in: SystemSettingCreate) -> SystemSettings:
        db_setting = SystemSettings(
            key=setting_in.key,
            value=self._convert_value_to_db(setting_in.value, setting_in.value_type),
            value_type=setting_in.value_type,
            description=setting_in.description,
        )
        self.session.add(db_setting)
        await self.session.commit()
        await self.session.refresh(db_setting)
        return db_setting

    async def update_setting(
        self, setting: SystemSettings, setting_in: SystemSettingUpdate
    ) -> SystemSettings:
        if setting_in.description is not None:
            setting.description = setting_in.description
        if setting_in.value is not None and setting_in.value_type is not None:
            setting.value = self._convert_value_to_db(setting_in.value, setting_in.value_type)
            setting.value_type = setting_in.value_type

        await self.session.commit()
        await self.session.refresh(setting)
        return setting

    async def set_setting(
        self, key: str, value: Any, value_type: str = "string", description: Optional[str] = None
    ) -> SystemSettings:
        """Create the setting or overwrite its value."""
        setting = await self.get_setting(key)
        if setting is None:
            return await self.create_setting(
                SystemSettingCreate(key=key, value=value, value_type=value_type, description=description)
            )
        return await self.update_setting(
            setting, SystemSettingUpdate(value=value, value_type=value_type, description=description)
        )

    def _convert_value_to_db(self, value: Any, value_type: str) -> str:
        """Converts a Python value to its string representation for database storage."""
        if value_type not in SETTING_VALUE_TYPES:
            raise ValidationException(message=f"Unsupported setting type: {value_type}")
        if value_type == "boolean":
            return "true" if value else "false"
        if value_type == "json":
            return json.dumps(value, default=str)
        return str(value)

    def _convert_value_from_db(self, value: str, value_type: str) -> Any:
        """Converts a string value from the database to its Python type."""
        if value_type == "boolean":
            return value.lower() == "true"
        elif value_type == "integer":
            return int(value)
        elif value_type == "float":
            return float(value)
        elif value_type == "decimal":
            return Decimal(value)
        elif value_type == "json":
            return json.loads(value)
        return value

    # ============================================================================
    # LOYALTY CONFIGURATION
    # ============================================================================

    async def get_membership_tiers(self) -> List[Dict[str, Any]]:
        """Stored tier table, or the configured defaults when none was saved."""
        tiers = await self.get_setting_value(MEMBERSHIP_TIERS_KEY)
        if not tiers:
            return list(settings.DEFAULT_MEMBERSHIP_TIERS)
        return tiers

    async def save_membership_tiers(self, tiers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        errors = validate_tier_config(tiers)
        if errors:
            raise ValidationException(message="Invalid membership tier configuration", errors=errors)

        normalized = MembershipTierEngine(tiers).to_config()
        await self.set_setting(
            MEMBERSHIP_TIERS_KEY,
            normalized,
            value_type="json",
            description="Membership tier spending thresholds and discounts"
        )
        structured_logger.info(
            message="Membership tier configuration saved",
            metadata={"tiers": [tier["name"] for tier in normalized]}
        )
        return normalized

    async def get_reward_points_config(self) -> RewardPointsConfig:
        stored = await self.get_setting_value(REWARD_POINTS_CONFIG_KEY)
        if not stored:
            return RewardPointsConfig(
                points_per_rupee=D(settings.POINTS_PER_RUPEE),
                points_value=D(settings.POINTS_VALUE),
                min_redeemable_points=settings.MIN_REDEEMABLE_POINTS,
            )
        return RewardPointsConfig(**stored)

    async def save_reward_points_config(self, config: RewardPointsConfig) -> RewardPointsConfig:
        await self.set_setting(
            REWARD_POINTS_CONFIG_KEY,
            config.model_dump(mode="json"),
            value_type="json",
            description="Reward points earning and redemption rules"
        )
        structured_logger.info(
            message="Reward points configuration saved",
            metadata=config.model_dump(mode="json")
        )
        return config

    async def get_tier_engine(self) -> MembershipTierEngine:
        return MembershipTierEngine(await self.get_membership_tiers())

    async def get_points_converter(self) -> LoyaltyPointsConverter:
        return LoyaltyPointsConverter(await self.get_reward_points_config())
