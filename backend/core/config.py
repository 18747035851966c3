import os
import json
import logging
from typing import List, Literal, Dict, Any
from dotenv import load_dotenv


logger = logging.getLogger(__name__)

# Load environment variables from .env file located in the parent directory.
# Environment variables explicitly set (e.g., by Docker Compose) take precedence.
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
ENV_PATH = os.path.join(BASE_DIR, '.env')
load_dotenv(ENV_PATH)


DEFAULT_MEMBERSHIP_TIERS: List[Dict[str, Any]] = [
    {"name": "silver", "threshold": 5000, "discount": 5},
    {"name": "gold", "threshold": 20000, "discount": 10},
    {"name": "platinum", "threshold": 50000, "discount": 15},
]


def parse_tiers(value: str) -> List[Dict[str, Any]]:
    """
    Parses the membership tier table from a JSON string.
    Example: '[{"name": "silver", "threshold": 5000, "discount": 5}]'
    Falls back to the built-in three tier table when the value is empty or malformed.
    """
    if not value:
        return [dict(tier) for tier in DEFAULT_MEMBERSHIP_TIERS]
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        logger.warning("MEMBERSHIP_TIERS is not valid JSON, using defaults")
        return [dict(tier) for tier in DEFAULT_MEMBERSHIP_TIERS]
    if not isinstance(parsed, list):
        logger.warning("MEMBERSHIP_TIERS must be a JSON list, using defaults")
        return [dict(tier) for tier in DEFAULT_MEMBERSHIP_TIERS]
    return parsed


class Settings:
    # --- General Environment Settings ---
    # ENVIRONMENT determines application behavior (e.g., logging level, SQL echo).
    ENVIRONMENT: Literal["local", "staging",
                         "production"] = os.getenv('ENVIRONMENT', 'local')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    # --- Database Configuration ---
    # Async SQLAlchemy URL. SQLite via aiosqlite for local runs, asyncpg for PostgreSQL.
    DATABASE_URL: str = os.getenv('DATABASE_URL', 'sqlite+aiosqlite:///./offers.db')

    # --- Reward Points ---
    # POINTS_PER_RUPEE is the earning rate (0.1 = 1 point per ₹10 spent).
    POINTS_PER_RUPEE: float = float(os.getenv('POINTS_PER_RUPEE', 0.1))
    # POINTS_VALUE is the redemption value of one point in rupees.
    POINTS_VALUE: float = float(os.getenv('POINTS_VALUE', 0.1))
    # MIN_REDEEMABLE_POINTS is the balance a customer needs before redeeming anything.
    MIN_REDEEMABLE_POINTS: int = int(os.getenv('MIN_REDEEMABLE_POINTS', 100))

    # --- Membership Tiers ---
    # Ascending list of {name, threshold, discount}. Overridden at runtime by the
    # 'membership_tiers' system setting.
    RAW_MEMBERSHIP_TIERS: str = os.getenv('MEMBERSHIP_TIERS', '')
    DEFAULT_MEMBERSHIP_TIERS: List[Dict[str, Any]] = parse_tiers(RAW_MEMBERSHIP_TIERS)

    # --- Tier Recalculation Job ---
    TIER_JOB_BATCH_SIZE: int = int(os.getenv('TIER_JOB_BATCH_SIZE', 100))
    TIER_JOB_TIMEOUT_SECONDS: float = float(os.getenv('TIER_JOB_TIMEOUT_SECONDS', 300))
    # Level for the jobs.* loggers; empty inherits LOG_LEVEL.
    TIER_JOB_LOG_LEVEL: str = os.getenv('TIER_JOB_LOG_LEVEL', '')

    @property
    def is_local(self) -> bool:
        return self.ENVIRONMENT == "local"

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """
        Returns the async SQLAlchemy database URI.
        A plain postgresql:// URL is upgraded to the asyncpg driver.
        """
        uri = self.DATABASE_URL
        if uri.startswith("postgresql://"):
            return uri.replace("postgresql://", "postgresql+asyncpg://", 1)
        return uri


# Instantiate the settings object to be used throughout the application
settings = Settings()
