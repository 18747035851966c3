"""
Background task for membership tier recalculation
Re-evaluates every customer's tier from lifetime paid spend
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db_session
from core.exceptions import ConflictException
from core.utils.logging import structured_logger
from schemas.loyalty import TierRecalculationResult
from services.loyalty import LoyaltyService, MembershipTierEngine
from services.settings import SettingsService

logger = logging.getLogger(__name__)


class MembershipTierTaskManager:
    """Manager for the membership tier batch job. Only one run at a time."""

    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        batch_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.session_factory = session_factory
        self.batch_size = batch_size or settings.TIER_JOB_BATCH_SIZE
        self.timeout_seconds = (
            settings.TIER_JOB_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self._lock = asyncio.Lock()
        self.last_result: Optional[TierRecalculationResult] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def _session(self):
        if self.session_factory is not None:
            return self.session_factory()
        return get_db_session()

    async def recalculate_membership_tiers(
        self,
        tier_engine: Optional[MembershipTierEngine] = None
    ) -> TierRecalculationResult:
        """
        Recalculate tiers for all customers.

        Customers are read in id order, batch_size at a time. Each customer is
        its own unit of work: read spend, resolve the tier, write it if it
        changed, commit. A failing customer is rolled back, recorded and
        skipped. The run stops early once timeout_seconds has elapsed.

        Raises:
            ConflictException: if a run is already in progress
        """
        if self._lock.locked():
            logger.warning("Membership tier recalculation is already running")
            raise ConflictException(message="Membership tier recalculation is already running")

        async with self._lock:
            self.last_result = await self._run(tier_engine)
            return self.last_result

    async def _run(self, tier_engine: Optional[MembershipTierEngine]) -> TierRecalculationResult:
        result = TierRecalculationResult(started_at=datetime.now(timezone.utc))
        deadline = time.monotonic() + self.timeout_seconds

        async with self._session() as session:
            if tier_engine is None:
                tier_engine = await SettingsService(session).get_tier_engine()

            structured_logger.info(
                message="Membership tier recalculation started",
                metadata={
                    "batch_size": self.batch_size,
                    "timeout_seconds": self.timeout_seconds,
                    "tiers": [tier.name for tier in tier_engine.tiers],
                }
            )

            loyalty_service = LoyaltyService(session)
            last_id = None
            while not result.timed_out:
                customer_ids = await loyalty_service.get_customer_ids_after(last_id, self.batch_size)
                if not customer_ids:
                    break

                for customer_id in customer_ids:
                    if time.monotonic() >= deadline:
                        result.timed_out = True
                        break
                    await self._process_customer(session, loyalty_service, tier_engine, customer_id, result)

                last_id = customer_ids[-1]

        result.finished_at = datetime.now(timezone.utc)
        log = structured_logger.warning if result.timed_out or result.failed_customer_ids else structured_logger.info
        log(
            message="Membership tier recalculation finished",
            metadata=result.model_dump(mode="json")
        )
        return result

    async def _process_customer(
        self,
        session: AsyncSession,
        loyalty_service: LoyaltyService,
        tier_engine: MembershipTierEngine,
        customer_id: UUID,
        result: TierRecalculationResult
    ):
        result.processed += 1
        try:
            spend = await loyalty_service.get_lifetime_paid_spend(customer_id)
            tier = tier_engine.resolve_tier(spend)
            if tier is None:
                # Below every threshold: the stored tier is left alone
                result.no_tier += 1
                return

            if await loyalty_service.set_membership_tier(customer_id, tier):
                await session.commit()
                result.updated += 1
            else:
                result.unchanged += 1

        except Exception as e:
            await session.rollback()
            result.failed_customer_ids.append(str(customer_id))
            structured_logger.warning(
                message="Membership tier update failed",
                customer_id=str(customer_id),
                exception=e
            )


# Global task manager instance
membership_tier_task_manager = MembershipTierTaskManager()


async def recalculate_membership_tiers_task() -> TierRecalculationResult:
    """Entry point for schedulers and the admin trigger"""
    return await membership_tier_task_manager.recalculate_membership_tiers()
