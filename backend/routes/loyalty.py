"""
Loyalty admin routes: membership tiers, reward points rules and tier recalculation
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.utils.response import Response
from jobs.membership_tier_tasks import membership_tier_task_manager
from schemas.loyalty import MembershipTierConfigUpdate, RewardPointsConfig
from services.settings import SettingsService

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get("/membership-tiers")
async def get_membership_tiers(db: AsyncSession = Depends(get_db)):
    tiers = await SettingsService(db).get_membership_tiers()
    return Response.success(data=tiers)


@router.put("/membership-tiers")
async def update_membership_tiers(
    request: MembershipTierConfigUpdate,
    db: AsyncSession = Depends(get_db)
):
    """
    Save the tier table and re-run the tier upgrade against it.
    When a run is already in progress the table is saved and the run is skipped.
    """
    service = SettingsService(db)
    tiers = await service.save_membership_tiers(request.tiers)

    recalculation = None
    if request.recalculate and not membership_tier_task_manager.is_running:
        recalculation = await membership_tier_task_manager.recalculate_membership_tiers(
            await service.get_tier_engine()
        )

    return Response.success(
        data={"tiers": tiers, "recalculation": recalculation},
        message="Membership tiers saved"
    )


@router.post("/membership-tiers/recalculate")
async def recalculate_membership_tiers(db: AsyncSession = Depends(get_db)):
    """
    Run the tier batch job now and return its summary.
    A second request while a run is in progress gets 409.
    """
    tier_engine = await SettingsService(db).get_tier_engine()
    result = await membership_tier_task_manager.recalculate_membership_tiers(tier_engine)
    return Response.success(data=result, message="Membership tiers recalculated")


@router.get("/points-config")
async def get_points_config(db: AsyncSession = Depends(get_db)):
    config = await SettingsService(db).get_reward_points_config()
    return Response.success(data=config)


@router.put("/points-config")
async def update_points_config(
    request: RewardPointsConfig,
    db: AsyncSession = Depends(get_db)
):
    config = await SettingsService(db).save_reward_points_config(request)
    return Response.success(data=config, message="Reward points configuration saved")
