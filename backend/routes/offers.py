"""
Offer admin routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.utils.response import Response
from schemas.discounts import OfferSnapshot, OfferValidateRequest, FormValidationResponse
from services.coupons import CouponService
from services.offers import validate_offer_form, validate_offer_overlap

router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("")
async def list_active_offers(db: AsyncSession = Depends(get_db)):
    offers = await CouponService(db).get_active_offers()
    return Response.success(data=offers)


@router.post("/validate")
async def validate_offer(
    request: OfferValidateRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Run the offer form checks, including the overlap check against stored offers
    """
    existing = await CouponService(db).get_offers()
    errors = validate_offer_form(request.offer, existing)
    overlap = validate_offer_overlap(request.offer, existing)
    result = FormValidationResponse(
        valid=not errors,
        errors=errors,
        conflicting_offers=overlap.conflicting_offers
    )
    return Response.success(data=result, message="Offer is valid" if result.valid else "Offer has errors")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_offer(
    request: OfferSnapshot,
    db: AsyncSession = Depends(get_db)
):
    offer = await CouponService(db).create_offer(request)
    return Response.success(data=offer.to_dict(), message="Offer created", status_code=status.HTTP_201_CREATED)
