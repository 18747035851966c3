"""
Discount routes: preview, auto-select, coupon checks and redemption
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.utils.response import Response
from schemas.discounts import (
    CouponSnapshot,
    DiscountPreviewRequest,
    CouponValidateRequest,
    ApplyDiscountRequest,
)
from services.checkout import CheckoutService
from services.coupons import CouponService
from services.discounts import generate_coupon_code

router = APIRouter(prefix="/discounts", tags=["discounts"])


@router.post("/preview")
async def preview_discount(
    request: DiscountPreviewRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Price an order with an explicitly chosen coupon, membership and points
    """
    breakdown = await CheckoutService(db).preview(request)
    return Response.success(data=breakdown, message="Discount preview calculated")


@router.post("/best")
async def best_discount(
    request: DiscountPreviewRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Pick the breakdown with the largest total discount across eligible coupons
    """
    breakdown = await CheckoutService(db).best(request)
    return Response.success(data=breakdown, message="Best discount selected")


@router.post("/coupons/validate")
async def validate_coupon(
    request: CouponValidateRequest,
    db: AsyncSession = Depends(get_db)
):
    result = await CheckoutService(db).validate_coupon(request)
    return Response.success(data=result, message=result.reason)


@router.get("/coupons/generate-code")
async def generate_code(
    length: int = Query(8, ge=4, le=20),
    db: AsyncSession = Depends(get_db)
):
    existing = await CouponService(db).get_active_coupons()
    code = generate_coupon_code(length, existing_codes=[coupon.code for coupon in existing])
    return Response.success(data={"code": code})


@router.post("/coupons", status_code=status.HTTP_201_CREATED)
async def create_coupon(
    request: CouponSnapshot,
    db: AsyncSession = Depends(get_db)
):
    coupon = await CouponService(db).create_coupon(request)
    return Response.success(
        data=coupon.to_dict(),
        message="Coupon created",
        status_code=status.HTTP_201_CREATED
    )


@router.post("/apply")
async def apply_discount(
    request: ApplyDiscountRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a discount on a stored order. The breakdown is recomputed
    server-side before usage counters and points are updated.
    """
    result = await CheckoutService(db).apply(request)
    return Response.success(data=result, message="Discount applied")
