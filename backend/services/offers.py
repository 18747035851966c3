"""
Offer schedule and scope conflict checks used by the offer admin forms
"""
import logging
from datetime import date
from typing import List, Optional, Sequence

from core.utils.money import D
from schemas.discounts import (
    DiscountType,
    PromotionStatus,
    OfferSnapshot,
    OfferOverlapResult,
)

logger = logging.getLogger(__name__)


def _dates_overlap(
    start: Optional[date],
    end: Optional[date],
    other_start: Optional[date],
    other_end: Optional[date]
) -> bool:
    # An offer without both dates has no range to collide with
    if None in (start, end, other_start, other_end):
        return False
    return (
        (other_start <= start <= other_end)
        or (other_start <= end <= other_end)
        or (start <= other_start and end >= other_end)
    )


def _same_scope(new_offer: OfferSnapshot, offer: OfferSnapshot) -> bool:
    if new_offer.offer_type == DiscountType.CATEGORY.value and offer.offer_type == DiscountType.CATEGORY.value:
        return new_offer.category_id == offer.category_id
    if new_offer.offer_type == DiscountType.ITEM.value and offer.offer_type == DiscountType.ITEM.value:
        return new_offer.item_id == offer.item_id
    return False


def validate_offer_overlap(
    new_offer: OfferSnapshot,
    existing_offers: Optional[Sequence[OfferSnapshot]]
) -> OfferOverlapResult:
    """
    Find active offers that collide with a new or edited offer.

    Two offers collide when their date ranges overlap and they target the
    same category (both category offers) or the same item (both item
    offers). Other type combinations never collide. The offer itself is
    skipped when editing.
    """
    if not existing_offers:
        return OfferOverlapResult(has_overlap=False, conflicting_offers=[])

    conflicting = [
        offer for offer in existing_offers
        if not (new_offer.id is not None and offer.id == new_offer.id)
        and offer.status == PromotionStatus.ACTIVE.value
        and _dates_overlap(new_offer.valid_from, new_offer.valid_until, offer.valid_from, offer.valid_until)
        and _same_scope(new_offer, offer)
    ]

    if conflicting:
        logger.info(f"Offer {new_offer.name!r} conflicts with {len(conflicting)} active offer(s)")

    return OfferOverlapResult(has_overlap=bool(conflicting), conflicting_offers=conflicting)


def validate_offer_form(
    offer: OfferSnapshot,
    existing_offers: Sequence[OfferSnapshot] = ()
) -> List[str]:
    """Administrator form checks for an offer, ending with the overlap check."""
    errors = []

    if not (offer.name or "").strip():
        errors.append("Offer name is required")

    if D(offer.discount_value) <= 0:
        errors.append("Discount value must be greater than 0")
    if offer.offer_type == DiscountType.PERCENTAGE.value and D(offer.discount_value) > 100:
        errors.append("Percentage discount cannot exceed 100%")

    if offer.valid_from is None:
        errors.append("Start date is required")
    if offer.valid_until is None:
        errors.append("End date is required")
    if offer.valid_from and offer.valid_until and offer.valid_from >= offer.valid_until:
        errors.append("End date must be after start date")

    if offer.offer_type == DiscountType.CATEGORY.value and not offer.category_id:
        errors.append("Please select a category for category offer")
    if offer.offer_type == DiscountType.ITEM.value and not offer.item_id:
        errors.append("Please select an item for item offer")
    if offer.offer_type == DiscountType.BOGO.value:
        config = offer.bogo_config
        if config is None or not config.buy_item_id or not config.get_item_id:
            errors.append("BOGO offer requires both buy and get items")

    overlap = validate_offer_overlap(offer, existing_offers)
    if overlap.has_overlap:
        errors.append(f"This offer overlaps with {len(overlap.conflicting_offers)} existing offer(s)")

    return errors
