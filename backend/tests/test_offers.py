"""
Tests for offer overlap detection and the offer form checks
"""
from datetime import date
from decimal import Decimal

from schemas.discounts import OfferSnapshot, BogoConfig
from services.offers import validate_offer_overlap, validate_offer_form


def make_offer(**overrides):
    data = {
        "id": "offer-1",
        "name": "Monsoon drinks",
        "status": "active",
        "offer_type": "category",
        "discount_value": Decimal("15"),
        "category_id": "drinks",
        "valid_from": date(2026, 7, 1),
        "valid_until": date(2026, 7, 31),
    }
    data.update(overrides)
    return OfferSnapshot(**data)


class TestOfferOverlap:

    def test_same_category_overlapping_dates(self):
        # Scenario E
        existing = [make_offer(id="existing", valid_from=date(2026, 7, 15), valid_until=date(2026, 8, 15))]
        result = validate_offer_overlap(make_offer(id="new"), existing)

        assert result.has_overlap is True
        assert [offer.id for offer in result.conflicting_offers] == ["existing"]

    def test_different_category_does_not_conflict(self):
        existing = [make_offer(id="existing", category_id="desserts")]
        result = validate_offer_overlap(make_offer(id="new"), existing)
        assert result.has_overlap is False
        assert result.conflicting_offers == []

    def test_new_range_containing_existing_range(self):
        existing = [make_offer(id="existing", valid_from=date(2026, 7, 10), valid_until=date(2026, 7, 12))]
        assert validate_offer_overlap(make_offer(id="new"), existing).has_overlap is True

    def test_touching_end_date_counts_as_overlap(self):
        existing = [make_offer(id="existing", valid_from=date(2026, 7, 31), valid_until=date(2026, 8, 31))]
        assert validate_offer_overlap(make_offer(id="new"), existing).has_overlap is True

    def test_disjoint_dates(self):
        existing = [make_offer(id="existing", valid_from=date(2026, 8, 1), valid_until=date(2026, 8, 31))]
        assert validate_offer_overlap(make_offer(id="new"), existing).has_overlap is False

    def test_skips_self_and_inactive(self):
        existing = [
            make_offer(id="new"),
            make_offer(id="paused", status="inactive"),
        ]
        assert validate_offer_overlap(make_offer(id="new"), existing).has_overlap is False

    def test_item_offers_conflict_on_same_item(self):
        new = make_offer(id="new", offer_type="item", category_id=None, item_id="dosa")
        existing = [
            make_offer(id="same", offer_type="item", category_id=None, item_id="dosa"),
            make_offer(id="other", offer_type="item", category_id=None, item_id="idli"),
        ]
        result = validate_offer_overlap(new, existing)
        assert [offer.id for offer in result.conflicting_offers] == ["same"]

    def test_mixed_types_never_conflict(self):
        new = make_offer(id="new", offer_type="percentage", category_id=None)
        assert validate_offer_overlap(new, [make_offer(id="existing")]).has_overlap is False

    def test_missing_dates_never_conflict(self):
        new = make_offer(id="new", valid_until=None)
        assert validate_offer_overlap(new, [make_offer(id="existing")]).has_overlap is False

    def test_no_existing_offers(self):
        assert validate_offer_overlap(make_offer(), []).has_overlap is False
        assert validate_offer_overlap(make_offer(), None).has_overlap is False


class TestOfferForm:

    def test_valid_offer(self):
        assert validate_offer_form(make_offer(), []) == []

    def test_scope_requirements(self):
        assert validate_offer_form(make_offer(category_id=None)) == ["Please select a category for category offer"]
        assert validate_offer_form(make_offer(offer_type="item", item_id=None)) == ["Please select an item for item offer"]

    def test_bogo_needs_both_items(self):
        offer = make_offer(offer_type="bogo", bogo_config=BogoConfig(buy_item_id="naan", get_item_id=""))
        assert validate_offer_form(offer) == ["BOGO offer requires both buy and get items"]
        assert validate_offer_form(make_offer(offer_type="bogo")) == ["BOGO offer requires both buy and get items"]

    def test_basic_fields(self):
        offer = make_offer(
            name="  ",
            offer_type="percentage",
            discount_value=Decimal("150"),
            valid_from=date(2026, 7, 31),
            valid_until=date(2026, 7, 1),
        )
        assert validate_offer_form(offer) == [
            "Offer name is required",
            "Percentage discount cannot exceed 100%",
            "End date must be after start date",
        ]

    def test_overlap_is_reported_last(self):
        existing = [make_offer(id="a"), make_offer(id="b")]
        errors = validate_offer_form(make_offer(id="new", name=""), existing)
        assert errors == [
            "Offer name is required",
            "This offer overlaps with 2 existing offer(s)",
        ]
