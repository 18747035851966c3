"""
API tests for the discount, offer, loyalty and health routes
"""
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from models.user import User


def coupon_payload(**overrides):
    payload = {
        "code": "WELCOME50",
        "discount_type": "flat",
        "discount_value": "50",
        "valid_from": (date.today() - timedelta(days=1)).isoformat(),
        "valid_until": (date.today() + timedelta(days=30)).isoformat(),
    }
    payload.update(overrides)
    return payload


ORDER = {"items": [{"id": "thali", "category_id": "mains", "price": "400", "quantity": 1}]}


class TestDiscountRoutes:

    async def test_create_and_validate_coupon(self, async_client):
        response = await async_client.post("/v1/discounts/coupons", json=coupon_payload())
        assert response.status_code == 201
        assert response.json()["data"]["code"] == "WELCOME50"

        response = await async_client.post(
            "/v1/discounts/coupons/validate",
            json={"coupon_code": "welcome50", "order": ORDER}
        )
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"] == {"valid": True, "reason": "Coupon is valid"}

    async def test_invalid_coupon_form_returns_errors(self, async_client):
        response = await async_client.post("/v1/discounts/coupons", json=coupon_payload(code="AB"))
        body = response.json()
        assert response.status_code == 422
        assert body["success"] is False
        assert body["errors"] == ["Coupon code must be at least 4 characters"]

    async def test_preview(self, async_client):
        await async_client.post("/v1/discounts/coupons", json=coupon_payload())

        response = await async_client.post(
            "/v1/discounts/preview",
            json={"order": ORDER, "coupon_code": "WELCOME50"}
        )
        data = response.json()["data"]
        assert response.status_code == 200
        assert Decimal(data["coupon_discount"]) == Decimal("50")
        assert Decimal(data["final_amount"]) == Decimal("350")
        assert data["applied_coupon"]["code"] == "WELCOME50"

    async def test_preview_with_unknown_coupon(self, async_client):
        response = await async_client.post(
            "/v1/discounts/preview",
            json={"order": ORDER, "coupon_code": "NOPE"}
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Invalid coupon code"

    async def test_best_picks_largest_discount(self, async_client):
        await async_client.post("/v1/discounts/coupons", json=coupon_payload())
        await async_client.post("/v1/discounts/coupons", json=coupon_payload(
            code="TENPCT", discount_type="percentage", discount_value="10"
        ))

        response = await async_client.post("/v1/discounts/best", json={"order": ORDER})
        data = response.json()["data"]
        assert data["applied_coupon"]["code"] == "WELCOME50"
        assert Decimal(data["total_discount"]) == Decimal("50")

    async def test_apply_to_stored_order(self, async_client, create_customer, create_order):
        customer = await create_customer()
        order = await create_order([("thali", "mains", 400, 1)], user_id=customer.id)
        await async_client.post("/v1/discounts/coupons", json=coupon_payload())

        response = await async_client.post("/v1/discounts/apply", json={
            "order_id": str(order.id),
            "customer_id": str(customer.id),
            "coupon_code": "WELCOME50",
        })
        data = response.json()["data"]
        assert response.status_code == 200
        assert Decimal(data["discount_amount"]) == Decimal("50")
        assert Decimal(data["final_amount"]) == Decimal("350")
        assert data["coupon_code"] == "WELCOME50"

    async def test_best_for_member_without_coupons(self, async_client, create_customer):
        customer = await create_customer(membership_tier="gold", points_balance=1000)

        response = await async_client.post("/v1/discounts/best", json={
            "order": {"items": [{"id": "thali", "price": "1000", "quantity": 1}]},
            "customer_id": str(customer.id),
            "points_to_redeem": 150,
        })
        data = response.json()["data"]
        assert data["applied_coupon"] is None
        assert Decimal(data["membership_discount"]) == Decimal("100")
        assert Decimal(data["points_discount"]) == Decimal("15")
        assert Decimal(data["final_amount"]) == Decimal("885")

    async def test_repeat_apply_conflicts(self, async_client, create_customer, create_order):
        customer = await create_customer()
        order = await create_order([("thali", "mains", 400, 1)], user_id=customer.id)
        payload = {"order_id": str(order.id), "customer_id": str(customer.id)}

        assert (await async_client.post("/v1/discounts/apply", json=payload)).status_code == 200
        response = await async_client.post("/v1/discounts/apply", json=payload)
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFLICT_ERROR"

    async def test_apply_to_missing_order(self, async_client):
        response = await async_client.post("/v1/discounts/apply", json={
            "order_id": "00000000-0000-0000-0000-000000000000",
        })
        assert response.status_code == 404

    async def test_request_validation(self, async_client):
        response = await async_client.post("/v1/discounts/preview", json={"order": ORDER, "points_to_redeem": -1})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    async def test_error_carries_client_correlation_id(self, async_client):
        response = await async_client.post(
            "/v1/discounts/preview",
            json={"order": ORDER, "points_to_redeem": -1},
            headers={"X-Correlation-ID": "till-7-0042"}
        )
        body = response.json()
        assert body["correlation_id"] == "till-7-0042"
        assert body["path"] == "/v1/discounts/preview"

    async def test_generate_code(self, async_client):
        response = await async_client.get("/v1/discounts/coupons/generate-code", params={"length": 10})
        assert len(response.json()["data"]["code"]) == 10


class TestOfferRoutes:

    def offer_payload(self, **overrides):
        payload = {
            "name": "Lassi fortnight",
            "offer_type": "category",
            "discount_value": "20",
            "category_id": "drinks",
            "valid_from": "2026-07-01",
            "valid_until": "2026-07-14",
        }
        payload.update(overrides)
        return payload

    async def test_validate_reports_overlap(self, async_client):
        response = await async_client.post("/v1/offers", json=self.offer_payload())
        assert response.status_code == 201

        response = await async_client.post("/v1/offers/validate", json={
            "offer": self.offer_payload(name="Lassi week", valid_from="2026-07-10", valid_until="2026-07-20")
        })
        data = response.json()["data"]
        assert data["valid"] is False
        assert data["errors"] == ["This offer overlaps with 1 existing offer(s)"]
        assert data["conflicting_offers"][0]["name"] == "Lassi fortnight"

    async def test_validate_clean_offer(self, async_client):
        response = await async_client.post("/v1/offers/validate", json={"offer": self.offer_payload()})
        assert response.json()["data"] == {"valid": True, "errors": [], "conflicting_offers": []}

    async def test_list_active_offers(self, async_client):
        await async_client.post("/v1/offers", json=self.offer_payload())
        response = await async_client.get("/v1/offers")
        assert [offer["name"] for offer in response.json()["data"]] == ["Lassi fortnight"]


class TestLoyaltyRoutes:

    async def test_membership_tiers_round_trip(self, async_client):
        response = await async_client.get("/v1/loyalty/membership-tiers")
        assert [tier["name"] for tier in response.json()["data"]] == ["silver", "gold", "platinum"]

        response = await async_client.put("/v1/loyalty/membership-tiers", json={"tiers": [
            {"name": "regular", "threshold": 2000, "discount": 3},
        ]})
        assert response.status_code == 200

        response = await async_client.get("/v1/loyalty/membership-tiers")
        tiers = response.json()["data"]
        assert len(tiers) == 1
        assert tiers[0]["name"] == "regular"
        assert Decimal(tiers[0]["discount"]) == Decimal("3")

    async def test_invalid_tiers_are_rejected(self, async_client):
        response = await async_client.put("/v1/loyalty/membership-tiers", json={"tiers": [
            {"name": "gold", "threshold": 100, "discount": 150},
        ]})
        assert response.status_code == 422
        assert response.json()["errors"] == ["Tier 1: discount must be between 0 and 100"]

    async def test_points_config_round_trip(self, async_client):
        response = await async_client.put("/v1/loyalty/points-config", json={
            "points_per_rupee": "0.2",
            "points_value": "0.5",
            "min_redeemable_points": 50,
            "points_expiry_days": 180,
        })
        assert response.status_code == 200

        data = (await async_client.get("/v1/loyalty/points-config")).json()["data"]
        assert Decimal(data["points_value"]) == Decimal("0.5")
        assert data["min_redeemable_points"] == 50

    async def test_recalculate_tiers(self, async_client, db_session, create_customer):
        customer = await create_customer(paid_orders=[21000])
        customer_id = customer.id

        response = await async_client.post("/v1/loyalty/membership-tiers/recalculate")
        data = response.json()["data"]
        assert response.status_code == 200
        assert data["processed"] == 1
        assert data["updated"] == 1

        db_session.expire_all()
        tier = (await db_session.execute(select(User.membership_tier).where(User.id == customer_id))).scalar_one()
        assert tier == "gold"

    async def test_saving_tiers_upgrades_customers(self, async_client, db_session, create_customer):
        customer = await create_customer(paid_orders=[1500])
        customer_id = customer.id

        response = await async_client.put("/v1/loyalty/membership-tiers", json={"tiers": [
            {"name": "bronze", "threshold": 1000, "discount": 2},
        ]})
        data = response.json()["data"]
        assert response.status_code == 200
        assert [tier["name"] for tier in data["tiers"]] == ["bronze"]
        assert data["recalculation"]["updated"] == 1

        db_session.expire_all()
        tier = (await db_session.execute(select(User.membership_tier).where(User.id == customer_id))).scalar_one()
        assert tier == "bronze"

    async def test_saving_tiers_without_recalculation(self, async_client):
        response = await async_client.put("/v1/loyalty/membership-tiers", json={
            "tiers": [{"name": "bronze", "threshold": 1000, "discount": 2}],
            "recalculate": False,
        })
        assert response.json()["data"]["recalculation"] is None


class TestHealthRoute:

    async def test_health(self, async_client):
        response = await async_client.get("/v1/health")
        body = response.json()
        assert response.status_code == 200
        assert body["data"]["status"] == "healthy"
        assert body["data"]["tier_job_running"] is False
