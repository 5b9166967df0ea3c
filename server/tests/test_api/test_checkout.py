# 结账API测试

import pytest

from api.checkout.routes import get_distance_service
from api.main import app

ADDRESS = {"addr1": "1 Main St", "city": "Irving", "state": "TX", "zip": "75063"}
DAL = {"item_id": "Dal Tadka", "name": "Dal Tadka", "size": "SmallTray", "qty": 2, "unit": 40.0}
FAR_ADDRESS = {"addr1": "9 Ranch Rd", "city": "Amarillo", "state": "TX", "zip": "79101"}


class FailingDistanceService:
    async def driving_miles(self, origin, destination):
        return None


class CityDistanceService:
    async def driving_miles(self, origin, destination):
        return 350 if "Amarillo" in destination else 10


@pytest.fixture
def city_distance(client):
    app.dependency_overrides[get_distance_service] = lambda: CityDistanceService()
    yield
    app.dependency_overrides.pop(get_distance_service, None)


@pytest.fixture
def failing_distance(client):
    app.dependency_overrides[get_distance_service] = lambda: FailingDistanceService()
    yield
    app.dependency_overrides.pop(get_distance_service, None)


class TestDates:
    """日期与时间段测试"""

    def test_default_date_is_earliest(self, client):
        data = client.get("/api/checkout/dates").json()["data"]
        assert data["min_date"] == "2025-03-04"
        assert data["max_date"] == "2025-06-01"
        assert data["date"] == "2025-03-04"
        assert data["hours_label"] == "Pickup"
        assert len(data["slots"]) == 13
        assert data["slots"][0] == "11:00 AM"

    def test_date_clamped(self, client):
        data = client.get("/api/checkout/dates", params={"date": "2025-01-01"}).json()["data"]
        assert data["date"] == "2025-03-04"

    def test_large_delivery_hours(self, client):
        data = client.get("/api/checkout/dates", params={
            "date": "2025-03-05", "method": "delivery", "grand_total": 650
        }).json()["data"]
        assert data["hours_label"] == "Delivery (order ≥ $500)"
        assert data["slots"][0] == "9:00 AM"

    def test_invalid_date(self, client):
        data = client.get("/api/checkout/dates", params={"date": "03/04/2025"}).json()
        assert data["success"] is False


class TestDistance:
    """配送测距测试"""

    def test_lookup(self, client):
        data = client.post("/api/checkout/distance", json={"address": ADDRESS}).json()
        assert data["success"] is True
        assert data["data"]["miles"] == 18.0
        assert data["data"]["fee"] == 50.0

        draft = client.get("/api/checkout/draft").json()["data"]
        assert draft["distance"]["status"] == "ok"

    def test_incomplete_address(self, client):
        data = client.post("/api/checkout/distance", json={"address": {"addr1": "1 Main St"}}).json()
        assert data["error"] == "Enter a complete delivery address."

    def test_bad_zip(self, client):
        data = client.post("/api/checkout/distance", json={"address": {**ADDRESS, "zip": "7506"}}).json()
        assert data["error"] == "ZIP code must be 5 digits"

    def test_lookup_failure_allows_manual(self, client, failing_distance):
        data = client.post("/api/checkout/distance", json={"address": ADDRESS}).json()
        assert data["success"] is False
        assert data["data"]["allow_manual"] is True

        data = client.post("/api/checkout/distance/manual", json={"miles": 30}).json()
        assert data["success"] is True
        assert data["data"]["fee"] == 175.0
        assert data["data"]["source"] == "manual"

    def test_manual_out_of_range(self, client):
        data = client.post("/api/checkout/distance/manual", json={"miles": 150}).json()
        assert data["success"] is False
        assert data["error"].startswith("Delivery is limited to")
        assert data["data"]["status"] == "out_of_range"

    def test_manual_negative(self, client):
        data = client.post("/api/checkout/distance/manual", json={"miles": -1}).json()
        assert data["error"] == "Miles must be zero or more"


class TestSummary:
    """结账汇总测试"""

    def test_pickup_summary(self, client, priced_menu):
        client.post("/api/cart/items", json=DAL)
        data = client.post("/api/checkout/summary", json={
            "name": "Asha", "email": "asha@example.com", "phone": "2145550100",
            "method": "pickup", "pickup_date": "2025-03-04", "pickup_time": "11:30 AM",
            "remember_details": True,
        }).json()["data"]
        assert data["ready"] is True
        assert data["totals"]["grand_total"] == 86.60

        restored = client.get("/api/checkout/draft").json()["data"]
        assert restored["draft"]["customer"]["pickup_time"] == "11:30 AM"
        assert restored["saved_customer"]["name"] == "Asha"

    def test_delivery_summary_uses_stored_distance(self, client, priced_menu):
        client.post("/api/cart/items", json=DAL)
        client.post("/api/checkout/distance", json={"address": ADDRESS})
        data = client.post("/api/checkout/summary", json={
            "method": "delivery", "address": ADDRESS,
            "pickup_date": "2025-03-04", "pickup_time": "11:30 AM",
        }).json()["data"]
        assert data["totals"]["grand_total"] == 140.73
        assert data["ready"] is True

    def test_not_ready_reasons(self, client):
        data = client.post("/api/checkout/summary", json={"method": "delivery"}).json()
        assert data["success"] is True
        assert data["data"]["ready"] is False
        assert data["data"]["reasons"] == [
            "Your cart is empty.",
            "Select a date and time.",
            "Enter a complete delivery address.",
            "Calculate the delivery distance or enter it manually.",
        ]
        assert client.get("/api/checkout/draft").json()["data"]["saved_customer"] is None


class TestDistanceAddress:
    """测距结果与地址绑定测试"""

    def delivery(self, address):
        return {"method": "delivery", "address": address, "pickup_date": "2025-03-04", "pickup_time": "11:30 AM"}

    def test_changed_address_needs_new_lookup(self, client, priced_menu, city_distance):
        client.post("/api/cart/items", json=DAL)
        client.post("/api/checkout/distance", json={"address": ADDRESS})

        data = client.post("/api/checkout/summary", json=self.delivery(FAR_ADDRESS)).json()["data"]
        assert data["ready"] is False
        assert data["reasons"] == ["Calculate the delivery distance or enter it manually."]
        assert data["distance"]["status"] == "idle"
        assert data["totals"]["delivery_fee"] == 0.0

        lookup = client.post("/api/checkout/distance", json={"address": FAR_ADDRESS}).json()
        assert lookup["data"]["status"] == "out_of_range"
        data = client.post("/api/checkout/summary", json=self.delivery(FAR_ADDRESS)).json()["data"]
        assert data["reasons"] == ["Delivery address is outside our delivery range."]

    def test_order_blocked_for_other_address(self, client, priced_menu, city_distance):
        client.post("/api/cart/items", json=DAL)
        client.post("/api/checkout/distance", json={"address": ADDRESS})

        data = client.post("/api/orders", json={
            "customer": {"name": "Asha", "email": "asha@example.com", **self.delivery(FAR_ADDRESS)},
            "payment": "card",
        }).json()
        assert data["success"] is False
        assert data["reasons"] == ["Calculate the delivery distance or enter it manually."]

    def test_manual_miles_keep_lookup_address(self, client, priced_menu, failing_distance):
        client.post("/api/cart/items", json=DAL)
        client.post("/api/checkout/distance", json={"address": ADDRESS})
        manual = client.post("/api/checkout/distance/manual", json={"miles": 30}).json()["data"]
        assert manual["address"] == "1 Main St , Irving, TX 75063"

        data = client.post("/api/checkout/summary", json=self.delivery(ADDRESS)).json()["data"]
        assert data["ready"] is True
        assert data["totals"]["delivery_fee"] == 175.0

    def test_manual_miles_for_new_address(self, client, priced_menu):
        client.post("/api/cart/items", json=DAL)
        client.post("/api/checkout/distance/manual", json={"miles": 300, "address": FAR_ADDRESS})
        data = client.post("/api/checkout/summary", json=self.delivery(FAR_ADDRESS)).json()["data"]
        assert data["reasons"] == ["Delivery address is outside our delivery range."]

        data = client.post("/api/checkout/distance/manual", json={"miles": 5, "address": {"addr1": "x"}}).json()
        assert data["error"] == "Enter a complete delivery address."
