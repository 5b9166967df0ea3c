# 管理员API测试

import pytest

DAL = {"item_id": "Dal Tadka", "name": "Dal Tadka", "size": "SmallTray", "qty": 2, "unit": 40.0}
CUSTOMER = {
    "name": "Asha", "email": "asha@example.com", "phone": "2145550100",
    "method": "pickup", "pickup_date": "2025-03-04", "pickup_time": "11:00 AM",
}


@pytest.fixture
def placed_order(client, priced_menu):
    client.post("/api/cart/items", json=DAL)
    data = client.post("/api/orders", json={"customer": CUSTOMER, "payment": "cash"}).json()
    assert data["success"] is True
    return data["data"]["order_id"]


class TestAdminAccess:
    """管理员权限测试"""

    def test_requires_token(self, client):
        response = client.get("/api/admin/pricing")
        assert response.status_code == 401

    def test_expired_or_forged_token(self, client):
        response = client.get("/api/admin/pricing", headers={"Authorization": "Bearer abc.def.ghi"})
        assert response.status_code == 401


class TestMenuAdmin:
    """成本表与菜单发布测试"""

    def test_upload_and_list(self, client, admin_headers, sample_cost_rows):
        data = client.post("/api/admin/menu/costs", json={"rows": sample_cost_rows}, headers=admin_headers).json()
        assert data["data"] == {"count": 10}

        costs = client.get("/api/admin/menu/costs", headers=admin_headers).json()["data"]
        assert costs["count"] == 10
        samosa = next(i for i in costs["items"] if i["name"] == "Veg Samosa")
        assert samosa["unit_type"] == "per-piece"

    def test_upload_reports_bad_rows(self, client, admin_headers, sample_cost_rows):
        rows = sample_cost_rows + [{"Category": "Rice", "Item": "Pulao", "UnitPrice": "free"}]
        data = client.post("/api/admin/menu/costs", json={"rows": rows}, headers=admin_headers).json()
        assert data["success"] is False
        assert data["data"]["errors"][0]["row"] == 11

        costs = client.get("/api/admin/menu/costs", headers=admin_headers).json()["data"]
        assert costs["count"] == 0

    def test_upload_rejects_duplicates(self, client, admin_headers, sample_cost_rows):
        rows = sample_cost_rows + [sample_cost_rows[0]]
        data = client.post("/api/admin/menu/costs", json={"rows": rows}, headers=admin_headers).json()
        assert data["success"] is False
        assert "Veg Samosa" in data["error"]

    def test_upload_empty_rows(self, client, admin_headers):
        response = client.post("/api/admin/menu/costs", json={"rows": []}, headers=admin_headers)
        assert response.status_code == 422

    def test_deploy_requires_costs(self, client, admin_headers):
        data = client.post("/api/admin/pricing/deploy", headers=admin_headers).json()
        assert data["error"] == "Upload menu costs before deploying"

    def test_preview(self, client, admin_headers, sample_cost_rows):
        client.post("/api/admin/menu/costs", json={"rows": sample_cost_rows}, headers=admin_headers)
        data = client.get("/api/admin/pricing/preview", headers=admin_headers).json()["data"]
        assert data["margin"] == 150
        dal = next(r for r in data["rows"] if r["name"] == "Dal Tadka")
        assert dal["trays"]["SmallTray"]["set"] == 30.0

    def test_redeploy_removes_missing_items(self, client, admin_headers, deployed_menu, sample_cost_rows):
        assert deployed_menu == {"deployed": 10, "removed": 0}
        client.post("/api/admin/menu/costs", json={"rows": sample_cost_rows[:4]}, headers=admin_headers)
        data = client.post("/api/admin/pricing/deploy", headers=admin_headers).json()["data"]
        assert data == {"deployed": 4, "removed": 6}

    def test_import_priced_menu(self, client, admin_headers):
        data = client.post("/api/admin/menu/import", json={"rows": [
            {"Category": "Main Course", "Item": "Dal Makhani", "Type": "oz", "SmallTray": 35, "MediumTray": 60},
            {"Category": "Bread", "Item": "Garlic Naan", "Type": "pc", "SalePrice": 2.5},
        ]}, headers=admin_headers).json()
        assert data["data"] == {"deployed": 2, "removed": 0}

        menu = client.get("/api/menu").json()["data"]["categories"]
        assert menu["Bread"][0]["piece_price"] == 2.5


class TestPricingAdmin:
    """定价参数测试"""

    def test_save_pricing(self, client, admin_headers):
        pricing = client.get("/api/admin/pricing", headers=admin_headers).json()["data"]
        pricing["margin"] = 175
        data = client.put("/api/admin/pricing", json=pricing, headers=admin_headers).json()
        assert data["success"] is True
        assert client.get("/api/admin/pricing", headers=admin_headers).json()["data"]["margin"] == 175

    def test_pricing_requires_trays(self, client, admin_headers):
        data = client.put("/api/admin/pricing", json={"margin": 150, "trays": []}, headers=admin_headers).json()
        assert data["error"] == "At least one tray size is required"

    def test_tray_range_validated(self, client, admin_headers):
        response = client.put("/api/admin/pricing", json={"margin": 150, "trays": [
            {"key": "SmallTray", "name": "Small Tray", "oz": 80, "min_price": 50, "max_price": 40}
        ]}, headers=admin_headers)
        assert response.status_code == 422


class TestPackageAdmin:
    """套餐配置测试"""

    def test_save_packages(self, client, admin_headers):
        config = client.get("/api/admin/packages", headers=admin_headers).json()["data"]
        assert config["thresholds"]["heavyBump"] == 5
        config["packages"] = config["packages"][:1]
        config["thresholds"]["heavyBump"] = 10

        data = client.put("/api/admin/packages", json=config, headers=admin_headers).json()
        assert data["success"] is True

        packages = client.get("/api/packages").json()["data"]
        assert [p["id"] for p in packages["packages"]] == ["pkg-basic"]
        assert packages["thresholds"]["heavy_bump"] == 10

    def test_thresholds_must_increase(self, client, admin_headers):
        config = client.get("/api/admin/packages", headers=admin_headers).json()["data"]
        config["thresholds"]["medium"] = 10
        data = client.put("/api/admin/packages", json=config, headers=admin_headers).json()
        assert data["success"] is False
        assert "strictly increasing" in data["reasons"][0]

    def test_invalid_tier_letter(self, client, admin_headers):
        config = client.get("/api/admin/packages", headers=admin_headers).json()["data"]
        config["packages"][0]["slots"]["main"] = ["A", "Z"]
        data = client.put("/api/admin/packages", json=config, headers=admin_headers).json()
        assert data["error"] == "Package configuration is invalid"

    def test_duplicate_ids(self, client, admin_headers):
        config = client.get("/api/admin/packages", headers=admin_headers).json()["data"]
        config["packages"][1]["id"] = "pkg-basic"
        data = client.put("/api/admin/packages", json=config, headers=admin_headers).json()
        assert data["error"] == "Package ids must be unique"


class TestHoursAdmin:
    """营业时间测试"""

    def test_save_hours(self, client, admin_headers):
        hours = client.get("/api/admin/hours", headers=admin_headers).json()["data"]
        hours["pickupHours"]["Tue"] = {"closed": True}
        data = client.put("/api/admin/hours", json=hours, headers=admin_headers).json()
        assert data["success"] is True

        slots = client.get("/api/checkout/dates", params={"date": "2025-03-04"}).json()["data"]["slots"]
        assert slots == []

    def test_invalid_hours(self, client, admin_headers):
        hours = client.get("/api/admin/hours", headers=admin_headers).json()["data"]
        hours["pickupHours"]["Mon"] = {"open1": "14:00", "close1": "11:00"}
        hours["deliveryHours"]["Funday"] = {"closed": True}
        data = client.put("/api/admin/hours", json=hours, headers=admin_headers).json()
        assert data["success"] is False
        assert data["reasons"] == [
            "Pickup Mon window 1: close must be after open",
            "Delivery: unknown day(s) Funday",
        ]


class TestOrderAdmin:
    """订单管理测试"""

    def test_list_and_filter(self, client, admin_headers, placed_order):
        data = client.get("/api/admin/orders", headers=admin_headers).json()["data"]
        assert [o["order_id"] for o in data["orders"]] == [placed_order]
        assert data["orders"][0]["grand_total"] == 86.60

        data = client.get("/api/admin/orders", params={"method": "delivery"}, headers=admin_headers).json()
        assert data["data"]["orders"] == []

    def test_invalid_filters(self, client, admin_headers):
        data = client.get("/api/admin/orders", params={"sort_by": "payload"}, headers=admin_headers).json()
        assert data["error"] == "Cannot sort by payload"
        data = client.get("/api/admin/orders", params={"payment_status": "lost"}, headers=admin_headers).json()
        assert data["error"] == "Unknown payment status: lost"

    def test_order_detail(self, client, admin_headers, placed_order):
        data = client.get(f"/api/admin/orders/{placed_order}", headers=admin_headers).json()["data"]
        assert data["draft"]["line_summary"] == ["Dal Tadka — Small Tray × 2"]

        missing = client.get("/api/admin/orders/CT-0-0", headers=admin_headers).json()
        assert missing["error"] == "Order not found"

    def test_mark_paid(self, client, admin_headers, placed_order):
        data = client.patch(
            f"/api/admin/orders/{placed_order}/payment-status",
            json={"payment_status": "paid"}, headers=admin_headers
        ).json()["data"]
        assert data["previous_status"] == "pending"
        assert data["paid_at"] == "2025-03-03T09:00:00"

        data = client.get("/api/admin/orders", params={"payment_status": "paid"}, headers=admin_headers).json()
        assert data["data"]["pagination"]["total_count"] == 1

    def test_mark_unknown_status(self, client, admin_headers, placed_order):
        data = client.patch(
            f"/api/admin/orders/{placed_order}/payment-status",
            json={"payment_status": "shipped"}, headers=admin_headers
        ).json()
        assert data["success"] is False
