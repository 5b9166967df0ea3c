# 查询操作测试

from datetime import datetime

import pytest

from core.defaults import default_hours_config, default_package_config


@pytest.fixture
def seeded_orders(core_ops, make_draft):
    """三个订单：两个自取、一个配送现金"""
    ids = []
    ids.append(core_ops.create_order(
        make_draft("Asha", grand_total=86.60, when="2025-03-04T11:00:00-06:00"),
        "s1", datetime(2025, 3, 3, 9, 0))["order_id"])
    ids.append(core_ops.create_order(
        make_draft("Ben", method="delivery", payment="cash", grand_total=540.25,
                   when="2025-03-05T09:00:00-06:00"),
        "s2", datetime(2025, 3, 3, 10, 0))["order_id"])
    ids.append(core_ops.create_order(
        make_draft("Chen", grand_total=120.00, when="2025-03-04T17:30:00-06:00"),
        "s3", datetime(2025, 3, 3, 11, 0))["order_id"])
    return ids


class TestConfigFallback:
    """配置读取回退测试"""

    def test_missing_config_uses_defaults(self, query_ops):
        assert query_ops.get_package_config() == default_package_config()
        assert query_ops.get_hours_config() == default_hours_config()

    def test_invalid_payload_uses_defaults(self, query_ops, test_db):
        test_db.execute_single(
            "INSERT INTO config_store (config_key, payload) VALUES (?, ?)", ["packages", "{not json"]
        )
        test_db.execute_single(
            "INSERT INTO config_store (config_key, payload) VALUES (?, ?)", ["hours", '{"pickup_hours": 5}']
        )
        assert query_ops.get_package_config() == default_package_config()
        assert query_ops.get_hours_config() == default_hours_config()

    def test_saved_packages_round_trip(self, core_ops, query_ops):
        config = default_package_config()
        config.packages = config.packages[:1]
        core_ops.save_config("packages", config.model_dump(by_alias=True))
        loaded = query_ops.get_package_config()
        assert [p.id for p in loaded.packages] == ["pkg-basic"]


class TestListOrders:
    """订单列表测试"""

    def test_default_sort_newest_first(self, query_ops, seeded_orders):
        result = query_ops.list_orders()
        assert [o["customer_name"] for o in result["orders"]] == ["Chen", "Ben", "Asha"]
        assert result["pagination"]["total_count"] == 3
        assert "draft" not in result["orders"][0]

    def test_sort_by_total_ascending(self, query_ops, seeded_orders):
        result = query_ops.list_orders(sort_by="grand_total", descending=False)
        assert [o["grand_total"] for o in result["orders"]] == [86.60, 120.00, 540.25]

    def test_sort_by_scheduled_time(self, query_ops, seeded_orders):
        result = query_ops.list_orders(sort_by="when", descending=False)
        assert [o["customer_name"] for o in result["orders"]] == ["Asha", "Chen", "Ben"]

    def test_filters(self, query_ops, seeded_orders):
        assert [o["customer_name"] for o in query_ops.list_orders(method="delivery")["orders"]] == ["Ben"]
        assert query_ops.list_orders(payment_method="card")["pagination"]["total_count"] == 2
        assert query_ops.list_orders(payment_status="paid")["orders"] == []

    def test_pagination(self, query_ops, seeded_orders):
        page = query_ops.list_orders(offset=1, limit=1)
        assert [o["customer_name"] for o in page["orders"]] == ["Ben"]
        assert page["pagination"] == {"total_count": 3, "offset": 1, "limit": 1}

    @pytest.mark.parametrize("kwargs", [
        {"sort_by": "payload"},
        {"payment_status": "shipped"},
        {"offset": -1},
        {"limit": 0},
        {"limit": 501},
    ])
    def test_invalid_arguments(self, query_ops, kwargs):
        with pytest.raises(ValueError):
            query_ops.list_orders(**kwargs)

    def test_get_missing_order(self, query_ops):
        assert query_ops.get_order("CT-20250303-00000000") is None
