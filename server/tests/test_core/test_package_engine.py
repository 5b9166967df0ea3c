# 套餐推荐引擎测试

from decimal import Decimal

import pytest

from core.models import CartLine, MenuItem, PackageDefinition
from core.package_engine import (
    PackageSelection, DishRecommendation, normalize_guest_count, price_package,
    build_recommendation, flatten_lines, add_package_to_cart
)
from core.totals import cart_subtotal

BASIC_PICKS = {
    "appetizer": ["Veg Samosa"],
    "main": ["Dal Tadka", "Paneer Butter Masala"],
    "rice": ["Jeera Rice"],
    "bread": ["Butter Naan"],
    "dessert": ["Gulab Jamun"],
}


@pytest.fixture
def basic_package(package_config):
    return package_config.find("pkg-basic")


@pytest.fixture
def basic_selection(basic_package, menu):
    selection, rejected = PackageSelection.from_names(basic_package, BASIC_PICKS, menu)
    assert rejected == []
    return selection


class TestGuestCount:
    """人数归一化测试"""

    @pytest.mark.parametrize("raw,expected", [
        (15, (15, False)),
        (17, (15, False)),
        (18, (20, False)),
        (22.5, (25, False)),
        (3, (15, False)),
        (None, (15, False)),
        ("abc", (15, False)),
        (100, (100, False)),
        (150, (100, True)),
    ])
    def test_normalize(self, settings, raw, expected):
        assert normalize_guest_count(raw, settings) == expected


class TestPickCapacity:
    """档位容量测试"""

    def test_second_higher_tier_rejected(self, make_item):
        package = PackageDefinition(id="t", name="Test", slots={"main": ["A", "B"]})
        selection = PackageSelection(package)
        assert selection.toggle_pick("main", make_item("B1", group="B")).accepted
        assert not selection.toggle_pick("main", make_item("B2", group="B")).accepted
        assert selection.pick_names() == {"main": ["B1"]}

    def test_lower_tier_fills_remaining_slot(self, make_item):
        package = PackageDefinition(id="t", name="Test", slots={"main": ["A", "B"]})
        selection = PackageSelection(package)
        assert selection.toggle_pick("main", make_item("B1", group="B")).accepted
        result = selection.toggle_pick("main", make_item("A1", group="A"))
        assert result.accepted
        assert result.completed_course == "main"
        assert selection.is_ready()

    def test_course_full(self, make_item):
        package = PackageDefinition(id="t", name="Test", slots={"main": ["A"]})
        selection = PackageSelection(package)
        selection.toggle_pick("main", make_item("A1"))
        assert not selection.can_add_pick("main", make_item("A2"))

    def test_toggle_removes_existing_pick(self, make_item):
        package = PackageDefinition(id="t", name="Test", slots={"main": ["A", "A"]})
        selection = PackageSelection(package)
        dal = make_item("Dal")
        selection.toggle_pick("main", dal)
        result = selection.toggle_pick("main", dal)
        assert result.accepted and result.removed
        assert selection.pick_names() == {}

    def test_unknown_course_rejected(self, make_item):
        package = PackageDefinition(id="t", name="Test", slots={"main": ["A"]})
        assert not PackageSelection(package).toggle_pick("soup", make_item("X")).accepted


class TestCourseProgress:
    """课程完成状态测试"""

    def test_courses_without_slots_are_complete(self, make_item):
        package = PackageDefinition(id="t", name="Test", slots={"main": ["A"]})
        selection = PackageSelection(package)
        assert selection.is_complete("dessert")
        assert selection.incomplete_courses() == ["main"]
        assert selection.next_incomplete() == "main"

    def test_completing_course_opens_next(self, basic_package, menu):
        selection = PackageSelection(basic_package)
        result = selection.toggle_pick("appetizer", menu["Veg Samosa"])
        assert result.completed_course == "appetizer"
        assert result.open_course == "main"
        assert selection.next_incomplete() == "main"

    def test_from_names_rejects_unknown_and_wrong_course(self, basic_package, menu):
        picks = {"appetizer": ["Veg Samosa", "Nope"], "main": ["Jeera Rice"]}
        selection, rejected = PackageSelection.from_names(basic_package, picks, menu)
        assert set(rejected) == {"Nope", "Jeera Rice"}
        assert selection.pick_names() == {"appetizer": ["Veg Samosa"]}


class TestPricing:
    """套餐定价测试"""

    def test_round_to_twenty_then_whole_dollars(self):
        item = MenuItem(name="Platter", unit_type="per-piece", piece_price=181.37)
        dish = DishRecommendation(item=item, course="main", pieces=1)
        total_raw, rounded, per_person = price_package([dish], 15)
        assert total_raw == Decimal("181.37")
        assert rounded == Decimal("200")
        assert per_person == Decimal("14")

    def test_regular_appetite(self, basic_selection, thresholds):
        rec = build_recommendation(basic_selection, 15, "regular", thresholds)
        # 托盘 30 + 40 + 20，单件 (2 + 1 + 1) × 15
        assert rec.total_raw == Decimal("150")
        assert rec.rounded_total == Decimal("160")
        assert rec.per_person == Decimal("11")
        assert rec.adjusted_guests == 15

    def test_heavy_appetite_bumps_quantities_not_divisor(self, basic_selection, thresholds):
        rec = build_recommendation(basic_selection, 15, "heavy", thresholds)
        assert rec.adjusted_guests == 20
        assert rec.total_raw == Decimal("250")
        assert rec.rounded_total == Decimal("260")
        assert rec.per_person == Decimal("18")

    def test_large_party_uses_xl(self, basic_selection, thresholds):
        rec = build_recommendation(basic_selection, 40, "regular", thresholds)
        dal = next(d for d in rec.dishes if d.item.name == "Dal Tadka")
        assert [(a.size, a.count) for a in dal.allocation] == [("ExtraLargeTray", 1)]
        assert rec.per_person == Decimal("15")

    def test_not_ready_or_zero_guests(self, basic_package, basic_selection, thresholds):
        assert build_recommendation(PackageSelection(basic_package), 15, "regular", thresholds) is None
        assert build_recommendation(basic_selection, 0, "regular", thresholds) is None

    def test_details_text(self, basic_selection, thresholds):
        rec = build_recommendation(basic_selection, 15, "regular", thresholds)
        details = rec.details()
        assert details.startswith("Trays • ")
        assert "Dal Tadka — Small Tray × 1" in details
        assert "Veg Samosa — Per Piece × 15" in details


class TestAddToCart:
    """套餐加入购物车测试"""

    def test_flatten_lines_trays_first(self, basic_selection, thresholds):
        rec = build_recommendation(basic_selection, 15, "regular", thresholds)
        lines = flatten_lines(rec)
        kinds = [l["kind"] for l in lines]
        assert kinds == ["tray", "tray", "tray", "per-piece", "per-piece", "per-piece"]
        assert lines[0] == {"id": "Dal Tadka", "name": "Dal Tadka", "size": "SmallTray",
                            "qty": 1, "unit": 30.0, "kind": "tray"}

    def test_package_line_and_meta(self, basic_selection, thresholds, tray_line):
        rec = build_recommendation(basic_selection, 15, "regular", thresholds)
        cart, meta = add_package_to_cart([tray_line], rec, thresholds)
        assert len(cart) == 2
        package_line = cart[-1]
        assert package_line.name == "Basic Package (15 guests)"
        assert package_line.size == "package"
        assert package_line.qty == 15
        assert package_line.unit == 11.0
        assert meta["package_id"] == "pkg-basic"
        assert meta["pricing"]["per_person"] == 11.0
        assert len(meta["lines"]) == 6

    def test_same_package_replaced(self, basic_selection, thresholds):
        first = build_recommendation(basic_selection, 15, "regular", thresholds)
        second = build_recommendation(basic_selection, 40, "regular", thresholds)
        cart, _ = add_package_to_cart([], first, thresholds)
        cart, meta = add_package_to_cart(cart, second, thresholds)
        assert [c.qty for c in cart if c.is_package] == [40]
        assert meta["guests"] == 40

    def test_package_cart_line_counts_in_subtotal(self, basic_selection, thresholds):
        rec = build_recommendation(basic_selection, 15, "regular", thresholds)
        cart, _ = add_package_to_cart([], rec, thresholds)
        assert cart_subtotal(cart) == Decimal("165.00")
        assert isinstance(cart[0], CartLine)
