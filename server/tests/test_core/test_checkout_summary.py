# 结账流程编排测试

import pytest

from core.checkout import (
    REASON_EMPTY_CART, REASON_NO_SLOT, REASON_NO_ADDRESS, REASON_NO_DISTANCE, REASON_OUT_OF_RANGE,
    hours_label, summarize_checkout
)
from core.defaults import default_hours_config
from core.distance_fee import manual_quote, quote_from_lookup
from core.models import Address, CartLine, CustomerInfo

ADDRESS = Address(addr1="1 Main St", city="Irving", state="TX", zip="75063")


def customer(**overrides):
    data = dict(
        name="Asha", email="asha@example.com", phone="(214) 555-0100",
        method="pickup", pickup_date="2025-03-04", pickup_time="11:30 AM",
    )
    data.update(overrides)
    return CustomerInfo(**data)


@pytest.fixture
def hours():
    return default_hours_config()


@pytest.fixture
def big_line():
    return CartLine(item_id="Feast", name="Feast", size="ExtraLargeTray", qty=2, unit=250.0)


class TestHoursSelection:
    """营业时间表选择测试"""

    def test_labels(self, settings):
        assert hours_label("pickup", 900, settings) == "Pickup"
        assert hours_label("delivery", 499.99, settings) == "Pickup (order < $500)"
        assert hours_label("delivery", 500, settings) == "Delivery (order ≥ $500)"


class TestSummarize:
    """结账汇总测试"""

    def test_pickup_ready(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout([tray_line], customer(), None, hours, fixed_now, settings)
        assert summary.ready
        assert summary.selected_time == "11:30 AM"
        assert summary.quote.source == "pickup"
        assert summary.totals.grand_total == 86.60

    def test_pickup_ignores_stored_quote(self, tray_line, hours, fixed_now, settings):
        quote = manual_quote(150, settings)
        summary = summarize_checkout([tray_line], customer(), quote, hours, fixed_now, settings)
        assert summary.ready
        assert summary.totals.delivery_fee == 0.0

    def test_empty_cart(self, hours, fixed_now, settings):
        summary = summarize_checkout([], customer(), None, hours, fixed_now, settings)
        assert summary.reasons == [REASON_EMPTY_CART]

    def test_missing_slot(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout([tray_line], customer(pickup_time=""), None, hours, fixed_now, settings)
        assert summary.reasons == [REASON_NO_SLOT]

    def test_delivery_needs_distance(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=ADDRESS), None, hours, fixed_now, settings
        )
        assert summary.reasons == [REASON_NO_DISTANCE]
        assert summary.quote.status == "idle"

    def test_delivery_failed_lookup_blocks(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=ADDRESS),
            quote_from_lookup(None, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert REASON_NO_DISTANCE in summary.reasons
        assert summary.quote.allow_manual

    def test_delivery_incomplete_address(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [tray_line], customer(method="delivery"), manual_quote(5, settings), hours, fixed_now, settings
        )
        assert summary.reasons == [REASON_NO_ADDRESS]

    def test_delivery_out_of_range(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=ADDRESS),
            manual_quote(101, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert summary.reasons == [REASON_OUT_OF_RANGE]

    def test_delivery_ready_end_to_end(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=ADDRESS),
            quote_from_lookup(18, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert summary.ready
        assert summary.totals.grand_total == 140.73
        assert summary.hours_label == "Pickup (order < $500)"

    def test_quote_for_other_address_ignored(self, tray_line, hours, fixed_now, settings):
        far = Address(addr1="9 Ranch Rd", city="Amarillo", state="TX", zip="79101")
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=far),
            quote_from_lookup(10, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert summary.reasons == [REASON_NO_DISTANCE]
        assert summary.quote.status == "idle"
        assert summary.totals.delivery_fee == 0.0

    def test_quote_address_match_ignores_case_and_spacing(self, tray_line, hours, fixed_now, settings):
        same = Address(addr1="1  MAIN ST", city="irving", state="tx", zip="75063")
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=same),
            quote_from_lookup(18, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert summary.ready
        assert summary.totals.delivery_fee == 50.0

    def test_large_delivery_uses_delivery_hours(self, big_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [big_line], customer(method="delivery", address=ADDRESS, pickup_time="9:00 AM"),
            manual_quote(10, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert summary.ready
        assert summary.slots[0].label == "9:00 AM"

    def test_selection_cleared_when_hours_switch(self, tray_line, hours, fixed_now, settings):
        summary = summarize_checkout(
            [tray_line], customer(method="delivery", address=ADDRESS, pickup_time="9:00 AM"),
            manual_quote(10, settings, ADDRESS.one_line()), hours, fixed_now, settings
        )
        assert summary.selected_time == ""
        assert summary.reasons == [REASON_NO_SLOT]

    def test_to_dict(self, tray_line, hours, fixed_now, settings):
        data = summarize_checkout([tray_line], customer(), None, hours, fixed_now, settings).to_dict()
        assert data["ready"] is True
        assert data["slots"][0] == "11:00 AM"
        assert data["distance"]["source"] == "pickup"
