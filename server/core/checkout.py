# 结账流程编排
# 先算金额，再按金额选择营业时间表、生成时间段、复核已选时间，最后判断能否继续

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from .distance_fee import (
    DistanceQuote, STATUS_OK, STATUS_OUT_OF_RANGE, idle_quote, pickup_quote, quote_for_address
)
from .models import CartLine, CheckoutTotals, CustomerInfo, DaySchedule, HoursConfig
from .money import to_decimal
from .settings import CheckoutSettings
from .slot_calendar import TimeSlot, available_slots, revalidate_selection
from .totals import checkout_totals

REASON_EMPTY_CART = "Your cart is empty."
REASON_NO_SLOT = "Select a date and time."
REASON_NO_ADDRESS = "Enter a complete delivery address."
REASON_NO_DISTANCE = "Calculate the delivery distance or enter it manually."
REASON_OUT_OF_RANGE = "Delivery address is outside our delivery range."


def uses_delivery_hours(method: str, grand_total, settings: CheckoutSettings) -> bool:
    """配送且总计达到门槛时才使用配送营业时间"""
    return method == "delivery" and to_decimal(grand_total) >= settings.delivery_hours_threshold


def hours_for_order(
    method: str,
    grand_total,
    hours: HoursConfig,
    settings: CheckoutSettings
) -> Dict[str, DaySchedule]:
    if uses_delivery_hours(method, grand_total, settings):
        return hours.delivery_hours
    return hours.pickup_hours


def hours_label(method: str, grand_total, settings: CheckoutSettings) -> str:
    threshold = int(settings.delivery_hours_threshold)
    if method == "pickup":
        return "Pickup"
    if uses_delivery_hours(method, grand_total, settings):
        return f"Delivery (order ≥ ${threshold})"
    return f"Pickup (order < ${threshold})"


def evaluate_readiness(
    cart: List[CartLine],
    customer: CustomerInfo,
    selected_time: str,
    quote: Optional[DistanceQuote]
) -> List[str]:
    """
    检查能否进入支付，返回阻止原因列表（空列表表示可以继续）

    不抛异常，每个问题对应一条给客户看的提示
    """
    reasons = []
    if not cart:
        reasons.append(REASON_EMPTY_CART)
    if not customer.pickup_date or not selected_time:
        reasons.append(REASON_NO_SLOT)
    if customer.method == "delivery":
        if not customer.address.is_complete():
            reasons.append(REASON_NO_ADDRESS)
        if quote is not None and quote.status == STATUS_OUT_OF_RANGE:
            reasons.append(REASON_OUT_OF_RANGE)
        elif quote is None or quote.status != STATUS_OK:
            reasons.append(REASON_NO_DISTANCE)
    return reasons


@dataclass
class CheckoutSummary:
    totals: CheckoutTotals
    hours_label: str
    slots: List[TimeSlot]
    selected_time: str
    quote: DistanceQuote
    reasons: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.reasons

    def to_dict(self) -> dict:
        return {
            "totals": self.totals.model_dump(),
            "hours_label": self.hours_label,
            "slots": [s.label for s in self.slots],
            "selected_time": self.selected_time,
            "distance": self.quote.to_dict(),
            "ready": self.ready,
            "reasons": self.reasons,
        }


def summarize_checkout(
    cart: List[CartLine],
    customer: CustomerInfo,
    quote: Optional[DistanceQuote],
    hours: HoursConfig,
    now: datetime,
    settings: CheckoutSettings
) -> CheckoutSummary:
    """
    结账页完整计算

    金额在时间段之前计算；附加项或折扣变化导致营业时间表切换时，
    之前选的时间若不在新列表中会被清空

    Args:
        cart: 购物车行
        customer: 客户填写的结账信息
        quote: 最近一次测距结果，配送且尚未测距时为None；地址与当前地址不同时视为未测距
        hours: 自取/配送营业时间
        now: 当前时刻（测试时注入固定值）
        settings: 结账参数
    """
    if customer.method != "delivery":
        quote = pickup_quote()
    else:
        quote = quote_for_address(quote, customer.address.one_line())
    fee = quote.fee if quote is not None else 0

    totals = checkout_totals(
        cart, customer.method, fee, customer.add_on_flags(), customer.disc_code, settings
    )

    slots: List[TimeSlot] = []
    target = _parse_date(customer.pickup_date)
    if target is not None:
        hours_map = hours_for_order(customer.method, totals.grand_total, hours, settings)
        slots = available_slots(hours_map, target, now, settings)
    selected = revalidate_selection(customer.pickup_time, slots)

    return CheckoutSummary(
        totals=totals,
        hours_label=hours_label(customer.method, totals.grand_total, settings),
        slots=slots,
        selected_time=selected,
        quote=quote if quote is not None else idle_quote(),
        reasons=evaluate_readiness(cart, customer, selected, quote),
    )


def _parse_date(value: str) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None
