# 配送里程与配送费
# 里程来自外部测距服务或客户手动输入，按档位换算为固定配送费

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .money import to_decimal, round2, ZERO
from .settings import CheckoutSettings

STATUS_IDLE = "idle"
STATUS_OK = "ok"
STATUS_FAIL = "fail"
STATUS_OUT_OF_RANGE = "out_of_range"

METERS_PER_MILE = Decimal("1609.344")


@dataclass(frozen=True)
class DistanceQuote:
    """
    测距结果

    status为fail时允许手动输入里程；out_of_range时订单不可继续
    """
    status: str
    miles: Optional[Decimal]
    fee: Decimal
    allow_manual: bool
    source: str = "lookup"
    address: str = ""

    @property
    def blocks_checkout(self) -> bool:
        return self.status == STATUS_OUT_OF_RANGE

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "miles": float(self.miles) if self.miles is not None else None,
            "fee": float(self.fee),
            "allow_manual": self.allow_manual,
            "source": self.source,
            "address": self.address,
        }


def meters_to_miles(meters) -> Decimal:
    return round2(to_decimal(meters) / METERS_PER_MILE)


def is_out_of_range(miles, settings: CheckoutSettings) -> bool:
    return to_decimal(miles) > settings.max_delivery_miles


def delivery_fee_for_miles(miles, settings: CheckoutSettings) -> Decimal:
    """按里程档位返回配送费，超出范围返回0（由调用方阻止下单）"""
    m = to_decimal(miles)
    for max_miles, fee in settings.delivery_tiers:
        if m <= max_miles:
            return fee
    return ZERO


def _quote_for_miles(miles: Decimal, settings: CheckoutSettings, source: str, address: str) -> DistanceQuote:
    if is_out_of_range(miles, settings):
        return DistanceQuote(STATUS_OUT_OF_RANGE, miles, ZERO, False, source, address)
    return DistanceQuote(STATUS_OK, miles, delivery_fee_for_miles(miles, settings), False, source, address)


def quote_from_lookup(miles, settings: CheckoutSettings, address: str = "") -> DistanceQuote:
    """
    外部测距结果转换为报价

    Args:
        miles: 测距服务返回的里程，None表示服务不可用或无结果
        address: 测距时的送餐地址（Address.one_line）

    Returns:
        DistanceQuote，失败时允许手动输入
    """
    if miles is None:
        return DistanceQuote(STATUS_FAIL, None, ZERO, True, "lookup", address)
    return _quote_for_miles(round2(miles), settings, "lookup", address)


def manual_quote(miles, settings: CheckoutSettings, address: str = "") -> DistanceQuote:
    """手动输入里程的报价，档位规则与自动测距相同"""
    value = to_decimal(miles)
    if value < 0:
        raise ValueError("distance cannot be negative")
    return _quote_for_miles(round2(value), settings, "manual", address)


def pickup_quote() -> DistanceQuote:
    return DistanceQuote(STATUS_IDLE, None, ZERO, False, "pickup")


def idle_quote() -> DistanceQuote:
    """配送但尚未测距"""
    return DistanceQuote(STATUS_IDLE, None, ZERO, False, "none")


def quote_from_dict(data: Optional[dict]) -> Optional[DistanceQuote]:
    """从会话中保存的to_dict()结果恢复报价，数据缺失或损坏时返回None"""
    if not data or "status" not in data:
        return None
    miles = data.get("miles")
    return DistanceQuote(
        status=str(data["status"]),
        miles=round2(miles) if miles is not None else None,
        fee=round2(data.get("fee") or 0),
        allow_manual=bool(data.get("allow_manual", False)),
        source=str(data.get("source", "lookup")),
        address=str(data.get("address") or ""),
    )


def address_key(address: str) -> str:
    """比较用的地址：忽略大小写、逗号和多余空白"""
    return re.sub(r"[\s,]+", " ", str(address or "")).strip().lower()


def quote_for_address(quote: Optional[DistanceQuote], address: str) -> Optional[DistanceQuote]:
    """
    只有为当前地址计算的报价才有效

    地址变化后旧报价作废，需重新测距或手动输入里程
    """
    if quote is None or address_key(quote.address) != address_key(address):
        return None
    return quote
