# 结账金额计算
# 计算顺序固定：购物车合计 -> 折扣 -> 小计 -> 税 -> 总计，每一步都四舍五入到分

from decimal import Decimal
from typing import Dict, List, Optional

from .models import CartLine, CheckoutTotals
from .money import to_decimal, round2, to_float, ZERO
from .settings import CheckoutSettings


def cart_subtotal(lines: List[CartLine]) -> Decimal:
    """购物车合计 = Σ 数量 × 单价，四舍五入到分"""
    total = ZERO
    for line in lines or []:
        total += to_decimal(line.qty) * to_decimal(line.unit)
    return round2(total)


def discount_for_code(code: Optional[str], cart_total, settings: CheckoutSettings) -> Decimal:
    """折扣码（不区分大小写）只作用于购物车合计，不含配送费和附加费"""
    if str(code or "").strip().lower() != settings.discount_code.lower():
        return ZERO
    return round2(round2(cart_total) * settings.discount_rate)


def add_on_fee(flags: Dict[str, bool], settings: CheckoutSettings) -> Decimal:
    """附加服务费，每个勾选项收取固定费用"""
    selected = sum(1 for key in settings.add_on_flags if (flags or {}).get(key))
    return round2(settings.add_on_fee * selected)


def compute_totals(cart_total, delivery_fee, add_on, discount, tax_rate) -> CheckoutTotals:
    """
    按固定顺序计算结账金额

    subtotal = round2(cart + delivery + add_on - discount)
    tax = round2(subtotal * rate)
    grand_total = round2(subtotal + tax)

    输入已是两位小数时结果不变，重复计算得到相同总计
    """
    cart = round2(cart_total)
    delivery = round2(delivery_fee)
    addon = round2(add_on)
    disc = round2(discount)
    subtotal = round2(cart + delivery + addon - disc)
    tax = round2(subtotal * to_decimal(tax_rate))
    grand_total = round2(subtotal + tax)
    return CheckoutTotals(
        cart_total=to_float(cart),
        delivery_fee=to_float(delivery),
        add_on_fee=to_float(addon),
        discount=to_float(disc),
        tax=to_float(tax),
        subtotal=to_float(subtotal),
        grand_total=to_float(grand_total),
    )


def checkout_totals(
    lines: List[CartLine],
    method: str,
    delivery_fee,
    flags: Dict[str, bool],
    code: Optional[str],
    settings: CheckoutSettings
) -> CheckoutTotals:
    """结账页和支付页共用的完整金额计算，自取时配送费为0"""
    cart = cart_subtotal(lines)
    fee = to_decimal(delivery_fee) if method == "delivery" else ZERO
    return compute_totals(
        cart_total=cart,
        delivery_fee=fee,
        add_on=add_on_fee(flags, settings),
        discount=discount_for_code(code, cart, settings),
        tax_rate=settings.tax_rate,
    )
