# 订单草稿组装
# 把购物车、套餐元数据、辣度选择和客户信息整理为下单/支付服务使用的统一载荷

import re
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from .models import (
    CartLine, CheckoutTotals, CustomerInfo, OrderDraft, OrderLine, SpiceSelection,
    PER_PIECE, TRAY_SIZES, size_label
)
from .ingest import normalize_spice
from .settings import CheckoutSettings
from .slot_calendar import build_when

PAYMENT_CARD = "card"
PAYMENT_CASH = "cash"


def to_e164(raw: Optional[str]) -> str:
    """美国电话号码转换为E.164格式，无法识别时原样返回"""
    if not raw:
        return ""
    s = str(raw).strip()
    if s.startswith("+"):
        return s
    digits = re.sub(r"\D", "", s)
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    return s


def _display_size(size: str) -> str:
    if size in TRAY_SIZES or size == PER_PIECE:
        return size_label(size)
    return size


def normalize_meta_lines(meta_lines: List[dict]) -> List[OrderLine]:
    """
    套餐展开明细 -> 统一订单行

    丢弃名称或尺寸为空、数量 <= 0 的条目
    """
    out = []
    for raw in meta_lines or []:
        name = str(raw.get("name") or "").strip()
        size = _display_size(str(raw.get("size") or "").strip())
        try:
            qty = int(raw.get("qty") or 0)
        except (TypeError, ValueError):
            qty = 0
        if not name or not size or qty <= 0:
            continue
        out.append(OrderLine(name=name, size=size, qty=qty, spice_level=normalize_spice(raw.get("spice_level"))))
    return out


def normalize_cart_lines(cart: List[CartLine]) -> List[OrderLine]:
    """直接购买的托盘/单件行 -> 统一订单行（套餐行由展开明细代表）"""
    return [
        OrderLine(name=c.name, size=c.size_label, qty=c.qty, spice_level=normalize_spice(c.spice_level))
        for c in cart or [] if not c.is_package
    ]


def line_summary(lines: List[OrderLine]) -> List[str]:
    out = []
    for line in lines:
        text = f"{line.name} — {line.size} × {line.qty}"
        if line.spice_level:
            text += f" (Spice: {line.spice_level})"
        out.append(text)
    return out


def package_tray_summary(lines: List[OrderLine]) -> str:
    """按(名称, 尺寸)合并数量的简短托盘汇总"""
    grouped: "OrderedDict[Tuple[str, str], int]" = OrderedDict()
    for line in lines:
        key = (line.name, line.size)
        grouped[key] = grouped.get(key, 0) + line.qty
    return ", ".join(f"{name} — {size} × {qty}" for (name, size), qty in grouped.items())


def collect_spice_selections(meta_lines: List[OrderLine], cart: List[CartLine]) -> List[SpiceSelection]:
    """合并套餐明细和购物车中的辣度选择，同一(名称, 尺寸, 辣度)只保留一条"""
    seen = set()
    out = []
    candidates = [(l.name, l.size, l.qty, l.spice_level, "package") for l in meta_lines]
    candidates += [
        (c.name, c.size_label, c.qty, normalize_spice(c.spice_level), "trays")
        for c in cart or []
    ]
    for name, size, qty, level, source in candidates:
        if not level:
            continue
        key = (name, size, level)
        if key in seen:
            continue
        seen.add(key)
        out.append(SpiceSelection(name=name, size=size, qty=qty, spice_level=level, source=source))
    return out


def cart_for_api(cart: List[CartLine], tray_summary: str) -> List[Dict[str, Any]]:
    """下单接口用的购物车，套餐行名称附带托盘汇总"""
    out = []
    for c in cart or []:
        base: Dict[str, Any] = {
            "item_id": c.item_id,
            "name": c.name,
            "size": c.size,
            "qty": c.qty,
            "unit": c.unit,
        }
        spice = normalize_spice(c.spice_level)
        if spice:
            base["spice_level"] = spice
        if c.is_package and tray_summary:
            base["original_name"] = c.name
            base["name"] = f"{c.name} — [{tray_summary}]"
            base["tray_summary"] = tray_summary
        out.append(base)
    return out


def resolve_payment(requested: Optional[str], settings: CheckoutSettings) -> str:
    """现金支付关闭时一律改为刷卡"""
    p = str(requested or PAYMENT_CARD).strip().lower()
    if p == PAYMENT_CASH and settings.allow_cash:
        return PAYMENT_CASH
    return PAYMENT_CARD


def scheduled_instant(customer: CustomerInfo, settings: CheckoutSettings) -> Optional[datetime]:
    when = build_when(customer.pickup_date, customer.pickup_time)
    if when is None:
        return None
    return when.replace(tzinfo=ZoneInfo(settings.time_zone))


def assemble_order_draft(
    cart: List[CartLine],
    totals: CheckoutTotals,
    customer: CustomerInfo,
    payment: str,
    order_meta: Optional[Dict[str, Any]],
    settings: CheckoutSettings
) -> OrderDraft:
    """
    组装订单草稿

    不读取当前时间，同样的输入总是得到同样的草稿（可重复调用）

    Args:
        cart: 购物车行
        totals: 最终结账金额
        customer: 客户信息
        payment: card / cash
        order_meta: 套餐元数据（含展开明细），没有套餐时为空
        settings: 结账参数

    Returns:
        OrderDraft
    """
    meta = dict(order_meta or {})
    package_lines = normalize_meta_lines(meta.get("lines", []))
    all_lines = package_lines + normalize_cart_lines(cart)
    summary = line_summary(all_lines)
    tray_summary = package_tray_summary(package_lines)

    payment = resolve_payment(payment, settings)
    when = scheduled_instant(customer, settings)
    when_iso = when.isoformat() if when else None
    when_epoch = int(when.timestamp() * 1000) if when else None

    customer_payload = customer.model_dump()
    customer_payload.update({
        "name": customer.name.strip(),
        "email": customer.email.strip(),
        "phone": to_e164(customer.phone),
        "ref_code": customer.ref_code.strip(),
        "disc_code": customer.disc_code.strip(),
        "special_request": customer.special_request.strip(),
        "when": when_iso,
        "when_epoch": when_epoch,
    })

    meta.update({
        "lines": [l.model_dump() for l in package_lines],
        "line_summary": line_summary(package_lines),
        "package_tray_summary": tray_summary,
    })

    return OrderDraft(
        cart=cart_for_api(cart, tray_summary),
        totals=totals,
        customer=customer_payload,
        payment=payment,
        when=when_iso,
        when_epoch=when_epoch,
        lines=all_lines,
        line_summary=summary,
        package_tray_summary=tray_summary,
        spice_selections=collect_spice_selections(package_lines, cart),
        order_meta=meta,
    )
