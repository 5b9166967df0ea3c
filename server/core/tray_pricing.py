# 管理端售价计算
# 由原始成本和利润率推导每盎司售价、单件售价、各托盘售价

from decimal import Decimal
from typing import Dict, List, Optional

from .models import CartLine, CostItem, MenuItem, PricingConfig, TraySize, PER_PIECE, size_label
from .money import to_decimal, ceil_whole, ceil_to_increment, to_float

TRAY_ROUND_TO = Decimal("10")


def sale_price_per_oz(cost, margin) -> Decimal:
    """每盎司售价 = 成本 * (1 + 利润率/100)"""
    return to_decimal(cost) * (1 + to_decimal(margin) / 100)


def piece_price(sale_one_oz, min_piece_price) -> Decimal:
    """单件售价：向上取整到整元，且不低于最低单价"""
    return max(to_decimal(min_piece_price), ceil_whole(sale_one_oz))


def tray_price(sale_one_oz, tray: TraySize) -> Dict[str, Decimal]:
    """
    托盘售价

    actual = 每盎司售价 * 托盘盎司数；低于下限取下限，高于上限取上限，
    否则向上取整到10元

    Returns:
        {"actual": 计算值, "set": 最终售价}
    """
    actual = to_decimal(sale_one_oz) * to_decimal(tray.oz)
    lower, upper = to_decimal(tray.min_price), to_decimal(tray.max_price)
    if actual < lower:
        final = lower
    elif actual > upper:
        final = upper
    else:
        final = ceil_to_increment(actual, TRAY_ROUND_TO)
    return {"actual": actual, "set": final}


def price_cost_item(item: CostItem, config: PricingConfig) -> MenuItem:
    """成本行 -> 客户端菜品（含售价）"""
    sale = sale_price_per_oz(item.cost, config.margin)
    common = dict(
        name=item.name,
        category=item.category,
        group=item.group,
        unit_type=item.unit_type,
        cost=item.cost,
        description=item.description,
    )
    if item.unit_type == PER_PIECE:
        return MenuItem(piece_price=to_float(piece_price(sale, config.min_piece_price)), **common)
    prices = {t.key: to_float(tray_price(sale, t)["set"]) for t in config.trays}
    return MenuItem(tray_prices=prices, **common)


def build_customer_menu(items: List[CostItem], config: PricingConfig) -> List[MenuItem]:
    return [price_cost_item(item, config) for item in items]


def preview_rows(items: List[CostItem], config: PricingConfig) -> List[dict]:
    """发布前的定价预览：每个托盘显示计算值和最终售价"""
    rows = []
    for item in items:
        sale = sale_price_per_oz(item.cost, config.margin)
        row = {
            "category": item.category,
            "name": item.name,
            "group": item.group,
            "unit_type": item.unit_type,
            "cost": item.cost,
            "sale_per_oz": to_float(sale),
        }
        if item.unit_type == PER_PIECE:
            row["piece_price"] = to_float(piece_price(sale, config.min_piece_price))
        else:
            trays = {}
            for tray in config.trays:
                p = tray_price(sale, tray)
                trays[tray.key] = {"actual": to_float(p["actual"]), "set": to_float(p["set"])}
            row["trays"] = trays
        rows.append(row)
    return rows


def price_cart_line(line: CartLine, menu: Dict[str, MenuItem]) -> CartLine:
    """
    按已发布菜单为单点购物车行定价

    客户端传来的单价不参与计算；套餐行只能由套餐推荐生成。
    只有提供辣度的菜品保留辣度

    Raises:
        ValueError: 套餐行、菜单中没有的菜品或该菜品不提供的尺寸
    """
    if line.is_package:
        raise ValueError("Packages can only be added from the package builder")
    item: Optional[MenuItem] = menu.get(line.name) or menu.get(line.item_id)
    if item is None:
        raise ValueError(f"{line.name} is not on the menu")

    if item.is_per_piece:
        if line.size != PER_PIECE or item.piece_price is None:
            raise ValueError(f"{item.name} is sold per piece")
        unit = item.piece_price
    else:
        unit = item.tray_prices.get(line.size)
        if not unit:
            raise ValueError(f"{item.name} is not offered as a {size_label(line.size)}")

    return line.model_copy(update={
        "item_id": item.item_id,
        "name": item.name,
        "unit": float(unit),
        "spice_level": line.spice_level if item.offers_spice else None,
    })
