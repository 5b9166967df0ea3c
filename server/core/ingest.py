# 外部数据入口归一化
# 同一概念在上传文件、旧版存储和前端载荷中有多种字段名，只在这里统一处理

from typing import Any, Dict, Iterable, Optional

from .models import CartLine, CostItem, MenuItem, PER_OUNCE, PER_PIECE, TRAY_SIZES

NAME_KEYS = ("name", "title", "ItemName", "itemName", "Item", "item", "label", "productName")
SIZE_KEYS = ("size", "tray", "Tray", "TrayName", "variant", "option", "sizeName")
PRICE_KEYS = ("unit", "price", "UnitPrice", "unit_price", "SalePrice")
QTY_KEYS = ("qty", "quantity", "Qty")
COST_KEYS = ("cost", "UnitPrice", "unit_price", "unitPrice", "Cost")
CATEGORY_KEYS = ("category", "Category")
GROUP_KEYS = ("group", "Group", "tier")
TYPE_KEYS = ("unit_type", "type", "Type", "unitType")
DESCRIPTION_KEYS = ("description", "Description", "desc")
SPICE_KEYS = ("spice_level", "spiceLevel", "SpiceLevel", "spice")

_SIZE_ALIASES = {
    "small": "SmallTray", "smalltray": "SmallTray", "small tray": "SmallTray",
    "medium": "MediumTray", "mediumtray": "MediumTray", "medium tray": "MediumTray",
    "large": "LargeTray", "largetray": "LargeTray", "large tray": "LargeTray",
    "xl": "ExtraLargeTray", "extralarge": "ExtraLargeTray", "extralargetray": "ExtraLargeTray",
    "extra large tray": "ExtraLargeTray", "extra large": "ExtraLargeTray",
    "per piece": PER_PIECE, "per-piece": PER_PIECE, "piece": PER_PIECE, "pc": PER_PIECE,
    "package": "package", "packages": "package", "party package": "package",
}


def first_value(raw: Dict[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    """按顺序取第一个非空字段"""
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return default


def canonical_size(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text in TRAY_SIZES:
        return text
    return _SIZE_ALIASES.get(text.lower(), text or None)


def normalize_spice(value: Any) -> Optional[str]:
    """辣度归一化：mild* -> Mild，spic* -> Spicy，其他非空值 -> Medium"""
    s = str(value or "").strip().lower()
    if not s:
        return None
    if s.startswith("mild"):
        return "Mild"
    if s.startswith("spic"):
        return "Spicy"
    return "Medium"


def canonical_unit_type(value: Any) -> str:
    t = str(value or "").strip().lower()
    if t in ("pc", "piece", "per-piece", "per piece"):
        return PER_PIECE
    return PER_OUNCE


def _extras_spice(raw: Dict[str, Any]) -> Any:
    extras = raw.get("extras")
    if isinstance(extras, dict):
        found = first_value(extras, SPICE_KEYS)
        if found:
            return found
    return first_value(raw, SPICE_KEYS)


def cart_line_from_raw(raw: Dict[str, Any]) -> CartLine:
    """
    任意形态的购物车行 -> CartLine

    Raises:
        ValueError: 缺少名称/尺寸，或数量、单价无效
    """
    name = str(first_value(raw, NAME_KEYS, "")).strip()
    size = canonical_size(first_value(raw, SIZE_KEYS))
    if not name or not size:
        raise ValueError("cart line requires a name and a size")
    try:
        qty = int(first_value(raw, QTY_KEYS, 1))
        unit = float(first_value(raw, PRICE_KEYS, 0))
    except (TypeError, ValueError):
        raise ValueError(f"invalid quantity or price for {name}")
    item_id = str(first_value(raw, ("item_id", "id", "itemId"), name))
    details = raw.get("details")
    return CartLine(
        item_id=item_id,
        name=name,
        size=size,
        qty=qty,
        unit=unit,
        spice_level=normalize_spice(_extras_spice(raw)),
        details=details,
    )


def cost_item_from_raw(raw: Dict[str, Any], category: Optional[str] = None) -> CostItem:
    """上传的成本行 -> CostItem（类型 pc/oz 转为 per-piece/per-ounce）"""
    try:
        cost = float(first_value(raw, COST_KEYS, 0))
    except (TypeError, ValueError):
        raise ValueError(f"invalid cost for {first_value(raw, NAME_KEYS, '?')}")
    return CostItem(
        category=str(category or first_value(raw, CATEGORY_KEYS, "")).strip(),
        name=str(first_value(raw, NAME_KEYS, "")).strip(),
        unit_type=canonical_unit_type(first_value(raw, TYPE_KEYS)),
        group=first_value(raw, GROUP_KEYS, "A"),
        cost=cost,
        description=str(first_value(raw, DESCRIPTION_KEYS, "")).strip(),
    )


def menu_item_from_raw(raw: Dict[str, Any]) -> MenuItem:
    """已发布售价行 -> MenuItem，托盘价格列可以是 SmallTray 或 tray_prices 字典"""
    unit_type = canonical_unit_type(first_value(raw, TYPE_KEYS))
    prices: Dict[str, float] = {}
    nested = raw.get("tray_prices")
    if isinstance(nested, dict):
        for key, value in nested.items():
            size = canonical_size(key)
            if size in TRAY_SIZES and value is not None:
                prices[size] = float(value)
    for size in TRAY_SIZES:
        if size in raw and raw[size] not in (None, ""):
            prices[size] = float(raw[size])

    piece = first_value(raw, ("piece_price", "SalePrice", "salePrice"))
    return MenuItem(
        name=str(first_value(raw, NAME_KEYS, "")).strip(),
        category=str(first_value(raw, CATEGORY_KEYS, "")).strip(),
        group=first_value(raw, GROUP_KEYS, "A"),
        unit_type=unit_type,
        cost=float(first_value(raw, COST_KEYS, 0) or 0),
        tray_prices=prices if unit_type == PER_OUNCE else {},
        piece_price=float(piece) if unit_type == PER_PIECE and piece is not None else None,
        description=str(first_value(raw, DESCRIPTION_KEYS, "")).strip(),
    )
