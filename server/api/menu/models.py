# 菜单相关的数据模型

from typing import Dict, List, Optional
from pydantic import BaseModel

from core.models import MenuItem, SPICE_LEVELS


class MenuItemView(BaseModel):
    """客户端看到的菜品（不含成本）"""
    name: str
    category: str
    course: str
    group: str
    unit_type: str
    tray_prices: Dict[str, float]
    piece_price: Optional[float] = None
    description: str = ""
    non_veg: bool = False
    spice_levels: List[str] = []

    @classmethod
    def from_item(cls, item: MenuItem) -> "MenuItemView":
        return cls(
            name=item.name,
            category=item.category,
            course=item.course,
            group=item.group,
            unit_type=item.unit_type,
            tray_prices=item.tray_prices,
            piece_price=item.piece_price,
            description=item.description,
            non_veg=item.non_veg,
            spice_levels=list(SPICE_LEVELS) if item.offers_spice else [],
        )
