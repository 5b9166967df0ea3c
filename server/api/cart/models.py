# 购物车相关的数据模型

from typing import Optional
from pydantic import BaseModel, Field


class RemoveCartItemRequest(BaseModel):
    """按 (item_id, size, spice_level) 删除购物车行"""
    item_id: str = Field(..., min_length=1)
    size: str = Field(..., min_length=1)
    spice_level: Optional[str] = None
