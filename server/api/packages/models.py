# 套餐相关的数据模型

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class TogglePickRequest(BaseModel):
    """勾选/取消一道菜"""
    package_id: str = Field(..., min_length=1)
    course: str = Field(..., description="appetizer/main/rice/bread/dessert")
    item: str = Field(..., min_length=1, description="菜品名称")


class RecommendationRequest(BaseModel):
    """
    生成推荐或加入购物车

    picks为空时使用会话中保存的选择
    """
    package_id: str = Field(..., min_length=1)
    guests: float = Field(..., description="人数，会被规整到允许范围")
    appetite: str = Field("regular", pattern="^(regular|heavy)$")
    picks: Optional[Dict[str, List[str]]] = None


class SelectionState(BaseModel):
    package_id: str
    picks: Dict[str, List[str]]
    complete: Dict[str, bool]
    ready: bool
    open_course: Optional[str] = None
