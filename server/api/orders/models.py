# 订单相关的数据模型

from typing import Optional, List
from pydantic import BaseModel, Field

from core.models import CustomerInfo


class PlaceOrderRequest(BaseModel):
    """
    提交订单

    customer为空时使用结账页保存的草稿
    """
    customer: Optional[CustomerInfo] = None
    payment: Optional[str] = Field(None, description="card / cash，现金关闭时一律按刷卡处理")


class PlaceOrderResponse(BaseModel):
    order_id: str
    placed_at: str
    payment: str
    payment_status: str = "pending"
    redirect_url: Optional[str] = None
    grand_total: float
    line_summary: List[str] = Field(default_factory=list)
