# 结账相关的数据模型

from typing import Optional
from pydantic import BaseModel, Field

from core.models import Address, CustomerInfo


class DistanceRequest(BaseModel):
    """自动测距请求"""
    address: Address


class ManualDistanceRequest(BaseModel):
    """
    测距失败后手动输入里程

    未提供地址时沿用上一次测距的地址
    """
    miles: float = Field(..., description="驾车里程")
    address: Optional[Address] = None


class CheckoutSummaryRequest(CustomerInfo):
    """
    结账页表单

    在客户信息之外，remember_details 控制是否保存联系方式供下次使用
    """
    remember_details: bool = False
    payment: Optional[str] = Field(None, description="card / cash")
