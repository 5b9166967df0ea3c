# 管理员相关的数据模型

from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field


class UploadCostsRequest(BaseModel):
    """
    上传成本表

    rows为表格行（列名兼容 Item/ItemName/name、UnitPrice/cost、Type/unit_type 等），
    category非空时覆盖每行的分类
    """
    rows: List[Dict[str, Any]] = Field(..., min_length=1, description="成本行")
    category: Optional[str] = Field(None, description="统一分类")


class ImportMenuRequest(BaseModel):
    """直接导入已定价菜单（SmallTray/MediumTray... 或 tray_prices 列）"""
    rows: List[Dict[str, Any]] = Field(..., min_length=1)


class PaymentStatusRequest(BaseModel):
    payment_status: str = Field(..., description="paid/pending/refunded/cancelled")


class RowError(BaseModel):
    row: int
    error: str
