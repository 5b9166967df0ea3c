# 管理员模块

from .routes import router as admin_router
from .models import UploadCostsRequest, ImportMenuRequest, PaymentStatusRequest

__all__ = [
    "admin_router",
    "UploadCostsRequest",
    "ImportMenuRequest",
    "PaymentStatusRequest"
]
