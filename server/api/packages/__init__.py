# 套餐模块

from .routes import router as packages_router
from .models import TogglePickRequest, RecommendationRequest

__all__ = [
    "packages_router",
    "TogglePickRequest",
    "RecommendationRequest"
]
