# 结账模块

from .routes import router as checkout_router
from .distance_service import DistanceService

__all__ = [
    "checkout_router",
    "DistanceService"
]
