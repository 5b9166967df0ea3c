# 购物车模块

from .routes import router as cart_router
from .models import RemoveCartItemRequest

__all__ = [
    "cart_router",
    "RemoveCartItemRequest"
]
