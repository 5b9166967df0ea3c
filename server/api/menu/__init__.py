# 菜单模块

from .routes import router as menu_router
from .models import MenuItemView

__all__ = [
    "menu_router",
    "MenuItemView"
]
