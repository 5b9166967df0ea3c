# 认证模块

from .routes import router as auth_router
from .models import AdminLoginRequest, LoginResponse, TokenData

__all__ = [
    "auth_router",
    "AdminLoginRequest",
    "LoginResponse",
    "TokenData"
]
