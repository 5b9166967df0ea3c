# 认证相关的数据模型

from typing import Optional
from pydantic import BaseModel, Field


class AdminLoginRequest(BaseModel):
    """管理员登录请求"""
    password: str = Field(..., min_length=1, max_length=200, description="管理员密码")


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="有效期（秒）")


class TokenData(BaseModel):
    """JWT Token数据模型"""
    subject: str
    is_admin: bool = False
    exp: Optional[int] = None
