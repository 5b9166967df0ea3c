# 认证相关API路由
# 同时提供各路由共用的依赖：数据库连接、管理员校验、客户会话、结账参数、时钟

import logging
from datetime import datetime
from typing import Dict, Any, Optional, Callable
from zoneinfo import ZoneInfo
from fastapi import APIRouter, HTTPException, Depends, Header, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .models import AdminLoginRequest, LoginResponse, TokenData
from core.settings import CheckoutSettings
from db.manager import DatabaseManager
from db.supporting_operations import SqliteSessionStore, generate_session_id
from utils.config import Config
from utils.security import JWTManager, verify_password
from utils.response import create_success_response, create_error_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["认证"])

config = Config()
jwt_manager = JWTManager(
    secret_key=config.get("auth.jwt_secret_key"),
    algorithm=config.get("auth.jwt_algorithm", "HS256"),
    access_token_expire_minutes=config.get("auth.access_token_expire_minutes", 720)
)
checkout_settings = CheckoutSettings.from_config(config.config)
security = HTTPBearer(auto_error=False)

SESSION_HEADER = "X-Session-ID"


def get_database():
    """每个请求一个数据库连接"""
    db_config = config.get_database_config()
    db_manager = DatabaseManager(db_config["path"], auto_connect=True)
    try:
        yield db_manager
    finally:
        db_manager.close()


def get_checkout_settings() -> CheckoutSettings:
    return checkout_settings


def get_clock() -> Callable[[], datetime]:
    """返回取当前店铺本地时间（不带时区）的函数，测试中替换为固定时钟"""
    zone = ZoneInfo(checkout_settings.time_zone)

    def now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None)

    return now


def get_session_store(
    response: Response,
    x_session_id: Optional[str] = Header(None, alias=SESSION_HEADER),
    db: DatabaseManager = Depends(get_database)
) -> SqliteSessionStore:
    """
    客户会话存储

    请求未带会话ID时新建一个，并通过响应头返回给前端
    """
    session_id = (x_session_id or "").strip() or generate_session_id()
    response.headers[SESSION_HEADER] = session_id
    return SqliteSessionStore(db, session_id)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenData:
    """从Bearer令牌解析当前用户"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    payload = jwt_manager.verify_token(credentials.credentials)
    if not payload or "sub" not in payload:
        logger.warning("令牌无效或已过期")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    return TokenData(
        subject=payload["sub"],
        is_admin=bool(payload.get("is_admin", False)),
        exp=payload.get("exp")
    )


def get_admin_user(current_user: TokenData = Depends(get_current_user)) -> TokenData:
    """仅管理员可访问"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def _issue_token(subject: str, is_admin: bool) -> LoginResponse:
    token = jwt_manager.create_access_token({"sub": subject, "is_admin": is_admin})
    return LoginResponse(
        access_token=token,
        expires_in=jwt_manager.access_token_expire_minutes * 60
    )


@router.post("/admin/login", response_model=Dict[str, Any])
async def admin_login(login_request: AdminLoginRequest):
    """管理员密码登录，成功后返回JWT"""
    password_hash = config.get("auth.admin_password_hash", "")
    if not verify_password(login_request.password, password_hash):
        logger.warning("管理员登录失败: 密码错误")
        return create_error_response("Invalid password")

    logger.info("管理员登录成功")
    return create_success_response(
        data=_issue_token("admin", True).model_dump(),
        message="Signed in"
    )


@router.post("/refresh", response_model=Dict[str, Any])
async def refresh_token(
    current_user: TokenData = Depends(get_current_user),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    """用未过期的令牌换取新令牌"""
    new_token = jwt_manager.refresh_token(credentials.credentials)
    if not new_token:
        return create_error_response("Token refresh failed")

    logger.info(f"令牌已刷新: {current_user.subject}")
    return create_success_response(
        data=LoginResponse(
            access_token=new_token,
            expires_in=jwt_manager.access_token_expire_minutes * 60
        ).model_dump(),
        message="Token refreshed"
    )


@router.get("/me", response_model=Dict[str, Any])
async def get_current_user_info(current_user: TokenData = Depends(get_current_user)):
    return create_success_response(
        data=current_user.model_dump(),
        message="OK"
    )
