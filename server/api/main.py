# FastAPI主应用
# 客户端点餐（菜单、套餐、购物车、结账、下单）与管理端接口

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from datetime import datetime, timedelta, timezone

# 导入配置和中间件
from utils.config import Config
from utils.logger import setup_logging
from api.middleware import setup_middleware
from db.manager import DatabaseManager
from db.supporting_operations import SupportingOperations

# 导入所有路由
from api.auth import auth_router
from api.menu import menu_router
from api.packages import packages_router
from api.cart import cart_router
from api.checkout import checkout_router
from api.orders import orders_router
from api.admin import admin_router

# 全局配置实例
config = Config()

# 设置日志
setup_logging(config.config)
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("点餐与定价服务启动中...")
    logger.info(f"环境: {config.env}")
    logger.info(f"调试模式: {config.config['app']['debug']}")

    with DatabaseManager(config.get_database_config()["path"]) as db:
        db.create_tables()
        retention_days = int(config.get("session.retention_days", 30))
        cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=retention_days)
        SupportingOperations(db).purge_sessions(cutoff)

    yield

    logger.info("点餐与定价服务关闭中...")


# 创建FastAPI应用
app = FastAPI(
    title=config.config['app']['name'],
    version=config.config['app']['version'],
    description=config.config['app'].get('description', ''),
    debug=config.config['app']['debug'],
    lifespan=lifespan
)

# 设置中间件
setup_middleware(app, config.config)

# 注册路由
app.include_router(auth_router)
app.include_router(menu_router)
app.include_router(packages_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(orders_router)
app.include_router(admin_router)


# 全局异常处理器
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """HTTP异常处理"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "data": None,
            "timestamp": _timestamp()
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    """请求参数校验失败"""
    reasons = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Invalid request",
            "reasons": reasons,
            "data": None,
            "timestamp": _timestamp()
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """通用异常处理"""
    logger.error(f"未处理的异常: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "data": None,
            "timestamp": _timestamp()
        }
    )


# 根路径
@app.get("/")
async def root():
    """根路径健康检查"""
    return {
        "message": f"{config.config['app']['name']} is running",
        "version": config.config['app']['version'],
        "status": "healthy"
    }


# 健康检查端点
@app.get("/health")
async def health_check():
    """健康检查端点，包含数据库连接检查"""
    try:
        with DatabaseManager(config.get_database_config()["path"]) as db:
            db.conn.execute("SELECT 1").fetchone()
        return {
            "status": "healthy",
            "version": config.config['app']['version'],
            "environment": config.env
        }
    except Exception as e:
        logger.error(f"健康检查失败: {str(e)}")
        raise HTTPException(status_code=503, detail="Service unhealthy")


# API信息端点
@app.get("/api/info")
async def api_info():
    """API信息端点"""
    return {
        "name": config.config['app']['name'],
        "version": config.config['app']['version'],
        "description": config.config['app'].get('description', ''),
        "environment": config.env,
        "endpoints": {
            "auth": "/api/auth",
            "menu": "/api/menu",
            "packages": "/api/packages",
            "cart": "/api/cart",
            "checkout": "/api/checkout",
            "orders": "/api/orders",
            "admin": "/api/admin"
        }
    }


if __name__ == "__main__":
    import uvicorn

    # 从配置获取服务器设置
    server_config = config.config['server']

    uvicorn.run(
        "api.main:app",
        host=server_config.get('host', '127.0.0.1'),
        port=server_config.get('port', 8000),
        reload=server_config.get('reload', False),
        workers=1 if server_config.get('reload', False) else server_config.get('workers', 1),
        log_level="debug" if config.config['app']['debug'] else "info"
    )
