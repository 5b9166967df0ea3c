# 安全中间件
# 安全响应头、请求体大小限制、按IP的简单限流

import time
import logging
from typing import Dict, Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from utils.response import create_error_response

logger = logging.getLogger(__name__)


def setup_security_middleware(app: FastAPI, config: Dict[str, Any]):
    """
    设置安全中间件

    Args:
        app: FastAPI应用实例
        config: 配置字典
    """
    security_config = config.get('security', {})

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response

    # 成本表上传可能较大，默认2MB
    max_request_size = security_config.get('max_request_size', 2 * 1024 * 1024)

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        content_length = request.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > max_request_size:
            logger.warning(f"Request size {content_length} exceeds limit {max_request_size}")
            return JSONResponse(status_code=413, content=create_error_response("Request entity too large"))

        return await call_next(request)

    request_counts: Dict[str, int] = {}
    rate_limit = security_config.get('rate_limit', 120)  # 每分钟请求数

    @app.middleware("http")
    async def rate_limiting(request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"

        # 进程内计数，按分钟分桶
        current_minute = int(time.time() / 60)
        key = f"{client_ip}:{current_minute}"
        request_counts[key] = request_counts.get(key, 0) + 1

        for old_key in [k for k in request_counts if int(k.rsplit(':', 1)[1]) < current_minute - 1]:
            del request_counts[old_key]

        if request_counts[key] > rate_limit:
            logger.warning(f"Rate limit exceeded for IP {client_ip}")
            return JSONResponse(status_code=429, content=create_error_response("Too many requests"))

        return await call_next(request)
