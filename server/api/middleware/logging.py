# 请求日志中间件

import time
import uuid
import logging
from fastapi import FastAPI, Request
from typing import Dict, Any

logger = logging.getLogger(__name__)


def setup_logging_middleware(app: FastAPI, config: Dict[str, Any]):
    """
    记录每个请求的方法、路径、状态码和耗时，并在响应头返回请求ID

    Args:
        app: FastAPI应用实例
        config: 配置字典
    """

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        logger.info(
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] ERROR - {str(e)} - "
                f"Time: {time.time() - start_time:.3f}s"
            )
            raise

        logger.info(
            f"[{request_id}] {response.status_code} - "
            f"Time: {time.time() - start_time:.3f}s"
        )
        response.headers["X-Request-ID"] = request_id
        return response
