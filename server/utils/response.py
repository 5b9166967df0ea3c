# 统一API响应格式
# {success, data, message|error, timestamp}

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def create_success_response(
    data: Any = None,
    message: str = "OK"
) -> Dict[str, Any]:
    """
    创建成功响应

    Args:
        data: 响应数据
        message: 成功消息

    Returns:
        标准格式的成功响应
    """
    return {
        "success": True,
        "data": data,
        "message": message,
        "timestamp": _timestamp()
    }


def create_error_response(
    error: str,
    data: Any = None,
    reasons: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    创建错误响应

    Args:
        error: 错误描述信息（展示给客户）
        data: 可选的错误数据
        reasons: 阻止继续的具体原因列表

    Returns:
        标准格式的错误响应
    """
    body = {
        "success": False,
        "error": error,
        "data": data,
        "timestamp": _timestamp()
    }
    if reasons:
        body["reasons"] = reasons
    return body
