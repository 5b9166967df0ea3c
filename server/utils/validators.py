# 数据验证器

import re
from datetime import datetime
from typing import Any

from core.models import PAYMENT_STATUSES

_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_date(date_str: str, format_str: str = "%Y-%m-%d") -> bool:
    """
    验证日期格式

    Args:
        date_str: 日期字符串
        format_str: 日期格式

    Returns:
        验证结果
    """
    try:
        datetime.strptime(date_str, format_str)
        return True
    except (TypeError, ValueError):
        return False


def validate_payment_status(status: str) -> bool:
    return status in PAYMENT_STATUSES


def validate_payment_method(method: str) -> bool:
    return method in ('card', 'cash')


def validate_order_method(method: str) -> bool:
    return method in ('pickup', 'delivery')


def validate_zip(value: str) -> bool:
    """美国邮编，5位或ZIP+4"""
    return bool(value) and bool(_ZIP_RE.match(value.strip()))


def validate_email(value: str) -> bool:
    return bool(value) and bool(_EMAIL_RE.match(value.strip()))


def validate_non_negative_number(value: Any) -> bool:
    try:
        return float(value) >= 0
    except (ValueError, TypeError):
        return False
