# 金额计算工具
# 所有金额在引擎内部使用Decimal，输出接口时再转换为float或分

import math
from decimal import Decimal, ROUND_HALF_UP, ROUND_CEILING, InvalidOperation
from typing import Any, Union

Number = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    将任意数值转换为Decimal，无法解析时返回0

    float先转字符串再转换，避免二进制误差进入计算
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                return ZERO
            return Decimal(repr(value))
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO


def round2(value: Number) -> Decimal:
    """四舍五入（half-up）到分"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def ceil_to_increment(value: Number, increment: Number) -> Decimal:
    """向上取整到指定步长的整数倍，例如 181.37 按 20 取整得到 200"""
    inc = to_decimal(increment)
    steps = (to_decimal(value) / inc).to_integral_value(rounding=ROUND_CEILING)
    return steps * inc


def ceil_whole(value: Number) -> Decimal:
    """向上取整到整数"""
    return to_decimal(value).to_integral_value(rounding=ROUND_CEILING)


def to_cents(value: Number) -> int:
    """金额转换为分"""
    return int((round2(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def to_float(value: Number) -> float:
    """金额转换为两位小数的float，用于接口输出"""
    return float(round2(value))
