# 托盘分配
# 按人数把客人划分到离散的托盘尺寸

from dataclasses import dataclass
from typing import List

from .models import TrayThresholds


@dataclass(frozen=True)
class TrayAllocation:
    size: str
    count: int

    def to_dict(self) -> dict:
        return {"size": self.size, "count": self.count}


def size_for_guests(guests: int, thresholds: TrayThresholds) -> str:
    """能容纳该人数的最小托盘尺寸"""
    if guests <= thresholds.small:
        return "SmallTray"
    if guests <= thresholds.medium:
        return "MediumTray"
    if guests <= thresholds.large:
        return "LargeTray"
    return "ExtraLargeTray"


def allocate_trays(guests: int, thresholds: TrayThresholds) -> List[TrayAllocation]:
    """
    贪心分配托盘

    人数超过xl时不断放一个特大托盘并扣减xl，剩余人数用一个最合适的托盘收尾；
    相同尺寸合并计数。人数 <= 0 返回空列表。
    """
    if guests <= 0:
        return []

    merged = {}
    remaining = guests
    while remaining > thresholds.xl:
        merged["ExtraLargeTray"] = merged.get("ExtraLargeTray", 0) + 1
        remaining -= thresholds.xl

    final_size = size_for_guests(remaining, thresholds)
    merged[final_size] = merged.get(final_size, 0) + 1

    return [TrayAllocation(size=size, count=count) for size, count in merged.items()]


def allocation_capacity(allocation: List[TrayAllocation], thresholds: TrayThresholds) -> int:
    """分配结果按阈值折算的总容纳人数"""
    capacity = {
        "SmallTray": thresholds.small,
        "MediumTray": thresholds.medium,
        "LargeTray": thresholds.large,
        "ExtraLargeTray": thresholds.xl,
    }
    return sum(capacity[a.size] * a.count for a in allocation)
