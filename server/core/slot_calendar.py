# 可预约时间段计算
# 按营业时间表生成某日的时间段，并按最早可预约时刻过滤

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from .models import DaySchedule, DAY_KEYS
from .settings import CheckoutSettings

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_LABEL_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)


@dataclass(frozen=True)
class TimeSlot:
    """一个可预约时间段，minutes为当天零点起的分钟数"""
    minutes: int
    label: str


def parse_hhmm(value: Optional[str]) -> Optional[int]:
    """解析 HH:MM（24小时制）为分钟数，格式无效返回None"""
    if not value:
        return None
    match = _HHMM_RE.match(str(value).strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_slot_label(minutes: int) -> str:
    """分钟数转换为 h:mm AM/PM"""
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    hours = hours % 12
    if hours == 0:
        hours = 12
    return f"{hours}:{mins:02d} {suffix}"


def parse_slot_label(label: Optional[str]) -> Optional[Tuple[int, int]]:
    """h:mm AM/PM 转换为 (小时, 分钟)，格式无效返回None"""
    match = _LABEL_RE.match(str(label or "").strip())
    if not match:
        return None
    hours, mins = int(match.group(1)), int(match.group(2))
    suffix = match.group(3).upper()
    if hours < 1 or hours > 12 or mins > 59:
        return None
    if suffix == "PM" and hours != 12:
        hours += 12
    if suffix == "AM" and hours == 12:
        hours = 0
    return hours, mins


def weekday_key(target: date) -> str:
    # 周日=0，周一=1...
    return DAY_KEYS[(target.weekday() + 1) % 7]


def _ceil_to_interval(minutes: int, step: int) -> int:
    return -(-minutes // step) * step


def build_slots_for_date(
    hours_map: Dict[str, DaySchedule],
    target: date,
    interval_minutes: int = 30
) -> List[TimeSlot]:
    """
    生成指定日期的全部时间段（未按提前量过滤）

    Args:
        hours_map: 星期 -> 营业时间
        target: 目标日期
        interval_minutes: 时间段粒度

    Returns:
        按时间先后排列的时间段列表，休息日或无配置返回空列表
    """
    schedule = (hours_map or {}).get(weekday_key(target))
    if schedule is None or schedule.closed:
        return []

    slots: List[TimeSlot] = []
    for open_at, close_at in schedule.windows():
        start, end = parse_hhmm(open_at), parse_hhmm(close_at)
        if start is None or end is None or end <= start:
            continue
        t = _ceil_to_interval(start, interval_minutes)
        while t < end:
            slots.append(TimeSlot(minutes=t, label=format_slot_label(t)))
            t += interval_minutes
    return slots


def slot_instant(target: date, slot: TimeSlot) -> datetime:
    return datetime.combine(target, datetime.min.time()) + timedelta(minutes=slot.minutes)


def earliest_allowed(now: datetime, settings: CheckoutSettings) -> datetime:
    return now + timedelta(hours=settings.lead_time_hours)


def date_bounds(now: datetime, settings: CheckoutSettings) -> Tuple[date, date]:
    """可选日期范围 [now + 提前量, now + 最大天数]"""
    return earliest_allowed(now, settings).date(), (now + timedelta(days=settings.max_days_ahead)).date()


def clamp_date(target: date, now: datetime, settings: CheckoutSettings) -> date:
    """将日期限制在可选范围内"""
    min_date, max_date = date_bounds(now, settings)
    if target < min_date:
        return min_date
    if target > max_date:
        return max_date
    return target


def filter_slots_by_earliest(target: date, slots: List[TimeSlot], earliest: datetime) -> List[TimeSlot]:
    return [s for s in slots if slot_instant(target, s) >= earliest]


def available_slots(
    hours_map: Dict[str, DaySchedule],
    target: date,
    now: datetime,
    settings: CheckoutSettings
) -> List[TimeSlot]:
    """
    指定日期的可预约时间段

    日期超出可选范围时返回空列表（调用方应先clamp_date）
    """
    min_date, max_date = date_bounds(now, settings)
    if target < min_date or target > max_date:
        return []
    raw = build_slots_for_date(hours_map, target, settings.slot_minutes)
    return filter_slots_by_earliest(target, raw, earliest_allowed(now, settings))


def revalidate_selection(selected_label: Optional[str], slots: List[TimeSlot]) -> str:
    """已选时间不在当前可选列表中时清空"""
    if selected_label and any(s.label == selected_label for s in slots):
        return selected_label
    return ""


def build_when(date_iso: Optional[str], time_label: Optional[str]) -> Optional[datetime]:
    """日期 + 时间段标签组合为预约时刻"""
    if not date_iso or not time_label:
        return None
    hm = parse_slot_label(time_label)
    if hm is None:
        return None
    try:
        day = datetime.strptime(date_iso, "%Y-%m-%d")
    except ValueError:
        return None
    return day.replace(hour=hm[0], minute=hm[1], second=0, microsecond=0)


def validate_day_schedule(day_key: str, schedule: DaySchedule) -> List[str]:
    """
    校验单日营业时间，返回问题描述列表（空列表表示有效）

    两个时段都需要 HH:MM 格式、结束晚于开始，且第二时段不早于第一时段结束
    """
    problems = []
    if schedule.closed:
        return problems
    parsed = []
    for idx, (open_at, close_at) in enumerate(schedule.windows(), start=1):
        if not open_at and not close_at:
            parsed.append(None)
            continue
        start, end = parse_hhmm(open_at), parse_hhmm(close_at)
        if start is None or end is None:
            problems.append(f"{day_key} window {idx}: times must be HH:MM")
            parsed.append(None)
            continue
        if end <= start:
            problems.append(f"{day_key} window {idx}: close must be after open")
        parsed.append((start, end))
    if parsed[0] and parsed[1] and parsed[1][0] < parsed[0][1]:
        problems.append(f"{day_key}: second window overlaps the first")
    return problems
