# 按人数套餐推荐引擎
# 校验各课程的菜品选择，按人数生成托盘/单件分配并推导人均价格

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .models import (
    MenuItem, PackageDefinition, TrayThresholds, CartLine,
    COURSE_ORDER, TIER_RANK, PACKAGE_SIZE, PER_PIECE, size_label
)
from .money import to_decimal, ceil_to_increment, ceil_whole, ZERO
from .settings import CheckoutSettings
from .tray_allocator import TrayAllocation, allocate_trays

logger = logging.getLogger(__name__)

APPETITES = ("regular", "heavy")
PACKAGE_ROUND_TO = Decimal("20")


def normalize_guest_count(raw, settings: CheckoutSettings) -> Tuple[int, bool]:
    """
    套餐人数归一化：限制在[最小, 最大]并取最接近的步长倍数

    Returns:
        (人数, 是否超出线上人数上限)
    """
    try:
        value = float(raw or 0)
    except (TypeError, ValueError):
        value = 0.0
    clamped = max(settings.min_guests, min(value, settings.max_guests))
    rounded = int(math.floor(clamped / settings.guest_step + 0.5)) * settings.guest_step
    over_limit = value > settings.max_guests or rounded > settings.max_guests
    return min(rounded, settings.max_guests), over_limit


@dataclass
class ToggleResult:
    """一次勾选/取消的结果"""
    accepted: bool
    removed: bool = False
    completed_course: Optional[str] = None
    open_course: Optional[str] = None


class PackageSelection:
    """
    套餐各课程的菜品选择状态

    每个有槽位要求的课程从incomplete变为complete；没有槽位的课程视为已完成。
    全部课程完成后才能生成推荐。
    """

    def __init__(self, package: PackageDefinition):
        self.package = package
        self.picks: Dict[str, List[MenuItem]] = {c: [] for c in COURSE_ORDER}
        first = self.next_incomplete()
        self.open_courses: Dict[str, bool] = {c: c == (first or "appetizer") for c in COURSE_ORDER}

    def required_count(self, course: str) -> int:
        return len(self.package.required(course))

    def is_complete(self, course: str) -> bool:
        need = self.required_count(course)
        return need == 0 or len(self.picks.get(course, [])) == need

    def is_ready(self) -> bool:
        return all(self.is_complete(c) for c in COURSE_ORDER)

    def next_incomplete(self) -> Optional[str]:
        for course in COURSE_ORDER:
            need = self.required_count(course)
            if need > 0 and len(self.picks.get(course, [])) < need:
                return course
        return None

    def incomplete_courses(self) -> List[str]:
        return [c for c in COURSE_ORDER if not self.is_complete(c)]

    def has_pick(self, course: str, item: MenuItem) -> bool:
        return any(p.item_id == item.item_id for p in self.picks.get(course, []))

    def can_add_pick(self, course: str, item: MenuItem) -> bool:
        """
        判断菜品能否加入该课程

        已选中的菜品总是可以（再次点击即取消）。否则课程未满，且对B/C/D每个档位，
        该档位及以上的已选数量（含候选）不超过要求该档位及以上的槽位数。
        """
        slots = self.package.required(course)
        current = self.picks.get(course, [])
        if self.has_pick(course, item):
            return True
        if len(current) >= len(slots):
            return False

        ranks = [TIER_RANK.get(p.group, 1) for p in current] + [TIER_RANK.get(item.group, 1)]
        slot_ranks = [TIER_RANK.get(t, 1) for t in slots]
        for tier in ("B", "C", "D"):
            threshold = TIER_RANK[tier]
            picked = sum(1 for r in ranks if r >= threshold)
            capacity = sum(1 for r in slot_ranks if r >= threshold)
            if picked > capacity:
                return False
        return True

    def toggle_pick(self, course: str, item: MenuItem) -> ToggleResult:
        """勾选或取消菜品；课程选满时自动收起并展开下一个未完成课程"""
        if course not in COURSE_ORDER:
            return ToggleResult(accepted=False)

        if self.has_pick(course, item):
            self.picks[course] = [p for p in self.picks[course] if p.item_id != item.item_id]
            return ToggleResult(accepted=True, removed=True, open_course=self._current_open())

        if not self.can_add_pick(course, item):
            return ToggleResult(accepted=False, open_course=self._current_open())

        self.picks[course] = self.picks[course] + [item]
        result = ToggleResult(accepted=True, open_course=self._current_open())
        if len(self.picks[course]) == self.required_count(course):
            nxt = self.next_incomplete()
            self.open_courses[course] = False
            if nxt:
                self.open_courses[nxt] = True
            result.completed_course = course
            result.open_course = nxt
        return result

    def _current_open(self) -> Optional[str]:
        for course in COURSE_ORDER:
            if self.open_courses.get(course):
                return course
        return None

    def all_picks(self) -> List[Tuple[str, MenuItem]]:
        return [(c, item) for c in COURSE_ORDER for item in self.picks.get(c, [])]

    def pick_names(self) -> Dict[str, List[str]]:
        return {c: [p.name for p in self.picks[c]] for c in COURSE_ORDER if self.picks[c]}

    @classmethod
    def from_names(
        cls,
        package: PackageDefinition,
        picks_by_course: Dict[str, List[str]],
        menu: Dict[str, MenuItem]
    ) -> Tuple["PackageSelection", List[str]]:
        """
        按顺序重放菜品选择

        Returns:
            (选择状态, 被拒绝的菜品名称列表)
        """
        selection = cls(package)
        rejected: List[str] = []
        for course in COURSE_ORDER:
            for name in (picks_by_course or {}).get(course, []):
                item = menu.get(name)
                if item is None or item.course != course or selection.has_pick(course, item):
                    rejected.append(name)
                    continue
                if not selection.toggle_pick(course, item).accepted:
                    rejected.append(name)
        return selection, rejected


@dataclass
class DishRecommendation:
    item: MenuItem
    course: str
    allocation: List[TrayAllocation] = field(default_factory=list)
    pieces: int = 0

    @property
    def is_per_piece(self) -> bool:
        return self.item.is_per_piece

    def cost(self) -> Decimal:
        if self.is_per_piece:
            return to_decimal(self.item.piece_price or 0) * self.pieces
        total = ZERO
        for a in self.allocation:
            total += to_decimal(self.item.tray_price(a.size)) * a.count
        return total

    def describe(self) -> str:
        if self.is_per_piece:
            return f"{self.item.name} — Per Piece × {self.pieces}"
        sizes = ", ".join(f"{size_label(a.size)} × {a.count}" for a in self.allocation)
        return f"{self.item.name} — {sizes}"

    def to_dict(self) -> dict:
        return {
            "item": self.item.name,
            "course": self.course,
            "kind": PER_PIECE if self.is_per_piece else "tray",
            "allocation": [a.to_dict() for a in self.allocation],
            "pieces": self.pieces,
        }


@dataclass
class PackageRecommendation:
    """套餐推荐结果，每次输入变化都重新生成"""
    package_id: str
    package_name: str
    guests: int
    appetite: str
    adjusted_guests: int
    dishes: List[DishRecommendation]
    total_raw: Decimal
    rounded_total: Decimal
    per_person: Decimal

    def details(self) -> str:
        return "Trays • " + " | ".join(d.describe() for d in self.dishes)

    def to_dict(self) -> dict:
        return {
            "package_id": self.package_id,
            "package_name": self.package_name,
            "guests": self.guests,
            "appetite": self.appetite,
            "adjusted_guests": self.adjusted_guests,
            "dishes": [d.to_dict() for d in self.dishes],
            "pricing": {
                "total_raw": float(self.total_raw),
                "rounded_total": float(self.rounded_total),
                "per_person": float(self.per_person),
            },
            "details": self.details(),
        }


def price_package(dishes: List[DishRecommendation], guests: int) -> Tuple[Decimal, Decimal, Decimal]:
    """
    套餐价格：原始合计向上取整到20元，再除以人数向上取整到整元

    除数是原始人数，不含加量
    """
    total_raw = sum((d.cost() for d in dishes), ZERO)
    rounded_total = ceil_to_increment(total_raw, PACKAGE_ROUND_TO)
    per_person = ceil_whole(rounded_total / guests)
    return total_raw, rounded_total, per_person


def build_recommendation(
    selection: PackageSelection,
    guests: int,
    appetite: str,
    thresholds: TrayThresholds
) -> Optional[PackageRecommendation]:
    """
    生成套餐推荐

    选择未完成或人数 <= 0 时返回None
    """
    if guests <= 0 or not selection.is_ready():
        return None

    bump = thresholds.heavy_bump if appetite == "heavy" else 0
    adjusted = guests + bump

    dishes: List[DishRecommendation] = []
    for course, item in selection.all_picks():
        if item.is_per_piece:
            dishes.append(DishRecommendation(item=item, course=course, pieces=adjusted))
        else:
            dishes.append(DishRecommendation(
                item=item, course=course, allocation=allocate_trays(adjusted, thresholds)
            ))

    total_raw, rounded_total, per_person = price_package(dishes, guests)
    return PackageRecommendation(
        package_id=selection.package.id,
        package_name=selection.package.name,
        guests=guests,
        appetite=appetite,
        adjusted_guests=adjusted,
        dishes=dishes,
        total_raw=total_raw,
        rounded_total=rounded_total,
        per_person=per_person,
    )


def flatten_lines(recommendation: PackageRecommendation) -> List[dict]:
    """推荐结果展开为厨房用的托盘/单件明细（不计入购物车金额）"""
    lines = []
    for dish in recommendation.dishes:
        if dish.is_per_piece:
            continue
        for a in dish.allocation:
            lines.append({
                "id": dish.item.item_id,
                "name": dish.item.name,
                "size": a.size,
                "qty": a.count,
                "unit": dish.item.tray_price(a.size),
                "kind": "tray",
            })
    for dish in recommendation.dishes:
        if not dish.is_per_piece:
            continue
        lines.append({
            "id": dish.item.item_id,
            "name": dish.item.name,
            "size": PER_PIECE,
            "qty": dish.pieces,
            "unit": float(dish.item.piece_price or 0),
            "kind": PER_PIECE,
        })
    return lines


def add_package_to_cart(
    cart: List[CartLine],
    recommendation: PackageRecommendation,
    thresholds: TrayThresholds
) -> Tuple[List[CartLine], dict]:
    """
    把整个套餐作为一行加入购物车

    同一套餐的旧行被替换；展开明细只写入订单元数据，不影响金额

    Returns:
        (新购物车, 订单元数据)
    """
    kept = [c for c in cart if not (c.item_id == recommendation.package_id and c.size == PACKAGE_SIZE)]
    package_line = CartLine(
        item_id=recommendation.package_id,
        name=f"{recommendation.package_name} ({recommendation.guests} guests)",
        size=PACKAGE_SIZE,
        qty=recommendation.guests,
        unit=float(recommendation.per_person),
        details=recommendation.details(),
    )
    meta = {
        "package_id": recommendation.package_id,
        "package_name": recommendation.package_name,
        "guests": recommendation.guests,
        "appetite": recommendation.appetite,
        "pricing": {
            "total_raw": float(recommendation.total_raw),
            "rounded_total": float(recommendation.rounded_total),
            "per_person": float(recommendation.per_person),
        },
        "lines": flatten_lines(recommendation),
        "config": {
            "thresholds": thresholds.model_dump(by_alias=True),
            "heavy_bump": thresholds.heavy_bump,
        },
    }
    logger.info(
        f"套餐 {recommendation.package_id} 加入购物车: {recommendation.guests} 人, "
        f"人均 {recommendation.per_person}"
    )
    return kept + [package_line], meta
