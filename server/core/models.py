# 定价引擎的数据模型
# 菜品、套餐、托盘阈值、营业时间、购物车行、结账金额、订单草稿

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator


COURSE_ORDER = ("appetizer", "main", "rice", "bread", "dessert")
TIER_RANK = {"A": 1, "B": 2, "C": 3, "D": 4}
TRAY_SIZES = ("SmallTray", "MediumTray", "LargeTray", "ExtraLargeTray")
PER_PIECE = "per-piece"
PER_OUNCE = "per-ounce"
PACKAGE_SIZE = "package"
DAY_KEYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
SPICE_LEVELS = ("Mild", "Medium", "Spicy")
PAYMENT_STATUSES = ("paid", "pending", "refunded", "cancelled")


def size_label(size: str) -> str:
    """托盘尺寸显示名，SmallTray -> Small Tray"""
    if size == PER_PIECE:
        return "Per Piece"
    if size == PACKAGE_SIZE:
        return "Per Person Package"
    out = []
    for ch in size:
        if ch.isupper() and out:
            out.append(" ")
        out.append(ch)
    return "".join(out)


def course_from_category(category: str) -> str:
    """根据菜品分类文字推断所属课程"""
    c = str(category or "").lower()
    if "appetizer" in c or "chaat" in c or "starter" in c:
        return "appetizer"
    if "rice" in c or "biryani" in c or "pulao" in c:
        return "rice"
    if "bread" in c or "naan" in c or "roti" in c or "paratha" in c:
        return "bread"
    if "dessert" in c or "sweet" in c:
        return "dessert"
    return "main"


def is_non_veg_name(name: str) -> bool:
    lowered = str(name or "").lower()
    return any(w in lowered for w in ("chicken", "goat", "lamb", "fish", "shrimp"))


class MenuItem(BaseModel):
    """菜品模型（管理端成本 + 客户端售价）"""
    name: str = Field(..., min_length=1, description="菜品名称")
    category: str = Field("", description="分类")
    group: str = Field("A", description="档位字母 A/B/C/D")
    unit_type: str = Field(PER_OUNCE, description="计价方式 per-piece / per-ounce")
    cost: float = Field(0.0, ge=0, description="原始单位成本")
    tray_prices: Dict[str, float] = Field(default_factory=dict, description="各托盘尺寸售价")
    piece_price: Optional[float] = Field(None, ge=0, description="单件售价")
    description: str = Field("", description="描述")

    @field_validator("group", mode="before")
    @classmethod
    def _normalize_group(cls, v):
        g = str(v or "A").strip().upper()
        return g if g in TIER_RANK else "A"

    @field_validator("unit_type")
    @classmethod
    def _check_unit_type(cls, v):
        if v not in (PER_PIECE, PER_OUNCE):
            raise ValueError(f"invalid unit type: {v}")
        return v

    @property
    def item_id(self) -> str:
        return self.name

    @property
    def course(self) -> str:
        return course_from_category(self.category)

    @property
    def is_per_piece(self) -> bool:
        return self.unit_type == PER_PIECE

    @property
    def non_veg(self) -> bool:
        return is_non_veg_name(self.name)

    @property
    def offers_spice(self) -> bool:
        return self.category.strip().lower() == "main course"

    def tray_price(self, size: str) -> float:
        return float(self.tray_prices.get(size) or 0)


class TrayThresholds(BaseModel):
    """托盘容量阈值（按人数）"""
    small: int = 15
    medium: int = 25
    large: int = 35
    xl: int = 50
    heavy_bump: int = Field(5, ge=0, alias="heavyBump")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _check_increasing(self):
        if not (0 < self.small < self.medium < self.large < self.xl):
            raise ValueError("tray thresholds must be strictly increasing (small < medium < large < xl)")
        return self


class PackageDefinition(BaseModel):
    """套餐定义"""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price_line: str = Field("", alias="priceLine")
    slots: Dict[str, List[str]] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("slots")
    @classmethod
    def _normalize_slots(cls, v):
        normalized = {}
        for course, tiers in (v or {}).items():
            if course not in COURSE_ORDER:
                raise ValueError(f"unknown course: {course}")
            cleaned = []
            for tier in tiers or []:
                t = str(tier).strip().upper()
                if t not in TIER_RANK:
                    raise ValueError(f"invalid tier letter '{tier}' for {course}")
                cleaned.append(t)
            normalized[course] = cleaned
        return normalized

    def required(self, course: str) -> List[str]:
        return list(self.slots.get(course, []))

    def summary_line(self) -> str:
        """套餐构成描述，如 One Appetizer · Two Mains"""
        words = {0: "Zero", 1: "One", 2: "Two", 3: "Three", 4: "Four", 5: "Five", 6: "Six",
                 7: "Seven", 8: "Eight", 9: "Nine", 10: "Ten", 11: "Eleven", 12: "Twelve"}
        parts = []
        for course in COURSE_ORDER:
            count = len(self.slots.get(course, []))
            if not count:
                continue
            label = course.capitalize()
            parts.append(f"{words.get(count, str(count))} {label if count == 1 else label + 's'}")
        return " · ".join(parts)


class PackageConfig(BaseModel):
    """套餐 + 托盘阈值配置"""
    thresholds: TrayThresholds = Field(default_factory=TrayThresholds)
    packages: List[PackageDefinition] = Field(default_factory=list)

    @field_validator("packages")
    @classmethod
    def _non_empty(cls, v):
        if not v:
            raise ValueError("at least one package is required")
        return v

    def find(self, package_id: str) -> Optional[PackageDefinition]:
        for pkg in self.packages:
            if pkg.id == package_id:
                return pkg
        return None


class TraySize(BaseModel):
    """托盘规格（定价用）"""
    key: str
    name: str
    oz: float = Field(..., gt=0)
    min_price: float = Field(..., ge=0)
    max_price: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_range(self):
        if self.min_price > self.max_price:
            raise ValueError(f"{self.name}: min price exceeds max price")
        return self


class PricingConfig(BaseModel):
    """管理端定价参数"""
    margin: float = Field(150, ge=0, description="利润率百分比")
    min_piece_price: float = Field(1.0, ge=0)
    trays: List[TraySize] = Field(default_factory=list)


class DaySchedule(BaseModel):
    """单日营业时间（最多两个时段）"""
    open1: Optional[str] = None
    close1: Optional[str] = None
    open2: Optional[str] = None
    close2: Optional[str] = None
    closed: bool = False

    def windows(self):
        return [(self.open1, self.close1), (self.open2, self.close2)]


class HoursConfig(BaseModel):
    """自取与配送营业时间"""
    pickup_hours: Dict[str, DaySchedule] = Field(default_factory=dict, alias="pickupHours")
    delivery_hours: Dict[str, DaySchedule] = Field(default_factory=dict, alias="deliveryHours")

    model_config = {"populate_by_name": True}


class CartLine(BaseModel):
    """购物车行"""
    item_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    size: str = Field(..., min_length=1)
    qty: int = Field(..., gt=0)
    unit: float = Field(..., ge=0)
    spice_level: Optional[str] = None
    details: Optional[str] = None

    @property
    def size_label(self) -> str:
        return size_label(self.size)

    @property
    def is_package(self) -> bool:
        return self.size.lower() in (PACKAGE_SIZE, "packages", "party package")

    def same_line(self, other: "CartLine") -> bool:
        return (self.item_id, self.size, self.spice_level) == (other.item_id, other.size, other.spice_level)


class Address(BaseModel):
    addr1: str = ""
    addr2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    def is_complete(self) -> bool:
        return bool(self.addr1 and self.city and self.state and self.zip)

    def one_line(self) -> str:
        return f"{self.addr1} {self.addr2 or ''}, {self.city}, {self.state} {self.zip}"


class CheckoutTotals(BaseModel):
    """结账金额（均已四舍五入到分）"""
    cart_total: float = 0.0
    delivery_fee: float = 0.0
    add_on_fee: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    subtotal: float = 0.0
    grand_total: float = 0.0


class OrderLine(BaseModel):
    """厨房用的统一订单行"""
    name: str
    size: str
    qty: int
    spice_level: Optional[str] = None


class SpiceSelection(BaseModel):
    name: str
    size: str
    qty: int
    spice_level: str
    source: str


class CustomerInfo(BaseModel):
    """结账表单中的客户信息"""
    name: str = ""
    email: str = ""
    phone: str = ""
    method: str = "pickup"
    pickup_date: str = ""
    pickup_time: str = ""
    distance: float = 0.0
    address: Address = Field(default_factory=Address)
    warmers: bool = False
    utensils: bool = False
    ref_code: str = ""
    disc_code: str = ""
    special_request: str = ""

    @field_validator("method")
    @classmethod
    def _check_method(cls, v):
        if v not in ("pickup", "delivery"):
            raise ValueError("method must be pickup or delivery")
        return v

    def add_on_flags(self) -> Dict[str, bool]:
        return {"warmers": self.warmers, "utensils": self.utensils}


class OrderDraft(BaseModel):
    """提交给下单或支付服务的订单草稿"""
    cart: List[Dict[str, Any]]
    totals: CheckoutTotals
    customer: Dict[str, Any]
    payment: str
    when: Optional[str] = None
    when_epoch: Optional[int] = None
    lines: List[OrderLine] = Field(default_factory=list)
    line_summary: List[str] = Field(default_factory=list)
    package_tray_summary: str = ""
    spice_selections: List[SpiceSelection] = Field(default_factory=list)
    order_meta: Dict[str, Any] = Field(default_factory=dict)


class CostItem(BaseModel):
    """管理端上传的原始成本行"""
    category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit_type: str = Field(PER_OUNCE)
    group: str = Field("A")
    cost: float = Field(0.0, ge=0, description="单位成本（每盎司或每件）")
    description: str = ""

    @field_validator("group", mode="before")
    @classmethod
    def _normalize_group(cls, v):
        g = str(v or "A").strip().upper()
        return g if g in TIER_RANK else "A"

    @field_validator("unit_type")
    @classmethod
    def _check_unit_type(cls, v):
        if v not in (PER_PIECE, PER_OUNCE):
            raise ValueError(f"invalid unit type: {v}")
        return v
