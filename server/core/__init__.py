# 订单配置与定价引擎
# 纯计算模块：不访问数据库、不读取配置文件、不读取系统时间

from .settings import CheckoutSettings
from .models import (
    MenuItem, CostItem, PackageDefinition, PackageConfig, TrayThresholds,
    PricingConfig, HoursConfig, DaySchedule, CartLine, CheckoutTotals,
    CustomerInfo, OrderDraft
)
from .package_engine import PackageSelection, build_recommendation, add_package_to_cart
from .totals import compute_totals, checkout_totals
from .order_draft import assemble_order_draft

__all__ = [
    "CheckoutSettings",
    "MenuItem",
    "CostItem",
    "PackageDefinition",
    "PackageConfig",
    "TrayThresholds",
    "PricingConfig",
    "HoursConfig",
    "DaySchedule",
    "CartLine",
    "CheckoutTotals",
    "CustomerInfo",
    "OrderDraft",
    "PackageSelection",
    "build_recommendation",
    "add_package_to_cart",
    "compute_totals",
    "checkout_totals",
    "assemble_order_draft",
]
