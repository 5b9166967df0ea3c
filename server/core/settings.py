# 结账与定价引擎的运行参数
# 由配置文件在应用入口处构建一次，再显式传入各计算函数

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, List, Tuple


DEFAULT_DELIVERY_TIERS: Tuple[Tuple[Decimal, Decimal], ...] = (
    (Decimal("20"), Decimal("50")),
    (Decimal("100"), Decimal("175")),
)


@dataclass(frozen=True)
class CheckoutSettings:
    """
    结账相关常量

    税率、提前量、起送地址等全部集中在这里，测试时可直接注入固定值
    """
    tax_rate: Decimal = Decimal("0.0825")
    lead_time_hours: int = 18
    max_days_ahead: int = 90
    slot_minutes: int = 30
    origin_address: str = "3311 Regent Blvd, Irving TX 75063"
    # (最大里程, 配送费)，按里程升序；超过最后一档视为超出范围
    delivery_tiers: Tuple[Tuple[Decimal, Decimal], ...] = DEFAULT_DELIVERY_TIERS
    add_on_fee: Decimal = Decimal("10")
    add_on_flags: Tuple[str, ...] = ("warmers", "utensils")
    discount_code: str = "online10"
    discount_rate: Decimal = Decimal("0.10")
    delivery_hours_threshold: Decimal = Decimal("500")
    min_guests: int = 15
    max_guests: int = 100
    guest_step: int = 5
    allow_cash: bool = False
    currency: str = "usd"
    time_zone: str = "America/Chicago"

    @property
    def max_delivery_miles(self) -> Decimal:
        return self.delivery_tiers[-1][0]

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "CheckoutSettings":
        """
        从配置字典构建参数，缺失项使用内置默认值

        Args:
            config: 完整配置字典（读取其中的 checkout 段）

        Returns:
            CheckoutSettings实例
        """
        section = (config or {}).get("checkout", {}) or {}
        defaults = cls()

        tiers: List[Tuple[Decimal, Decimal]] = []
        for tier in section.get("delivery_tiers", []) or []:
            tiers.append((Decimal(str(tier["max_miles"])), Decimal(str(tier["fee"]))))
        tiers.sort(key=lambda t: t[0])

        return cls(
            tax_rate=Decimal(str(section.get("tax_rate", defaults.tax_rate))),
            lead_time_hours=int(section.get("lead_time_hours", defaults.lead_time_hours)),
            max_days_ahead=int(section.get("max_days_ahead", defaults.max_days_ahead)),
            slot_minutes=int(section.get("slot_minutes", defaults.slot_minutes)),
            origin_address=section.get("origin_address", defaults.origin_address),
            delivery_tiers=tuple(tiers) if tiers else defaults.delivery_tiers,
            add_on_fee=Decimal(str(section.get("add_on_fee", defaults.add_on_fee))),
            add_on_flags=tuple(section.get("add_on_flags", defaults.add_on_flags)),
            discount_code=str(section.get("discount_code", defaults.discount_code)),
            discount_rate=Decimal(str(section.get("discount_rate", defaults.discount_rate))),
            delivery_hours_threshold=Decimal(
                str(section.get("delivery_hours_threshold", defaults.delivery_hours_threshold))
            ),
            min_guests=int(section.get("min_guests", defaults.min_guests)),
            max_guests=int(section.get("max_guests", defaults.max_guests)),
            guest_step=int(section.get("guest_step", defaults.guest_step)),
            allow_cash=bool(section.get("allow_cash", defaults.allow_cash)),
            currency=str(section.get("currency", defaults.currency)),
            time_zone=str(section.get("time_zone", defaults.time_zone)),
        )
