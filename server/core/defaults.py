# 内置默认配置
# 配置存储不可用或配置格式错误时回退到这里

from .models import (
    PackageConfig, PackageDefinition, TrayThresholds,
    PricingConfig, TraySize, HoursConfig, DaySchedule, DAY_KEYS
)


def default_package_config() -> PackageConfig:
    return PackageConfig(
        thresholds=TrayThresholds(small=15, medium=25, large=35, xl=50, heavy_bump=5),
        packages=[
            PackageDefinition(
                id="pkg-basic", name="Basic Package", price_line="Starting $8/person",
                slots={"appetizer": ["A"], "main": ["A", "A"], "rice": ["A"],
                       "bread": ["A"], "dessert": ["A"]},
            ),
            PackageDefinition(
                id="pkg-classic", name="Classic Package", price_line="Starting $12/person",
                slots={"appetizer": ["A"], "main": ["A", "A", "B"], "rice": ["B"],
                       "bread": ["A"], "dessert": ["A"]},
            ),
            PackageDefinition(
                id="pkg-premium", name="Premium Package", price_line="Starting $15/person",
                slots={"appetizer": ["A", "B"], "main": ["A", "B", "C"], "rice": ["A", "B"],
                       "bread": ["A", "B"], "dessert": ["A", "B"]},
            ),
        ],
    )


def default_pricing_config() -> PricingConfig:
    return PricingConfig(
        margin=150,
        min_piece_price=1.0,
        trays=[
            TraySize(key="SmallTray", name="Small Tray", oz=80, min_price=20, max_price=40),
            TraySize(key="MediumTray", name="Medium Tray", oz=120, min_price=50, max_price=80),
            TraySize(key="LargeTray", name="Large Tray", oz=220, min_price=80, max_price=150),
            TraySize(key="ExtraLargeTray", name="Extra Large Tray", oz=340, min_price=125, max_price=250),
        ],
    )


def _day(open1, close1, open2, close2, closed=False) -> DaySchedule:
    return DaySchedule(open1=open1, close1=close1, open2=open2, close2=close2, closed=closed)


def default_hours_config() -> HoursConfig:
    pickup = {
        "Sun": _day("12:00", "15:00", "18:00", "21:30"),
        "Mon": _day("11:00", "14:00", "17:30", "21:00"),
        "Tue": _day("11:00", "14:00", "17:30", "21:00"),
        "Wed": _day("11:00", "14:00", "17:30", "21:00"),
        "Thu": _day("11:00", "14:00", "17:30", "21:00"),
        "Fri": _day("11:00", "14:00", "18:00", "21:30"),
        "Sat": _day("12:00", "15:00", "18:00", "21:30"),
    }
    delivery = {}
    for key in DAY_KEYS:
        late_close = "21:30" if key in ("Fri", "Sat", "Sun") else "21:00"
        delivery[key] = _day("09:00", "16:00", "16:00", late_close)
    return HoursConfig(pickup_hours=pickup, delivery_hours=delivery)
