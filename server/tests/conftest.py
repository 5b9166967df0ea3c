# 测试配置和固定装置

import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# 添加项目路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# 设置测试环境（必须在导入应用之前）
_test_dir = tempfile.mkdtemp(prefix="catering-test-")
os.environ['CONFIG_ENV'] = 'test'
os.environ['CATERING_DB_PATH'] = os.path.join(_test_dir, 'catering-test.db')

from utils.security import hash_password

ADMIN_PASSWORD = "correct-horse-battery"
os.environ['CATERING_ADMIN_PASSWORD_HASH'] = hash_password(ADMIN_PASSWORD)

from api.main import app
from api.auth.routes import get_clock
from core.ingest import cost_item_from_raw
from core.models import CartLine, CheckoutTotals, MenuItem, OrderDraft, TrayThresholds
from core.defaults import default_package_config, default_pricing_config
from core.session import InMemorySessionStore
from core.settings import CheckoutSettings
from core.tray_pricing import build_customer_menu
from db.manager import DatabaseManager, TABLES
from db.core_operations import CoreOperations
from db.query_operations import QueryOperations
from db.supporting_operations import SupportingOperations

# 2025-03-03 是周一，最早可预约时刻为 2025-03-04 03:00
FIXED_NOW = datetime(2025, 3, 3, 9, 0)
SESSION_ID = "test-session-0001"

SAMPLE_COST_ROWS = [
    {"Category": "Appetizer", "Item": "Veg Samosa", "Type": "pc", "Group": "A", "UnitPrice": 0.45},
    {"Category": "Appetizer", "Item": "Chicken 65", "Type": "oz", "Group": "B", "UnitPrice": 0.30},
    {"Category": "Main Course", "Item": "Dal Tadka", "Type": "oz", "Group": "A", "UnitPrice": 0.12},
    {"Category": "Main Course", "Item": "Paneer Butter Masala", "Type": "oz", "Group": "A", "UnitPrice": 0.22},
    {"Category": "Main Course", "Item": "Chicken Tikka Masala", "Type": "oz", "Group": "B", "UnitPrice": 0.28},
    {"Category": "Main Course", "Item": "Lamb Rogan Josh", "Type": "oz", "Group": "C", "UnitPrice": 0.45},
    {"Category": "Rice", "Item": "Jeera Rice", "Type": "oz", "Group": "A", "UnitPrice": 0.08},
    {"Category": "Biryani", "Item": "Chicken Biryani", "Type": "oz", "Group": "B", "UnitPrice": 0.25},
    {"Category": "Bread", "Item": "Butter Naan", "Type": "pc", "Group": "A", "UnitPrice": 0.40},
    {"Category": "Dessert", "Item": "Gulab Jamun", "Type": "pc", "Group": "A", "UnitPrice": 0.35},
]


@pytest.fixture
def settings():
    """默认结账参数"""
    return CheckoutSettings()


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def thresholds():
    return TrayThresholds()


@pytest.fixture
def package_config():
    return default_package_config()


@pytest.fixture
def sample_costs():
    return [cost_item_from_raw(raw) for raw in SAMPLE_COST_ROWS]


@pytest.fixture
def menu(sample_costs):
    """按默认定价生成的菜单，名称 -> MenuItem"""
    return {item.name: item for item in build_customer_menu(sample_costs, default_pricing_config())}


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def tray_line():
    """$40 小托盘"""
    return CartLine(item_id="Dal Tadka", name="Dal Tadka", size="SmallTray", qty=2, unit=40.0)


def _make_item(name, category="Main Course", group="A", per_piece=False, small=40.0):
    if per_piece:
        return MenuItem(name=name, category=category, group=group,
                        unit_type="per-piece", piece_price=1.5)
    return MenuItem(
        name=name, category=category, group=group,
        tray_prices={"SmallTray": small, "MediumTray": small * 2,
                     "LargeTray": small * 3, "ExtraLargeTray": small * 4},
    )


@pytest.fixture
def make_item():
    """构造固定售价菜品的工厂"""
    return _make_item


@pytest.fixture
def test_db():
    """测试数据库实例（内存数据库）"""
    db = DatabaseManager(":memory:", auto_connect=True)
    db.create_tables()
    yield db
    db.close()


@pytest.fixture
def core_ops(test_db):
    """核心业务操作实例"""
    return CoreOperations(test_db)


@pytest.fixture
def query_ops(test_db):
    """查询业务操作实例"""
    return QueryOperations(test_db)


@pytest.fixture
def support_ops(test_db):
    """支持业务操作实例"""
    return SupportingOperations(test_db)


def _clean_database():
    with DatabaseManager(os.environ['CATERING_DB_PATH']) as db:
        with db.transaction() as conn:
            for table in TABLES:
                conn.execute(f"DELETE FROM {table}")


@pytest.fixture
def client():
    """FastAPI测试客户端（固定时钟、固定会话、每个测试清空数据）"""
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)
    with TestClient(app) as test_client:
        _clean_database()
        test_client.headers.update({"X-Session-ID": SESSION_ID})
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client):
    """管理员认证头"""
    response = client.post("/api/auth/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def deployed_menu(client, admin_headers):
    """上传示例成本表并发布菜单"""
    response = client.post(
        "/api/admin/menu/costs", json={"rows": SAMPLE_COST_ROWS}, headers=admin_headers
    )
    assert response.json()["success"] is True
    response = client.post("/api/admin/pricing/deploy", headers=admin_headers)
    assert response.json()["success"] is True
    return response.json()["data"]


PRICED_MENU_ROWS = [
    {"Category": "Main Course", "Item": "Dal Tadka", "Type": "oz", "Group": "A",
     "SmallTray": 40, "MediumTray": 80, "LargeTray": 120, "ExtraLargeTray": 160},
    {"Category": "Main Course", "Item": "Chicken Tikka Masala", "Type": "oz", "Group": "B",
     "SmallTray": 45, "MediumTray": 80, "LargeTray": 130, "ExtraLargeTray": 180},
    {"Category": "Appetizer", "Item": "Chicken 65", "Type": "oz", "Group": "B",
     "SmallTray": 35, "MediumTray": 60, "LargeTray": 95, "ExtraLargeTray": 140},
    {"Category": "Appetizer", "Item": "Veg Samosa", "Type": "pc", "Group": "A", "piece_price": 1.5},
]


@pytest.fixture
def priced_menu(client, admin_headers):
    """直接导入整数售价的菜单（Dal Tadka 小托盘 $40）"""
    response = client.post(
        "/api/admin/menu/import", json={"rows": PRICED_MENU_ROWS}, headers=admin_headers
    )
    assert response.json()["success"] is True
    return response.json()["data"]


def _make_draft(name="Asha", method="pickup", payment="card", grand_total=86.60,
                when="2025-03-04T11:00:00-06:00"):
    return OrderDraft(
        cart=[{"item_id": "Dal Tadka", "name": "Dal Tadka", "size": "SmallTray", "qty": 2, "unit": 40.0}],
        totals=CheckoutTotals(cart_total=80, subtotal=80, tax=6.60, grand_total=grand_total),
        customer={"name": name, "email": f"{name.lower()}@example.com", "method": method},
        payment=payment,
        when=when,
    )


@pytest.fixture
def make_draft():
    """构造最小订单草稿的工厂"""
    return _make_draft


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD


@pytest.fixture
def sample_cost_rows():
    return [dict(row) for row in SAMPLE_COST_ROWS]
