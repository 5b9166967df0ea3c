#!/usr/bin/env python3
"""
情景测试: 管理员发布菜单 -> 客户选套餐、加托盘 -> 结账 -> 现金下单 -> 管理员标记已付款
模拟客户端API调用，需先启动服务器（CONFIG_ENV=development 且开启现金支付）
"""

import argparse
import sys

import requests

BASE_URL = "http://localhost:8000"

SAMPLE_COSTS = [
    {"Category": "Appetizer", "Item": "Veg Samosa", "Type": "pc", "Group": "A", "UnitPrice": 0.45},
    {"Category": "Main Course", "Item": "Dal Tadka", "Type": "oz", "Group": "A", "UnitPrice": 0.12},
    {"Category": "Main Course", "Item": "Paneer Butter Masala", "Type": "oz", "Group": "A", "UnitPrice": 0.22},
    {"Category": "Main Course", "Item": "Chicken Tikka Masala", "Type": "oz", "Group": "B", "UnitPrice": 0.28},
    {"Category": "Rice", "Item": "Jeera Rice", "Type": "oz", "Group": "A", "UnitPrice": 0.08},
    {"Category": "Bread", "Item": "Butter Naan", "Type": "pc", "Group": "A", "UnitPrice": 0.40},
    {"Category": "Dessert", "Item": "Gulab Jamun", "Type": "pc", "Group": "A", "UnitPrice": 0.35},
]

BASIC_PICKS = {
    "appetizer": ["Veg Samosa"],
    "main": ["Dal Tadka", "Paneer Butter Masala"],
    "rice": ["Jeera Rice"],
    "bread": ["Butter Naan"],
    "dessert": ["Gulab Jamun"],
}


class APIClient:
    def __init__(self, base_url):
        self.base_url = base_url
        self.token = None
        self.session = requests.Session()

    def _check(self, response, action):
        if response.status_code != 200:
            raise Exception(f"{action}失败: {response.text}")
        result = response.json()
        if not result.get('success'):
            raise Exception(f"{action}失败: {result.get('error')} {result.get('reasons', '')}")
        return result['data']

    def _admin_headers(self):
        return {"Authorization": f"Bearer {self.token}"}

    def login_admin(self, password):
        print("\n=== 管理员登录 ===")
        response = requests.post(f"{self.base_url}/api/auth/admin/login", json={"password": password})
        self.token = self._check(response, "登录")['access_token']
        print("✅ 获取token成功")

    def publish_menu(self):
        print("\n=== 上传成本表并发布菜单 ===")
        response = requests.post(
            f"{self.base_url}/api/admin/menu/costs", json={"rows": SAMPLE_COSTS}, headers=self._admin_headers()
        )
        print(f"✅ 上传 {self._check(response, '上传成本表')['count']} 行成本")

        response = requests.post(f"{self.base_url}/api/admin/pricing/deploy", headers=self._admin_headers())
        result = self._check(response, "发布菜单")
        print(f"✅ 发布 {result['deployed']} 项，删除 {result['removed']} 项")

    def start_session(self):
        """首次请求由服务器分配会话ID，之后的客户请求都带上它"""
        response = self.session.get(f"{self.base_url}/api/cart")
        self._check(response, "创建会话")
        self.session.headers["X-Session-ID"] = response.headers["X-Session-ID"]
        print(f"✅ 会话: {self.session.headers['X-Session-ID'][:8]}...")

    def add_package(self, guests):
        print(f"\n=== 选择基础套餐（{guests}人） ===")
        body = {"package_id": "pkg-basic", "guests": guests, "appetite": "regular", "picks": BASIC_PICKS}
        rec = self._check(self.session.post(f"{self.base_url}/api/packages/recommendation", json=body), "套餐推荐")
        print(f"✅ 推荐: {rec['details']}")
        print(f"   人均 ${rec['pricing']['per_person']:.0f}，合计 ${rec['pricing']['rounded_total']:.0f}")

        self._check(self.session.post(f"{self.base_url}/api/packages/cart", json=body), "套餐加入购物车")
        print("✅ 套餐已加入购物车")

    def add_tray(self):
        print("\n=== 加入单点托盘 ===")
        menu = self._check(self.session.get(f"{self.base_url}/api/menu"), "获取菜单")
        tikka = next(i for i in menu['categories']['Main Course'] if i['name'] == "Chicken Tikka Masala")
        line = {
            "item_id": tikka['name'], "name": tikka['name'], "size": "MediumTray",
            "qty": 1, "unit": tikka['tray_prices']['MediumTray'], "spice_level": "Spicy",
        }
        cart = self._check(self.session.post(f"{self.base_url}/api/cart/items", json=line), "加入购物车")
        print(f"✅ 购物车合计 ${cart['cart_total']:.2f}")

    def checkout(self):
        print("\n=== 结账 ===")
        dates = self._check(self.session.get(f"{self.base_url}/api/checkout/dates"), "获取可选日期")
        if not dates['slots']:
            raise Exception(f"{dates['date']} 没有可选时间")
        customer = {
            "name": "Scenario Guest", "email": "guest@example.com", "phone": "(214) 555-0100",
            "method": "pickup", "pickup_date": dates['date'], "pickup_time": dates['slots'][0],
            "payment": "cash",
        }
        summary = self._check(self.session.post(f"{self.base_url}/api/checkout/summary", json=customer), "结账汇总")
        if not summary['ready']:
            raise Exception(f"无法结账: {summary['reasons']}")
        print(f"✅ {dates['date']} {summary['selected_time']}，总计 ${summary['totals']['grand_total']:.2f}")

        order = self._check(self.session.post(f"{self.base_url}/api/orders", json={"payment": "cash"}), "下单")
        print(f"✅ 订单 {order['order_id']} 已创建")
        for line in order['line_summary']:
            print(f"   {line}")
        return order['order_id']

    def mark_paid(self, order_id):
        print("\n=== 管理员标记已付款 ===")
        response = requests.patch(
            f"{self.base_url}/api/admin/orders/{order_id}/payment-status",
            json={"payment_status": "paid"}, headers=self._admin_headers()
        )
        result = self._check(response, "修改支付状态")
        print(f"✅ {result['previous_status']} -> {result['payment_status']}，付款时间 {result['paid_at']}")


def main():
    parser = argparse.ArgumentParser(description="点餐完整流程情景测试")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--admin-password", required=True)
    parser.add_argument("--guests", type=int, default=25)
    args = parser.parse_args()

    client = APIClient(args.base_url)
    try:
        client.login_admin(args.admin_password)
        client.publish_menu()
        client.start_session()
        client.add_package(args.guests)
        client.add_tray()
        order_id = client.checkout()
        client.mark_paid(order_id)
    except Exception as e:
        print(f"\n❌ 情景测试失败: {str(e)}")
        return 1

    print("\n🎉 情景测试通过")
    return 0


if __name__ == "__main__":
    sys.exit(main())
