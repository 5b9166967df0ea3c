# 核心写操作
# 配置保存、成本上传、菜单发布、下单、支付状态变更

import json
from datetime import datetime
from typing import List, Optional, Dict, Any

from core.models import CostItem, MenuItem, OrderDraft, PAYMENT_STATUSES
from core.money import to_cents, to_decimal
from .manager import DatabaseManager
from .supporting_operations import generate_order_id

CONFIG_KEYS = ("packages", "hours", "pricing")


class CoreOperations:
    """
    核心业务写操作类

    校验失败抛出ValueError，由路由层转换为错误响应
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save_config(self, config_key: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        保存一项配置（套餐、营业时间、定价参数）

        Args:
            config_key: packages / hours / pricing
            payload: 已通过模型校验的配置字典

        Returns:
            保存结果
        """
        if config_key not in CONFIG_KEYS:
            raise ValueError(f"未知的配置项: {config_key}")

        def save_operation():
            self.db.conn.execute("""
                INSERT INTO config_store (config_key, payload, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(config_key) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = CURRENT_TIMESTAMP
            """, [config_key, json.dumps(payload)])
            return {'config_key': config_key, 'saved': True}

        result = self.db.execute_transaction([save_operation])[0]
        self.db.logger.info(f"配置 {config_key} 已保存")
        return result

    def upload_costs(self, items: List[CostItem]) -> Dict[str, Any]:
        """
        上传成本表，整体替换现有成本行

        Args:
            items: 成本行列表，名称不能重复

        Returns:
            {'count': 写入行数}
        """
        if not items:
            raise ValueError("成本表不能为空")
        names = [item.name for item in items]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"成本表中存在重复菜品: {', '.join(duplicates)}")

        def upload_operation():
            self.db.conn.execute("DELETE FROM menu_costs")
            for item in items:
                self.db.conn.execute("""
                    INSERT INTO menu_costs (name, category, unit_type, tier_group, unit_cost, description)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, [item.name, item.category, item.unit_type, item.group,
                      str(to_decimal(item.cost)), item.description])
            return {'count': len(items)}

        return self.db.execute_transaction([upload_operation])[0]

    def deploy_menu(self, items: List[MenuItem]) -> Dict[str, Any]:
        """
        发布客户端菜单：写入新售价，删除不再存在的菜品

        Returns:
            {'deployed': 写入数, 'removed': 删除数}
        """
        def deploy_operation():
            keep = {item.name for item in items}
            existing = [row[0] for row in self.db.conn.execute("SELECT name FROM menu_items").fetchall()]
            obsolete = [name for name in existing if name not in keep]
            for name in obsolete:
                self.db.conn.execute("DELETE FROM menu_items WHERE name = ?", [name])
            for item in items:
                self.db.conn.execute("""
                    INSERT INTO menu_items (name, category, unit_type, tier_group, payload, deployed_at)
                    VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(name) DO UPDATE SET
                        category = excluded.category,
                        unit_type = excluded.unit_type,
                        tier_group = excluded.tier_group,
                        payload = excluded.payload,
                        deployed_at = CURRENT_TIMESTAMP
                """, [item.name, item.category, item.unit_type, item.group,
                      json.dumps(item.model_dump())])
            return {'deployed': len(items), 'removed': len(obsolete)}

        result = self.db.execute_transaction([deploy_operation])[0]
        self.db.logger.info(f"菜单发布完成: 写入 {result['deployed']} 项，删除 {result['removed']} 项")
        return result

    def create_order(self, draft: OrderDraft, session_id: Optional[str],
                     placed_at: datetime, payment_status: str = "pending") -> Dict[str, Any]:
        """
        保存订单草稿为正式订单

        Args:
            draft: 订单草稿
            session_id: 下单会话
            placed_at: 下单时间
            payment_status: 初始支付状态

        Returns:
            {'order_id': 订单号, 'placed_at': ISO时间}
        """
        if payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"无效的支付状态: {payment_status}")
        if not draft.cart:
            raise ValueError("订单不能为空")

        customer = draft.customer or {}
        method = customer.get('method', 'pickup')

        def create_order_operation():
            order_id = generate_order_id(placed_at)
            self.db.conn.execute("""
                INSERT INTO orders (order_id, session_id, customer_name, customer_email, method,
                                    payment_method, payment_status, grand_total_cents,
                                    scheduled_at, placed_at, payload)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [order_id, session_id, customer.get('name', ''), customer.get('email', ''),
                  method, draft.payment, payment_status, to_cents(draft.totals.grand_total),
                  draft.when, placed_at.isoformat(), draft.model_dump_json()])
            return {'order_id': order_id, 'placed_at': placed_at.isoformat()}

        result = self.db.execute_transaction([create_order_operation])[0]
        self.db.logger.info(
            f"订单 {result['order_id']} 创建成功，金额 {draft.totals.grand_total:.2f}，支付方式 {draft.payment}"
        )
        return result

    def update_payment_status(self, order_id: str, status: str, now: datetime) -> Dict[str, Any]:
        """
        管理员修改订单支付状态

        变为paid时记录首次付款时间

        Returns:
            更新后的状态信息
        """
        if status not in PAYMENT_STATUSES:
            raise ValueError(f"无效的支付状态: {status}")

        def update_operation():
            row = self.db.conn.execute(
                "SELECT payment_status, paid_at FROM orders WHERE order_id = ?", [order_id]
            ).fetchone()
            if not row:
                raise ValueError(f"订单 {order_id} 不存在")

            paid_at = row[1]
            if status == 'paid' and not paid_at:
                paid_at = now.isoformat()
            self.db.conn.execute("""
                UPDATE orders SET payment_status = ?, paid_at = ? WHERE order_id = ?
            """, [status, paid_at, order_id])
            return {
                'order_id': order_id,
                'previous_status': row[0],
                'payment_status': status,
                'paid_at': paid_at,
            }

        result = self.db.execute_transaction([update_operation])[0]
        self.db.logger.info(f"订单 {order_id} 支付状态: {result['previous_status']} -> {status}")
        return result
