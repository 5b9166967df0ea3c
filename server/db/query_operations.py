# 查询操作
# 配置读取（缺失或格式错误时回退到内置默认值）、菜单、订单查询

import json
import logging
from typing import Callable, List, Optional, Dict, Any

from pydantic import BaseModel, ValidationError

from core.defaults import default_package_config, default_pricing_config, default_hours_config
from core.models import CostItem, MenuItem, PackageConfig, PricingConfig, HoursConfig, PAYMENT_STATUSES
from .manager import DatabaseManager

logger = logging.getLogger(__name__)

ORDER_SORT_COLUMNS = {
    "when": "scheduled_at",
    "placed_at": "placed_at",
    "grand_total": "grand_total_cents",
    "method": "method",
    "payment_method": "payment_method",
    "payment_status": "payment_status",
    "customer_name": "customer_name",
    "order_id": "order_id",
}

ORDER_COLUMNS = """
    order_id, customer_name, customer_email, method, payment_method,
    payment_status, grand_total_cents, scheduled_at, placed_at, paid_at, payload, session_id
"""


class QueryOperations:
    """查询业务操作类"""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def _load_config(self, config_key: str, model: type, fallback: Callable[[], BaseModel]):
        row = self.db.conn.execute(
            "SELECT payload FROM config_store WHERE config_key = ?", [config_key]
        ).fetchone()
        if not row:
            return fallback()
        try:
            return model.model_validate(json.loads(row[0]))
        except (ValueError, ValidationError) as e:
            logger.warning(f"配置 {config_key} 无效，使用默认配置: {str(e)}")
            return fallback()

    def get_package_config(self) -> PackageConfig:
        return self._load_config("packages", PackageConfig, default_package_config)

    def get_pricing_config(self) -> PricingConfig:
        return self._load_config("pricing", PricingConfig, default_pricing_config)

    def get_hours_config(self) -> HoursConfig:
        return self._load_config("hours", HoursConfig, default_hours_config)

    def list_costs(self) -> List[CostItem]:
        rows = self.db.conn.execute("""
            SELECT category, name, unit_type, tier_group, unit_cost, description
            FROM menu_costs
            ORDER BY category ASC, tier_group ASC, name ASC
        """).fetchall()
        return [
            CostItem(category=r[0], name=r[1], unit_type=r[2], group=r[3],
                     cost=float(r[4]), description=r[5] or "")
            for r in rows
        ]

    def list_menu(self) -> List[MenuItem]:
        """已发布的客户端菜单"""
        rows = self.db.conn.execute(
            "SELECT payload FROM menu_items ORDER BY category ASC, name ASC"
        ).fetchall()
        items = []
        for r in rows:
            try:
                items.append(MenuItem.model_validate(json.loads(r[0])))
            except (ValueError, ValidationError) as e:
                logger.warning(f"跳过无效的菜单行: {str(e)}")
        return items

    def menu_by_name(self) -> Dict[str, MenuItem]:
        return {item.name: item for item in self.list_menu()}

    def _format_order(self, row, include_payload: bool = False) -> Dict[str, Any]:
        order = {
            "order_id": row[0],
            "customer_name": row[1],
            "customer_email": row[2],
            "method": row[3],
            "payment_method": row[4],
            "payment_status": row[5],
            "grand_total_cents": row[6],
            "grand_total": row[6] / 100,
            "when": row[7],
            "placed_at": row[8],
            "paid_at": row[9],
            "session_id": row[11],
        }
        if include_payload:
            order["draft"] = json.loads(row[10])
        return order

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.conn.execute(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id = ?", [order_id]
        ).fetchone()
        return self._format_order(row, include_payload=True) if row else None

    def list_orders(self, method: Optional[str] = None, payment_method: Optional[str] = None,
                    payment_status: Optional[str] = None, sort_by: str = "placed_at",
                    descending: bool = True, offset: int = 0, limit: int = 100) -> Dict[str, Any]:
        """
        管理端订单列表

        Args:
            method: pickup / delivery 过滤
            payment_method: card / cash 过滤
            payment_status: paid / pending / refunded / cancelled 过滤
            sort_by: 排序字段，见ORDER_SORT_COLUMNS
            descending: 是否倒序
            offset: 偏移量
            limit: 每页条数，最大500

        Returns:
            订单列表和分页信息
        """
        if sort_by not in ORDER_SORT_COLUMNS:
            raise ValueError(f"不支持的排序字段: {sort_by}")
        if payment_status and payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"无效的支付状态: {payment_status}")
        if offset < 0:
            raise ValueError("偏移量不能为负数")
        if limit <= 0 or limit > 500:
            raise ValueError("每页条数必须在1-500之间")

        where, params = [], []
        for column, value in (("method", method), ("payment_method", payment_method),
                              ("payment_status", payment_status)):
            if value:
                where.append(f"{column} = ?")
                params.append(value)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""
        direction = "DESC" if descending else "ASC"
        column = ORDER_SORT_COLUMNS[sort_by]

        rows = self.db.conn.execute(f"""
            SELECT {ORDER_COLUMNS} FROM orders
            {where_sql}
            ORDER BY {column} {direction}, order_id {direction}
            LIMIT ? OFFSET ?
        """, params + [limit, offset]).fetchall()
        total_count = self.db.conn.execute(
            f"SELECT COUNT(*) FROM orders {where_sql}", params
        ).fetchone()[0]

        return {
            "orders": [self._format_order(r) for r in rows],
            "pagination": {
                "total_count": total_count,
                "offset": offset,
                "limit": limit,
            },
        }
