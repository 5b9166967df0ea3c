# -*- coding: utf-8 -*-
# 周边支持操作
# 会话数据存储、订单号与会话号生成

import json
import secrets
from datetime import datetime
from typing import Any, Optional

from core.session import SessionStore
from .manager import DatabaseManager


def generate_order_id(placed_at: datetime) -> str:
    """订单号格式: CT-YYYYMMDD-随机8位十六进制"""
    return f"CT-{placed_at.strftime('%Y%m%d')}-{secrets.token_hex(4).upper()}"


def generate_session_id() -> str:
    return secrets.token_urlsafe(24)


class SqliteSessionStore(SessionStore):
    """
    基于session_data表的会话存储

    每个键保存一个JSON值，同一会话跨请求共享
    """

    def __init__(self, db_manager: DatabaseManager, session_id: str):
        if not session_id:
            raise ValueError("会话ID不能为空")
        self.db = db_manager
        self.session_id = session_id

    def get(self, key: str, default: Any = None) -> Any:
        row = self.db.conn.execute(
            "SELECT value FROM session_data WHERE session_id = ? AND data_key = ?",
            [self.session_id, key]
        ).fetchone()
        if not row or row[0] is None:
            return default
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        self.db.execute_single("""
            INSERT INTO session_data (session_id, data_key, value, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(session_id, data_key) DO UPDATE SET
                value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
        """, [self.session_id, key, json.dumps(value)])

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self.db.execute_single("DELETE FROM session_data WHERE session_id = ?", [self.session_id])
        else:
            self.db.execute_single(
                "DELETE FROM session_data WHERE session_id = ? AND data_key = ?",
                [self.session_id, key]
            )


class SupportingOperations:
    """会话相关的辅助操作"""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def session_store(self, session_id: str) -> SqliteSessionStore:
        return SqliteSessionStore(self.db, session_id)

    def purge_sessions(self, older_than: datetime) -> int:
        """
        删除过期的会话数据

        Args:
            older_than: 早于该时间未更新的会话数据将被删除

        Returns:
            删除的行数
        """
        cursor = self.db.execute_single(
            "DELETE FROM session_data WHERE updated_at < ?",
            [older_than.strftime("%Y-%m-%d %H:%M:%S")]
        )
        self.db.logger.info(f"清理过期会话数据 {cursor.rowcount} 行")
        return cursor.rowcount
