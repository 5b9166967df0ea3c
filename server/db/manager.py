# 数据库管理器
# SQLite连接、事务和建表

import sqlite3
import logging
import os
from datetime import datetime
from typing import List, Any, Callable, Dict
from contextlib import contextmanager

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS config_store (
        config_key VARCHAR(50) PRIMARY KEY,
        payload JSON NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS menu_costs (
        name VARCHAR(200) PRIMARY KEY,
        category VARCHAR(100) NOT NULL,
        unit_type VARCHAR(20) NOT NULL,
        tier_group VARCHAR(1) NOT NULL DEFAULT 'A',
        unit_cost TEXT NOT NULL DEFAULT '0',
        description TEXT DEFAULT '',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS menu_items (
        name VARCHAR(200) PRIMARY KEY,
        category VARCHAR(100) NOT NULL,
        unit_type VARCHAR(20) NOT NULL,
        tier_group VARCHAR(1) NOT NULL DEFAULT 'A',
        payload JSON NOT NULL,
        deployed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        order_id VARCHAR(40) PRIMARY KEY,
        session_id VARCHAR(64),
        customer_name VARCHAR(200) DEFAULT '',
        customer_email VARCHAR(200) DEFAULT '',
        method VARCHAR(20) NOT NULL,
        payment_method VARCHAR(20) NOT NULL,
        payment_status VARCHAR(20) NOT NULL DEFAULT 'pending',
        grand_total_cents INTEGER NOT NULL,
        scheduled_at VARCHAR(40),
        placed_at TIMESTAMP NOT NULL,
        paid_at TIMESTAMP,
        payload JSON NOT NULL,
        CHECK (payment_status IN ('paid', 'pending', 'refunded', 'cancelled')),
        CHECK (method IN ('pickup', 'delivery'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session_data (
        session_id VARCHAR(64) NOT NULL,
        data_key VARCHAR(50) NOT NULL,
        value JSON,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (session_id, data_key)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(payment_status)",
    "CREATE INDEX IF NOT EXISTS idx_orders_placed ON orders(placed_at)",
]

TABLES = ["config_store", "menu_costs", "menu_items", "orders", "session_data"]


class DatabaseManager:
    """
    数据库管理器

    负责SQLite数据库连接管理、事务处理和基础操作
    """

    def __init__(self, db_path: str, auto_connect: bool = False):
        """
        初始化数据库管理器

        Args:
            db_path: 数据库文件路径
            auto_connect: 是否自动连接数据库
        """
        self.db_path = db_path
        self.conn = None
        self._is_connected = False

        self.logger = logging.getLogger(self.__class__.__name__)

        if auto_connect:
            self.connect()

    def connect(self) -> sqlite3.Connection:
        """
        建立数据库连接

        Returns:
            SQLite连接对象

        Raises:
            ConnectionError: 连接失败时抛出异常
        """
        try:
            if self.conn is not None:
                self.logger.warning("数据库连接已存在，先关闭现有连接")
                self.close()

            db_dir = os.path.dirname(self.db_path)
            if db_dir and not os.path.exists(db_dir):
                os.makedirs(db_dir, exist_ok=True)
                self.logger.info(f"创建数据库目录: {db_dir}")

            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self._is_connected = True
            self.logger.info(f"成功连接到数据库: {self.db_path}")

            self._configure_database()

            return self.conn

        except sqlite3.Error as e:
            self.logger.error(f"连接数据库失败: {str(e)}")
            raise ConnectionError(f"无法连接到数据库 {self.db_path}: {str(e)}")

    def close(self):
        """关闭数据库连接"""
        if self.conn is not None:
            try:
                self.conn.close()
                self.logger.info("数据库连接已关闭")
            except sqlite3.Error as e:
                self.logger.error(f"关闭数据库连接时发生错误: {str(e)}")
            finally:
                self.conn = None
                self._is_connected = False

    def _configure_database(self):
        try:
            optimizations = [
                "PRAGMA journal_mode = WAL",
                "PRAGMA synchronous = NORMAL",
                "PRAGMA temp_store = MEMORY"
            ]
            for opt in optimizations:
                self.conn.execute(opt)
            self.logger.debug("数据库优化参数配置完成")
        except sqlite3.Error as e:
            self.logger.warning(f"配置数据库参数时出现警告: {str(e)}")

    def is_connected(self) -> bool:
        return self._is_connected and self.conn is not None

    def ensure_connected(self):
        """
        确保数据库连接可用

        Raises:
            ConnectionError: 连接不可用时抛出异常
        """
        if not self.is_connected():
            raise ConnectionError("数据库未连接，请先调用connect()方法")

    def create_tables(self):
        """建表（已存在则跳过）"""
        self.ensure_connected()
        with self.transaction() as conn:
            for statement in SCHEMA:
                conn.execute(statement)
        self.logger.info(f"数据表就绪: {', '.join(TABLES)}")

    def execute_transaction(self, operations: List[Callable]) -> List[Any]:
        """
        串行执行事务操作，任一操作失败则整体回滚

        Args:
            operations: 操作函数列表，每个函数返回操作结果

        Returns:
            所有操作结果的列表
        """
        self.ensure_connected()

        if not operations:
            self.logger.warning("事务操作列表为空")
            return []

        transaction_id = datetime.now().strftime("%Y%m%d%H%M%S%f")
        self.logger.debug(f"开始事务 {transaction_id}，包含 {len(operations)} 个操作")
        with self.transaction():
            results = [operation() for operation in operations]
        self.logger.info(f"事务 {transaction_id} 提交成功")
        return results

    def execute_single(self, query: str, params: List = None) -> Any:
        """
        执行单个SQL查询

        Args:
            query: SQL查询语句
            params: 查询参数

        Returns:
            查询结果
        """
        self.ensure_connected()

        try:
            if params:
                result = self.conn.execute(query, params)
            else:
                result = self.conn.execute(query)

            if query.strip().upper().startswith(('CREATE', 'DROP', 'ALTER', 'INSERT', 'UPDATE', 'DELETE')):
                self.conn.commit()

            return result

        except sqlite3.Error as e:
            self.logger.error(f"执行SQL查询失败: {query[:100]}..., 错误: {str(e)}")
            raise

    @contextmanager
    def transaction(self):
        """
        事务上下文管理器

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT ...")
                conn.execute("UPDATE ...")
        """
        self.ensure_connected()

        try:
            self.logger.debug("手动事务开始")
            yield self.conn
            self.conn.commit()
            self.logger.debug("手动事务提交成功")
        except Exception as e:
            self.logger.error(f"手动事务执行失败: {str(e)}")
            try:
                self.conn.rollback()
                self.logger.debug("手动事务已回滚")
            except sqlite3.Error as rollback_error:
                self.logger.error(f"手动事务回滚失败: {str(rollback_error)}")
            raise

    def get_table_info(self, table_name: str) -> Dict[str, Any]:
        """
        获取数据表信息

        Args:
            table_name: 表名

        Returns:
            表信息字典（列定义和记录数）
        """
        self.ensure_connected()

        if table_name not in TABLES:
            raise ValueError(f"表 {table_name} 不存在")

        columns_result = self.conn.execute(f"PRAGMA table_info('{table_name}')").fetchall()
        if not columns_result:
            raise ValueError(f"表 {table_name} 不存在")

        columns = [{
            'name': col[1],
            'type': col[2],
            'not_null': bool(col[3]),
            'primary_key': bool(col[5])
        } for col in columns_result]

        count_result = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()
        return {
            'table_name': table_name,
            'columns': columns,
            'record_count': count_result[0] if count_result else 0
        }

    def __enter__(self):
        if not self.is_connected():
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
