#!/usr/bin/env python3
# 数据库初始化脚本
# 建表、写入默认配置，可选写入示例成本表并发布菜单

import argparse
import logging
import sys
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.defaults import default_package_config, default_pricing_config, default_hours_config
from core.ingest import cost_item_from_raw
from core.tray_pricing import build_customer_menu
from db.core_operations import CoreOperations
from db.manager import DatabaseManager, TABLES
from db.query_operations import QueryOperations
from utils.config import Config
from utils.security import hash_password

SAMPLE_COSTS = [
    {"Category": "Appetizer", "Item": "Veg Samosa", "Type": "pc", "Group": "A", "UnitPrice": 0.45},
    {"Category": "Appetizer", "Item": "Chicken 65", "Type": "oz", "Group": "B", "UnitPrice": 0.30},
    {"Category": "Main Course", "Item": "Dal Tadka", "Type": "oz", "Group": "A", "UnitPrice": 0.12},
    {"Category": "Main Course", "Item": "Paneer Butter Masala", "Type": "oz", "Group": "A", "UnitPrice": 0.22},
    {"Category": "Main Course", "Item": "Chicken Tikka Masala", "Type": "oz", "Group": "B", "UnitPrice": 0.28},
    {"Category": "Main Course", "Item": "Lamb Rogan Josh", "Type": "oz", "Group": "C", "UnitPrice": 0.45},
    {"Category": "Rice", "Item": "Jeera Rice", "Type": "oz", "Group": "A", "UnitPrice": 0.08},
    {"Category": "Biryani", "Item": "Chicken Biryani", "Type": "oz", "Group": "B", "UnitPrice": 0.25},
    {"Category": "Bread", "Item": "Butter Naan", "Type": "pc", "Group": "A", "UnitPrice": 0.40},
    {"Category": "Bread", "Item": "Garlic Naan", "Type": "pc", "Group": "B", "UnitPrice": 0.55},
    {"Category": "Dessert", "Item": "Gulab Jamun", "Type": "pc", "Group": "A", "UnitPrice": 0.35},
    {"Category": "Dessert", "Item": "Rasmalai", "Type": "pc", "Group": "B", "UnitPrice": 0.60},
]


def seed_configs(db_manager: DatabaseManager):
    """配置不存在时写入内置默认值"""
    core_ops = CoreOperations(db_manager)
    defaults = {
        "packages": default_package_config().model_dump(by_alias=True),
        "pricing": default_pricing_config().model_dump(),
        "hours": default_hours_config().model_dump(by_alias=True),
    }
    for key, payload in defaults.items():
        existing = db_manager.conn.execute(
            "SELECT 1 FROM config_store WHERE config_key = ?", [key]
        ).fetchone()
        if existing:
            logging.info(f"配置 {key} 已存在，跳过")
            continue
        core_ops.save_config(key, payload)
        logging.info(f"已写入默认配置: {key}")


def seed_sample_menu(db_manager: DatabaseManager):
    """写入示例成本表并按当前定价参数发布菜单"""
    items = [cost_item_from_raw(raw) for raw in SAMPLE_COSTS]
    core_ops = CoreOperations(db_manager)
    core_ops.upload_costs(items)
    pricing = QueryOperations(db_manager).get_pricing_config()
    result = core_ops.deploy_menu(build_customer_menu(items, pricing))
    logging.info(f"示例菜单已发布: {result['deployed']} 项")


def main():
    """
    主函数：初始化数据库
    """
    parser = argparse.ArgumentParser(description="初始化点餐数据库")
    parser.add_argument("--sample-menu", action="store_true", help="写入示例成本表并发布菜单")
    parser.add_argument("--hash-password", metavar="PASSWORD", help="输出管理员密码的bcrypt哈希后退出")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.hash_password:
        print(hash_password(args.hash_password))
        return

    config = Config()
    db_path = config.get_database_config()["path"]

    logging.info(f"开始初始化数据库: {db_path}")
    logging.info(f"配置环境: {config.env}")

    try:
        with DatabaseManager(db_path) as db_manager:
            logging.info("创建数据表...")
            db_manager.create_tables()

            logging.info("写入默认配置...")
            seed_configs(db_manager)

            if args.sample_menu:
                seed_sample_menu(db_manager)

            logging.info("数据库初始化完成!")
            logging.info("数据表状态:")
            for table_name in TABLES:
                info = db_manager.get_table_info(table_name)
                logging.info(f"  - {table_name}: {info['record_count']} 条记录")

    except Exception as e:
        logging.error(f"数据库初始化失败: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
