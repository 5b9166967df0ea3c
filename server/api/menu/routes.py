# 菜单API路由

import logging
from typing import Dict, Any, List
from fastapi import APIRouter, Depends

from .models import MenuItemView
from api.auth.routes import get_database
from core.models import COURSE_ORDER, TIER_RANK, MenuItem
from db.manager import DatabaseManager
from db.query_operations import QueryOperations
from utils.response import create_success_response, create_error_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/menu", tags=["菜单"])


def course_menus(items: List[MenuItem]) -> Dict[str, List[MenuItem]]:
    """按课程分组，组内按档位再按名称排序"""
    grouped: Dict[str, List[MenuItem]] = {c: [] for c in COURSE_ORDER}
    for item in items:
        grouped[item.course].append(item)
    for course in grouped:
        grouped[course].sort(key=lambda i: (TIER_RANK.get(i.group, 1), i.name.lower()))
    return grouped


@router.get("", response_model=Dict[str, Any])
async def get_menu(db: DatabaseManager = Depends(get_database)):
    """按分类返回已发布的菜单"""
    try:
        items = QueryOperations(db).list_menu()
        by_category: Dict[str, List[Dict[str, Any]]] = {}
        for item in items:
            by_category.setdefault(item.category, []).append(MenuItemView.from_item(item).model_dump())

        return create_success_response(
            data={"categories": by_category, "count": len(items)},
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取菜单失败: {str(e)}")
        return create_error_response("Menu is unavailable right now. Please try again.")


@router.get("/courses", response_model=Dict[str, Any])
async def get_course_menus(db: DatabaseManager = Depends(get_database)):
    """按课程返回菜单，供套餐选菜使用"""
    try:
        grouped = course_menus(QueryOperations(db).list_menu())
        return create_success_response(
            data={course: [MenuItemView.from_item(i).model_dump() for i in items]
                  for course, items in grouped.items()},
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取课程菜单失败: {str(e)}")
        return create_error_response("Menu is unavailable right now. Please try again.")
