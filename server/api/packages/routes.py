# 套餐API路由
# 选菜、推荐、加入购物车

import logging
from typing import Dict, Any, List, Optional, Tuple
from fastapi import APIRouter, Depends

from .models import TogglePickRequest, RecommendationRequest, SelectionState
from api.auth.routes import get_database, get_session_store, get_checkout_settings
from core.models import COURSE_ORDER, PackageConfig
from core.package_engine import (
    PackageSelection, build_recommendation, add_package_to_cart, normalize_guest_count
)
from core.session import (
    SessionStore, KEY_PACKAGE_PICKS, load_cart, save_cart, save_order_meta
)
from core.settings import CheckoutSettings
from db.manager import DatabaseManager
from db.query_operations import QueryOperations
from utils.response import create_success_response, create_error_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/packages", tags=["套餐"])


def _selection_state(selection: PackageSelection, open_course: Optional[str]) -> Dict[str, Any]:
    return SelectionState(
        package_id=selection.package.id,
        picks=selection.pick_names(),
        complete={c: selection.is_complete(c) for c in COURSE_ORDER},
        ready=selection.is_ready(),
        open_course=open_course,
    ).model_dump()


def _stored_picks(store: SessionStore, package_id: str) -> Dict[str, List[str]]:
    saved = store.get(KEY_PACKAGE_PICKS) or {}
    if saved.get("package_id") != package_id:
        return {}
    return saved.get("picks", {})


def _load_selection(
    db: DatabaseManager,
    store: SessionStore,
    package_id: str,
    picks: Optional[Dict[str, List[str]]]
) -> Tuple[PackageConfig, PackageSelection, List[str]]:
    """
    读取套餐配置并重放菜品选择

    Raises:
        ValueError: 套餐不存在
    """
    query_ops = QueryOperations(db)
    package_config = query_ops.get_package_config()
    package = package_config.find(package_id)
    if package is None:
        raise ValueError(f"Unknown package: {package_id}")

    chosen = picks if picks is not None else _stored_picks(store, package_id)
    selection, rejected = PackageSelection.from_names(package, chosen, query_ops.menu_by_name())
    if rejected:
        logger.info(f"套餐 {package_id} 重放选择时丢弃: {rejected}")
    return package_config, selection, rejected


@router.get("", response_model=Dict[str, Any])
async def list_packages(
    db: DatabaseManager = Depends(get_database),
    settings: CheckoutSettings = Depends(get_checkout_settings)
):
    """套餐列表、托盘阈值和人数范围"""
    try:
        package_config = QueryOperations(db).get_package_config()
        packages = []
        for pkg in package_config.packages:
            item = pkg.model_dump(by_alias=False)
            item["summary"] = pkg.summary_line()
            packages.append(item)

        return create_success_response(
            data={
                "packages": packages,
                "thresholds": package_config.thresholds.model_dump(),
                "guests": {
                    "min": settings.min_guests,
                    "max": settings.max_guests,
                    "step": settings.guest_step,
                },
            },
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取套餐列表失败: {str(e)}")
        return create_error_response("Packages are unavailable right now. Please try again.")


@router.post("/picks/toggle", response_model=Dict[str, Any])
async def toggle_pick(
    toggle_request: TogglePickRequest,
    db: DatabaseManager = Depends(get_database),
    store: SessionStore = Depends(get_session_store)
):
    """勾选或取消一道菜，课程选满时返回下一个待选课程"""
    try:
        _, selection, _ = _load_selection(db, store, toggle_request.package_id, None)

        item = QueryOperations(db).menu_by_name().get(toggle_request.item)
        if item is None or item.course != toggle_request.course:
            return create_error_response(f"{toggle_request.item} is not available for {toggle_request.course}")

        result = selection.toggle_pick(toggle_request.course, item)
        store.set(KEY_PACKAGE_PICKS, {
            "package_id": selection.package.id,
            "picks": selection.pick_names(),
        })

        data = _selection_state(selection, result.open_course)
        data.update({
            "accepted": result.accepted,
            "removed": result.removed,
            "completed_course": result.completed_course,
        })
        if not result.accepted:
            return create_error_response(
                f"{item.name} can't be added: this course is full or has no slot for tier {item.group}",
                data=data
            )
        return create_success_response(data=data, message="Selection updated")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"更新选菜失败: {str(e)}")
        return create_error_response("Could not update your selection. Please try again.")


def _recommend(db, store, request: RecommendationRequest, settings: CheckoutSettings):
    package_config, selection, _ = _load_selection(db, store, request.package_id, request.picks)
    guests, over_limit = normalize_guest_count(request.guests, settings)
    recommendation = build_recommendation(selection, guests, request.appetite, package_config.thresholds)
    return package_config, selection, guests, over_limit, recommendation


@router.post("/recommendation", response_model=Dict[str, Any])
async def get_recommendation(
    recommendation_request: RecommendationRequest,
    db: DatabaseManager = Depends(get_database),
    store: SessionStore = Depends(get_session_store),
    settings: CheckoutSettings = Depends(get_checkout_settings)
):
    """按人数和食量生成托盘分配与人均价格"""
    try:
        _, selection, guests, over_limit, rec = _recommend(db, store, recommendation_request, settings)
        state = _selection_state(selection, selection.next_incomplete())
        if rec is None:
            return create_error_response(
                "Finish choosing dishes for every course first.",
                data=state,
                reasons=[f"Choose {selection.required_count(c)} {c}" for c in selection.incomplete_courses()]
            )

        data = rec.to_dict()
        data.update({"selection": state, "over_limit": over_limit})
        return create_success_response(data=data, message="OK")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"生成套餐推荐失败: {str(e)}")
        return create_error_response("Could not build a recommendation. Please try again.")


@router.post("/cart", response_model=Dict[str, Any])
async def add_package(
    recommendation_request: RecommendationRequest,
    db: DatabaseManager = Depends(get_database),
    store: SessionStore = Depends(get_session_store),
    settings: CheckoutSettings = Depends(get_checkout_settings)
):
    """把套餐作为一行加入购物车，展开明细写入订单元数据"""
    try:
        package_config, selection, _, over_limit, rec = _recommend(db, store, recommendation_request, settings)
        if rec is None:
            return create_error_response(
                "Finish choosing dishes for every course first.",
                reasons=[f"Choose {selection.required_count(c)} {c}" for c in selection.incomplete_courses()]
            )

        cart, meta = add_package_to_cart(load_cart(store), rec, package_config.thresholds)
        save_cart(store, cart)
        save_order_meta(store, meta)

        return create_success_response(
            data={
                "cart": [line.model_dump() for line in cart],
                "order_meta": meta,
                "over_limit": over_limit,
            },
            message=f"{rec.package_name} added to cart"
        )

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"套餐加入购物车失败: {str(e)}")
        return create_error_response("Could not add the package. Please try again.")
