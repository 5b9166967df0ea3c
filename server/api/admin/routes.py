# 管理员相关API路由
# 成本表、定价参数与发布、套餐配置、营业时间、订单管理

import logging
from datetime import datetime
from typing import Dict, Any, Optional, Callable, List
from fastapi import APIRouter, Depends, Query, Path
from pydantic import ValidationError

from .models import UploadCostsRequest, ImportMenuRequest, PaymentStatusRequest, RowError
from api.auth.routes import get_admin_user, get_database, get_clock
from api.auth.models import TokenData
from core.ingest import cost_item_from_raw, menu_item_from_raw
from core.models import PackageConfig, PricingConfig, HoursConfig, DAY_KEYS
from core.slot_calendar import validate_day_schedule
from core.tray_pricing import build_customer_menu, preview_rows
from db.core_operations import CoreOperations
from db.manager import DatabaseManager
from db.query_operations import QueryOperations, ORDER_SORT_COLUMNS
from utils.response import create_success_response, create_error_response
from utils.validators import validate_payment_status, validate_payment_method, validate_order_method

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["管理员"])


def _parse_rows(rows: List[Dict[str, Any]], parse) -> tuple:
    parsed, errors = [], []
    for idx, raw in enumerate(rows, start=1):
        try:
            parsed.append(parse(raw))
        except ValueError as e:
            errors.append(RowError(row=idx, error=str(e)).model_dump())
    return parsed, errors


# ===== 成本表与菜单 =====

@router.post("/menu/costs", response_model=Dict[str, Any])
async def upload_costs(
    upload_request: UploadCostsRequest,
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """上传成本表（整体替换），任一行无效时不写入"""
    try:
        items, errors = _parse_rows(
            upload_request.rows,
            lambda raw: cost_item_from_raw(raw, upload_request.category)
        )
        if errors:
            return create_error_response(
                f"{len(errors)} row(s) could not be read",
                data={"errors": errors}
            )

        result = CoreOperations(db).upload_costs(items)
        logger.info(f"管理员 {current_admin.subject} 上传成本表 {result['count']} 行")
        return create_success_response(data=result, message=f"Uploaded {result['count']} items")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"上传成本表失败: {str(e)}")
        return create_error_response(f"上传成本表失败: {str(e)}")


@router.get("/menu/costs", response_model=Dict[str, Any])
async def list_costs(
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    try:
        items = QueryOperations(db).list_costs()
        return create_success_response(
            data={"items": [i.model_dump() for i in items], "count": len(items)},
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取成本表失败: {str(e)}")
        return create_error_response(f"获取成本表失败: {str(e)}")


@router.post("/menu/import", response_model=Dict[str, Any])
async def import_menu(
    import_request: ImportMenuRequest,
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """跳过定价计算，直接发布已定价的菜单行"""
    try:
        items, errors = _parse_rows(import_request.rows, menu_item_from_raw)
        if errors:
            return create_error_response(
                f"{len(errors)} row(s) could not be read",
                data={"errors": errors}
            )
        result = CoreOperations(db).deploy_menu(items)
        return create_success_response(data=result, message=f"Imported {result['deployed']} items")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"导入菜单失败: {str(e)}")
        return create_error_response(f"导入菜单失败: {str(e)}")


# ===== 定价 =====

@router.get("/pricing", response_model=Dict[str, Any])
async def get_pricing(
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    try:
        return create_success_response(
            data=QueryOperations(db).get_pricing_config().model_dump(),
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取定价参数失败: {str(e)}")
        return create_error_response(f"获取定价参数失败: {str(e)}")


@router.put("/pricing", response_model=Dict[str, Any])
async def save_pricing(
    pricing: PricingConfig,
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    try:
        if not pricing.trays:
            return create_error_response("At least one tray size is required")
        CoreOperations(db).save_config("pricing", pricing.model_dump())
        return create_success_response(data=pricing.model_dump(), message="Pricing saved")
    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"保存定价参数失败: {str(e)}")
        return create_error_response(f"保存定价参数失败: {str(e)}")


@router.get("/pricing/preview", response_model=Dict[str, Any])
async def pricing_preview(
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """发布前预览：每个托盘的计算价和取整后的售价"""
    try:
        query_ops = QueryOperations(db)
        pricing = query_ops.get_pricing_config()
        rows = preview_rows(query_ops.list_costs(), pricing)
        return create_success_response(
            data={"rows": rows, "margin": pricing.margin, "trays": [t.model_dump() for t in pricing.trays]},
            message="OK"
        )
    except Exception as e:
        logger.error(f"生成定价预览失败: {str(e)}")
        return create_error_response(f"生成定价预览失败: {str(e)}")


@router.post("/pricing/deploy", response_model=Dict[str, Any])
async def deploy_pricing(
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """按当前成本表和定价参数生成客户端菜单"""
    try:
        query_ops = QueryOperations(db)
        costs = query_ops.list_costs()
        if not costs:
            return create_error_response("Upload menu costs before deploying")

        result = CoreOperations(db).deploy_menu(build_customer_menu(costs, query_ops.get_pricing_config()))
        logger.info(f"管理员 {current_admin.subject} 发布菜单")
        return create_success_response(data=result, message=f"Deployed {result['deployed']} items")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"发布菜单失败: {str(e)}")
        return create_error_response(f"发布菜单失败: {str(e)}")


# ===== 套餐与托盘阈值 =====

@router.get("/packages", response_model=Dict[str, Any])
async def get_package_config(
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    try:
        return create_success_response(
            data=QueryOperations(db).get_package_config().model_dump(by_alias=True),
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取套餐配置失败: {str(e)}")
        return create_error_response(f"获取套餐配置失败: {str(e)}")


@router.put("/packages", response_model=Dict[str, Any])
async def save_package_config(
    payload: Dict[str, Any],
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """保存套餐定义与托盘阈值（阈值必须严格递增，档位字母只能是A-D）"""
    try:
        try:
            package_config = PackageConfig.model_validate(payload)
        except ValidationError as e:
            return create_error_response(
                "Package configuration is invalid",
                reasons=[err["msg"] for err in e.errors()]
            )

        ids = [p.id for p in package_config.packages]
        if len(ids) != len(set(ids)):
            return create_error_response("Package ids must be unique")

        data = package_config.model_dump(by_alias=True)
        CoreOperations(db).save_config("packages", data)
        return create_success_response(data=data, message="Packages saved")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"保存套餐配置失败: {str(e)}")
        return create_error_response(f"保存套餐配置失败: {str(e)}")


# ===== 营业时间 =====

@router.get("/hours", response_model=Dict[str, Any])
async def get_hours(
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    try:
        return create_success_response(
            data=QueryOperations(db).get_hours_config().model_dump(by_alias=True),
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取营业时间失败: {str(e)}")
        return create_error_response(f"获取营业时间失败: {str(e)}")


@router.put("/hours", response_model=Dict[str, Any])
async def save_hours(
    hours: HoursConfig,
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """保存自取与配送营业时间，每天两个时段都需校验"""
    try:
        problems = []
        for label, schedule in (("Pickup", hours.pickup_hours), ("Delivery", hours.delivery_hours)):
            unknown = [k for k in schedule if k not in DAY_KEYS]
            if unknown:
                problems.append(f"{label}: unknown day(s) {', '.join(unknown)}")
            for day in DAY_KEYS:
                if day in schedule:
                    problems.extend(f"{label} {p}" for p in validate_day_schedule(day, schedule[day]))
        if problems:
            return create_error_response("Business hours are invalid", reasons=problems)

        data = hours.model_dump(by_alias=True)
        CoreOperations(db).save_config("hours", data)
        return create_success_response(data=data, message="Hours saved")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"保存营业时间失败: {str(e)}")
        return create_error_response(f"保存营业时间失败: {str(e)}")


# ===== 订单管理 =====

@router.get("/orders", response_model=Dict[str, Any])
async def list_orders(
    method: Optional[str] = Query(None, description="pickup/delivery"),
    payment_method: Optional[str] = Query(None, description="card/cash"),
    payment_status: Optional[str] = Query(None, description="paid/pending/refunded/cancelled"),
    sort_by: str = Query("placed_at", description="排序字段"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    """订单列表，支持按方式、支付方式、支付状态过滤及多字段排序"""
    if method and not validate_order_method(method):
        return create_error_response(f"Unknown method: {method}")
    if payment_method and not validate_payment_method(payment_method):
        return create_error_response(f"Unknown payment method: {payment_method}")
    if payment_status and not validate_payment_status(payment_status):
        return create_error_response(f"Unknown payment status: {payment_status}")
    if sort_by not in ORDER_SORT_COLUMNS:
        return create_error_response(
            f"Cannot sort by {sort_by}",
            reasons=[f"Allowed: {', '.join(ORDER_SORT_COLUMNS)}"]
        )

    try:
        result = QueryOperations(db).list_orders(
            method=method,
            payment_method=payment_method,
            payment_status=payment_status,
            sort_by=sort_by,
            descending=(order == "desc"),
            offset=offset,
            limit=limit
        )
        return create_success_response(data=result, message="OK")
    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"获取订单列表失败: {str(e)}")
        return create_error_response(f"获取订单列表失败: {str(e)}")


@router.get("/orders/{order_id}", response_model=Dict[str, Any])
async def get_order_detail(
    order_id: str = Path(..., min_length=1),
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database)
):
    try:
        order_info = QueryOperations(db).get_order(order_id)
        if not order_info:
            return create_error_response("Order not found")
        return create_success_response(data=order_info, message="OK")
    except Exception as e:
        logger.error(f"获取订单详情失败: {str(e)}")
        return create_error_response(f"获取订单详情失败: {str(e)}")


@router.patch("/orders/{order_id}/payment-status", response_model=Dict[str, Any])
async def update_payment_status(
    status_request: PaymentStatusRequest,
    order_id: str = Path(..., min_length=1),
    current_admin: TokenData = Depends(get_admin_user),
    db: DatabaseManager = Depends(get_database),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """修改支付状态，首次变为paid时记录付款时间"""
    if not validate_payment_status(status_request.payment_status):
        return create_error_response(f"Unknown payment status: {status_request.payment_status}")

    try:
        result = CoreOperations(db).update_payment_status(order_id, status_request.payment_status, clock())
        logger.info(f"管理员 {current_admin.subject} 修改订单 {order_id} 支付状态")
        return create_success_response(data=result, message="Payment status updated")
    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"修改支付状态失败: {str(e)}")
        return create_error_response(f"修改支付状态失败: {str(e)}")
