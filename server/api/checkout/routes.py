# 结账API路由
# 可选日期与时间段、配送测距、金额汇总、结账草稿

import logging
from datetime import datetime
from typing import Dict, Any, Optional, Callable
from fastapi import APIRouter, Depends, Query

from .models import DistanceRequest, ManualDistanceRequest, CheckoutSummaryRequest
from .distance_service import DistanceService
from api.auth.routes import (
    config, get_database, get_session_store, get_checkout_settings, get_clock
)
from core.checkout import hours_for_order, hours_label, summarize_checkout
from core.distance_fee import quote_from_lookup, manual_quote, quote_from_dict, STATUS_FAIL
from core.models import CustomerInfo
from core.session import (
    SessionStore, KEY_DISTANCE, load_cart, load_checkout_draft, save_checkout_draft,
    remember_customer, saved_customer
)
from core.settings import CheckoutSettings
from core.slot_calendar import date_bounds, clamp_date, available_slots
from db.manager import DatabaseManager
from db.query_operations import QueryOperations
from utils.response import create_success_response, create_error_response
from utils.validators import validate_date, validate_zip, validate_non_negative_number

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/checkout", tags=["结账"])

distance_service = DistanceService(config)


def get_distance_service() -> DistanceService:
    return distance_service


@router.get("/dates", response_model=Dict[str, Any])
async def get_dates(
    date: Optional[str] = Query(None, description="YYYY-MM-DD，超出范围时自动调整"),
    method: str = Query("pickup", pattern="^(pickup|delivery)$"),
    grand_total: float = Query(0.0, ge=0, description="当前合计，决定使用哪张营业时间表"),
    db: DatabaseManager = Depends(get_database),
    settings: CheckoutSettings = Depends(get_checkout_settings),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """可选日期范围以及指定日期的时间段"""
    try:
        now = clock()
        min_date, max_date = date_bounds(now, settings)

        if date is not None and not validate_date(date):
            return create_error_response("Date must be in YYYY-MM-DD format")
        target = datetime.strptime(date, "%Y-%m-%d").date() if date else min_date
        target = clamp_date(target, now, settings)

        hours = QueryOperations(db).get_hours_config()
        hours_map = hours_for_order(method, grand_total, hours, settings)
        slots = available_slots(hours_map, target, now, settings)

        return create_success_response(
            data={
                "min_date": min_date.isoformat(),
                "max_date": max_date.isoformat(),
                "date": target.isoformat(),
                "hours_label": hours_label(method, grand_total, settings),
                "slots": [s.label for s in slots],
            },
            message="OK" if slots else "No times left on this date"
        )
    except Exception as e:
        logger.error(f"获取可选日期失败: {str(e)}")
        return create_error_response("Could not load available dates. Please try again.")


@router.post("/distance", response_model=Dict[str, Any])
async def lookup_distance(
    distance_request: DistanceRequest,
    store: SessionStore = Depends(get_session_store),
    settings: CheckoutSettings = Depends(get_checkout_settings),
    service: DistanceService = Depends(get_distance_service)
):
    """
    自动测距并计算配送费

    测距失败时返回 allow_manual，由客户手动输入里程
    """
    address = distance_request.address
    if not address.is_complete():
        return create_error_response("Enter a complete delivery address.")
    if not validate_zip(address.zip):
        return create_error_response("ZIP code must be 5 digits")

    try:
        miles = await service.driving_miles(settings.origin_address, address.one_line())
        quote = quote_from_lookup(miles, settings, address.one_line())
        store.set(KEY_DISTANCE, quote.to_dict())

        if quote.status == STATUS_FAIL:
            logger.warning("测距失败，等待手动输入里程")
            return create_error_response(
                "We couldn't calculate the distance. Please enter the miles manually.",
                data=quote.to_dict()
            )
        if quote.blocks_checkout:
            return create_error_response(
                f"Delivery is limited to {settings.max_delivery_miles} miles.",
                data=quote.to_dict()
            )
        return create_success_response(data=quote.to_dict(), message="Delivery fee updated")

    except Exception as e:
        logger.error(f"测距失败: {str(e)}")
        return create_error_response("We couldn't calculate the distance. Please try again.")


@router.post("/distance/manual", response_model=Dict[str, Any])
async def manual_distance(
    manual_request: ManualDistanceRequest,
    store: SessionStore = Depends(get_session_store),
    settings: CheckoutSettings = Depends(get_checkout_settings)
):
    """手动输入里程，档位规则与自动测距相同"""
    if not validate_non_negative_number(manual_request.miles):
        return create_error_response("Miles must be zero or more")

    address = manual_request.address
    if address is not None and not address.is_complete():
        return create_error_response("Enter a complete delivery address.")

    try:
        if address is not None:
            address_line = address.one_line()
        else:
            previous = quote_from_dict(store.get(KEY_DISTANCE))
            address_line = previous.address if previous is not None else ""
        quote = manual_quote(manual_request.miles, settings, address_line)
        store.set(KEY_DISTANCE, quote.to_dict())
        if quote.blocks_checkout:
            return create_error_response(
                f"Delivery is limited to {settings.max_delivery_miles} miles.",
                data=quote.to_dict()
            )
        return create_success_response(data=quote.to_dict(), message="Delivery fee updated")

    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"手动里程处理失败: {str(e)}")
        return create_error_response("Could not update the delivery fee. Please try again.")


@router.post("/summary", response_model=Dict[str, Any])
async def checkout_summary(
    summary_request: CheckoutSummaryRequest,
    db: DatabaseManager = Depends(get_database),
    store: SessionStore = Depends(get_session_store),
    settings: CheckoutSettings = Depends(get_checkout_settings),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """
    结账页汇总

    重新计算金额、时间段和可否继续的原因列表，并保存结账草稿
    """
    try:
        customer = CustomerInfo.model_validate(
            summary_request.model_dump(exclude={"remember_details", "payment"})
        )
        quote = quote_from_dict(store.get(KEY_DISTANCE))
        summary = summarize_checkout(
            load_cart(store), customer, quote,
            QueryOperations(db).get_hours_config(), clock(), settings
        )

        customer_data = customer.model_dump()
        customer_data["pickup_time"] = summary.selected_time
        save_checkout_draft(store, {
            "customer": customer_data,
            "payment": summary_request.payment,
            "totals": summary.totals.model_dump(),
        })
        remember_customer(store, customer_data if summary_request.remember_details else None)

        return create_success_response(
            data=summary.to_dict(),
            message="Ready to pay" if summary.ready else "Checkout is not complete"
        )

    except Exception as e:
        logger.error(f"结账汇总失败: {str(e)}")
        return create_error_response("Could not update checkout. Please try again.")


@router.get("/draft", response_model=Dict[str, Any])
async def get_checkout_draft(store: SessionStore = Depends(get_session_store)):
    """恢复结账页：上次填写的草稿、保存的联系方式和测距结果"""
    try:
        return create_success_response(
            data={
                "draft": load_checkout_draft(store),
                "saved_customer": saved_customer(store),
                "distance": store.get(KEY_DISTANCE),
            },
            message="OK"
        )
    except Exception as e:
        logger.error(f"获取结账草稿失败: {str(e)}")
        return create_error_response("Could not load your checkout details.")
