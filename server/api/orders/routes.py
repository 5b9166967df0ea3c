# 订单API路由
# 订单先保存为待支付；刷卡订单随后创建支付会话，失败时取消订单并保留结账草稿

import logging
from datetime import datetime
from typing import Dict, Any, Callable
from fastapi import APIRouter, Depends, Path

from .models import PlaceOrderRequest, PlaceOrderResponse
from .payment_service import PaymentService, PaymentSessionError
from api.auth.routes import (
    config, get_database, get_session_store, get_checkout_settings, get_clock
)
from core.checkout import summarize_checkout
from core.distance_fee import quote_from_dict
from core.models import CustomerInfo
from core.order_draft import assemble_order_draft, resolve_payment, PAYMENT_CASH
from core.session import (
    KEY_DISTANCE, SubmissionGuard, load_cart, load_order_meta, load_checkout_draft,
    save_checkout_draft, clear_cart
)
from core.settings import CheckoutSettings
from db.core_operations import CoreOperations
from db.manager import DatabaseManager
from db.query_operations import QueryOperations
from db.supporting_operations import SqliteSessionStore
from utils.response import create_success_response, create_error_response
from utils.validators import validate_email

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["订单"])

payment_service = PaymentService(config)
submission_guard = SubmissionGuard()


def get_payment_service() -> PaymentService:
    return payment_service


def get_submission_guard() -> SubmissionGuard:
    return submission_guard


def _keep_checkout_draft(store, customer, payment, totals):
    draft = load_checkout_draft(store)
    if customer is not None:
        draft["customer"] = customer.model_dump()
    if payment:
        draft["payment"] = payment
    if totals is not None:
        draft["totals"] = totals.model_dump()
    save_checkout_draft(store, draft)


def _abandon_submission(core_ops, store, order_id, customer, payment, totals, clock):
    """提交中途失败：取消已保存的订单，保留结账草稿供客户重试"""
    try:
        if order_id is not None:
            core_ops.update_payment_status(order_id, "cancelled", clock())
        _keep_checkout_draft(store, customer, payment, totals)
    except Exception as e:
        logger.error(f"提交失败后的清理失败: {str(e)}")


@router.post("", response_model=Dict[str, Any])
async def place_order(
    order_request: PlaceOrderRequest,
    db: DatabaseManager = Depends(get_database),
    store: SqliteSessionStore = Depends(get_session_store),
    settings: CheckoutSettings = Depends(get_checkout_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
    service: PaymentService = Depends(get_payment_service),
    guard: SubmissionGuard = Depends(get_submission_guard)
):
    """
    提交订单

    服务端按购物车和结账信息重新计算金额，与结账页使用同一套计算；
    同一会话同时只能有一个提交
    """
    if not guard.acquire(store.session_id):
        return create_error_response("Your order is already being submitted. Please wait.")

    customer = order_request.customer
    payment = order_request.payment
    totals = None
    order_id = None
    core_ops = CoreOperations(db)
    try:
        if customer is None:
            saved = load_checkout_draft(store).get("customer")
            if not saved:
                return create_error_response("Fill in your checkout details first.")
            customer = CustomerInfo.model_validate(saved)

        payment = resolve_payment(order_request.payment, settings)
        if payment == PAYMENT_CASH and customer.method != "pickup":
            logger.info("现金订单改为自取")
            customer = customer.model_copy(update={"method": "pickup"})

        cart = load_cart(store)
        summary = summarize_checkout(
            cart, customer, quote_from_dict(store.get(KEY_DISTANCE)),
            QueryOperations(db).get_hours_config(), clock(), settings
        )
        totals = summary.totals
        if not summary.ready:
            return create_error_response(
                "Checkout is not complete",
                data=summary.to_dict(),
                reasons=summary.reasons
            )

        customer = customer.model_copy(update={"pickup_time": summary.selected_time})
        draft = assemble_order_draft(
            cart, summary.totals, customer, payment, load_order_meta(store), settings
        )
        if draft.payment != PAYMENT_CASH and not validate_email(customer.email):
            return create_error_response("Enter a valid email address for card payment.")

        # 刷卡订单也先落库为待支付，支付会话失败时再取消
        result = core_ops.create_order(draft, store.session_id, clock())
        order_id = result["order_id"]

        redirect_url = None
        if draft.payment != PAYMENT_CASH:
            try:
                redirect_url = await service.create_session(summary.totals, customer.email.strip(), draft)
            except PaymentSessionError as e:
                logger.warning(f"订单 {order_id} 支付会话创建失败，订单取消并保留结账草稿: {str(e)}")
                core_ops.update_payment_status(order_id, "cancelled", clock())
                _keep_checkout_draft(store, customer, payment, totals)
                return create_error_response("We couldn't start the payment. Please try again.")

        clear_cart(store)

        response_data = PlaceOrderResponse(
            order_id=order_id,
            placed_at=result["placed_at"],
            payment=draft.payment,
            redirect_url=redirect_url,
            grand_total=draft.totals.grand_total,
            line_summary=draft.line_summary,
        )
        return create_success_response(
            data=response_data.model_dump(),
            message="Order placed" if draft.payment == PAYMENT_CASH else "Redirecting to payment"
        )

    except ValueError as e:
        _abandon_submission(core_ops, store, order_id, customer, payment, totals, clock)
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"提交订单失败: {str(e)}")
        _abandon_submission(core_ops, store, order_id, customer, payment, totals, clock)
        return create_error_response("We couldn't place your order. Please try again.")
    finally:
        guard.release(store.session_id)


@router.get("/{order_id}", response_model=Dict[str, Any])
async def get_order(
    order_id: str = Path(..., min_length=1),
    db: DatabaseManager = Depends(get_database),
    store: SqliteSessionStore = Depends(get_session_store)
):
    """订单详情，仅下单会话可查看"""
    try:
        order = QueryOperations(db).get_order(order_id)
        if not order or order.get("session_id") != store.session_id:
            return create_error_response("Order not found")
        return create_success_response(data=order, message="OK")
    except Exception as e:
        logger.error(f"获取订单失败: {str(e)}")
        return create_error_response("Could not load the order. Please try again.")
