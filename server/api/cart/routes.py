# 购物车API路由

import logging
from typing import Dict, Any, List
from fastapi import APIRouter, Body, Depends

from .models import RemoveCartItemRequest
from api.auth.routes import get_database, get_session_store
from core.ingest import cart_line_from_raw, normalize_spice
from core.models import CartLine
from core.session import (
    SessionStore, load_cart, add_to_cart, remove_from_cart, clear_cart, load_order_meta
)
from core.totals import cart_subtotal
from core.tray_pricing import price_cart_line
from core.money import to_float
from db.manager import DatabaseManager
from db.query_operations import QueryOperations
from utils.response import create_success_response, create_error_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cart", tags=["购物车"])


def _cart_payload(cart: List[CartLine], store: SessionStore) -> Dict[str, Any]:
    return {
        "items": [line.model_dump() for line in cart],
        "cart_total": to_float(cart_subtotal(cart)),
        "count": sum(line.qty for line in cart),
        "has_package": any(line.is_package for line in cart),
        "order_meta": load_order_meta(store),
    }


@router.get("", response_model=Dict[str, Any])
async def get_cart(store: SessionStore = Depends(get_session_store)):
    try:
        return create_success_response(data=_cart_payload(load_cart(store), store), message="OK")
    except Exception as e:
        logger.error(f"获取购物车失败: {str(e)}")
        return create_error_response("Could not load your cart. Please try again.")


@router.post("/items", response_model=Dict[str, Any])
async def add_cart_item(
    raw: Dict[str, Any] = Body(...),
    db: DatabaseManager = Depends(get_database),
    store: SessionStore = Depends(get_session_store)
):
    """
    加入单品

    接受菜单页和旧版前端的多种字段名（name/title/ItemName、size/tray 等），
    相同 (item_id, size, spice_level) 的行合并数量。
    单价一律取自已发布菜单，套餐需通过 /api/packages/cart 加入
    """
    try:
        line = price_cart_line(cart_line_from_raw(raw), QueryOperations(db).menu_by_name())
        cart = add_to_cart(store, line)
        return create_success_response(
            data=_cart_payload(cart, store),
            message=f"{line.name} added to cart"
        )
    except ValueError as e:
        return create_error_response(str(e))
    except Exception as e:
        logger.error(f"加入购物车失败: {str(e)}")
        return create_error_response("Could not add the item. Please try again.")


@router.delete("/items", response_model=Dict[str, Any])
async def remove_cart_item(
    remove_request: RemoveCartItemRequest,
    store: SessionStore = Depends(get_session_store)
):
    """删除一行；购物车中不再有套餐时一并清除套餐元数据"""
    try:
        cart = remove_from_cart(
            store, remove_request.item_id, remove_request.size, normalize_spice(remove_request.spice_level)
        )
        return create_success_response(data=_cart_payload(cart, store), message="Item removed")
    except Exception as e:
        logger.error(f"删除购物车行失败: {str(e)}")
        return create_error_response("Could not remove the item. Please try again.")


@router.delete("", response_model=Dict[str, Any])
async def empty_cart(store: SessionStore = Depends(get_session_store)):
    try:
        clear_cart(store)
        return create_success_response(data=_cart_payload([], store), message="Cart cleared")
    except Exception as e:
        logger.error(f"清空购物车失败: {str(e)}")
        return create_error_response("Could not clear the cart. Please try again.")
