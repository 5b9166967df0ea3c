# 会话状态
# 购物车、订单元数据、结账草稿、保存的客户信息都通过会话存储接口读写

import logging
import threading
from typing import Any, Dict, List, Optional

from .ingest import cart_line_from_raw
from .models import CartLine

logger = logging.getLogger(__name__)

KEY_CART = "cart"
KEY_ORDER_META = "order_meta"
KEY_CHECKOUT_DRAFT = "checkout_draft"
KEY_CUSTOMER = "customer"
KEY_PACKAGE_PICKS = "package_picks"
KEY_DISTANCE = "distance"


class SessionStore:
    """按名称读写会话数据的接口"""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def clear(self, key: Optional[str] = None) -> None:
        """删除一个键；key为None时清空整个会话"""
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)


def load_cart(store: SessionStore) -> List[CartLine]:
    """读取购物车快照，损坏的行跳过"""
    lines = []
    for raw in store.get(KEY_CART, []) or []:
        try:
            lines.append(cart_line_from_raw(raw))
        except ValueError as e:
            logger.warning(f"跳过无效的购物车行: {e}")
    return lines


def save_cart(store: SessionStore, lines: List[CartLine]) -> None:
    store.set(KEY_CART, [line.model_dump() for line in lines])


def add_to_cart(store: SessionStore, line: CartLine) -> List[CartLine]:
    """
    加入购物车

    相同菜品+尺寸+辣度的行累加数量，辣度不同则新增一行
    """
    cart = load_cart(store)
    for idx, existing in enumerate(cart):
        if existing.same_line(line):
            cart[idx] = existing.model_copy(update={"qty": existing.qty + line.qty})
            break
    else:
        cart.append(line)
    save_cart(store, cart)
    return cart


def remove_from_cart(
    store: SessionStore,
    item_id: str,
    size: str,
    spice_level: Optional[str] = None
) -> List[CartLine]:
    cart = [
        c for c in load_cart(store)
        if (c.item_id, c.size, c.spice_level) != (item_id, size, spice_level)
    ]
    save_cart(store, cart)
    if not any(c.is_package for c in cart):
        store.clear(KEY_ORDER_META)
    return cart


def clear_cart(store: SessionStore) -> None:
    for key in (KEY_CART, KEY_ORDER_META, KEY_CHECKOUT_DRAFT, KEY_PACKAGE_PICKS, KEY_DISTANCE):
        store.clear(key)


def load_order_meta(store: SessionStore) -> Dict[str, Any]:
    return store.get(KEY_ORDER_META, {}) or {}


def save_order_meta(store: SessionStore, meta: Dict[str, Any]) -> None:
    store.set(KEY_ORDER_META, meta)


def load_checkout_draft(store: SessionStore) -> Dict[str, Any]:
    return store.get(KEY_CHECKOUT_DRAFT, {}) or {}


def save_checkout_draft(store: SessionStore, draft: Dict[str, Any]) -> None:
    store.set(KEY_CHECKOUT_DRAFT, draft)


def remember_customer(store: SessionStore, details: Optional[Dict[str, Any]]) -> None:
    """保存或删除客户联系信息（姓名、邮箱、电话、地址）"""
    if details:
        keep = {k: details.get(k) for k in ("name", "email", "phone", "address")}
        store.set(KEY_CUSTOMER, keep)
    else:
        store.clear(KEY_CUSTOMER)


def saved_customer(store: SessionStore) -> Optional[Dict[str, Any]]:
    return store.get(KEY_CUSTOMER)


class SubmissionGuard:
    """
    同一会话同时只允许一个下单请求

    第二个请求在第一个完成前直接被拒绝，不排队
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active = set()

    def acquire(self, session_id: str) -> bool:
        with self._lock:
            if session_id in self._active:
                return False
            self._active.add(session_id)
            return True

    def release(self, session_id: str) -> None:
        with self._lock:
            self._active.discard(session_id)

    def is_active(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._active
