# 订单模块

from .routes import router as orders_router
from .models import PlaceOrderRequest, PlaceOrderResponse
from .payment_service import PaymentService, PaymentSessionError

__all__ = [
    "orders_router",
    "PlaceOrderRequest",
    "PlaceOrderResponse",
    "PaymentService",
    "PaymentSessionError"
]
