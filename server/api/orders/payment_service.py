# 支付会话服务
# 创建托管支付页面会话并返回跳转地址；未配置地址时使用模拟模式

import httpx
import logging
import secrets
from typing import Optional

from core.models import CheckoutTotals, OrderDraft
from core.money import to_cents
from utils.config import Config

logger = logging.getLogger(__name__)


class PaymentSessionError(Exception):
    """支付会话创建失败"""


class PaymentService:
    """托管支付会话服务类"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.session_url = self.config.get("services.payment.session_url")
        self.api_key = self.config.get("services.payment.api_key")
        self.timeout = float(self.config.get("services.payment.timeout_seconds", 15))
        self.currency = self.config.get("checkout.currency", "usd")
        self.mock_redirect = self.config.get(
            "services.payment.mock_redirect", "https://pay.example.test/session"
        )

        if not self.session_url or self.session_url.startswith("${"):
            logger.warning("支付服务地址缺失，将使用模拟模式")
            self.mock_mode = True
        else:
            self.mock_mode = False

    async def create_session(self, totals: CheckoutTotals, customer_email: str, draft: OrderDraft) -> str:
        """
        创建支付会话

        Args:
            totals: 最终结账金额
            customer_email: 客户邮箱
            draft: 订单草稿（摘要写入会话元数据）

        Returns:
            支付页面跳转地址

        Raises:
            PaymentSessionError: 支付服务不可用或返回数据异常
        """
        if self.mock_mode:
            return self._mock_create_session(totals)

        payload = {
            "amount_cents": to_cents(totals.grand_total),
            "currency": self.currency,
            "customer_email": customer_email,
            "description": "; ".join(draft.line_summary),
            "metadata": {
                "method": draft.customer.get("method"),
                "when": draft.when,
                "package_tray_summary": draft.package_tray_summary,
            },
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.session_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.RequestError as e:
            logger.error(f"支付接口请求失败: {str(e)}")
            raise PaymentSessionError(f"支付接口请求失败: {str(e)}")
        except httpx.HTTPStatusError as e:
            logger.error(f"支付接口返回错误状态: {e.response.status_code}")
            raise PaymentSessionError(f"支付接口返回错误状态: {e.response.status_code}")

        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            logger.error(f"支付接口返回数据异常: {data}")
            raise PaymentSessionError("支付接口未返回跳转地址")

        logger.info(f"支付会话创建成功，金额 {totals.grand_total:.2f}")
        return url

    def _mock_create_session(self, totals: CheckoutTotals) -> str:
        token = secrets.token_hex(8)
        logger.info(f"使用模拟支付会话: {token}，金额 {totals.grand_total:.2f}")
        return f"{self.mock_redirect}/{token}"
