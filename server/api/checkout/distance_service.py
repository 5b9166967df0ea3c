# 外部测距服务
# 调用 Google Distance Matrix 获取驾车里程；未配置密钥时使用模拟模式

import httpx
import logging
from decimal import Decimal
from typing import Optional

from core.distance_fee import meters_to_miles
from core.money import round2
from utils.config import Config

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


class DistanceService:
    """驾车测距服务类"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.api_key = self.config.get("services.distance.api_key")
        self.url = self.config.get("services.distance.url", DISTANCE_MATRIX_URL)
        self.timeout = float(self.config.get("services.distance.timeout_seconds", 10))
        self.mock_miles = self.config.get("services.distance.mock_miles")

        if not self.api_key or self.api_key.startswith("${"):
            logger.warning("测距服务密钥缺失，将使用模拟模式")
            self.mock_mode = True
        else:
            self.mock_mode = False

    async def driving_miles(self, origin: str, destination: str) -> Optional[Decimal]:
        """
        查询两地驾车里程

        Args:
            origin: 出发地址
            destination: 目的地址

        Returns:
            里程（两位小数），服务不可用或无结果时返回None
        """
        if self.mock_mode:
            return self._mock_driving_miles(destination)

        params = {
            "origins": origin,
            "destinations": destination,
            "units": "imperial",
            "key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.RequestError as e:
            logger.error(f"测距接口请求失败: {str(e)}")
            return None
        except httpx.HTTPStatusError as e:
            logger.error(f"测距接口返回错误状态: {e.response.status_code}")
            return None

        if data.get("status") != "OK":
            logger.warning(f"测距接口返回异常状态: {data.get('status')}")
            return None

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning(f"测距接口返回数据异常: {data}")
            return None

        if element.get("status") != "OK" or "distance" not in element:
            logger.info(f"目的地址无驾车路线: {element.get('status')}")
            return None

        miles = meters_to_miles(element["distance"]["value"])
        logger.info(f"测距成功: {miles} 英里")
        return miles

    def _mock_driving_miles(self, destination: str) -> Optional[Decimal]:
        """模拟测距（开发/测试环境），未配置模拟里程时视为服务不可用"""
        if self.mock_miles is None:
            logger.info("模拟测距未配置里程，返回不可用")
            return None
        logger.info(f"使用模拟测距: {destination} -> {self.mock_miles} 英里")
        return round2(self.mock_miles)
