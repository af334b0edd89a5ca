"""
exporter/azure/types.py - Azure Retail Prices API 응답 타입
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RetailPriceItem:
    """Azure Retail Prices API의 단일 가격 항목 (사용하는 필드만)"""

    retail_price: float
    arm_region_name: str
    arm_sku_name: str
    product_name: str
    meter_name: str
    unit_of_measure: str
    currency_code: str = "USD"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetailPriceItem:
        """API JSON 항목에서 생성

        Raises:
            TypeError, ValueError: retailPrice가 숫자가 아닌 경우
        """
        return cls(
            retail_price=float(data.get("retailPrice") or 0),
            arm_region_name=data.get("armRegionName") or "",
            arm_sku_name=data.get("armSkuName") or "",
            product_name=data.get("productName") or "",
            meter_name=data.get("meterName") or "",
            unit_of_measure=data.get("unitOfMeasure") or "",
            currency_code=data.get("currencyCode") or "USD",
        )

    @property
    def operating_system(self) -> str:
        """제품명에 "Windows"가 있으면 Windows, 아니면 Linux"""
        return classify_os(self.product_name)


def classify_os(product_name: str) -> str:
    return "Windows" if "Windows" in product_name else "Linux"
