"""
exporter/azure - Azure VM 가격 수집기

- retail_client: Azure Retail Prices API 클라이언트 (페이지네이션, 재시도)
- ondemand: VM On-Demand 가격 레코드 생성
"""

from .ondemand import get_azure_ondemand_pricing
from .retail_client import HTTPRetailPricesClient
from .types import RetailPriceItem

__all__: list[str] = [
    "HTTPRetailPricesClient",
    "RetailPriceItem",
    "get_azure_ondemand_pricing",
]
