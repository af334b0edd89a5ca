"""
exporter/azure/ondemand.py - Azure VM On-Demand 가격 수집

Retail Prices API 항목을 armSkuName 정규식과 OS(제품명 기반 분류)로 거른 뒤
azure_pricing_vm 레코드를 생성합니다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from exporter.config import AzureScrapeConfig, is_match_any
from exporter.types import Lifecycle, MetricKind, PriceRecord

from .types import RetailPriceItem

logger = logging.getLogger(__name__)

PROVIDER = "azure_ondemand"


class RetailPricesClient(Protocol):
    def get_vm_prices(self, region: str, os_types: tuple[str, ...] | list[str]) -> list[RetailPriceItem]: ...


def get_azure_ondemand_pricing(
    region: str,
    config: AzureScrapeConfig,
    client: RetailPricesClient,
    emit: Callable[[PriceRecord], None],
) -> None:
    """리전의 Azure VM On-Demand 가격 수집

    Args:
        region: Azure 리전
        config: Azure 수집 설정
        client: Retail Prices 클라이언트
        emit: 레코드 전달 함수

    Raises:
        RetailPricesAPIError: 가격 조회 실패 (작업 중단)
    """
    operating_systems = set(config.operating_systems)

    for item in client.get_vm_prices(region, config.operating_systems):
        if not is_match_any(config.instance_regexes, item.arm_sku_name):
            logger.debug(f"Azure 인스턴스 타입 제외: {item.arm_sku_name}")
            continue

        os_name = item.operating_system
        if os_name not in operating_systems:
            continue

        emit(
            PriceRecord(
                kind=MetricKind.AZURE_VM,
                value=item.retail_price,
                region=region,
                instance_type=item.arm_sku_name,
                lifecycle=Lifecycle.ONDEMAND,
                operating_system=os_name,
            )
        )
