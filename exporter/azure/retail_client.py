"""
exporter/azure/retail_client.py - Azure Retail Prices API 클라이언트

공개 REST API(https://prices.azure.com/api/retail/prices, 인증 불필요)에서
리전의 VM 소비(Consumption) 가격을 조회합니다.

- NextPageLink로 페이지네이션하며, 링크의 scheme/host가 기본 URL과 다르면
  경고 로그를 남기고 페이지네이션만 중단합니다.
- 요청마다 최대 3회 시도하며, 네트워크 오류/429/5xx에서
  base_delay * 2**attempt 초 대기 후 재시도합니다.
  그 외 200이 아닌 상태는 즉시 실패합니다.

Usage:
    from exporter.azure.retail_client import HTTPRetailPricesClient

    with HTTPRetailPricesClient() as client:
        items = client.get_vm_prices("westeurope", ("Linux",))
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

import requests

from exporter.config import settings
from exporter.exceptions import RetailPricesAPIError
from exporter.parallel.decorators import RetryConfig, is_retryable_status

from .types import RetailPriceItem

logger = logging.getLogger(__name__)

RETAIL_PRICES_BASE_URL = "https://prices.azure.com/api/retail/prices"

MAX_RETRIES = 3

_EXCLUDED_METER_KEYWORDS = ("Spot", "Low Priority")


def build_filter(region: str, os_types: tuple[str, ...] | list[str]) -> str:
    """OData $filter 문자열 생성

    OS가 정확히 하나일 때만 API 단계에서 제품명으로 좁히고,
    여러 개이면 클라이언트 측 필터링에 맡깁니다.
    """
    query = (
        "serviceName eq 'Virtual Machines' and priceType eq 'Consumption' "
        f"and armRegionName eq '{region}' and isPrimaryMeterRegion eq true"
    )
    if len(os_types) == 1:
        if os_types[0] == "Windows":
            query += " and contains(productName, 'Windows')"
        elif os_types[0] == "Linux":
            query += " and contains(productName, 'Windows') eq false"
    return query


def validate_next_page_link(next_link: str | None, base_url: str) -> str | None:
    """다음 페이지 링크 검증

    Returns:
        유효한 링크, 링크가 없거나 scheme/host가 다르면 None
    """
    if not next_link:
        return None

    try:
        parsed = urlparse(next_link)
    except ValueError as e:
        logger.warning(f"잘못된 NextPageLink, 페이지네이션 중단: {next_link!r} ({e})")
        return None

    base = urlparse(base_url)
    if parsed.scheme != base.scheme or parsed.netloc != base.netloc:
        logger.warning(f"NextPageLink 호스트 불일치, 페이지네이션 중단: {parsed.netloc!r} != {base.netloc!r}")
        return None
    return next_link


def is_vm_hourly_item(item: RetailPriceItem) -> bool:
    """시간 단위 일반 VM 항목인지 확인 (Spot/Low Priority, 0 이하 가격, SKU 없음 제외)"""
    if item.unit_of_measure != "1 Hour":
        return False
    if any(keyword in item.meter_name for keyword in _EXCLUDED_METER_KEYWORDS):
        return False
    if item.retail_price <= 0:
        logger.debug(f"가격 0 이하 항목 제외: sku={item.arm_sku_name} region={item.arm_region_name}")
        return False
    if not item.arm_sku_name:
        logger.debug(f"armSkuName 없는 항목 제외: meter={item.meter_name} region={item.arm_region_name}")
        return False
    return True


class HTTPRetailPricesClient:
    """Azure Retail Prices API HTTP 클라이언트

    워커마다 별도 인스턴스를 사용합니다 (requests.Session 비공유).

    Attributes:
        base_url: API 기본 URL
        retry_config: 재시도 설정 (max_attempts=3, 지터 없음)
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = RETAIL_PRICES_BASE_URL,
        retry_delay: float = settings.AZURE_RETRY_BASE_DELAY,
        timeout: tuple[float, float] = (settings.HTTP_CONNECT_TIMEOUT, settings.HTTP_READ_TIMEOUT),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session = session or requests.Session()
        self._owns_session = session is None
        self.base_url = base_url
        self.timeout = timeout
        self.retry_config = RetryConfig(max_attempts=MAX_RETRIES, base_delay=retry_delay)
        self._sleep = sleep

    def __enter__(self) -> HTTPRetailPricesClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def get_vm_prices(self, region: str, os_types: tuple[str, ...] | list[str]) -> list[RetailPriceItem]:
        """리전의 VM 시간당 가격 항목 조회

        Args:
            region: Azure 리전 (armRegionName, 예: "westeurope")
            os_types: 설정된 OS 목록 (하나일 때만 API 필터에 반영)

        Returns:
            필터링된 RetailPriceItem 목록

        Raises:
            RetailPricesAPIError: 재시도 소진, 재시도 불가 상태 코드, 응답 디코딩 실패
        """
        results: list[RetailPriceItem] = []
        params: dict[str, str] | None = {"$filter": build_filter(region, os_types)}
        next_url: str | None = self.base_url
        pages = 0

        while next_url:
            page = self._get_page(next_url, params, region)
            params = None
            pages += 1

            for raw in page.get("Items") or []:
                try:
                    item = RetailPriceItem.from_dict(raw)
                except (TypeError, ValueError, AttributeError):
                    logger.debug(f"형식이 잘못된 Azure 가격 항목 제외: {raw!r}")
                    continue
                if is_vm_hourly_item(item):
                    results.append(item)

            next_url = validate_next_page_link(page.get("NextPageLink"), self.base_url)

        logger.debug(f"Azure 가격 조회 완료: {region} ({pages} 페이지, {len(results)}개 항목)")
        return results

    def _get_page(self, url: str, params: dict[str, str] | None, region: str) -> dict[str, Any]:
        response = self._get_with_retry(url, params, region)
        try:
            page = response.json()
        except ValueError as e:
            raise RetailPricesAPIError(region, "응답 JSON 디코딩 실패", status_code=response.status_code, cause=e) from e
        if not isinstance(page, dict):
            raise RetailPricesAPIError(region, "응답 JSON 형식 오류", status_code=response.status_code)
        return page

    def _get_with_retry(self, url: str, params: dict[str, str] | None, region: str) -> requests.Response:
        """재시도를 포함한 GET 요청

        Raises:
            RetailPricesAPIError: 재시도 소진 또는 재시도 불가 상태 코드
        """
        max_attempts = self.retry_config.max_attempts
        last_error: Exception | None = None
        last_status: int | None = None

        for attempt in range(max_attempts):
            try:
                response = self._session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = e
                last_status = None
                logger.debug(f"Azure API 요청 실패 (시도 {attempt + 1}/{max_attempts}): {e}")
            else:
                if response.status_code == 200:
                    return response

                last_status = response.status_code
                response.close()
                if not is_retryable_status(response.status_code):
                    raise RetailPricesAPIError(
                        region,
                        f"Azure API 응답 상태 {response.status_code}",
                        status_code=response.status_code,
                        attempts=attempt + 1,
                    )
                last_error = None
                logger.debug(f"Azure API 응답 상태 {response.status_code} (시도 {attempt + 1}/{max_attempts})")

            if attempt < max_attempts - 1:
                self._sleep(self.retry_config.get_delay(attempt))

        raise RetailPricesAPIError(
            region,
            f"Azure API {max_attempts}회 시도 후 실패",
            status_code=last_status,
            attempts=max_attempts,
            cause=last_error,
        )
