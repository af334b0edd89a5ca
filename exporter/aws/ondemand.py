"""
exporter/aws/ondemand.py - AWS EC2 On-Demand 가격 수집

AWS 공개 벌크 가격 JSON(인증 불필요)에서 리전의 On-Demand 시간당 가격을 읽어
가용 영역마다 ec2 / ec2_memory / ec2_vcpu 레코드를 생성합니다.

조회 조건:
    - capacitystatus: Used, tenancy: Shared, preInstalledSw: NA
    - operatingSystem: 설정된 OS 목록
    - instanceType: 설정된 정규식 중 하나와 매칭

가격 경로:
    terms.OnDemand[sku]["{sku}.JRTCKXETXF"]
        .priceDimensions["{sku}.JRTCKXETXF.6YS6EN2CT7"].pricePerUnit.USD

사용법:
    from exporter.aws.ondemand import get_ondemand_pricing

    get_ondemand_pricing("ap-northeast-2", aws_config, instances, errors, emit, ec2_client=ec2)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests
from botocore.exceptions import BotoCoreError, ClientError

from exporter.config import AwsScrapeConfig, is_match_any, settings
from exporter.exceptions import RecordParseError, UpstreamError
from exporter.parallel.errors import ErrorCollector, ErrorSeverity
from exporter.types import Lifecycle, MetricKind, PriceRecord

from .constants import BULK_PRICING_URL_FORMAT, TERM_ON_DEMAND, TERM_PER_HOUR
from .instances import InstanceStore

logger = logging.getLogger(__name__)

PROVIDER = "aws_ondemand"


def get_availability_zones(ec2_client: Any, region: str) -> list[str]:
    """리전의 가용 영역 이름 목록 조회

    Raises:
        UpstreamError: describe_availability_zones 실패
    """
    try:
        response = ec2_client.describe_availability_zones(Filters=[{"Name": "group-name", "Values": [region]}])
    except (ClientError, BotoCoreError) as e:
        raise UpstreamError(PROVIDER, region, "가용 영역 조회 실패", cause=e) from e
    return [az["ZoneName"] for az in response.get("AvailabilityZones", [])]


def fetch_bulk_pricing(region: str, http: Any = None, url_format: str = BULK_PRICING_URL_FORMAT) -> dict[str, Any]:
    """리전의 벌크 가격 JSON 조회

    Args:
        region: 리전
        http: requests.Session 호환 객체 (None이면 requests 모듈)
        url_format: URL 템플릿 ({region} 치환)

    Returns:
        디코딩된 JSON

    Raises:
        UpstreamError: 네트워크 오류, 200 이외 상태, JSON 디코딩 실패
    """
    http = http or requests
    url = url_format.format(region=region)
    try:
        response = http.get(url, timeout=(settings.HTTP_CONNECT_TIMEOUT, settings.HTTP_READ_TIMEOUT))
    except requests.RequestException as e:
        raise UpstreamError(PROVIDER, region, "벌크 가격 조회 실패", cause=e) from e

    if response.status_code != 200:
        raise UpstreamError(
            PROVIDER, region, f"벌크 가격 API 응답 상태 {response.status_code}", status_code=response.status_code
        )

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError(PROVIDER, region, "벌크 가격 JSON 디코딩 실패", cause=e) from e

    if not isinstance(data, dict):
        raise UpstreamError(PROVIDER, region, "벌크 가격 JSON 형식 오류")
    return data


def _lookup_hourly_usd(terms: dict[str, Any], sku: str) -> str | None:
    """On-Demand 시간당 USD 가격 문자열 (경로 중간에 없으면 None)"""
    offer_code = f"{sku}.{TERM_ON_DEMAND}"
    dimension_code = f"{offer_code}.{TERM_PER_HOUR}"
    try:
        return terms[sku][offer_code]["priceDimensions"][dimension_code]["pricePerUnit"]["USD"]
    except (KeyError, TypeError):
        return None


def get_ondemand_pricing(
    region: str,
    config: AwsScrapeConfig,
    instances: InstanceStore,
    errors: ErrorCollector,
    emit: Callable[[PriceRecord], None],
    ec2_client: Any = None,
    http: Any = None,
) -> None:
    """리전의 On-Demand 가격 수집

    ec2_client가 None이면 리전 이름을 유일한 가용 영역으로 사용합니다.
    가격 파싱 실패는 집계 후 해당 상품만 건너뜁니다.

    Args:
        region: 리전
        config: AWS 수집 설정
        instances: 인스턴스 사양 저장소
        errors: 에러 수집기
        emit: 레코드 전달 함수
        ec2_client: 가용 영역 조회용 EC2 클라이언트
        http: requests.Session 호환 객체

    Raises:
        UpstreamError: 가용 영역 조회 또는 벌크 가격 조회 실패 (작업 중단)
    """
    azs = get_availability_zones(ec2_client, region) if ec2_client is not None else [region]

    bulk = fetch_bulk_pricing(region, http)
    products = bulk.get("products") or {}
    terms = (bulk.get("terms") or {}).get("OnDemand") or {}
    operating_systems = set(config.operating_systems)

    for sku, product in products.items():
        attrs = product.get("attributes") or {}

        if attrs.get("capacitystatus") != "Used":
            continue
        if attrs.get("tenancy") != "Shared":
            continue
        if attrs.get("preInstalledSw") != "NA":
            continue
        if attrs.get("operatingSystem") not in operating_systems:
            continue

        instance_type = attrs.get("instanceType", "")
        if not is_match_any(config.instance_regexes, instance_type):
            logger.debug(f"인스턴스 타입 제외: {instance_type}")
            continue

        usd = _lookup_hourly_usd(terms, sku)
        if usd is None:
            continue

        try:
            value = float(usd)
        except (TypeError, ValueError) as e:
            errors.collect(
                RecordParseError("pricePerUnit.USD", usd, cause=e),
                region,
                f"parse_price:{instance_type}",
                severity=ErrorSeverity.INFO,
                provider=PROVIDER,
            )
            continue

        vcpu_cost, memory_cost = instances.get_normalized_cost(value, instance_type)
        for az in azs:
            emit(
                PriceRecord(
                    kind=MetricKind.EC2,
                    value=value,
                    region=region,
                    availability_zone=az,
                    instance_type=instance_type,
                    lifecycle=Lifecycle.ONDEMAND,
                    operating_system=attrs.get("operatingSystem", ""),
                    product_description=attrs.get("productDescription", ""),
                    memory=instances.get_memory(instance_type),
                    vcpu=instances.get_vcpu(instance_type),
                )
            )
            emit(
                PriceRecord(
                    kind=MetricKind.EC2_MEMORY,
                    value=memory_cost,
                    region=region,
                    availability_zone=az,
                    instance_type=instance_type,
                    lifecycle=Lifecycle.ONDEMAND,
                )
            )
            emit(
                PriceRecord(
                    kind=MetricKind.EC2_VCPU,
                    value=vcpu_cost,
                    region=region,
                    availability_zone=az,
                    instance_type=instance_type,
                    lifecycle=Lifecycle.ONDEMAND,
                )
            )
