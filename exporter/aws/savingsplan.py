"""
exporter/aws/savingsplan.py - AWS Savings Plans 가격 수집

describe_savings_plans_offering_rates를 nextToken으로 페이지네이션하여
리전의 EC2 Savings Plan 요금을 조회합니다.

- nextToken이 없거나 None/""이면 종료, 값이 있으면 정확히 한 번 더 호출
- API 오류는 집계 후 페이지네이션만 중단 (이미 받은 페이지는 처리)
- 약정 기간은 정확히 1년(31536000초) 또는 3년(94608000초)만 허용

Usage:
    from exporter.aws.savingsplan import get_savingplan_pricing

    sp = factory.savingsplans()
    get_savingplan_pricing("us-east-1", aws_config, instances, errors, emit, sp)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from exporter.config import AwsScrapeConfig, is_match_any
from exporter.exceptions import PolicyViolationError, RecordParseError
from exporter.parallel.errors import ErrorCollector, ErrorSeverity
from exporter.types import Lifecycle, MetricKind, PriceRecord

from .constants import MAX_RESULTS_PER_PAGE, SECONDS_PER_YEAR
from .instances import InstanceStore

logger = logging.getLogger(__name__)

PROVIDER = "aws_savingplan"

_VALID_YEARS = (1, 3)


@dataclass(frozen=True)
class SavingPlanProperties:
    """요금 항목의 properties(name/value 목록)를 정리한 값"""

    region: str = ""
    instance_type: str = ""
    instance_family: str = ""
    product_description: str = ""
    tenancy: str = ""


_PROPERTY_FIELDS = {
    "region": "region",
    "instanceType": "instance_type",
    "instanceFamily": "instance_family",
    "productDescription": "product_description",
    "tenancy": "tenancy",
}


def parse_properties(properties: list[dict[str, Any]] | None) -> SavingPlanProperties:
    """name/value 목록을 SavingPlanProperties로 변환 (name 또는 value가 없는 항목은 무시)"""
    values: dict[str, str] = {}
    for prop in properties or []:
        name = prop.get("name")
        value = prop.get("value")
        if name is None or value is None:
            continue
        field_name = _PROPERTY_FIELDS.get(name)
        if field_name:
            values[field_name] = value
    return SavingPlanProperties(**values)


def seconds_to_years(seconds: int) -> int:
    """약정 기간(초)을 연 단위로 변환

    Raises:
        PolicyViolationError: 정확히 1년 또는 3년이 아닌 경우
    """
    for years in _VALID_YEARS:
        if seconds == years * SECONDS_PER_YEAR:
            return years
    raise PolicyViolationError("durationSeconds", seconds, f"{SECONDS_PER_YEAR} 또는 {3 * SECONDS_PER_YEAR}")


def fetch_offering_rates(
    client: Any,
    region: str,
    config: AwsScrapeConfig,
    errors: ErrorCollector,
) -> list[dict[str, Any]]:
    """Savings Plan 요금 전체 페이지 조회

    Returns:
        searchResults 항목 목록 (오류 발생 전까지 받은 페이지 포함)
    """
    params: dict[str, Any] = {
        "savingsPlanTypes": list(config.saving_plan_types),
        "serviceCodes": ["AmazonEC2"],
        "filters": [
            {"name": "region", "values": [region]},
            {"name": "tenancy", "values": ["shared"]},
            {"name": "productDescription", "values": list(config.product_descriptions)},
        ],
        "maxResults": MAX_RESULTS_PER_PAGE,
    }

    rates: list[dict[str, Any]] = []
    while True:
        try:
            response = client.describe_savings_plans_offering_rates(**params)
        except (ClientError, BotoCoreError) as e:
            errors.collect(e, region, "describe_savings_plans_offering_rates", provider=PROVIDER)
            break

        rates.extend(response.get("searchResults", []))

        next_token = response.get("nextToken")
        if not next_token:
            break
        params["nextToken"] = next_token

    return rates


def get_savingplan_pricing(
    region: str,
    config: AwsScrapeConfig,
    instances: InstanceStore,
    errors: ErrorCollector,
    emit: Callable[[PriceRecord], None],
    client: Any,
) -> None:
    """리전의 Savings Plan 가격 수집

    Args:
        region: 리전
        config: AWS 수집 설정
        instances: 인스턴스 사양 저장소
        errors: 에러 수집기
        emit: 레코드 전달 함수
        client: savingsplans 클라이언트
    """
    for rate in fetch_offering_rates(client, region, config, errors):
        properties = parse_properties(rate.get("properties"))
        instance_type = properties.instance_type

        if not is_match_any(config.instance_regexes, instance_type):
            logger.debug(f"인스턴스 타입 제외: {instance_type}")
            continue

        offering = rate.get("savingsPlanOffering") or {}
        operation = f"{instance_type}/{offering.get('planType', '')}"

        raw_rate = rate.get("rate")
        try:
            value = float(raw_rate)
        except (TypeError, ValueError) as e:
            errors.collect(
                RecordParseError("rate", raw_rate, cause=e),
                region,
                f"parse_rate:{operation}",
                severity=ErrorSeverity.INFO,
                provider=PROVIDER,
            )
            continue

        try:
            years = seconds_to_years(offering.get("durationSeconds", 0))
        except PolicyViolationError as e:
            errors.collect(e, region, f"duration:{operation}", severity=ErrorSeverity.INFO, provider=PROVIDER)
            continue

        plan_labels = {
            "saving_plan_option": offering.get("paymentOption", ""),
            "saving_plan_duration": years,
            "saving_plan_type": offering.get("planType", ""),
        }

        vcpu_cost, memory_cost = instances.get_normalized_cost(value, instance_type)
        emit(
            PriceRecord(
                kind=MetricKind.EC2,
                value=value,
                region=region,
                instance_type=instance_type,
                lifecycle=Lifecycle.ONDEMAND,
                product_description=properties.product_description,
                memory=instances.get_memory(instance_type),
                vcpu=instances.get_vcpu(instance_type),
                **plan_labels,
            )
        )
        emit(
            PriceRecord(
                kind=MetricKind.EC2_MEMORY,
                value=memory_cost,
                region=region,
                instance_type=instance_type,
                lifecycle=Lifecycle.ONDEMAND,
                **plan_labels,
            )
        )
        emit(
            PriceRecord(
                kind=MetricKind.EC2_VCPU,
                value=vcpu_cost,
                region=region,
                instance_type=instance_type,
                lifecycle=Lifecycle.ONDEMAND,
                **plan_labels,
            )
        )
