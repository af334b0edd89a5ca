"""
exporter/aws/spot.py - AWS EC2 Spot 가격 수집

describe_spot_price_history 페이지네이터로 현재 시점의 Spot 가격을 조회합니다.
(인스턴스 타입, 가용 영역, 제품 설명) 조합마다 가장 최근 Timestamp의 항목만 사용합니다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from exporter.config import AwsScrapeConfig, is_match_any
from exporter.exceptions import RecordParseError
from exporter.parallel.errors import ErrorCollector, ErrorSeverity
from exporter.types import Lifecycle, MetricKind, PriceRecord

from .constants import MAX_RESULTS_PER_PAGE
from .instances import InstanceStore

logger = logging.getLogger(__name__)

PROVIDER = "aws_spot"


def fetch_latest_spot_prices(
    ec2_client: Any,
    region: str,
    product_descriptions: tuple[str, ...],
    errors: ErrorCollector,
    start_time: datetime | None = None,
) -> dict[tuple[str, str, str], dict[str, Any]]:
    """Spot 가격 이력을 페이지 단위로 조회하여 조합별 최신 항목만 반환

    페이지 조회 오류는 집계 후 페이지네이션을 중단하고, 그때까지 받은 항목을 반환합니다.

    Returns:
        {(instance_type, availability_zone, product_description): entry}
    """
    paginator = ec2_client.get_paginator("describe_spot_price_history")
    pages = paginator.paginate(
        StartTime=start_time or datetime.now(timezone.utc),
        ProductDescriptions=list(product_descriptions),
        PaginationConfig={"PageSize": MAX_RESULTS_PER_PAGE},
    )

    latest: dict[tuple[str, str, str], dict[str, Any]] = {}
    try:
        for page in pages:
            for entry in page.get("SpotPriceHistory", []):
                key = (
                    entry.get("InstanceType", ""),
                    entry.get("AvailabilityZone", ""),
                    entry.get("ProductDescription", ""),
                )
                current = latest.get(key)
                if current is None or _timestamp(entry) >= _timestamp(current):
                    latest[key] = entry
    except (ClientError, BotoCoreError) as e:
        errors.collect(e, region, "describe_spot_price_history", provider=PROVIDER)

    return latest


def _timestamp(entry: dict[str, Any]) -> datetime:
    ts = entry.get("Timestamp")
    if isinstance(ts, datetime):
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
    return datetime.min.replace(tzinfo=timezone.utc)


def get_spot_pricing(
    region: str,
    config: AwsScrapeConfig,
    instances: InstanceStore,
    errors: ErrorCollector,
    emit: Callable[[PriceRecord], None],
    ec2_client: Any,
    start_time: datetime | None = None,
) -> None:
    """리전의 Spot 가격 수집

    Args:
        region: 리전
        config: AWS 수집 설정
        instances: 인스턴스 사양 저장소
        errors: 에러 수집기
        emit: 레코드 전달 함수
        ec2_client: EC2 클라이언트
        start_time: 조회 기준 시각 (None이면 현재)
    """
    latest = fetch_latest_spot_prices(ec2_client, region, config.product_descriptions, errors, start_time)

    for (instance_type, az, product_description), entry in latest.items():
        if not is_match_any(config.instance_regexes, instance_type):
            logger.debug(f"인스턴스 타입 제외: {instance_type}")
            continue

        raw_price = entry.get("SpotPrice")
        try:
            value = float(raw_price)
        except (TypeError, ValueError) as e:
            errors.collect(
                RecordParseError("SpotPrice", raw_price, cause=e),
                region,
                f"parse_price:{instance_type}/{az}",
                severity=ErrorSeverity.INFO,
                provider=PROVIDER,
            )
            continue

        vcpu_cost, memory_cost = instances.get_normalized_cost(value, instance_type)
        emit(
            PriceRecord(
                kind=MetricKind.EC2,
                value=value,
                region=region,
                availability_zone=az,
                instance_type=instance_type,
                lifecycle=Lifecycle.SPOT,
                product_description=product_description,
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
                lifecycle=Lifecycle.SPOT,
            )
        )
        emit(
            PriceRecord(
                kind=MetricKind.EC2_VCPU,
                value=vcpu_cost,
                region=region,
                availability_zone=az,
                instance_type=instance_type,
                lifecycle=Lifecycle.SPOT,
            )
        )
