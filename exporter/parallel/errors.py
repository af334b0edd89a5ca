"""
exporter/parallel/errors.py - 에러 수집 및 집계

수집 사이클 중 여러 워커 스레드에서 발생하는 비치명적 에러를
일관되게 수집하고 집계합니다. 집계된 건수는 aws_pricing_scrape_error
게이지로 노출됩니다.

주요 구성 요소:
- ErrorSeverity: 에러 심각도 분류
- CollectedError: 수집된 에러 상세 정보
- ErrorCollector: 스레드 세이프 에러 수집기

Example:
    collector = ErrorCollector("aws_spot")

    try:
        page = next(pages)
    except ClientError as e:
        collector.collect(e, region, "describe_spot_price_history")

    if collector.has_errors:
        logger.warning(collector.get_summary())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .decorators import categorize_error, get_error_code
from .types import ErrorCategory

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """에러 심각도 분류

    수집된 에러의 심각도를 나타내며, 로깅 레벨을 결정합니다.
    심각도와 관계없이 모든 에러가 집계 건수에 포함됩니다.
    """

    CRITICAL = "critical"  # 작업 전체 실패
    WARNING = "warning"  # 부분 실패 (페이지 중단 등)
    INFO = "info"  # 레코드 단위 스킵
    DEBUG = "debug"


@dataclass
class CollectedError:
    """수집된 에러 상세 정보

    Attributes:
        timestamp: 에러 발생 시각
        provider: 수집기 이름 (예: "aws_ondemand", "azure_ondemand")
        region: 리전
        operation: 작업 이름 (예: "describe_spot_price_history")
        error_code: 에러 코드
        error_message: 에러 메시지
        severity: 에러 심각도
        category: 에러 카테고리
    """

    timestamp: datetime
    provider: str
    region: str
    operation: str
    error_code: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory

    def __str__(self) -> str:
        return (
            f"[{self.severity.value.upper()}] {self.provider}/{self.region} - "
            f"{self.operation}: {self.error_code} ({self.error_message})"
        )


class ErrorCollector:
    """스레드 세이프 에러 수집기

    수집 사이클마다 새로 만들어지며, 그 사이클의 모든 워커가 공유합니다.

    Example:
        collector = ErrorCollector("pricing")

        try:
            zones = list_zones(ec2, region)
        except ClientError as e:
            collector.collect(e, region, "describe_availability_zones", provider="aws_ondemand")

        collector.count  # 집계 건수
    """

    def __init__(self, provider: str = "pricing"):
        """초기화

        Args:
            provider: 기본 수집기 이름 (collect 호출 시 생략하면 적용)
        """
        self.provider = provider
        self._errors: list[CollectedError] = []
        self._lock = threading.Lock()

    def collect(
        self,
        error: BaseException,
        region: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        provider: str | None = None,
    ) -> None:
        """예외를 수집하고 로깅

        Args:
            error: 발생한 예외 (botocore ClientError, requests 예외, PriceExporterError 등)
            region: 리전
            operation: 작업 이름
            severity: 에러 심각도 (기본: WARNING)
            provider: 수집기 이름 (None이면 기본값)
        """
        self._append(
            CollectedError(
                timestamp=datetime.now(),
                provider=provider or self.provider,
                region=region,
                operation=operation,
                error_code=get_error_code(error),
                error_message=str(error),
                severity=severity,
                category=categorize_error(error),
            )
        )

    def collect_generic(
        self,
        error_code: str,
        error_message: str,
        region: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        provider: str | None = None,
    ) -> None:
        """예외 객체 없는 에러 수집 (사이클 타임아웃 등)"""
        self._append(
            CollectedError(
                timestamp=datetime.now(),
                provider=provider or self.provider,
                region=region,
                operation=operation,
                error_code=error_code,
                error_message=error_message,
                severity=severity,
                category=category,
            )
        )

    def _append(self, collected: CollectedError) -> None:
        with self._lock:
            self._errors.append(collected)

        log_msg = f"{collected}"
        if collected.severity == ErrorSeverity.CRITICAL:
            logger.error(log_msg)
        elif collected.severity == ErrorSeverity.WARNING:
            logger.warning(log_msg)
        elif collected.severity == ErrorSeverity.INFO:
            logger.info(log_msg)
        else:
            logger.debug(log_msg)

    @property
    def errors(self) -> list[CollectedError]:
        """수집된 모든 에러의 복사본 반환"""
        with self._lock:
            return list(self._errors)

    @property
    def count(self) -> int:
        """집계된 에러 건수"""
        with self._lock:
            return len(self._errors)

    @property
    def has_errors(self) -> bool:
        return self.count > 0

    def get_summary(self) -> str:
        """수집기별 에러 건수를 포함한 요약 문자열 반환

        Returns:
            포맷팅된 요약 문자열 (예: "에러 3건 (aws_spot: 1건, azure_ondemand: 2건)")
        """
        errors = self.errors
        if not errors:
            return "에러 없음"

        by_provider: dict[str, int] = {}
        for e in errors:
            by_provider[e.provider] = by_provider.get(e.provider, 0) + 1

        parts = [f"{k}: {v}건" for k, v in sorted(by_provider.items())]
        return f"에러 {len(errors)}건 ({', '.join(parts)})"
