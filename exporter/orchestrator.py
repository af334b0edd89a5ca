"""
exporter/orchestrator.py - 수집 사이클 오케스트레이터

활성화된 (리전 x 수집기) 조합마다 작업을 만들어 병렬 실행하고,
결과 레코드를 키 기준으로 병합합니다 (같은 라벨 조합은 마지막 값으로 대체).

작업 구성:
    - aws_spot:       lifecycles에 "spot" 포함 시 AWS 리전마다
    - aws_ondemand:   lifecycles에 "ondemand" 포함 시 AWS 리전마다
    - aws_savingplan: saving_plan_types가 비어 있지 않으면 AWS 리전마다
    - azure_ondemand: Azure 리전마다

각 작업은 워커 스레드 안에서 자기 리전의 클라이언트를 생성하며,
생성 실패나 업스트림 실패는 해당 작업만 중단하고 에러로 집계됩니다.

Usage:
    from exporter.orchestrator import ScrapeOrchestrator

    orchestrator = ScrapeOrchestrator(config, instances)
    result = orchestrator.run_cycle()
    print(len(result.records), result.error_count)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .aws.clients import AwsClientFactory
from .aws.instances import InstanceStore
from .aws.ondemand import get_ondemand_pricing
from .aws.savingsplan import get_savingplan_pricing
from .aws.spot import get_spot_pricing
from .azure.ondemand import get_azure_ondemand_pricing
from .azure.retail_client import HTTPRetailPricesClient
from .config import ScrapeConfig, settings
from .parallel.errors import ErrorCollector, ErrorSeverity
from .parallel.executor import Emitter, ParallelConfig, ParallelScrapeExecutor, ScrapeTask
from .types import MetricKind, PriceRecord

logger = logging.getLogger(__name__)

RecordKey = tuple[MetricKind, tuple[str, ...]]


@dataclass(frozen=True)
class CycleResult:
    """수집 사이클 결과

    Attributes:
        records: 병합된 가격 레코드 (키 중복 없음)
        error_count: 집계된 비치명적 에러 수
        duration_seconds: 사이클 소요 시간
        task_count: 실행한 작업 수
        timed_out: 제한 시간 초과 여부
    """

    records: tuple[PriceRecord, ...]
    error_count: int
    duration_seconds: float
    task_count: int = 0
    timed_out: bool = False


class ScrapeOrchestrator:
    """수집 사이클 실행기

    Attributes:
        config: 수집 설정 (불변)
        instances: 인스턴스 사양 저장소 (사이클 중 읽기 전용)
        aws_clients: boto3 클라이언트 팩토리
        azure_client_factory: Azure Retail Prices 클라이언트 생성 함수
        errors: 마지막 사이클의 에러 수집기 (사이클마다 새로 생성)
    """

    def __init__(
        self,
        config: ScrapeConfig,
        instances: InstanceStore,
        aws_clients: AwsClientFactory | None = None,
        azure_client_factory: Callable[[], Any] | None = None,
        http: Any = None,
    ):
        self.config = config
        self.instances = instances
        self.aws_clients = aws_clients or AwsClientFactory()
        self.azure_client_factory = azure_client_factory or HTTPRetailPricesClient
        self.http = http
        self.errors = ErrorCollector("pricing")

    # =========================================================================
    # 작업 구성
    # =========================================================================

    def build_tasks(
        self, errors: ErrorCollector, start_time: datetime | None = None
    ) -> list[ScrapeTask[PriceRecord]]:
        """활성화된 (리전 x 수집기) 조합별 작업 목록 생성

        Args:
            errors: 이번 사이클의 에러 수집기 (작업 클로저에 묶임)
            start_time: 스팟 가격 조회 기준 시각 (기본: 현재)
        """
        tasks: list[ScrapeTask[PriceRecord]] = []
        start_time = start_time or datetime.now(timezone.utc)

        aws = self.config.aws
        if aws is not None:
            for region in aws.regions:
                if aws.spot_enabled:
                    tasks.append(ScrapeTask("aws_spot", region, self._spot_task(region, errors, start_time)))
                if aws.ondemand_enabled:
                    tasks.append(ScrapeTask("aws_ondemand", region, self._ondemand_task(region, errors)))
                if aws.savingplan_enabled:
                    tasks.append(ScrapeTask("aws_savingplan", region, self._savingplan_task(region, errors)))

        azure = self.config.azure
        if azure is not None:
            for region in azure.regions:
                tasks.append(ScrapeTask("azure_ondemand", region, self._azure_task(region)))

        return tasks

    def _spot_task(
        self, region: str, errors: ErrorCollector, start_time: datetime
    ) -> Callable[[Emitter[PriceRecord]], None]:
        def run(emit: Emitter[PriceRecord]) -> None:
            ec2 = self.aws_clients.ec2(region, provider="aws_spot")
            get_spot_pricing(region, self.config.aws, self.instances, errors, emit, ec2, start_time)

        return run

    def _ondemand_task(self, region: str, errors: ErrorCollector) -> Callable[[Emitter[PriceRecord]], None]:
        def run(emit: Emitter[PriceRecord]) -> None:
            ec2 = self.aws_clients.ec2(region, provider="aws_ondemand")
            get_ondemand_pricing(region, self.config.aws, self.instances, errors, emit, ec2, self.http)

        return run

    def _savingplan_task(self, region: str, errors: ErrorCollector) -> Callable[[Emitter[PriceRecord]], None]:
        def run(emit: Emitter[PriceRecord]) -> None:
            client = self.aws_clients.savingsplans()
            get_savingplan_pricing(region, self.config.aws, self.instances, errors, emit, client)

        return run

    def _azure_task(self, region: str) -> Callable[[Emitter[PriceRecord]], None]:
        def run(emit: Emitter[PriceRecord]) -> None:
            client = self.azure_client_factory()
            try:
                get_azure_ondemand_pricing(region, self.config.azure, client, emit)
            finally:
                close = getattr(client, "close", None)
                if close is not None:
                    close()

        return run

    # =========================================================================
    # 사이클 실행
    # =========================================================================

    def run_cycle(self) -> CycleResult:
        """수집 사이클 1회 실행

        예외를 전파하지 않으며, 전체 실패 시 빈 레코드 집합을 반환합니다.
        에러 수집기는 사이클마다 새로 만들어지므로, 제한 시간 초과 후에도
        실행 중인 이전 사이클의 워커는 다음 사이클 집계에 영향을 주지 않습니다.

        Returns:
            CycleResult
        """
        errors = ErrorCollector("pricing")
        self.errors = errors
        start = time.monotonic()
        tasks = self.build_tasks(errors)

        records: dict[RecordKey, PriceRecord] = {}

        def sink(record: PriceRecord) -> None:
            records[record.key()] = record

        executor: ParallelScrapeExecutor[PriceRecord] = ParallelScrapeExecutor(
            ParallelConfig(
                max_workers=self.config.max_workers,
                timeout_seconds=self.config.cycle_timeout_seconds,
                queue_size=settings.RESULT_QUEUE_SIZE,
            )
        )
        result = executor.execute(tasks, sink)

        for failed in result.failed:
            error = failed.error
            if error is None:
                continue
            if error.original_exception is not None:
                errors.collect(
                    error.original_exception,
                    failed.region,
                    "scrape",
                    severity=ErrorSeverity.CRITICAL,
                    provider=failed.identifier,
                )
            else:
                errors.collect_generic(
                    error.error_code,
                    error.message,
                    failed.region,
                    "scrape",
                    severity=ErrorSeverity.CRITICAL,
                    category=error.category,
                    provider=failed.identifier,
                )

        duration = time.monotonic() - start
        error_count = errors.count

        logger.info(
            f"수집 사이클 완료: 작업 {len(tasks)}개, 레코드 {len(records)}개, 에러 {error_count}건, {duration:.2f}초"
        )
        if errors.has_errors:
            logger.warning(errors.get_summary())

        return CycleResult(
            records=tuple(records.values()),
            error_count=error_count,
            duration_seconds=duration,
            task_count=len(tasks),
            timed_out=result.timed_out,
        )
