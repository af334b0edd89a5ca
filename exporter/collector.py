"""
exporter/collector.py - Prometheus 커스텀 수집기

prometheus_client 레지스트리에 등록되는 커스텀 Collector입니다.

- describe(): 고정된 메트릭 디스크립터만 반환 (등록 시 수집을 일으키지 않음)
- collect(): CacheGate에서 현재 스냅샷을 받아 메트릭 패밀리를 생성.
  기술(describe)된 패밀리는 레코드가 없어도 항상 반환합니다.

Usage:
    from prometheus_client import CollectorRegistry

    registry = CollectorRegistry()
    registry.register(PricingCollector(gate, azure_enabled=True))
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from prometheus_client.metrics_core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from .cache import CacheGate
from .types import AWS_PRICE_KINDS, MetricKind

logger = logging.getLogger(__name__)

SCRAPE_DURATION_METRIC = "aws_pricing_scrape_duration_seconds"
SCRAPES_TOTAL_METRIC = "aws_pricing_scrapes_total"
SCRAPE_ERROR_METRIC = "aws_pricing_scrape_error"


class PricingCollector(Collector):
    """가격 메트릭 수집기

    Attributes:
        gate: 수집 결과 캐시 게이트
        kinds: 노출할 가격 메트릭 종류 (AWS 3종 + Azure 활성화 시 azure_pricing_vm)
    """

    def __init__(self, gate: CacheGate, aws_enabled: bool = True, azure_enabled: bool = False):
        self.gate = gate
        kinds: list[MetricKind] = []
        if aws_enabled:
            kinds.extend(AWS_PRICE_KINDS)
        if azure_enabled:
            kinds.append(MetricKind.AZURE_VM)
        self.kinds: tuple[MetricKind, ...] = tuple(kinds)

    def _price_families(self) -> dict[MetricKind, GaugeMetricFamily]:
        return {
            kind: GaugeMetricFamily(kind.metric_name, kind.documentation, labels=list(kind.labels))
            for kind in self.kinds
        }

    def _operational_families(
        self, duration: float = 0.0, total: int = 0, errors: int = 0
    ) -> list[Metric]:
        return [
            GaugeMetricFamily(SCRAPE_DURATION_METRIC, "The scrape duration.", value=duration),
            CounterMetricFamily(SCRAPES_TOTAL_METRIC, "Total number of pricing scrapes.", value=total),
            GaugeMetricFamily(SCRAPE_ERROR_METRIC, "The number of errors in the last scrape.", value=errors),
        ]

    def describe(self) -> Iterator[Metric]:
        """고정 디스크립터 (수집을 실행하지 않음)"""
        yield from self._price_families().values()
        yield from self._operational_families()

    def collect(self) -> Iterator[Metric]:
        """현재 스냅샷으로 메트릭 생성 (TTL이 지났으면 수집 사이클 실행)"""
        snapshot, state = self.gate.get_records_and_state()

        families = self._price_families()
        for record in snapshot.records:
            family = families.get(record.kind)
            if family is None:
                logger.warning(f"등록되지 않은 메트릭 종류, 레코드 제외: {record.kind.metric_name}")
                continue
            family.add_metric(list(record.label_values()), record.value)

        yield from families.values()
        yield from self._operational_families(
            duration=state.last_duration_seconds,
            total=state.total_scrapes,
            errors=state.error_count,
        )
