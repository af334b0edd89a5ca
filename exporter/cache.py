"""
exporter/cache.py - 수집 결과 캐시 게이트

TTL 안에서는 마지막 스냅샷을 그대로 반환하고, TTL이 지나면
수집 사이클을 1회 실행하여 스냅샷을 교체합니다.

- 동시에 하나의 사이클만 실행 (threading.Lock)
- 사이클 진행 중 들어온 호출은 락에서 대기한 뒤 완료된 스냅샷을 받음
  (부분적으로 채워진 결과는 노출되지 않음)
- 사이클 시작 전에 next_eligible을 먼저 갱신 (실패한 사이클도 TTL 전체를 기다림)
- TTL 0이면 매 호출마다 새 사이클 실행

Usage:
    from exporter.cache import CacheGate

    gate = CacheGate(orchestrator.run_cycle, ttl_seconds=300)
    snapshot = gate.get_records()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .orchestrator import CycleResult
from .types import PriceRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScrapeSnapshot:
    """노출 중인 수집 결과 (불변, 참조 단위로 교체)

    Attributes:
        records: 가격 레코드
        error_count: 마지막 사이클 에러 수
        duration_seconds: 마지막 사이클 소요 시간
        completed_at: 완료 시각 (UTC), 사이클 실행 전이면 None
    """

    records: tuple[PriceRecord, ...] = ()
    error_count: int = 0
    duration_seconds: float = 0.0
    completed_at: datetime | None = None


EMPTY_SNAPSHOT = ScrapeSnapshot()


@dataclass
class CycleState:
    """사이클 상태 (CacheGate 락 안에서만 변경)

    Attributes:
        next_eligible: 다음 사이클 실행 가능 시각 (monotonic 초)
        error_count: 마지막 사이클 에러 수 (사이클 시작 시 0으로 초기화)
        last_duration_seconds: 마지막 사이클 소요 시간
        total_scrapes: 실행한 사이클 총 횟수
    """

    next_eligible: float = field(default_factory=time.monotonic)
    error_count: int = 0
    last_duration_seconds: float = 0.0
    total_scrapes: int = 0


class CacheGate:
    """TTL 기반 수집 사이클 게이트"""

    def __init__(
        self,
        run_cycle: Callable[[], CycleResult],
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            run_cycle: 수집 사이클 실행 함수 (예외를 전파하지 않아야 함)
            ttl_seconds: 캐시 TTL (초)
            clock: monotonic 시계 (테스트 주입용)
        """
        self._run_cycle = run_cycle
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CycleState(next_eligible=clock())
        self._snapshot = EMPTY_SNAPSHOT

    @property
    def snapshot(self) -> ScrapeSnapshot:
        """현재 스냅샷 (사이클을 실행하지 않음)"""
        return self._snapshot

    @property
    def state(self) -> CycleState:
        """사이클 상태 복사본"""
        with self._lock:
            return self._copy_state()

    def _copy_state(self) -> CycleState:
        return CycleState(
            next_eligible=self._state.next_eligible,
            error_count=self._state.error_count,
            last_duration_seconds=self._state.last_duration_seconds,
            total_scrapes=self._state.total_scrapes,
        )

    def get_records(self) -> ScrapeSnapshot:
        """현재 스냅샷 반환 (TTL이 지났으면 사이클 실행 후 반환)

        Returns:
            ScrapeSnapshot
        """
        with self._lock:
            return self._refresh()

    def get_records_and_state(self) -> tuple[ScrapeSnapshot, CycleState]:
        """get_records와 같지만, 같은 락 구간에서 읽은 사이클 상태를 함께 반환

        반환된 스냅샷과 상태는 항상 같은 사이클 기준입니다.
        """
        with self._lock:
            snapshot = self._refresh()
            return snapshot, self._copy_state()

    def _refresh(self) -> ScrapeSnapshot:
        # self._lock 보유 상태에서만 호출
        now = self._clock()
        if now < self._state.next_eligible:
            return self._snapshot

        self._state.next_eligible = now + self.ttl_seconds
        self._state.error_count = 0

        try:
            result = self._run_cycle()
        except Exception as e:
            # 이전 스냅샷 유지
            logger.exception(f"수집 사이클 실행 중 예외: {e}")
            self._state.error_count = 1
            self._state.total_scrapes += 1
            return self._snapshot

        self._state.error_count = result.error_count
        self._state.last_duration_seconds = result.duration_seconds
        self._state.total_scrapes += 1
        self._snapshot = ScrapeSnapshot(
            records=result.records,
            error_count=result.error_count,
            duration_seconds=result.duration_seconds,
            completed_at=datetime.now(timezone.utc),
        )
        return self._snapshot
