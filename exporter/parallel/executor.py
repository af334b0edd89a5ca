"""
exporter/parallel/executor.py - 병렬 수집 실행기

수집 작업(provider x region)을 ThreadPoolExecutor로 병렬 실행합니다.
워커는 결과를 제한된 크기의 큐에 넣고(emit), 호출 스레드는 작업이 진행되는
동안 큐를 동시에 비우면서 sink로 전달합니다.

사이클 제한 시간을 넘기면 취소 이벤트를 설정하고 대기 중인 작업을 취소하며,
이후 도착하는 결과는 버립니다. 워커에서 발생한 예외는 TaskResult로 변환되어
다른 워커나 호출자에게 전파되지 않습니다.

주요 구성 요소:
- ScrapeTask: 단일 수집 작업 명세
- Emitter: 워커 → 큐 결과 전달기 (취소 인지)
- ParallelConfig: 병렬 실행 설정 (워커 수, 제한 시간, 큐 크기)
- ParallelScrapeExecutor: 병렬 실행기

Example:
    def scrape_spot(emit):
        for record in fetch_records():
            emit(record)

    tasks = [ScrapeTask("aws_spot", "us-east-1", scrape_spot)]
    executor = ParallelScrapeExecutor(ParallelConfig(max_workers=10, timeout_seconds=300))
    result = executor.execute(tasks, sink=records.append)
    print(f"성공: {result.success_count}, 실패: {result.error_count}")
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic, TypeVar

from .decorators import categorize_error, get_error_code
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 큐 put/get 대기 단위 (초) - 취소/완료 여부를 확인하는 주기
_POLL_INTERVAL = 0.05


def _clear_exception_chain(e: BaseException) -> None:
    """traceback + chained exception 메모리 누수 방지"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


class CycleCancelled(Exception):
    """사이클 취소 후 emit 시도 시 워커를 중단시키기 위한 예외"""


class Emitter(Generic[T]):
    """워커 → 결과 큐 전달기

    큐가 가득 차면 취소 이벤트를 주기적으로 확인하며 대기합니다.
    취소된 뒤에는 결과를 버리고 CycleCancelled를 발생시켜 워커를 중단합니다.
    """

    def __init__(self, results: queue.Queue, cancel_event: threading.Event):
        self._results = results
        self._cancel = cancel_event
        self.count = 0

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def __call__(self, item: T) -> None:
        while not self._cancel.is_set():
            try:
                self._results.put(item, timeout=_POLL_INTERVAL)
                self.count += 1
                return
            except queue.Full:
                continue
        raise CycleCancelled()


@dataclass
class ScrapeTask(Generic[T]):
    """수집 작업 명세

    Attributes:
        identifier: 수집기 이름 (예: "aws_spot")
        region: 대상 리전
        func: emit 함수를 받아 결과를 전달하는 작업 함수
    """

    identifier: str
    region: str
    func: Callable[[Emitter[T]], None]


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100)
        timeout_seconds: 전체 실행 제한 시간 (초)
        queue_size: 결과 큐 크기
    """

    max_workers: int = 20
    timeout_seconds: float = 300.0
    queue_size: int = 1000

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {self.queue_size}")


class ParallelScrapeExecutor(Generic[T]):
    """병렬 수집 실행기

    특징:
    - ThreadPoolExecutor 기반 병렬 처리
    - 제한된 크기의 결과 큐를 호출 스레드가 동시에 소비
    - 전체 제한 시간 초과 시 취소 (미완료 작업은 TIMEOUT 실패로 기록)
    - 워커 예외 격리 (TaskResult로 변환)
    """

    def __init__(self, config: ParallelConfig | None = None):
        self.config = config or ParallelConfig()

    def execute(
        self,
        tasks: Sequence[ScrapeTask[T]],
        sink: Callable[[T], None],
    ) -> ParallelExecutionResult[int]:
        """작업을 병렬 실행하고 결과를 sink로 전달

        Args:
            tasks: 실행할 작업 목록
            sink: 결과 항목 소비 함수 (호출 스레드에서만 호출됨)

        Returns:
            ParallelExecutionResult[int]: 작업별 결과 (data는 전달한 항목 수)
        """
        if not tasks:
            logger.warning("실행할 작업이 없습니다")
            return ParallelExecutionResult()

        logger.debug(
            f"병렬 실행 시작: {len(tasks)}개 작업, max_workers={self.config.max_workers}, "
            f"timeout={self.config.timeout_seconds}s"
        )

        results_queue: queue.Queue = queue.Queue(maxsize=self.config.queue_size)
        cancel_event = threading.Event()
        start_time = time.monotonic()
        deadline = start_time + self.config.timeout_seconds

        pool = ThreadPoolExecutor(max_workers=min(self.config.max_workers, len(tasks)))
        futures: dict[Future, ScrapeTask[T]] = {}
        for task in tasks:
            emitter: Emitter[T] = Emitter(results_queue, cancel_event)
            futures[pool.submit(self._execute_single, task, emitter)] = task

        timed_out = False
        try:
            while True:
                try:
                    sink(results_queue.get(timeout=_POLL_INTERVAL))
                except queue.Empty:
                    if all(f.done() for f in futures):
                        break
                if time.monotonic() >= deadline:
                    timed_out = not all(f.done() for f in futures)
                    break

            if not timed_out:
                # 마지막 Empty 확인 이후 완료 직전에 들어온 항목
                while True:
                    try:
                        sink(results_queue.get_nowait())
                    except queue.Empty:
                        break
        finally:
            if timed_out:
                cancel_event.set()
                pool.shutdown(wait=False, cancel_futures=True)
            else:
                pool.shutdown(wait=True)

        results: list[TaskResult[int]] = []
        for future, task in futures.items():
            if future.done() and not future.cancelled():
                results.append(future.result())
            else:
                results.append(self._timeout_result(task, start_time))

        total_time = (time.monotonic() - start_time) * 1000
        exec_result = ParallelExecutionResult(results=tuple(results), timed_out=timed_out)

        emitted = sum(r.data or 0 for r in results)
        logger.debug(
            f"병렬 실행 완료: 성공 {exec_result.success_count}, 실패 {exec_result.error_count}, "
            f"레코드 {emitted}개, 총 {total_time:.0f}ms"
        )
        if timed_out:
            logger.warning(f"제한 시간({self.config.timeout_seconds}s) 초과로 미완료 작업을 취소했습니다")

        return exec_result

    def _execute_single(self, task: ScrapeTask[T], emitter: Emitter[T]) -> TaskResult[int]:
        """단일 작업 실행 (워커 스레드 내에서 호출)

        Args:
            task: 실행할 작업 명세
            emitter: 결과 전달기

        Returns:
            TaskResult[int]: 성공 시 전달한 항목 수, 실패 시 에러 정보 포함
        """
        start_time = time.monotonic()

        try:
            task.func(emitter)
            return TaskResult(
                identifier=task.identifier,
                region=task.region,
                success=True,
                data=emitter.count,
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        except CycleCancelled:
            return self._timeout_result(task, start_time)
        except Exception as e:
            _clear_exception_chain(e)
            return TaskResult(
                identifier=task.identifier,
                region=task.region,
                success=False,
                data=emitter.count,
                error=TaskError(
                    identifier=task.identifier,
                    region=task.region,
                    category=categorize_error(e),
                    error_code=get_error_code(e),
                    message=str(e),
                    original_exception=e,
                ),
                duration_ms=(time.monotonic() - start_time) * 1000,
            )

    def _timeout_result(self, task: ScrapeTask[T], start_time: float) -> TaskResult[int]:
        return TaskResult(
            identifier=task.identifier,
            region=task.region,
            success=False,
            error=TaskError(
                identifier=task.identifier,
                region=task.region,
                category=ErrorCategory.TIMEOUT,
                error_code="CycleTimeout",
                message=f"제한 시간({self.config.timeout_seconds}s) 내에 완료되지 않음",
            ),
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
