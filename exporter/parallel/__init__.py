"""
exporter/parallel - 병렬 수집 모듈

리전 x 수집기 단위 작업을 병렬로 안전하게 처리합니다.

주요 구성 요소:
- ParallelScrapeExecutor: 큐 기반 병렬 실행기 (제한 시간, 취소 지원)
- ErrorCollector: 스레드 세이프 에러 집계
- RetryConfig: 지수 백오프 재시도 설정

Example:
    from exporter.parallel import ParallelConfig, ParallelScrapeExecutor, ScrapeTask

    executor = ParallelScrapeExecutor(ParallelConfig(max_workers=10))
    result = executor.execute(tasks, sink=records.append)

    if result.error_count > 0:
        print([r.identifier for r in result.failed])
"""

from .decorators import RetryConfig, categorize_error, get_error_code, is_retryable_status
from .errors import CollectedError, ErrorCollector, ErrorSeverity
from .executor import CycleCancelled, Emitter, ParallelConfig, ParallelScrapeExecutor, ScrapeTask
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

__all__: list[str] = [
    # Executor
    "ParallelScrapeExecutor",
    "ParallelConfig",
    "ScrapeTask",
    "Emitter",
    "CycleCancelled",
    # Decorators
    "RetryConfig",
    "categorize_error",
    "get_error_code",
    "is_retryable_status",
    # Error handling
    "ErrorCollector",
    "ErrorSeverity",
    "CollectedError",
    # Types
    "ErrorCategory",
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]
