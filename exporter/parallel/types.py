"""
exporter/parallel/types.py - 병렬 수집 결과 타입

수집 작업(provider x region) 단위의 성공/실패 결과를 표현합니다.

주요 구성 요소:
- ErrorCategory: 에러 카테고리 분류
- TaskError: 실패한 작업의 에러 정보
- TaskResult: 단일 작업 결과
- ParallelExecutionResult: 전체 작업 결과 집계
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCategory(Enum):
    """에러 카테고리"""

    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    THROTTLING = "throttling"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"
    EXPIRED_TOKEN = "expired_token"
    NETWORK = "network"
    UNKNOWN = "unknown"


@dataclass
class TaskError:
    """작업 실패 정보

    Attributes:
        identifier: 작업 식별자 (예: "aws_spot")
        region: 대상 리전
        category: 에러 카테고리
        error_code: 에러 코드 (botocore 코드, HTTP 상태 또는 예외 클래스명)
        message: 에러 메시지
        original_exception: 원본 예외
        timestamp: 발생 시각
    """

    identifier: str
    region: str
    category: ErrorCategory
    error_code: str
    message: str
    original_exception: BaseException | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class TaskResult(Generic[T]):
    """단일 작업 결과

    Attributes:
        identifier: 작업 식별자
        region: 대상 리전
        success: 성공 여부
        data: 성공 시 결과 데이터
        error: 실패 시 에러 정보
        duration_ms: 실행 시간 (ms)
    """

    identifier: str
    region: str
    success: bool
    data: T | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0


@dataclass(frozen=True)
class ParallelExecutionResult(Generic[T]):
    """병렬 실행 전체 결과

    Attributes:
        results: 개별 작업 결과
        timed_out: 제한 시간 초과로 미완료 작업이 남았는지 여부
    """

    results: tuple[TaskResult[T], ...] = ()
    timed_out: bool = False

    @property
    def successful(self) -> list[TaskResult[T]]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[TaskResult[T]]:
        return [r for r in self.results if not r.success]

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def error_count(self) -> int:
        return len(self.failed)
