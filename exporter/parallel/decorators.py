"""
exporter/parallel/decorators.py - 에러 분류 및 재시도 유틸리티

AWS API(botocore)와 HTTP(requests) 호출의 에러 분류와
지수 백오프 재시도 설정을 제공합니다.

주요 구성 요소:
- RetryConfig: 재시도 설정 (지수 백오프)
- categorize_error: 예외를 ErrorCategory로 분류
- get_error_code: 예외에서 에러 코드 추출
- is_retryable_status: HTTP 상태 코드 재시도 가능 여부
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from exporter.exceptions import (
    ClientConstructionError,
    PolicyViolationError,
    RecordParseError,
    UpstreamError,
    is_access_denied,
    is_throttling,
)

from .types import ErrorCategory

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """재시도 설정

    Attributes:
        max_attempts: 최대 시도 횟수 (첫 시도 포함, 1이면 재시도 안함)
        base_delay: 기본 대기 시간 (초)
        max_delay: 최대 대기 시간 (초)
        exponential_base: 지수 백오프 밑수
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0

    def get_delay(self, attempt: int) -> float:
        """재시도 대기 시간 계산

        Args:
            attempt: 현재 시도 횟수 (0부터 시작)

        Returns:
            대기 시간 (초, max_delay 이하)
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)


# 재시도 가능한 AWS 에러 코드
RETRYABLE_ERROR_CODES: set[str] = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalError",
    "InternalServiceError",
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
}


def is_retryable_status(status_code: int) -> bool:
    """HTTP 429 또는 5xx이면 재시도 대상"""
    return status_code == 429 or status_code >= 500


def _botocore_code(error: Exception) -> str | None:
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return None


def categorize_error(error: BaseException) -> ErrorCategory:
    """예외 객체를 분석하여 ErrorCategory로 분류

    botocore ClientError는 response의 에러 코드로,
    requests/네트워크 에러와 UpstreamError는 타입과 상태 코드로 분류합니다.

    Args:
        error: 분류할 예외

    Returns:
        에러 카테고리
    """
    if not isinstance(error, Exception):
        return ErrorCategory.UNKNOWN

    if is_throttling(error):
        return ErrorCategory.THROTTLING
    if is_access_denied(error):
        return ErrorCategory.ACCESS_DENIED

    if isinstance(error, (RecordParseError, PolicyViolationError)):
        return ErrorCategory.INVALID_REQUEST

    if isinstance(error, UpstreamError):
        if error.status_code is not None:
            if error.status_code >= 500:
                return ErrorCategory.SERVICE_ERROR
            if error.status_code == 404:
                return ErrorCategory.NOT_FOUND
            return ErrorCategory.INVALID_REQUEST
        if error.cause is not None:
            return categorize_error(error.cause)
        return ErrorCategory.UNKNOWN

    if isinstance(error, ClientConstructionError) and error.cause is not None:
        return categorize_error(error.cause)

    error_code = _botocore_code(error)
    if error_code is not None:
        if "Timeout" in error_code:
            return ErrorCategory.TIMEOUT
        if error_code in ("ExpiredToken", "ExpiredTokenException"):
            return ErrorCategory.EXPIRED_TOKEN
        if "NotFound" in error_code:
            return ErrorCategory.NOT_FOUND
        if error_code in RETRYABLE_ERROR_CODES:
            return ErrorCategory.SERVICE_ERROR

    # requests.Timeout은 ConnectionError의 하위 클래스가 아니므로 먼저 확인
    if isinstance(error, (requests.Timeout, TimeoutError)):
        return ErrorCategory.TIMEOUT

    # 네트워크 에러
    if isinstance(error, (requests.ConnectionError, ConnectionError, OSError)):
        return ErrorCategory.NETWORK

    return ErrorCategory.UNKNOWN


def get_error_code(error: BaseException) -> str:
    """예외 객체에서 에러 코드 문자열 추출

    ClientError는 response의 Code, UpstreamError는 HTTP 상태 코드,
    그 외에는 예외 클래스명을 반환합니다.

    Args:
        error: 예외 객체

    Returns:
        에러 코드 문자열
    """
    if isinstance(error, Exception):
        code = _botocore_code(error)
        if code:
            return code
    if isinstance(error, UpstreamError) and error.status_code is not None:
        return f"HTTP{error.status_code}"
    return error.__class__.__name__
